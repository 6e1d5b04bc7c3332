from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Cache tier
    redis_url: str = ""  # empty -> process-local cache only
    cache_ttl_seconds: int = 24 * 60 * 60
    cache_key_prefix: str = "vacancy"

    # Plain HTTP tier
    http_timeout_seconds: float = 10.0
    http_user_agent: str = "Mozilla/5.0 (compatible; SiteScoutBot/1.0)"
    http_accept_language: str = "nl-NL,nl;q=0.9,en;q=0.8"

    # Browser tier (Playwright)
    browser_headless: bool = True
    browser_timeout_ms: int = 45000
    browser_settle_ms: int = 3000
    browser_scroll_steps: int = 3
    browser_scroll_pause_ms: int = 500
    browser_post_scroll_ms: int = 2000
    browser_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )
    browser_viewport_width: int = 1920
    browser_viewport_height: int = 1080
    browser_locale: str = "nl-NL"

    # Client-rendered shell detection
    spa_min_html_length: int = 1000
    spa_min_text_length: int = 500

    # Discovery
    sitemap_nested_limit: int = 3
    sitemap_probe_limit: int = 5
    related_urls_limit: int = 50
    candidate_batch_size: int = 3
    homepage_link_limit: int = 3
    site_sitemap_nested_limit: int = 5

    # Normalizer
    normalize_max_chars: int = 3000

    # Orchestration
    page_delay_seconds: float = 1.0
    site_max_pages: int = 20
    min_page_chars: int = 50
    department_page_limit: int = 3

    # App
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = ""  # empty -> stderr only

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
