"""SiteScout - careers page discovery and site content acquisition

Simple CLI for running a discovery or content-pages run against one domain.
"""

import argparse
import asyncio
import json
import sys

from sitescout.agents.orchestrator import AcquisitionOrchestrator
from sitescout.config import settings


async def run_discover(domain: str) -> int:
    """Find the careers page for the given domain."""
    print(f"Discovering careers page for: {domain}")
    print("-" * 50)

    async with AcquisitionOrchestrator() as orchestrator:
        result = await orchestrator.discover(domain)

    if result is None:
        print("[!] No careers page found")
        return 1

    print(f"[*] URL: {result.url}")
    print(f"[*] Platform: {result.platform.value}")
    print(f"[*] Related URLs ({len(result.related_urls)}):")
    for url in result.related_urls[:10]:
        print(f"  - {url}")
    return 0


async def run_site(domain: str, max_pages: int) -> int:
    """Collect normalized content pages for the given domain."""
    async with AcquisitionOrchestrator() as orchestrator:
        response = await orchestrator.site.scrape_site(domain, max_pages=max_pages)

    print(json.dumps(response.model_dump(mode="json"), indent=2, ensure_ascii=False))
    return 0 if response.page_count else 1


def main():
    parser = argparse.ArgumentParser(description="SiteScout acquisition tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    discover = subparsers.add_parser("discover", help="Find the careers page of a domain")
    discover.add_argument("domain", help="Domain, e.g. example.nl")

    site = subparsers.add_parser("site", help="Collect normalized content pages of a domain")
    site.add_argument("domain", help="Domain, e.g. example.nl")
    site.add_argument(
        "--max-pages",
        "-n",
        type=int,
        default=settings.site_max_pages,
        help="Maximum number of pages (default: from config)",
    )

    args = parser.parse_args()

    if args.command == "discover":
        code = asyncio.run(run_discover(args.domain))
    else:
        code = asyncio.run(run_site(args.domain, args.max_pages))
    sys.exit(code)


if __name__ == "__main__":
    main()
