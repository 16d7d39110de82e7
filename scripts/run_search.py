#!/usr/bin/env python
"""
Run one search from the command line.

Drives a Playwright-backed engine through the messaging boundary and prints
the SEARCH response as JSON on stdout. Logs go to stderr.

Usage:
    cd /path/to/project
    python scripts/run_search.py "perceuse sans fil" [--keywords "perceuse, visseuse"]
        [--sites leboncoin vinted] [--price-min 20] [--price-max 150]
        [--lat 48.85 --lng 2.35 --city Paris --postal-code 75001]
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))


def load_env() -> None:
    """Load environment variables from the project .env file."""
    env_file = project_root / ".env"
    if not env_file.exists():
        return

    with open(env_file) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
                value = value[1:-1]
            os.environ.setdefault(key.strip(), value)


def build_message(args: argparse.Namespace) -> dict[str, Any]:
    """Build the SEARCH message from the command line arguments."""
    criteria: dict[str, Any] = {
        "shippable": args.shippable,
        "ownerType": args.owner_type,
    }
    if args.keywords:
        criteria["keywords"] = args.keywords
    if args.price_min is not None:
        criteria["priceMin"] = args.price_min
    if args.price_max is not None:
        criteria["priceMax"] = args.price_max
    if args.sites:
        criteria["sites"] = args.sites
    if args.lat is not None and args.lng is not None:
        criteria["userLocation"] = {"lat": args.lat, "lng": args.lng}
        criteria["userCityName"] = args.city
        criteria["userPostalCode"] = args.postal_code
    return {"type": "SEARCH", "query": args.query, "criteria": criteria}


async def run(message: dict[str, Any]) -> dict[str, Any]:
    """Run the search on a fresh engine and return the response."""
    from core.config import get_settings
    from services.engine import SearchEngine
    from services.messaging import MessageRouter
    from services.workers.playwright_platform import PlaywrightPlatform

    settings = get_settings()
    async with SearchEngine(PlaywrightPlatform(settings.browser), settings) as engine:
        return await MessageRouter(engine).handle(message)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Search listings across marketplaces")
    parser.add_argument("query", help="Search query")
    parser.add_argument("--keywords", help="Comma-separated keyword variants")
    parser.add_argument("--sites", nargs="*", help="Site codes to search")
    parser.add_argument("--price-min", type=float)
    parser.add_argument("--price-max", type=float)
    parser.add_argument("--shippable", action="store_true", help="Shippable listings only")
    parser.add_argument("--owner-type", choices=["all", "private", "pro"], default="all")
    parser.add_argument("--lat", type=float)
    parser.add_argument("--lng", type=float)
    parser.add_argument("--city")
    parser.add_argument("--postal-code")
    parser.add_argument("--indent", type=int, default=2, help="JSON indentation")
    args = parser.parse_args()

    load_env()

    from core.config import get_settings
    from core.logging import configure_from_settings

    configure_from_settings(get_settings())

    response = asyncio.run(run(build_message(args)))
    print(json.dumps(response, indent=args.indent, ensure_ascii=False))
    sys.exit(0 if response.get("success") else 1)


if __name__ == "__main__":
    main()
