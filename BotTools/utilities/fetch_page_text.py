"""
Fetch a page and print its plain text.

Usage:
  python -m BotTools.utilities.fetch_page_text https://example.com
  python -m BotTools.utilities.fetch_page_text https://example.com --max-chars 2000

Environment variables:
  WEB_FETCH_TIMEOUT_S (default: 10)
  WEB_FETCH_MAX_REDIRECTS (default: 5)
  WEB_FETCH_USER_AGENT (default: bot-tools/1.0)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from shared.exceptions import ConfigurationError, WebFetchError

from BotTools.logging_setup import log_event, setup_logging
from BotTools.web_fetch import fetch_text

logger = logging.getLogger("fetch_page_text")


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(description="Fetch a URL (following redirects) and print its text content.")
    p.add_argument("url", help="http:// or https:// URL")
    p.add_argument("--hint", default="", help="Passed through to the fetcher for downstream consumers.")
    p.add_argument("--max-chars", type=int, default=0, help="Truncate output to N characters (0 = no limit).")
    args = p.parse_args(argv)

    setup_logging()
    try:
        text = asyncio.run(fetch_text(args.url, args.hint))
    except (WebFetchError, ConfigurationError) as e:
        log_event(logger, logging.ERROR, "fetch_page_text_failed", url=args.url, error=str(e), error_type=type(e).__name__)
        return 1

    if args.max_chars > 0:
        text = text[: args.max_chars]
    sys.stdout.write(text + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
