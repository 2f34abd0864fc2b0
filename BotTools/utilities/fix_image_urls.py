"""
Backfill missing image URLs in the ranking image store from the Telegram archive channel.

Usage:
  python -m BotTools.utilities.fix_image_urls
  python -m BotTools.utilities.fix_image_urls --store data/ranking_image_urls.json

Environment variables:
  TELEGRAM_API_ID, TELEGRAM_API_HASH, SESSION_STRING (required)
  BOT_DATA_DIR (default: data)
  IMAGE_URLS_FILE (default: ranking_image_urls.json)

Exit codes:
  0 - repair ran (per-entry failures are only logged)
  2 - Telegram credentials missing
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional

from shared.config import load_tools_config

from BotTools.chat_client import MissingTelegramCredentials, TelethonChatClient, build_telegram_client
from BotTools.image_url_fixer import RepairSummary, fix_missing_image_urls
from BotTools.logging_setup import log_event, setup_logging

logger = logging.getLogger("fix_image_urls")


async def run(store_path: Optional[Path]) -> RepairSummary:
    cfg = load_tools_config()
    client = build_telegram_client(cfg)
    await client.connect()
    try:
        return await fix_missing_image_urls(TelethonChatClient(client), logger, store_path=store_path)
    finally:
        await client.disconnect()


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(description="Backfill missing `url` fields in the ranking image store.")
    p.add_argument("--store", type=Path, help="Path to the JSON store (defaults to BOT_DATA_DIR/IMAGE_URLS_FILE).")
    args = p.parse_args(argv)

    setup_logging()
    try:
        summary = asyncio.run(run(args.store))
    except MissingTelegramCredentials as e:
        log_event(logger, logging.ERROR, "fix_image_urls_missing_credentials", error=str(e))
        return 2

    log_event(
        logger,
        logging.INFO,
        "fix_image_urls_done",
        candidates=summary.candidates,
        fixed=summary.fixed,
        failed=summary.failed,
        written=summary.written,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
