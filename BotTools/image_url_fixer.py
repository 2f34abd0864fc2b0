"""
Backfill missing `url` fields in the ranking image store.

During the archive transfer images were re-posted to an archive channel, but the
store entries only kept `messageId` and `channelId`. This re-fetches each such
message from the chat platform and fills in the image URL.

Failures never propagate to the caller: they end up in the log and in the
returned `RepairSummary` counters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from shared.config import load_tools_config
from shared.exceptions import ConfigurationError, RecordStoreError

from BotTools.chat_client import ChatClient
from BotTools.logging_setup import bind_log_context, log_event, run_in_thread
from BotTools.record_store import extract_image_url, find_candidates, load_record_store, save_record_store

_default_logger = logging.getLogger("image_url_fixer")


@dataclass(frozen=True)
class RepairSummary:
    candidates: int = 0
    fixed: int = 0
    failed: int = 0
    written: bool = False


async def _repair_entry(client: ChatClient, logger: Any, key: str, entry: dict) -> bool:
    channel_id = str(entry["channelId"])
    message_id = str(entry["messageId"])

    channel = await client.fetch_channel(channel_id)
    if channel is None:
        log_event(logger, logging.WARNING, "image_fix_channel_not_found", key=key, channel_id=channel_id)
        return False

    message = await client.fetch_message(channel, message_id)
    if message is None:
        log_event(logger, logging.WARNING, "image_fix_message_not_found", key=key, message_id=message_id)
        return False

    url = extract_image_url(message)
    if not url:
        log_event(logger, logging.WARNING, "image_fix_no_image", key=key, message_id=message_id)
        return False

    entry["url"] = url
    log_event(logger, logging.INFO, "image_fix_entry_fixed", key=key, url=url)
    return True


async def fix_missing_image_urls(
    client: ChatClient,
    logger: Any = None,
    *,
    store_path: Optional[Path] = None,
) -> RepairSummary:
    logger = logger or _default_logger
    try:
        path = Path(store_path) if store_path is not None else load_tools_config().image_urls_path
    except ConfigurationError as e:
        log_event(logger, logging.ERROR, "image_fix_config_failed", error=str(e))
        return RepairSummary()

    try:
        store = await run_in_thread(load_record_store, path)
    except FileNotFoundError:
        return RepairSummary()
    except RecordStoreError as e:
        log_event(logger, logging.ERROR, "image_fix_store_read_failed", path=str(path), error=str(e))
        return RepairSummary()

    candidates = find_candidates(store)
    if not candidates:
        return RepairSummary()

    log_event(logger, logging.INFO, "image_fix_candidates", count=len(candidates), path=str(path))

    fixed = 0
    failed = 0
    for key, entry in candidates:
        with bind_log_context(entry=key, channel=entry.get("channelId"), message_id=entry.get("messageId")):
            try:
                ok = await _repair_entry(client, logger, key, entry)
            except Exception as e:
                log_event(logger, logging.WARNING, "image_fix_entry_failed", key=key, error=str(e), error_type=type(e).__name__)
                ok = False
        if ok:
            fixed += 1
        else:
            failed += 1

    written = False
    if fixed > 0:
        try:
            await run_in_thread(save_record_store, path, store)
            written = True
            log_event(logger, logging.INFO, "image_fix_saved", fixed=fixed, failed=failed, path=str(path))
        except RecordStoreError as e:
            log_event(logger, logging.ERROR, "image_fix_store_write_failed", path=str(path), error=str(e), fixed=fixed)
    elif failed > 0:
        log_event(logger, logging.WARNING, "image_fix_nothing_fixed", failed=failed)

    return RepairSummary(candidates=len(candidates), fixed=fixed, failed=failed, written=written)
