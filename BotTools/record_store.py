from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from shared.exceptions import RecordStoreError
from shared.observability import swallow_exception


RecordStore = Dict[str, Any]


def load_record_store(path: Path) -> RecordStore:
    """
    Read the JSON record store at `path`.

    Raises FileNotFoundError when the file does not exist (callers treat that as
    "nothing to do yet"), RecordStoreError when it exists but is unusable.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except (OSError, UnicodeDecodeError) as e:
        raise RecordStoreError(f"read_failed path={path}: {e}") from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RecordStoreError(f"parse_failed path={path}: {e}") from e
    if not isinstance(data, dict):
        raise RecordStoreError(f"not_an_object path={path} type={type(data).__name__}")
    return data


def is_candidate(entry: Any) -> bool:
    if not isinstance(entry, dict):
        return False
    return not entry.get("url") and bool(entry.get("messageId")) and bool(entry.get("channelId"))


def find_candidates(store: RecordStore) -> List[Tuple[str, Dict[str, Any]]]:
    return [(key, value) for key, value in store.items() if is_candidate(value)]


def extract_image_url(message: Any) -> Optional[str]:
    # First attachment wins; the first embed's image is the fallback.
    attachments = list(getattr(message, "attachments", None) or [])
    if attachments:
        url = getattr(attachments[0], "url", None)
        if url:
            return str(url)
    embeds = list(getattr(message, "embeds", None) or [])
    if embeds:
        url = getattr(embeds[0], "image_url", None)
        if url:
            return str(url)
    return None


def save_record_store(path: Path, store: RecordStore) -> None:
    """Atomically write `store` as 2-space indented UTF-8 JSON."""
    path = Path(path)
    tmp = path.with_suffix(path.suffix + f".tmp.{os.getpid()}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(json.dumps(store, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(str(tmp), str(path))
    except (OSError, TypeError, ValueError) as e:
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError as cleanup_exc:
                swallow_exception(cleanup_exc, context="record_store_tmp_cleanup", extra={"path": str(tmp)})
        raise RecordStoreError(f"write_failed path={path}: {e}") from e
