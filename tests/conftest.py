"""
Pytest configuration and fixtures for BotTools tests.

Provides an in-memory chat client and record store helpers.
"""
import json
import os
import pytest
from pathlib import Path
from typing import Any, Dict, Optional

# Set test environment variables before ANY imports
os.environ["LOG_TO_FILE"] = "false"
os.environ["WEB_FETCH_TIMEOUT_S"] = "10"
os.environ["WEB_FETCH_MAX_REDIRECTS"] = "5"
os.environ["TELEGRAM_API_ID"] = "0"
os.environ["TELEGRAM_API_HASH"] = ""
os.environ["SESSION_STRING"] = ""


class FakeChatClient:
    """
    In-memory `ChatClient`.

    `channels` maps channel id -> {message id -> ChatMessage}. Values that are
    exceptions are raised instead of returned.
    """

    def __init__(self, channels: Optional[Dict[str, Any]] = None):
        self.channels = channels or {}
        self.calls: list[tuple] = []

    async def fetch_channel(self, channel_id: str):
        self.calls.append(("channel", channel_id))
        value = self.channels.get(channel_id)
        if isinstance(value, Exception):
            raise value
        if value is None:
            return None
        return {"id": channel_id, "messages": value}

    async def fetch_message(self, channel, message_id: str):
        self.calls.append(("message", channel["id"], message_id))
        value = channel["messages"].get(message_id)
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture(autouse=True)
def clear_config_cache():
    from shared.config import _cached_tools_config

    _cached_tools_config.cache_clear()
    yield
    _cached_tools_config.cache_clear()


@pytest.fixture
def fake_chat_client():
    return FakeChatClient


@pytest.fixture
def store_file(tmp_path: Path):
    """Write a record store and return its path."""

    def _write(data: Any, name: str = "ranking_image_urls.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    return _write
