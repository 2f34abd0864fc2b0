"""
Chat platform capability used by the image URL repair.

The repair only needs two read operations, modelled by `ChatClient`. Tests and
other hosts can supply any object with the same two coroutines.

`TelethonChatClient` adapts a Telethon `TelegramClient`:
  - media (photo/document) posted in a channel with a public username becomes an
    attachment whose URL is the message permalink (`https://t.me/<username>/<id>`)
  - a web page preview carrying a photo becomes an embed whose image URL is the
    preview URL
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence, Tuple, runtime_checkable

from telethon import TelegramClient
from telethon.sessions import StringSession

from shared.exceptions import ConfigurationError


@dataclass(frozen=True)
class Attachment:
    url: str


@dataclass(frozen=True)
class Embed:
    image_url: Optional[str] = None


@dataclass(frozen=True)
class ChatMessage:
    message_id: str
    attachments: Sequence[Attachment] = field(default_factory=tuple)
    embeds: Sequence[Embed] = field(default_factory=tuple)


@runtime_checkable
class ChatClient(Protocol):
    async def fetch_channel(self, channel_id: str) -> Optional[Any]:
        ...

    async def fetch_message(self, channel: Any, message_id: str) -> Optional[ChatMessage]:
        ...


class MissingTelegramCredentials(ConfigurationError):
    pass


def _peer_ref(channel_id: str) -> Any:
    s = str(channel_id or "").strip()
    if s.lstrip("-").isdigit():
        return int(s)
    return s


def _permalink(entity: Any, message_id: Any) -> Optional[str]:
    username = getattr(entity, "username", None)
    if not username:
        return None
    return f"https://t.me/{username}/{message_id}"


def message_from_telethon(entity: Any, msg: Any) -> ChatMessage:
    attachments = []
    embeds = []
    if getattr(msg, "photo", None) is not None or getattr(msg, "document", None) is not None:
        link = _permalink(entity, msg.id)
        if link:
            attachments.append(Attachment(url=link))
    webpage = getattr(msg, "web_preview", None)
    if webpage is not None:
        preview_url = getattr(webpage, "url", None)
        has_photo = getattr(webpage, "photo", None) is not None
        embeds.append(Embed(image_url=preview_url if has_photo else None))
    return ChatMessage(message_id=str(msg.id), attachments=tuple(attachments), embeds=tuple(embeds))


class TelethonChatClient:
    def __init__(self, client: TelegramClient) -> None:
        self.client = client

    async def fetch_channel(self, channel_id: str) -> Optional[Any]:
        try:
            return await self.client.get_entity(_peer_ref(channel_id))
        except ValueError:
            # Telethon raises ValueError when the peer cannot be resolved.
            return None

    async def fetch_message(self, channel: Any, message_id: str) -> Optional[ChatMessage]:
        msg = await self.client.get_messages(channel, ids=int(str(message_id).strip()))
        if msg is None:
            return None
        return message_from_telethon(channel, msg)


def get_telegram_config(cfg: Any) -> Tuple[int, str, str, str]:
    api_id = int(getattr(cfg, "telegram_api_id", 0) or 0)
    api_hash = str(getattr(cfg, "telegram_api_hash", "") or "").strip()
    session_string = str(getattr(cfg, "session_string", "") or "").strip()
    device_model = str(getattr(cfg, "telegram_device_model", "BotTools") or "BotTools")
    if not (api_id and api_hash and session_string):
        raise MissingTelegramCredentials(
            "Missing Telegram credentials. Set TELEGRAM_API_ID, TELEGRAM_API_HASH and SESSION_STRING (or TELEGRAM_SESSION_STRING)."
        )
    return api_id, api_hash, session_string, device_model


def build_telegram_client(cfg: Any) -> TelegramClient:
    api_id, api_hash, session_string, device_model = get_telegram_config(cfg)
    return TelegramClient(StringSession(session_string), api_id, api_hash, device_model=device_model)
