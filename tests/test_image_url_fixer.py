"""
Tests for the ranking image URL repair.
"""

from __future__ import annotations

import json
import logging
from unittest.mock import MagicMock, patch

import pytest

from BotTools.chat_client import Attachment, ChatMessage, Embed
from BotTools.image_url_fixer import RepairSummary, fix_missing_image_urls
from shared.exceptions import RecordStoreError


def _msg(message_id="m1", attachments=(), embeds=()):
    return ChatMessage(message_id=message_id, attachments=tuple(attachments), embeds=tuple(embeds))


@pytest.mark.asyncio
async def test_fills_url_from_first_attachment_and_keeps_other_fields(store_file, fake_chat_client):
    path = store_file(
        {
            "player_1": {"messageId": "m1", "channelId": "c1", "score": 123, "tags": ["a"]},
            "player_2": {"url": "https://cdn.example/existing.png", "messageId": "m2", "channelId": "c1"},
        }
    )
    client = fake_chat_client(
        {
            "c1": {
                "m1": _msg(
                    attachments=[Attachment("https://cdn.example/first.png"), Attachment("https://cdn.example/second.png")],
                    embeds=[Embed("https://cdn.example/embed.png")],
                )
            }
        }
    )

    summary = await fix_missing_image_urls(client, logging.getLogger("test"), store_path=path)

    assert summary == RepairSummary(candidates=1, fixed=1, failed=0, written=True)
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["player_1"] == {
        "messageId": "m1",
        "channelId": "c1",
        "score": 123,
        "tags": ["a"],
        "url": "https://cdn.example/first.png",
    }
    assert data["player_2"]["url"] == "https://cdn.example/existing.png"
    # Entries that already have a url are never looked up.
    assert ("message", "c1", "m2") not in client.calls


@pytest.mark.asyncio
async def test_falls_back_to_embed_image(store_file, fake_chat_client):
    path = store_file({"k": {"messageId": "m1", "channelId": "c1"}})
    client = fake_chat_client({"c1": {"m1": _msg(embeds=[Embed("https://cdn.example/embed.png")])}})

    summary = await fix_missing_image_urls(client, store_path=path)

    assert summary.fixed == 1
    assert json.loads(path.read_text(encoding="utf-8"))["k"]["url"] == "https://cdn.example/embed.png"


@pytest.mark.asyncio
async def test_written_file_uses_two_space_indent(store_file, fake_chat_client):
    path = store_file({"k": {"messageId": "m1", "channelId": "c1", "name": "Zażółć"}})
    client = fake_chat_client({"c1": {"m1": _msg(attachments=[Attachment("https://cdn.example/a.png")])}})

    await fix_missing_image_urls(client, store_path=path)

    raw = path.read_text(encoding="utf-8")
    assert raw.startswith('{\n  "k": {\n    "messageId"')
    assert "Zażółć" in raw


@pytest.mark.asyncio
async def test_missing_store_is_silent_noop(tmp_path, fake_chat_client, caplog):
    path = tmp_path / "absent.json"
    client = fake_chat_client()

    with caplog.at_level(logging.DEBUG):
        summary = await fix_missing_image_urls(client, logging.getLogger("test"), store_path=path)

    assert summary == RepairSummary()
    assert not path.exists()
    assert client.calls == []
    assert [r for r in caplog.records if r.name == "test"] == []


@pytest.mark.asyncio
async def test_corrupt_store_logs_error_and_returns(store_file, fake_chat_client, caplog):
    path = store_file({})
    path.write_text("{not json", encoding="utf-8")
    client = fake_chat_client()

    with caplog.at_level(logging.ERROR):
        summary = await fix_missing_image_urls(client, logging.getLogger("test"), store_path=path)

    assert summary == RepairSummary()
    assert path.read_text(encoding="utf-8") == "{not json"
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert errors[0].event == "image_fix_store_read_failed"


@pytest.mark.asyncio
async def test_no_candidates_returns_without_logging(store_file, fake_chat_client, caplog):
    path = store_file({"k": {"url": "https://x/y.png"}, "partial": {"messageId": "m1"}})
    before = path.read_bytes()

    with caplog.at_level(logging.DEBUG):
        summary = await fix_missing_image_urls(fake_chat_client(), logging.getLogger("test"), store_path=path)

    assert summary == RepairSummary()
    assert path.read_bytes() == before
    assert [r for r in caplog.records if r.name == "test"] == []


@pytest.mark.asyncio
async def test_unresolvable_entries_leave_file_untouched(store_file, fake_chat_client, caplog):
    path = store_file(
        {
            "no_channel": {"messageId": "m1", "channelId": "missing"},
            "no_message": {"messageId": "gone", "channelId": "c1"},
            "no_image": {"messageId": "m1", "channelId": "c1"},
        }
    )
    before = path.read_bytes()
    client = fake_chat_client({"c1": {"m1": _msg()}})

    with caplog.at_level(logging.INFO):
        summary = await fix_missing_image_urls(client, logging.getLogger("test"), store_path=path)

    assert summary == RepairSummary(candidates=3, fixed=0, failed=3, written=False)
    assert path.read_bytes() == before
    events = [getattr(r, "event", None) for r in caplog.records]
    assert "image_fix_channel_not_found" in events
    assert "image_fix_message_not_found" in events
    assert "image_fix_no_image" in events
    assert events[-1] == "image_fix_nothing_fixed"


@pytest.mark.asyncio
async def test_exception_for_one_entry_does_not_abort_batch(store_file, fake_chat_client, caplog):
    path = store_file(
        {
            "boom": {"messageId": "m1", "channelId": "broken"},
            "ok": {"messageId": "m2", "channelId": "c1"},
        }
    )
    client = fake_chat_client(
        {
            "broken": RuntimeError("rate limited"),
            "c1": {"m2": _msg(attachments=[Attachment("https://cdn.example/ok.png")])},
        }
    )

    with caplog.at_level(logging.WARNING):
        summary = await fix_missing_image_urls(client, logging.getLogger("test"), store_path=path)

    assert summary == RepairSummary(candidates=2, fixed=1, failed=1, written=True)
    data = json.loads(path.read_text(encoding="utf-8"))
    assert "url" not in data["boom"]
    assert data["ok"]["url"] == "https://cdn.example/ok.png"
    failed = [r for r in caplog.records if getattr(r, "event", None) == "image_fix_entry_failed"]
    assert len(failed) == 1
    assert failed[0].data["error"] == "rate limited"


@pytest.mark.asyncio
async def test_candidates_processed_in_store_order(store_file, fake_chat_client):
    path = store_file(
        {
            "b": {"messageId": "m2", "channelId": "c1"},
            "a": {"messageId": "m1", "channelId": "c1"},
        }
    )
    client = fake_chat_client({"c1": {}})

    await fix_missing_image_urls(client, store_path=path)

    assert [c for c in client.calls if c[0] == "message"] == [("message", "c1", "m2"), ("message", "c1", "m1")]


@pytest.mark.asyncio
async def test_write_failure_is_logged_not_raised(store_file, fake_chat_client, caplog):
    path = store_file({"k": {"messageId": "m1", "channelId": "c1"}})
    before = path.read_bytes()
    client = fake_chat_client({"c1": {"m1": _msg(attachments=[Attachment("https://cdn.example/a.png")])}})

    with patch("BotTools.image_url_fixer.save_record_store", side_effect=RecordStoreError("disk full")):
        with caplog.at_level(logging.ERROR):
            summary = await fix_missing_image_urls(client, logging.getLogger("test"), store_path=path)

    assert summary == RepairSummary(candidates=1, fixed=1, failed=0, written=False)
    assert path.read_bytes() == before
    assert any(getattr(r, "event", None) == "image_fix_store_write_failed" for r in caplog.records)


@pytest.mark.asyncio
async def test_accepts_non_stdlib_logger(store_file, fake_chat_client):
    path = store_file({"k": {"messageId": "m1", "channelId": "missing"}})
    host_logger = MagicMock(spec=["info", "warn", "error"])

    summary = await fix_missing_image_urls(fake_chat_client(), host_logger, store_path=path)

    assert summary.failed == 1
    assert host_logger.info.called
    assert host_logger.warn.called
    host_logger.error.assert_not_called()


@pytest.mark.asyncio
async def test_default_store_path_comes_from_config(tmp_path, monkeypatch, fake_chat_client):
    monkeypatch.setenv("BOT_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("IMAGE_URLS_FILE", "images.json")
    (tmp_path / "images.json").write_text(json.dumps({"k": {"messageId": "m1", "channelId": "c1"}}), encoding="utf-8")
    client = fake_chat_client({"c1": {"m1": _msg(attachments=[Attachment("https://cdn.example/a.png")])}})

    summary = await fix_missing_image_urls(client)

    assert summary.written is True
    assert json.loads((tmp_path / "images.json").read_text(encoding="utf-8"))["k"]["url"] == "https://cdn.example/a.png"


@pytest.mark.asyncio
async def test_invalid_config_is_logged_not_raised(tmp_path, monkeypatch, fake_chat_client, caplog):
    monkeypatch.setenv("BOT_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("TELEGRAM_API_ID", "not-a-number")
    path = tmp_path / "ranking_image_urls.json"
    path.write_text(json.dumps({"k": {"messageId": "m1", "channelId": "c1"}}), encoding="utf-8")
    before = path.read_bytes()
    client = fake_chat_client({"c1": {"m1": _msg(attachments=[Attachment("https://cdn.example/a.png")])}})

    with caplog.at_level(logging.ERROR):
        summary = await fix_missing_image_urls(client, logging.getLogger("test"))

    assert summary == RepairSummary()
    assert client.calls == []
    assert path.read_bytes() == before
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert [r.event for r in errors] == ["image_fix_config_failed"]
    assert "TELEGRAM_API_ID" in errors[0].data["error"]
