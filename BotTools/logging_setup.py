import contextlib
import contextvars
import asyncio
import json
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterator, Optional


# Per-task log context. Every record gets these stamped by `_ContextFilter`.
_CONTEXT_VARS: Dict[str, contextvars.ContextVar[str]] = {
    name: contextvars.ContextVar(f"bot_tools_{name}", default="-")
    for name in ("entry", "channel", "message_id", "url")
}


def _env_bool(name: str, default: bool) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_str(name: str, default: str) -> str:
    val = os.environ.get(name)
    if val is None:
        return default
    return str(val).strip()


@contextlib.contextmanager
def bind_log_context(
    *,
    entry: Optional[str] = None,
    channel: Optional[str] = None,
    message_id: Optional[str] = None,
    url: Optional[str] = None,
) -> Iterator[None]:
    values = {"entry": entry, "channel": channel, "message_id": message_id, "url": url}
    tokens = []
    try:
        for name, value in values.items():
            if value is not None:
                var = _CONTEXT_VARS[name]
                tokens.append((var, var.set(str(value))))
        yield
    finally:
        for var, token in reversed(tokens):
            try:
                var.reset(token)
            except ValueError:
                # Token created in a different context (e.g. generator resumed elsewhere).
                logging.getLogger("logging_setup").exception("Failed to reset log context var=%s", var.name)


def current_log_context() -> Dict[str, str]:
    return {name: var.get() for name, var in _CONTEXT_VARS.items()}


class _ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        for name, var in _CONTEXT_VARS.items():
            if not hasattr(record, name):
                setattr(record, name, var.get())
        if not hasattr(record, "event"):
            record.event = record.msg if isinstance(record.msg, str) else record.name
        if not hasattr(record, "data"):
            record.data = None
        return True


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "event": getattr(record, "event", record.getMessage()),
            "msg": record.getMessage(),
        }
        for name in _CONTEXT_VARS:
            payload[name] = getattr(record, name, "-")
        data = getattr(record, "data", None)
        if isinstance(data, dict) and data:
            payload["data"] = data

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class _TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        data = getattr(record, "data", None)
        if isinstance(data, dict) and data:
            try:
                return f"{base} data={json.dumps(data, ensure_ascii=False, separators=(',', ':'))}"
            except (TypeError, ValueError):
                return f"{base} data=<unserializable>"
        return base


def log_event(logger: Any, level: int, event: str, **data: Any) -> None:
    """
    Emit `event` with structured `data`.

    `logger` is normally a `logging.Logger`. Host processes may inject any object
    exposing `info`/`warning`/`error`; those receive the event name and the data
    dict as a second argument.
    """
    if isinstance(logger, (logging.Logger, logging.LoggerAdapter)):
        logger.log(level, event, extra={"event": event, "data": data or None})
        return
    if level >= logging.ERROR:
        method = getattr(logger, "error")
    elif level >= logging.WARNING:
        method = getattr(logger, "warning", None) or getattr(logger, "warn")
    else:
        method = getattr(logger, "info")
    if data:
        method(event, data)
    else:
        method(event)


async def run_in_thread(func, /, *args: Any, **kwargs: Any) -> Any:
    ctx = contextvars.copy_context()
    return await asyncio.to_thread(ctx.run, func, *args, **kwargs)


def setup_logging(
    *,
    log_dir: Optional[str] = None,
    log_file: Optional[str] = None,
    level: Optional[str] = None,
) -> None:
    """
    Configure project-wide logging (console + rotating file).

    Environment variables:
      - LOG_LEVEL: DEBUG/INFO/WARNING/ERROR/CRITICAL (default INFO)
      - LOG_DIR: directory to write logs (default: BotTools/logs)
      - LOG_FILE: filename (default: bot_tools.log)
      - LOG_MAX_BYTES: max size per file (default: 5_000_000)
      - LOG_BACKUP_COUNT: rotated backups to keep (default: 5)
      - LOG_TO_CONSOLE: enable console logging (default: true)
      - LOG_TO_FILE: enable file logging (default: true)
      - LOG_JSON: write JSON logs (default: false)

    Idempotent. Only host entry points call this; library functions just log.
    """
    root = logging.getLogger()
    if getattr(root, "_bot_tools_configured", False):
        return

    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper().strip()
    log_level = getattr(logging, level_name, logging.INFO)
    root.setLevel(log_level)

    log_json = _env_bool("LOG_JSON", False)
    context_filter = _ContextFilter()

    base_fmt = (
        "%(asctime)s %(levelname)s %(name)s "
        "entry=%(entry)s channel=%(channel)s msg_id=%(message_id)s url=%(url)s "
        "%(message)s"
    )
    formatter: logging.Formatter = _JsonFormatter() if log_json else _TextFormatter(
        fmt=base_fmt,
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    def _add_handler(h: logging.Handler) -> None:
        h.setLevel(log_level)
        h.addFilter(context_filter)
        h.setFormatter(formatter)
        root.addHandler(h)

    if _env_bool("LOG_TO_CONSOLE", True):
        _add_handler(logging.StreamHandler())

    if _env_bool("LOG_TO_FILE", True):
        here = Path(__file__).resolve().parent
        chosen_dir = Path(log_dir or os.environ.get("LOG_DIR") or (here / "logs"))
        filename = log_file or os.environ.get("LOG_FILE") or "bot_tools.log"
        path = chosen_dir / filename

        try:
            chosen_dir.mkdir(parents=True, exist_ok=True)
            _add_handler(
                RotatingFileHandler(
                    path,
                    maxBytes=int(_env_str("LOG_MAX_BYTES", "5000000")),
                    backupCount=int(_env_str("LOG_BACKUP_COUNT", "5")),
                    encoding="utf-8",
                )
            )
        except OSError:
            # Read-only checkouts/containers: fall back to console only.
            logging.getLogger("logging_setup").warning("Failed to enable file logging for %s; continuing with console only.", path, exc_info=True)

    root._bot_tools_configured = True
    log_event(
        root,
        logging.INFO,
        "logging_configured",
        log_level=level_name,
        json=log_json,
        to_console=_env_bool("LOG_TO_CONSOLE", True),
        to_file=_env_bool("LOG_TO_FILE", True),
        file_paths=[getattr(h, "baseFilename") for h in root.handlers if hasattr(h, "baseFilename")] or None,
    )
