"""
Fetch a web page and reduce it to plain text.

Usage:
  text = await fetch_text("https://example.com/event", hint="summarize the dates")

Behaviour:
  - http:// and https:// only; the transport follows the scheme prefix
  - 3xx + Location is followed (relative targets resolved), at most
    `max_redirects` hops (WEB_FETCH_MAX_REDIRECTS, default 5)
  - any other non-200 status fails without reading the body
  - the 200 body is read whole, then script/style blocks and tags are stripped

`hint` is carried along redirects for callers that hand the text to a
downstream consumer; extraction ignores it.

The HTML handling is regex based, not a parser: comments or CDATA containing
angle brackets and malformed markup are not treated specially.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Optional
from urllib.parse import urljoin

import requests
from urllib3.exceptions import ReadTimeoutError

from shared.config import load_tools_config
from shared.exceptions import (
    TooManyRedirectsError,
    WebFetchHTTPError,
    WebFetchNetworkError,
    WebFetchTimeoutError,
)

from BotTools.logging_setup import bind_log_context, log_event, run_in_thread

logger = logging.getLogger("web_fetch")

_SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def html_to_text(markup: str) -> str:
    text = _SCRIPT_RE.sub("", markup or "")
    text = _STYLE_RE.sub("", text)
    text = _TAG_RE.sub(" ", text)
    text = html.unescape(text)
    # \s also covers U+00A0, so decoded &nbsp; collapses like any other space.
    return _WS_RE.sub(" ", text).strip()


def _transport_for(url: str) -> str:
    s = str(url or "").strip().lower()
    if s.startswith("https://"):
        return "https"
    if s.startswith("http://"):
        return "http"
    raise WebFetchNetworkError(f"Unsupported URL scheme: {url!r}")


def _is_read_timeout(exc: requests.exceptions.ConnectionError) -> bool:
    # requests re-raises a body read timeout as ConnectionError(ReadTimeoutError(...)).
    return any(isinstance(a, ReadTimeoutError) for a in exc.args)


def _fetch_text_sync(
    url: str,
    hint: str,
    *,
    session: requests.Session,
    timeout_s: float,
    max_redirects: int,
    hops: int = 0,
) -> str:
    transport = _transport_for(url)
    try:
        resp = session.get(url, timeout=timeout_s, allow_redirects=False, stream=True)
    except requests.exceptions.Timeout as e:
        raise WebFetchTimeoutError(f"Request timeout after {timeout_s:g}s: {url}") from e
    except requests.exceptions.RequestException as e:
        raise WebFetchNetworkError(f"Request failed for {url}: {e}") from e

    with resp:
        status = int(resp.status_code)
        location = resp.headers.get("location")

        if 300 <= status < 400 and location:
            target = urljoin(url, location)
            if hops >= max_redirects:
                raise TooManyRedirectsError(url, max_redirects)
            log_event(logger, logging.DEBUG, "web_fetch_redirect", status=status, target=target, hop=hops + 1, transport=transport)
            resp.close()
            return _fetch_text_sync(
                target,
                hint,
                session=session,
                timeout_s=timeout_s,
                max_redirects=max_redirects,
                hops=hops + 1,
            )

        if status != 200:
            raise WebFetchHTTPError(status, resp.reason, url=url)

        try:
            if "charset" not in (resp.headers.get("content-type") or "").lower():
                # requests falls back to ISO-8859-1 for text/*; sniff instead.
                resp.encoding = resp.apparent_encoding
            body = resp.text
        except requests.exceptions.ConnectionError as e:
            if _is_read_timeout(e):
                raise WebFetchTimeoutError(f"Request timeout after {timeout_s:g}s: {url}") from e
            raise WebFetchNetworkError(f"Body read failed for {url}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise WebFetchNetworkError(f"Body read failed for {url}: {e}") from e

    text = html_to_text(body)
    log_event(logger, logging.DEBUG, "web_fetch_done", transport=transport, hops=hops, body_chars=len(body), text_chars=len(text))
    return text


async def fetch_text(
    url: str,
    hint: str = "",
    *,
    timeout_s: Optional[float] = None,
    max_redirects: Optional[int] = None,
) -> str:
    """
    GET `url` and return its plain-text content.

    Raises:
      WebFetchTimeoutError: the request exceeded `timeout_s` (default 10s)
      WebFetchHTTPError: non-200, non-redirect status (`status_code` attribute)
      TooManyRedirectsError: more than `max_redirects` hops
      WebFetchNetworkError: DNS/connection/socket failures, unsupported scheme
      ConfigurationError: invalid WEB_FETCH_* (or other) settings
    """
    cfg = load_tools_config()
    timeout = float(timeout_s if timeout_s is not None else cfg.web_fetch_timeout_s)
    limit = int(max_redirects if max_redirects is not None else cfg.web_fetch_max_redirects)

    with bind_log_context(url=url), requests.Session() as session:
        session.headers["User-Agent"] = cfg.web_fetch_user_agent
        return await run_in_thread(
            _fetch_text_sync,
            url,
            hint,
            session=session,
            timeout_s=timeout,
            max_redirects=limit,
        )
