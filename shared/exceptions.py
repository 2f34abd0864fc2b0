"""
Custom exception classes for bot-tools.

Provides specific exception types for better error handling and debugging.
Use these instead of generic Exception to enable targeted error handling.
"""

from __future__ import annotations

from typing import Optional


class BotToolsError(Exception):
    """Base exception for all bot-tools errors"""
    pass


class DataAccessError(BotToolsError):
    """Local data access failures (record store files, etc.)"""
    pass


class RecordStoreError(DataAccessError):
    """Record store exists but cannot be read, parsed, or written"""
    pass


class ExternalServiceError(BotToolsError):
    """External service failures (chat platform, HTTP targets, etc.)"""
    pass


class ConfigurationError(BotToolsError):
    """Configuration or environment variable errors"""
    pass


class WebFetchError(ExternalServiceError):
    """Base class for page fetch failures"""
    pass


class WebFetchTimeoutError(WebFetchError):
    """Request exceeded the fetch timeout and was aborted"""
    pass


class WebFetchNetworkError(WebFetchError):
    """Transport-level failure (DNS, refused connection, socket reset, bad scheme)"""
    pass


class WebFetchHTTPError(WebFetchError):
    """Non-200, non-redirect response"""

    def __init__(self, status_code: int, reason: Optional[str] = None, *, url: Optional[str] = None) -> None:
        self.status_code = int(status_code)
        self.reason = reason or ""
        self.url = url
        super().__init__(f"HTTP {self.status_code}: {self.reason}" if self.reason else f"HTTP {self.status_code}")


class TooManyRedirectsError(WebFetchError):
    """Redirect chain exceeded the configured hop limit"""

    def __init__(self, url: str, max_redirects: int) -> None:
        self.url = url
        self.max_redirects = int(max_redirects)
        super().__init__(f"Too many redirects (max {self.max_redirects}) while fetching {url}")
