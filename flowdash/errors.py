"""
Error types raised while loading dashboard data.
"""
from typing import Optional


class FlowdashError(Exception):
    """Base class for recoverable dashboard errors."""


class FetchError(FlowdashError):
    """A static asset could not be fetched (network error or non-2xx status)."""

    def __init__(self, url: str, status: Optional[int] = None, reason: str = ""):
        self.url = url
        self.status = status
        message = f"Could not fetch {url}"
        if status is not None:
            message += f" (HTTP {status})"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ParseError(FlowdashError):
    """A CSV or JSON asset was fetched but could not be parsed."""
