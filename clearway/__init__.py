"""clearway -- HTTP client that transparently solves Cloudflare IUAM challenges."""

import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("clearway")
except PackageNotFoundError:
    __version__ = "0.0.0"

from clearway._async import AsyncSession
from clearway._base import DEFAULT_HEADERS, DEFAULT_USER_AGENT
from clearway._cookies import CookieStore
from clearway._errors import (
    ChallengeFailed,
    ChallengeNotFound,
    ClearwayError,
    ConnectionFailed,
    CookieStoreError,
    HTTPError,
    MalformedAnswer,
    ScriptTimeout,
)
from clearway._extract import ExtractedChallenge, IUAMExtractor
from clearway._response import Response
from clearway._sandbox import evaluate
from clearway._sync import SyncSession

__all__ = [
    "__version__",
    "SyncSession",
    "AsyncSession",
    "Response",
    "CookieStore",
    "IUAMExtractor",
    "ExtractedChallenge",
    "evaluate",
    "ClearwayError",
    "ConnectionFailed",
    "ChallengeFailed",
    "ChallengeNotFound",
    "ScriptTimeout",
    "MalformedAnswer",
    "CookieStoreError",
    "HTTPError",
    "DEFAULT_HEADERS",
    "DEFAULT_USER_AGENT",
    "get",
    "post",
    "put",
    "delete",
    "head",
    "options",
    "patch",
]

# Silent by default; callers opt in via logging.getLogger("clearway").setLevel(...)
logging.getLogger("clearway").addHandler(logging.NullHandler())


def get(url: str, **kwargs):
    """Module-level convenience: one-shot sync GET."""
    with SyncSession() as s:
        return s.get(url, **kwargs)


def post(url: str, **kwargs):
    """Module-level convenience: one-shot sync POST."""
    with SyncSession() as s:
        return s.post(url, **kwargs)


def put(url: str, **kwargs):
    """Module-level convenience: one-shot sync PUT."""
    with SyncSession() as s:
        return s.put(url, **kwargs)


def delete(url: str, **kwargs):
    """Module-level convenience: one-shot sync DELETE."""
    with SyncSession() as s:
        return s.delete(url, **kwargs)


def head(url: str, **kwargs):
    """Module-level convenience: one-shot sync HEAD."""
    with SyncSession() as s:
        return s.head(url, **kwargs)


def options(url: str, **kwargs):
    """Module-level convenience: one-shot sync OPTIONS."""
    with SyncSession() as s:
        return s.options(url, **kwargs)


def patch(url: str, **kwargs):
    """Module-level convenience: one-shot sync PATCH."""
    with SyncSession() as s:
        return s.patch(url, **kwargs)
