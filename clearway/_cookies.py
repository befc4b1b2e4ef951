"""Session cookie store: per-destination, in memory, lock-guarded."""

import email.utils
import logging
import threading
import time
from urllib.parse import urlparse

from clearway._errors import CookieStoreError

logger = logging.getLogger("clearway")


def destination(url: str) -> str | None:
    """Cache key for a URL: scheme://host[:port], lowercased."""
    parsed = urlparse(url)
    host = parsed.hostname
    if not host or not parsed.scheme:
        return None
    try:
        port = parsed.port
    except ValueError:
        port = None
    if port is not None:
        host = f"{host}:{port}"
    return f"{parsed.scheme.lower()}://{host}"


def _parse_cookie_pair(raw: str) -> tuple[str, str] | None:
    """Extract (name, value) from a Set-Cookie header value."""
    pair = raw.split(";", 1)[0]
    eq = pair.find("=")
    if eq <= 0:
        return None
    name = pair[:eq].strip()
    if not name:
        return None
    return name, pair[eq + 1 :].strip()


def _parse_cookie_expires(raw: str) -> float:
    """Extract expiry timestamp from Set-Cookie, or 0 for session cookies."""
    lower = raw.lower()

    # max-age takes precedence over expires
    idx = lower.find("max-age=")
    if idx != -1:
        rest = raw[idx + 8 :]
        semi = rest.find(";")
        val = rest[:semi] if semi != -1 else rest
        try:
            return time.time() + max(0, int(val.strip()))
        except ValueError:
            pass

    idx = lower.find("expires=")
    if idx != -1:
        rest = raw[idx + 8 :]
        semi = rest.find(";")
        val = rest[:semi] if semi != -1 else rest
        try:
            dt = email.utils.parsedate_to_datetime(val.strip())
            return dt.timestamp()
        except (ValueError, TypeError):
            pass

    return 0.0


def _parse_set_cookies(raw_values) -> dict[str, dict]:
    """Parse raw Set-Cookie values (str or bytes) into {name: entry}."""
    parsed: dict[str, dict] = {}
    for raw in raw_values:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        else:
            raw = str(raw)
        pair = _parse_cookie_pair(raw)
        if pair is None:
            continue
        name, value = pair
        parsed[name] = {
            "value": value,
            "expires": _parse_cookie_expires(raw),
        }
    return parsed


def _is_live(entry: dict, now: float) -> bool:
    expires = entry["expires"]
    return expires == 0 or expires > now


class CookieStore:
    """Cookies last issued by each destination, shared by one session.

    Session cookies (no Max-Age/Expires) live as long as the store.
    Expired entries are skipped on read and dropped on the next write.
    Reads copy out under the lock; writes swap a destination's whole
    entry under the lock.
    """

    def __init__(self, max_entries: int = 50):
        if not isinstance(max_entries, int) or max_entries < 1:
            raise CookieStoreError(
                f"max_entries must be a positive int, got {max_entries!r}"
            )
        self._max_entries = max_entries
        self._lock = threading.Lock()
        self._jar: dict[str, dict[str, dict]] = {}

    def get(self, url: str) -> dict[str, str]:
        """Live cookies for the URL's destination as {name: value}."""
        dest = destination(url)
        if dest is None:
            return {}
        now = time.time()
        with self._lock:
            entries = self._jar.get(dest, {})
            return {
                name: e["value"]
                for name, e in entries.items()
                if _is_live(e, now)
            }

    def cookie_header(self, url: str) -> str:
        """Cookie request header value for the URL, or "" when empty."""
        return "; ".join(f"{k}={v}" for k, v in self.get(url).items())

    def replace(self, url: str, raw_values) -> int:
        """Overwrite a destination's cookies from Set-Cookie values.

        Returns the number of live cookies stored.
        """
        dest = destination(url)
        if dest is None:
            return 0
        parsed = _parse_set_cookies(raw_values)
        # sampled after parsing so Max-Age=0 reads as already expired
        now = time.time()
        fresh = {name: e for name, e in parsed.items() if _is_live(e, now)}
        fresh = self._trim(dest, fresh)
        with self._lock:
            self._jar[dest] = fresh
        logger.info("Stored %d cookies for %s", len(fresh), dest)
        return len(fresh)

    def add(self, raw_set_cookie: str, url: str) -> None:
        """Merge a single Set-Cookie value into a destination's cookies."""
        dest = destination(url)
        if dest is None:
            raise ValueError(f"Cannot derive a cookie destination from {url!r}")
        parsed = _parse_set_cookies([raw_set_cookie])
        now = time.time()
        with self._lock:
            merged = {
                name: e
                for name, e in self._jar.get(dest, {}).items()
                if _is_live(e, now)
            }
            for name, e in parsed.items():
                if _is_live(e, now):
                    merged[name] = e
                else:
                    merged.pop(name, None)
            self._jar[dest] = self._trim(dest, merged)
        logger.debug("Added cookie for %s", dest)

    def clear(self, url: str) -> None:
        """Forget every cookie for the URL's destination."""
        dest = destination(url)
        if dest is None:
            return
        with self._lock:
            self._jar.pop(dest, None)

    def destinations(self) -> list[str]:
        """Destinations that currently hold cookies."""
        with self._lock:
            return [d for d, entries in self._jar.items() if entries]

    def _trim(self, dest: str, entries: dict[str, dict]) -> dict[str, dict]:
        # dicts keep insertion order: the newest cookies are last
        if len(entries) <= self._max_entries:
            return entries
        evicted = len(entries) - self._max_entries
        logger.warning("Evicted %d cookies for %s", evicted, dest)
        return dict(list(entries.items())[evicted:])
