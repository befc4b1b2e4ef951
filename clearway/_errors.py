"""Typed exceptions for clearway."""


class ClearwayError(Exception):
    """Base exception for all clearway errors."""


class ConnectionFailed(ClearwayError):
    """The transport failed to send the request or read the response."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Connection failed to {url}: {reason}")


class ChallengeFailed(ClearwayError):
    """A Cloudflare challenge was detected but could not be solved."""


class ChallengeNotFound(ChallengeFailed):
    """The challenge page did not contain a recognizable IUAM script."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(
            f"Unable to identify Cloudflare IUAM JavaScript at {url}"
        )


class ScriptTimeout(ChallengeFailed, TimeoutError):
    """The challenge script ran past its deadline and was interrupted."""

    def __init__(self, timeout_secs: float):
        self.timeout_secs = timeout_secs
        super().__init__(
            f"Challenge script exceeded {timeout_secs:.1f}s timeout"
        )


class MalformedAnswer(ChallengeFailed):
    """The challenge script did not produce a usable number."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Malformed challenge answer: {reason}")


class CookieStoreError(ClearwayError):
    """The session cookie store could not be constructed."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid cookie store: {reason}")


class HTTPError(ClearwayError):
    """HTTP error raised by raise_for_status()."""

    def __init__(self, status_code: int, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(
            f"HTTP {status_code} at {url}"
        )
