"""BaseSession -- shared configuration and logic, zero I/O."""

import datetime
import logging
import time
from urllib.parse import urlencode

from rnet import Method

from clearway._answer import AnswerSubmission, build_answer
from clearway._challenge import ChallengeContext
from clearway._cookies import CookieStore
from clearway._extract import ExtractedChallenge, IUAMExtractor
from clearway._response import Response
from clearway._sandbox import DEFAULT_SCRIPT_TIMEOUT

logger = logging.getLogger("clearway")

_METHODS = frozenset(
    {"GET", "POST", "PUT", "DELETE", "HEAD", "OPTIONS", "PATCH", "TRACE"}
)


def _to_method(method: str) -> Method:
    """Look up the rnet Method for an HTTP verb."""
    name = method.upper()
    if name not in _METHODS:
        raise ValueError(f"Unknown HTTP method: {method}")
    return getattr(Method, name)


# Sent only when neither the session nor the request sets User-Agent
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

DEFAULT_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}

DEFAULT_CONNECT_TIMEOUT = datetime.timedelta(seconds=10)
DEFAULT_TIMEOUT = datetime.timedelta(seconds=30)

# Cloudflare rejects answers submitted sooner than this after the page
DEFAULT_CHALLENGE_DELAY = 5.0

# Per-request kwargs that also apply to the verification round trip
_CARRIED_KWARGS = ("timeout", "read_timeout")


def _normalize_timeout(val) -> datetime.timedelta:
    if isinstance(val, datetime.timedelta):
        return val
    return datetime.timedelta(seconds=float(val))


def _header_lists(header_map) -> dict[str, list[str]]:
    """rnet HeaderMap -> {lowercase name: every value, in arrival order}."""
    lists: dict[str, list[str]] = {}
    for raw_name in header_map.keys():
        name = raw_name.decode("ascii", errors="replace").lower()
        lists[name] = [
            v.decode("utf-8", errors="replace") if isinstance(v, bytes) else v
            for v in header_map.get_all(name)
        ]
    return lists


def _merge_headers(
    base: dict[str, str], extra: dict[str, str] | None
) -> dict[str, str]:
    """Overlay extra on base, matching header names case-insensitively."""
    if not extra:
        return dict(base)
    overridden = {k.lower() for k in extra}
    merged = {k: v for k, v in base.items() if k.lower() not in overridden}
    merged.update(extra)
    return merged


def _find_header(headers: dict[str, str], name: str) -> str | None:
    """Return the key under which a header is set, any case."""
    name = name.lower()
    for k in headers:
        if k.lower() == name:
            return k
    return None


class BaseSession:
    """Shared logic for sync and async sessions. No I/O."""

    def __init__(
        self,
        headers: dict[str, str] | None = None,
        connect_timeout: datetime.timedelta | float | int | None = None,
        timeout: datetime.timedelta | float | int | None = None,
        challenge_delay: float = DEFAULT_CHALLENGE_DELAY,
        script_timeout: float = DEFAULT_SCRIPT_TIMEOUT,
        max_cookies: int = 50,
        proxy: str | None = None,
        extractor=None,
    ):
        self.headers = (
            dict(headers) if headers is not None else dict(DEFAULT_HEADERS)
        )
        self.connect_timeout = (
            _normalize_timeout(connect_timeout)
            if connect_timeout is not None
            else DEFAULT_CONNECT_TIMEOUT
        )
        self.timeout = (
            _normalize_timeout(timeout)
            if timeout is not None
            else DEFAULT_TIMEOUT
        )
        self.challenge_delay = challenge_delay
        self.script_timeout = script_timeout

        # Per-destination cookies earned by solving challenges.
        # CookieStoreError here is fatal at construction time only.
        self._cookies = CookieStore(max_entries=max_cookies)

        self._extractor = extractor or IUAMExtractor()

        self._proxy = None
        if proxy:
            from rnet import Proxy

            self._proxy = Proxy.all(proxy)

        logger.debug(
            "Session created: timeout=%s, challenge_delay=%.1fs, "
            "script_timeout=%.1fs",
            self.timeout,
            self.challenge_delay,
            self.script_timeout,
        )

    @property
    def cookies(self) -> CookieStore:
        """The session's per-destination cookie store."""
        return self._cookies

    def add_cookie(self, raw_set_cookie: str, url: str) -> None:
        """Inject a Set-Cookie header value for the URL's destination."""
        self._cookies.add(raw_set_cookie, url)

    def _build_headers(
        self, url: str, extra: dict[str, str] | None = None,
    ) -> dict[str, str]:
        """Build the full header set for one outbound request.

        Order: session headers -> per-request overrides -> default
        User-Agent (only if still missing) -> cached cookies appended to
        any caller-supplied Cookie header.
        """
        merged = _merge_headers(self.headers, extra)

        if _find_header(merged, "User-Agent") is None:
            merged["User-Agent"] = DEFAULT_USER_AGENT

        cached = self._cookies.cookie_header(url)
        if cached:
            key = _find_header(merged, "Cookie")
            if key is None:
                merged["Cookie"] = cached
            else:
                merged[key] = f"{merged[key]}; {cached}"
            logger.debug("Attached cached cookies for %s", url)

        return merged

    @staticmethod
    def _carried_kwargs(kwargs: dict) -> dict:
        """The subset of request kwargs the verification request reuses."""
        return {k: kwargs[k] for k in _CARRIED_KWARGS if k in kwargs}

    @staticmethod
    def _wrap(
        resp, url: str, content: bytes, started: float, solved: bool
    ) -> Response:
        return Response(
            status_code=resp.status.as_int(),
            url=url,
            header_lists=_header_lists(resp.headers),
            content=content,
            challenge_solved=solved,
            elapsed=time.monotonic() - started,
        )

    def _prepare_challenge(
        self, method: str, url: str, sent_headers: dict[str, str], body: str
    ) -> tuple[ChallengeContext, ExtractedChallenge]:
        """Capture the triggering request and extract its challenge.

        Raises ChallengeNotFound from the extractor unchanged.
        """
        context = ChallengeContext.capture(method, url, sent_headers, body)
        challenge = self._extractor.extract(body, context.host, url)
        return context, challenge

    def _finish_challenge(
        self,
        context: ChallengeContext,
        challenge: ExtractedChallenge,
        answer: float,
        started: float,
        now: float,
    ) -> AnswerSubmission:
        submission = build_answer(challenge, answer, context)
        logger.info(
            "Challenge at %s solved: answer=%s (%.3fs), submitting after "
            "%.1fs delay",
            context.url,
            submission.params["jschl_answer"],
            now - started,
            self.challenge_delay,
        )
        return submission

    def _store_challenge_cookies(self, response: Response) -> None:
        """Replace the destination's cookies with the verifier's, if any."""
        raw = response.get_all("set-cookie")
        if raw:
            self._cookies.replace(response.url, raw)
        else:
            logger.debug(
                "Verification response for %s set no cookies", response.url
            )

    @staticmethod
    def _apply_params(url: str, params: dict[str, str] | None) -> str:
        """Append query parameters to a URL.

        rnet doesn't support a params= kwarg, so clearway builds the query
        string into the URL before passing it on.
        """
        if not params:
            return url
        sep = "&" if "?" in url else "?"
        return url + sep + urlencode(params)

    def _build_client_kwargs(self) -> dict:
        """Build kwargs for rnet Client construction.

        rnet's own cookie store stays off: the session's CookieStore is
        the only cookie mechanism. Redirects are not followed, so every
        response reaches the caller as sent.
        """
        kwargs = {
            "connect_timeout": self.connect_timeout,
            "timeout": self.timeout,
            "cookie_store": False,
        }
        if self._proxy is not None:
            kwargs["proxies"] = [self._proxy]
        return kwargs
