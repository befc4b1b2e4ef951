"""SyncSession -- synchronous HTTP client wrapping rnet.blocking.Client."""

import logging
import time

import rnet.blocking
from rnet import Method

from clearway._answer import AnswerSubmission
from clearway._base import BaseSession, _normalize_timeout, _to_method
from clearway._challenge import is_challenge
from clearway._errors import ConnectionFailed
from clearway._response import Response
from clearway._sandbox import evaluate

logger = logging.getLogger("clearway")


class SyncSession(BaseSession):
    """Synchronous HTTP session that solves Cloudflare IUAM challenges.

    Safe to share between threads: the cookie store is the only shared
    mutable state and is lock-guarded.
    """

    def __init__(self, client=None, **kwargs):
        super().__init__(**kwargs)
        if client is None:
            client = rnet.blocking.Client(**self._build_client_kwargs())
        self._client = client

    def _fetch(
        self,
        method: Method,
        url: str,
        headers: dict,
        kwargs: dict,
        started: float,
        solved: bool = False,
    ) -> Response:
        """One round trip: send, read the whole body, wrap."""
        try:
            resp = self._client.request(method, url, headers=headers, **kwargs)
        except Exception as e:
            raise ConnectionFailed(url, str(e)) from e
        try:
            content = resp.bytes()
        except Exception as e:
            raise ConnectionFailed(url, f"body read: {e}") from e
        return self._wrap(resp, url, content, started, solved)

    def _solve(
        self, method: str, url: str, sent_headers: dict, body: str
    ) -> AnswerSubmission:
        """Extract, evaluate and build; then wait out the mandatory delay."""
        started = time.monotonic()
        context, challenge = self._prepare_challenge(
            method, url, sent_headers, body
        )
        answer = evaluate(challenge.script, self.script_timeout)
        submission = self._finish_challenge(
            context, challenge, answer, started, time.monotonic()
        )
        time.sleep(self.challenge_delay)
        return submission

    def request(self, method: str, url: str, **kwargs) -> Response:
        """Send an HTTP request, solving at most one IUAM challenge.

        Anything but a challenge comes back untouched. After a solve the
        verification response is returned as-is; its cookies are kept for
        later requests to the same destination.
        """
        start_time = time.monotonic()

        extra_headers = kwargs.pop("headers", None)
        params = kwargs.pop("params", None)
        if params:
            url = self._apply_params(url, params)
        if kwargs.get("timeout") is not None:
            kwargs["timeout"] = _normalize_timeout(kwargs["timeout"])

        m = _to_method(method)
        logger.debug("%s %s", method, url)

        headers = self._build_headers(url, extra_headers)
        response = self._fetch(m, url, headers, kwargs, start_time)
        if not is_challenge(response.status_code, response.headers):
            return response

        submission = self._solve(method, url, headers, response.text)
        verified = self._fetch(
            Method.GET,
            submission.url,
            submission.headers,
            self._carried_kwargs(kwargs),
            start_time,
            solved=True,
        )
        self._store_challenge_cookies(verified)
        return verified

    def get(self, url: str, **kwargs) -> Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs) -> Response:
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs) -> Response:
        return self.request("PUT", url, **kwargs)

    def delete(self, url: str, **kwargs) -> Response:
        return self.request("DELETE", url, **kwargs)

    def head(self, url: str, **kwargs) -> Response:
        return self.request("HEAD", url, **kwargs)

    def options(self, url: str, **kwargs) -> Response:
        return self.request("OPTIONS", url, **kwargs)

    def patch(self, url: str, **kwargs) -> Response:
        return self.request("PATCH", url, **kwargs)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        pass
