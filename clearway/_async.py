"""AsyncSession -- asyncio HTTP client wrapping rnet.Client."""

import asyncio
import logging
import time

import rnet
from rnet import Method

from clearway._answer import AnswerSubmission
from clearway._base import BaseSession, _normalize_timeout, _to_method
from clearway._challenge import is_challenge
from clearway._errors import ConnectionFailed
from clearway._response import Response
from clearway._sandbox import evaluate_async

logger = logging.getLogger("clearway")


class AsyncSession(BaseSession):
    """Async HTTP session that solves Cloudflare IUAM challenges.

    Concurrent tasks may share one session. Challenge delays and script
    evaluation suspend only the task that hit the challenge.
    """

    def __init__(self, client=None, **kwargs):
        super().__init__(**kwargs)
        if client is None:
            client = rnet.Client(**self._build_client_kwargs())
        self._client = client

    async def _fetch(
        self,
        method: Method,
        url: str,
        headers: dict,
        kwargs: dict,
        started: float,
        solved: bool = False,
    ) -> Response:
        try:
            resp = await self._client.request(
                method, url, headers=headers, **kwargs
            )
        except Exception as e:
            raise ConnectionFailed(url, str(e)) from e
        try:
            content = await resp.bytes()
        except Exception as e:
            raise ConnectionFailed(url, f"body read: {e}") from e
        return self._wrap(resp, url, content, started, solved)

    async def _solve(
        self, method: str, url: str, sent_headers: dict, body: str
    ) -> AnswerSubmission:
        started = time.monotonic()
        context, challenge = self._prepare_challenge(
            method, url, sent_headers, body
        )
        answer = await evaluate_async(challenge.script, self.script_timeout)
        submission = self._finish_challenge(
            context, challenge, answer, started, time.monotonic()
        )
        await asyncio.sleep(self.challenge_delay)
        return submission

    async def request(self, method: str, url: str, **kwargs) -> Response:
        """Send an HTTP request, solving at most one IUAM challenge."""
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
        response = await self._fetch(m, url, headers, kwargs, start_time)
        if not is_challenge(response.status_code, response.headers):
            return response

        submission = await self._solve(method, url, headers, response.text)
        verified = await self._fetch(
            Method.GET,
            submission.url,
            submission.headers,
            self._carried_kwargs(kwargs),
            start_time,
            solved=True,
        )
        self._store_challenge_cookies(verified)
        return verified

    async def get(self, url: str, **kwargs) -> Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs) -> Response:
        return await self.request("PUT", url, **kwargs)

    async def delete(self, url: str, **kwargs) -> Response:
        return await self.request("DELETE", url, **kwargs)

    async def head(self, url: str, **kwargs) -> Response:
        return await self.request("HEAD", url, **kwargs)

    async def options(self, url: str, **kwargs) -> Response:
        return await self.request("OPTIONS", url, **kwargs)

    async def patch(self, url: str, **kwargs) -> Response:
        return await self.request("PATCH", url, **kwargs)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass
