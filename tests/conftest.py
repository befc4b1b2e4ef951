"""Shared mock objects, fixtures, and session factories for clearway tests."""

import json

# ---------------------------------------------------------------------------
# Challenge page fixture
# ---------------------------------------------------------------------------

# Classic IUAM interstitial. For host "example.com" (11 chars) the script
# computes 31 -> 11 -> 352, then 352 + 11 = 363.
CHALLENGE_PAGE = r"""<!DOCTYPE HTML>
<html lang="en-US">
<head>
  <title>Just a moment...</title>
  <script type="text/javascript">
  //<![CDATA[
  (function(){
    var a = function() {try{return !!window.addEventListener} catch(e) {return !1} },
    b = function(b, c) {a() ? document.addEventListener("DOMContentLoaded", b, c) : document.attachEvent("onreadystatechange", b)};
    b(function(){
      var a = document.getElementById('cf-content');a.style.display = 'block';
      setTimeout(function(){
        var s,t,o,p,b,r,e,a,k,i,n,g,f, gJbvHnW={"eqOvxXBqz":+((!+[]+!![]+!![]+[])+(+!![]))};
        t = document.createElement('div');
        t.innerHTML="<a href='/'>x</a>";
        t = t.firstChild.href;r = t.match(/https?:\/\//)[0];
        t = t.substr(r.length); t = t.substr(0,t.length-1);
        a = document.getElementById('jschl-answer');
        f = document.getElementById('challenge-form');
        ;gJbvHnW.eqOvxXBqz-=+((!+[]+!![]+[])+(+[]));gJbvHnW.eqOvxXBqz*=+((!+[]+!![]+!![]+[])+(!+[]+!![]));a.value = +gJbvHnW.eqOvxXBqz.toFixed(10) + t.length; '; 121'
        f.action += location.hash;
        f.submit();
      }, 4000);
    }, false);
  })();
  //]]>
</script>
</head>
<body>
  <form id="challenge-form" action="/cdn-cgi/l/chk_jschl" method="get">
    <input type="hidden" name="jschl_vc" value="7b0a5e2bd6b8b1a6d5cbf3ac2e6b83f1"/>
    <input type="hidden" name="pass" value="1523374210.483-Vl2r0Mwk5a"/>
    <input type="hidden" id="jschl-answer" name="jschl_answer"/>
  </form>
</body>
</html>
"""

CHALLENGE_ANSWER = "363.0000000000"
JSCHL_VC = "7b0a5e2bd6b8b1a6d5cbf3ac2e6b83f1"
PASS = "1523374210.483-Vl2r0Mwk5a"

CF_HEADERS = {"server": "cloudflare", "content-type": "text/html"}

# ---------------------------------------------------------------------------
# Mock rnet types
# ---------------------------------------------------------------------------


class MockStatus:
    def __init__(self, code: int):
        self._code = code

    def as_int(self) -> int:
        return self._code

    def is_success(self) -> bool:
        return 200 <= self._code < 300


class MockHeaderMap:
    """Mock rnet HeaderMap with bytes keys and bytes values.

    Mirrors rnet's real HeaderMap behavior:
    - keys() returns unique bytes keys
    - get()/[] returns first value only
    - get_all() returns list of all values for a key

    A list value in the input dict becomes a multi-value header.
    """

    def __init__(self, data: dict[str, str | list[str]] | None = None):
        self._raw: dict[bytes, list[bytes]] = {}
        for k, v in (data or {}).items():
            bk = k.lower().encode("ascii")
            values = v if isinstance(v, list) else [v]
            self._raw.setdefault(bk, []).extend(
                val.encode("utf-8") for val in values
            )

    def keys(self):
        return list(self._raw.keys())

    def __getitem__(self, key):
        if isinstance(key, str):
            key = key.lower().encode("ascii")
        return self._raw[key][0]

    def get(self, key):
        try:
            return self[key]
        except KeyError:
            return None

    def get_all(self, key):
        if isinstance(key, str):
            key = key.lower().encode("ascii")
        return list(self._raw.get(key, []))


class MockResponse:
    def __init__(
        self,
        status_code: int,
        headers: dict[str, str | list[str]] | None = None,
        body: str = "",
    ):
        self.status = MockStatus(status_code)
        self.headers = MockHeaderMap(headers)
        self._body = body

    def text(self):
        return self._body

    def bytes(self):
        return self._body.encode("utf-8")

    def json(self):
        return json.loads(self._body)


class AsyncMockResponse(MockResponse):
    """Mock response with async text()/bytes() for AsyncSession tests."""

    async def text(self):
        return self._body

    async def bytes(self):
        return self._body.encode("utf-8")


class MockClient:
    """Mock rnet client that returns responses from a sequence.

    Tracks request_count, last_kwargs and request_log. The last response
    repeats once the sequence is exhausted.
    """

    def __init__(self, responses: list[MockResponse | Exception]):
        self._responses = responses
        self._index = 0
        self.request_count = 0
        self.last_kwargs: dict = {}
        self.request_log: list[tuple] = []

    def _next(self, method, url, kwargs):
        self.last_kwargs = kwargs
        resp = self._responses[
            min(self._index, len(self._responses) - 1)
        ]
        self._index += 1
        self.request_count += 1
        self.request_log.append((method, url, kwargs))
        if isinstance(resp, Exception):
            raise resp
        return resp

    def request(self, method, url, **kwargs):
        return self._next(method, url, kwargs)


class AsyncMockClient(MockClient):
    """Async mock rnet client."""

    async def request(self, method, url, **kwargs):
        return self._next(method, url, kwargs)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def ok_response(status=200, headers=None, body="<html><body>ok</body></html>"):
    return MockResponse(status, headers or {"content-type": "text/html"}, body)


def challenge_response(body=CHALLENGE_PAGE, server="cloudflare"):
    headers = dict(CF_HEADERS)
    headers["server"] = server
    return MockResponse(503, headers, body)


def to_async_responses(responses):
    """Convert MockResponse/Exception list to AsyncMockResponse list."""
    result = []
    for r in responses:
        if isinstance(r, Exception):
            result.append(r)
            continue
        async_resp = AsyncMockResponse(r.status.as_int(), None, r._body)
        async_resp.headers = r.headers
        result.append(async_resp)
    return result


def sent_headers(entry) -> dict[str, str]:
    """Headers passed to the transport for one request_log entry."""
    _, _, kwargs = entry
    return kwargs["headers"]


# ---------------------------------------------------------------------------
# Session factories
# ---------------------------------------------------------------------------


def make_sync_session(responses, **session_kwargs):
    """Create a SyncSession around a MockClient.

    challenge_delay defaults to 0 so tests never sleep; any other
    BaseSession keyword can be overridden via session_kwargs.
    """
    from clearway._sync import SyncSession

    session_kwargs.setdefault("challenge_delay", 0)
    mock = MockClient(responses)
    return SyncSession(client=mock, **session_kwargs), mock


def make_async_session(responses, **session_kwargs):
    """Create an AsyncSession around an AsyncMockClient."""
    from clearway._async import AsyncSession

    session_kwargs.setdefault("challenge_delay", 0)
    mock = AsyncMockClient(to_async_responses(responses))
    return AsyncSession(client=mock, **session_kwargs), mock
