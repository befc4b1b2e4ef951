"""Response -- the object a session hands back for every request."""

import json
import re
from typing import Any

from clearway._errors import HTTPError

_CHARSET_RE = re.compile(r"charset=[\"']?([\w.:-]+)", re.IGNORECASE)


class Response:
    """Status, headers and body of the response that ended a request.

    After a solved challenge this is the verification response, exactly as
    the edge returned it (often a 302 back to the page), with
    ``challenge_solved`` set.

    ``headers`` maps lowercase names to their values joined with ", ";
    ``get_all`` keeps repeated headers such as Set-Cookie apart.
    """

    __slots__ = (
        "status_code",
        "url",
        "content",
        "headers",
        "challenge_solved",
        "elapsed",
        "_header_lists",
    )

    def __init__(
        self,
        *,
        status_code: int,
        url: str,
        header_lists: dict[str, list[str]] | None = None,
        content: bytes = b"",
        challenge_solved: bool = False,
        elapsed: float = 0.0,
    ):
        self.status_code = status_code
        self.url = url
        self.content = content
        self.challenge_solved = challenge_solved
        self.elapsed = elapsed
        self._header_lists = {
            k.lower(): list(v) for k, v in (header_lists or {}).items()
        }
        self.headers = {
            k: ", ".join(v) for k, v in self._header_lists.items()
        }

    @property
    def encoding(self) -> str:
        """Charset from Content-Type, utf-8 when absent."""
        match = _CHARSET_RE.search(self.headers.get("content-type", ""))
        return match.group(1) if match else "utf-8"

    @property
    def text(self) -> str:
        try:
            return self.content.decode(self.encoding, errors="replace")
        except LookupError:
            return self.content.decode("utf-8", errors="replace")

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self, **kwargs) -> Any:
        return json.loads(self.text, **kwargs)

    def get_all(self, name: str) -> list[str]:
        """Every value received for a header, in arrival order."""
        return list(self._header_lists.get(name.lower(), []))

    def raise_for_status(self) -> None:
        if not self.ok:
            raise HTTPError(self.status_code, self.url)

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}]>"
