"""IUAM script extraction -- pure Python, no I/O.

The interstitial hides a short arithmetic program inside a setTimeout
callback, padded with throwaway statements. We cut the program out, strip
the padding, and pin the one input it reads from the page (the length of
the host name) so the result can be computed in an empty sandbox.
"""

import logging
import re
from dataclasses import dataclass

from clearway._errors import ChallengeNotFound

logger = logging.getLogger("clearway")

# ── Page anchors ──────────────────────────────────────────────────────────────
# The callback always opens with the same 13-letter declaration line and
# ends on the line that assigns the answer field.

_SCRIPT_RE = re.compile(
    r"setTimeout\(function\(\){\s+(var "
    r"s,t,o,p,b,r,e,a,k,i,n,g,f.+?\r?\n[\s\S]+?a\.value =.+?)\r?\n"
)
_VERIFICATION_RE = re.compile(r'name="jschl_vc" value="(\w+)"')
_PASS_RE = re.compile(r'name="pass" value="(.+?)"')

# ── Sanitizers (applied in order) ─────────────────────────────────────────────

# a.value = <expr> + t.length).toFixed(10); -> <expr> + t.length
_ANSWER_RE = re.compile(r"a\.value = (.+ \+ t\.length).+")
# Indented single-statement mutations: "    t = document..." / "    a.value..."
_MUTATION_RE = re.compile(r"\s{3,}[a-z](?: = |\.).+")
_DOMAIN_LENGTH = "t.length"
# Anything that could close a string literal or continue a line
_UNSAFE_RE = re.compile(r"[\n\\']")


@dataclass(frozen=True)
class ExtractedChallenge:
    """Sanitized challenge program plus the tokens echoed back on submit."""

    script: str
    verification_token: str | None = None
    pass_token: str | None = None


def sanitize_script(raw: str, host: str) -> str:
    """Reduce a raw challenge block to a single arithmetic program."""
    script = _ANSWER_RE.sub(r"\1", raw)
    script = _MUTATION_RE.sub("", script)
    script = script.replace(_DOMAIN_LENGTH, str(len(host)))
    return _UNSAFE_RE.sub("", script)


def find_tokens(body: str) -> tuple[str | None, str | None]:
    """Return (jschl_vc, pass) hidden field values, None where missing."""
    vc = _VERIFICATION_RE.search(body)
    pass_ = _PASS_RE.search(body)
    return (
        vc.group(1) if vc else None,
        pass_.group(1) if pass_ else None,
    )


class IUAMExtractor:
    """Extractor for the classic IUAM arithmetic challenge.

    Sessions accept any object with a matching ``extract`` method, so a
    newer page layout can be handled by swapping the extractor without
    touching the rest of the pipeline.
    """

    def extract(
        self, body: str, host: str, url: str = ""
    ) -> ExtractedChallenge:
        """Pull the arithmetic program and hidden tokens out of a page.

        Args:
            body: Challenge page text.
            host: Host (netloc) of the challenged URL; its length is
                substituted into the script.
            url: Used only for error reporting.

        Raises:
            ChallengeNotFound: the page has no recognizable script block.
        """
        match = _SCRIPT_RE.search(body)
        if not match:
            raise ChallengeNotFound(url or host)

        script = sanitize_script(match.group(1), host)
        verification_token, pass_token = find_tokens(body)
        if verification_token is None:
            logger.warning(
                "Challenge page for %s has no jschl_vc field", host
            )
        logger.debug(
            "Extracted %d-char challenge script for %s", len(script), host
        )
        return ExtractedChallenge(
            script=script,
            verification_token=verification_token,
            pass_token=pass_token,
        )
