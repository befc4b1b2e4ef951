"""Verification request assembly for a solved IUAM challenge."""

from dataclasses import dataclass, field
from urllib.parse import urlencode, urljoin

from clearway._challenge import ChallengeContext
from clearway._extract import ExtractedChallenge

VERIFY_PATH = "/cdn-cgi/l/chk_jschl"

# Rewritten on every submission; any case of it is dropped from the copy
_SKIP_HEADERS = frozenset({"referer"})


@dataclass(frozen=True)
class AnswerSubmission:
    """A ready-to-send verification request."""

    url: str
    params: dict[str, str]
    headers: dict[str, str] = field(default_factory=dict)
    method: str = "GET"


def format_answer(answer: float) -> str:
    """The verifier expects exactly ten fractional digits."""
    return "%.10f" % answer


def build_answer(
    challenge: ExtractedChallenge,
    answer: float,
    context: ChallengeContext,
) -> AnswerSubmission:
    """Build the chk_jschl request for a computed answer.

    Tokens missing from the page are left out of the query rather than
    sent empty. Every header of the triggering request, Cookie included,
    is copied; the verification request is sent with exactly these.
    """
    params: dict[str, str] = {}
    if challenge.verification_token is not None:
        params["jschl_vc"] = challenge.verification_token
    if challenge.pass_token is not None:
        params["pass"] = challenge.pass_token
    params["jschl_answer"] = format_answer(answer)

    url = urljoin(context.url, VERIFY_PATH) + "?" + urlencode(params)

    headers = {
        k: v
        for k, v in context.headers.items()
        if k.lower() not in _SKIP_HEADERS
    }
    headers["Referer"] = context.url
    return AnswerSubmission(url=url, params=params, headers=headers)
