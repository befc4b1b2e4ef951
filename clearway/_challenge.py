"""Cloudflare IUAM challenge detection.

Pure logic, no I/O. A response is an IUAM interstitial when it comes back
as 503 from a Cloudflare edge; everything else passes through untouched.
"""

import logging
from dataclasses import dataclass
from urllib.parse import urlparse

logger = logging.getLogger("clearway")

CHALLENGE_STATUS = 503
SERVER_PREFIX = "cloudflare"


@dataclass(frozen=True)
class ChallengeContext:
    """Everything captured from the request that triggered a challenge."""

    host: str  # netloc of the challenged URL (port included)
    method: str
    url: str
    headers: dict[str, str]  # request headers as actually sent
    body: str  # challenge page text

    @classmethod
    def capture(
        cls, method: str, url: str, headers: dict[str, str], body: str
    ) -> "ChallengeContext":
        return cls(
            host=urlparse(url).netloc,
            method=method.upper(),
            url=url,
            headers=dict(headers),
            body=body,
        )


def is_challenge(status_code: int, headers: dict[str, str]) -> bool:
    """Detect the IUAM interstitial from status code and headers.

    Args:
        status_code: HTTP status code.
        headers: Response headers with lowercase keys.

    Returns:
        True only for a 503 whose Server header starts with "cloudflare".
    """
    if status_code != CHALLENGE_STATUS:
        return False
    if not headers.get("server", "").startswith(SERVER_PREFIX):
        return False
    logger.info("Challenge detected: cloudflare iuam")
    return True
