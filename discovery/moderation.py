"""
Review text moderation.

The gate asks a scanner which policy terms a text contains and turns the answer
into an admission decision. Two scanners ship here: a local denylist scan and a
remote classifier reached over HTTP. Whatever the scanner, a failure to reach a
verdict holds the review for moderation; it never admits it.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

import requests

from . import config
from .constants import REVIEW_APPROVED, REVIEW_PENDING
from .errors import ModerationUnavailable

logger = logging.getLogger(__name__)

FLAGGED_SCORE = 0.8
CLEAN_SCORE = 0.1
FAILURE_SCORE = 0.9
FAILURE_FLAG = "moderation_service_error"

Scanner = Callable[[str], Iterable[str]]


@dataclass(frozen=True)
class ModerationResult:
    flagged: bool
    score: float
    flags: frozenset = field(default_factory=frozenset)

    @property
    def admission_status(self) -> str:
        return REVIEW_PENDING if self.flagged else REVIEW_APPROVED


class DenylistScanner:
    """Case-insensitive substring scan for each configured term."""

    def __init__(self, terms: Iterable[str] = config.MODERATION_DENYLIST):
        self.terms = tuple(t.lower() for t in terms if t)

    def __call__(self, text: str) -> list[str]:
        lowered = text.lower()
        return [term for term in self.terms if term in lowered]


class RemoteScanner:
    """Classifier service returning ``{"flags": [...]}`` for a posted text.

    Any transport error, timeout or malformed body raises ModerationUnavailable.
    """

    def __init__(self, url: str, timeout: float = config.MODERATION_TIMEOUT_SECONDS, session=None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def __call__(self, text: str) -> list[str]:
        try:
            response = self.session.post(self.url, json={"text": text}, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.Timeout as e:
            raise ModerationUnavailable(f"classifier timed out after {self.timeout}s") from e
        except (requests.RequestException, ValueError) as e:
            raise ModerationUnavailable(f"classifier request failed: {e}") from e

        flags = data.get("flags") if isinstance(data, dict) else None
        if not isinstance(flags, list):
            raise ModerationUnavailable("classifier response has no 'flags' list")
        return [str(f) for f in flags]


class ModerationGate:
    """
    Scores review text and decides whether it is admitted or held.

    Usage:
        gate = ModerationGate()
        result = gate.evaluate("Great coffee, friendly staff")
        result.admission_status  # "approved"
    """

    def __init__(self, scanner: Optional[Scanner] = None):
        self.scanner = scanner or default_scanner()

    def evaluate(self, text: str) -> ModerationResult:
        try:
            matches = frozenset(self.scanner(text or ""))
        except Exception as e:
            # Fail closed: no verdict means the review waits for a moderator.
            logger.error("Moderation scan failed, holding review: %s", e)
            return ModerationResult(flagged=True, score=FAILURE_SCORE, flags=frozenset({FAILURE_FLAG}))

        if matches:
            logger.warning("Moderation flagged text: %s", sorted(matches))
            return ModerationResult(flagged=True, score=FLAGGED_SCORE, flags=matches)
        return ModerationResult(flagged=False, score=CLEAN_SCORE, flags=frozenset())


def default_scanner() -> Scanner:
    if config.MODERATION_SERVICE_URL:
        return RemoteScanner(config.MODERATION_SERVICE_URL)
    return DenylistScanner()
