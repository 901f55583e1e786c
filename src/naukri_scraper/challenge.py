"""
Page-content predicates: CAPTCHA walls, login challenges, empty result sets
"""

from dataclasses import dataclass
from typing import Optional, Tuple


class ChallengeDetected(RuntimeError):
    """Raised when an anti-bot challenge blocks the run. Needs a human."""

    def __init__(self, message: str, marker: Optional[str] = None):
        super().__init__(message)
        self.marker = marker


@dataclass(frozen=True)
class ContentMarkers:
    """String-containment test over raw page content.

    Instances are callable so any ``Callable[[str], bool]`` can stand in
    for one wherever a detector is accepted.
    """

    name: str
    markers: Tuple[str, ...]
    case_sensitive: bool = False

    def find(self, content: str) -> Optional[str]:
        """Return the first marker present in content, if any."""
        if not content:
            return None
        haystack = content if self.case_sensitive else content.lower()
        for marker in self.markers:
            needle = marker if self.case_sensitive else marker.lower()
            if needle in haystack:
                return marker
        return None

    def __call__(self, content: str) -> bool:
        return self.find(content) is not None


CAPTCHA = ContentMarkers("captcha", ("captcha",))

LOGIN_CHALLENGE = ContentMarkers(
    "login-challenge",
    ("captcha", "verify mobile", "enter otp"),
)

NO_RESULTS = ContentMarkers(
    "no-results",
    ("No matching jobs found", "no jobs found"),
    case_sensitive=True,
)
