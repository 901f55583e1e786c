"""
Field Resolver - ordered fallback chains over unstable markup

Each semantic field is described by an ordered list of candidates. The first
candidate whose locator finds a displayed element and whose extractor yields a
non-empty string wins; when none does, the field's sentinel default is used.
A failing candidate is never an error: stale or vanished elements are a normal
miss, and anything unexpected is logged and treated as a miss too.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, NamedTuple, Optional, Sequence, TypeVar

from playwright.sync_api import Error as PlaywrightError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (session, element) -> extracted string
Extractor = Callable[[Any, Any], Optional[str]]


def read_text(session, element) -> Optional[str]:
    return session.text(element)


def read_attribute(name: str) -> Extractor:
    def _read(session, element) -> Optional[str]:
        return session.attribute(element, name)
    _read.__name__ = f"read_attribute_{name}"
    return _read


@dataclass(frozen=True)
class Candidate:
    locator: str
    extract: Extractor = read_text
    many: bool = False          # join every displayed match (tag lists)
    separator: str = ", "


def candidates(locators: Iterable[str], extract: Extractor = read_text, many: bool = False) -> List[Candidate]:
    """Build a chain that applies the same extractor to every locator"""
    return [Candidate(locator, extract, many) for locator in locators]


class Match(NamedTuple):
    locator: str
    element: Any


def _attempt(session, container, candidate: Candidate, timeout_ms: Optional[int]) -> str:
    try:
        if candidate.many:
            parts = []
            for element in session.find_all(candidate.locator, within=container):
                if not session.is_displayed(element):
                    continue
                value = (candidate.extract(session, element) or "").strip()
                if value:
                    parts.append(value)
            return candidate.separator.join(parts)

        element = session.find_one(candidate.locator, within=container, timeout_ms=timeout_ms)
        if element is None or not session.is_displayed(element):
            return ""
        return (candidate.extract(session, element) or "").strip()
    except PlaywrightError:
        return ""
    except Exception as exc:
        logger.warning("Unexpected error resolving %s: %s", candidate.locator, exc)
        return ""


def resolve(
    session,
    container,
    chain: Sequence[Candidate],
    default: str,
    timeout_ms: Optional[int] = None,
    accept: Optional[Callable[[str], bool]] = None,
) -> str:
    """First non-empty value from the chain, else default.

    container=None searches the whole current page. When accept is given, a
    value it rejects counts as a miss and the chain moves on.
    """
    for candidate in chain:
        value = _attempt(session, container, candidate, timeout_ms)
        if value and (accept is None or accept(value)):
            return value
    return default


def resolve_with(
    session,
    container,
    locators: Iterable[str],
    read: Callable[[Any, Any], Optional[T]],
    timeout_ms: Optional[int] = None,
) -> Optional[T]:
    """Like resolve, but read may build any value from the element.

    A falsy result from read counts as a miss.
    """
    for locator in locators:
        try:
            element = session.find_one(locator, within=container, timeout_ms=timeout_ms)
            if element is None or not session.is_displayed(element):
                continue
            value = read(session, element)
        except PlaywrightError:
            continue
        except Exception as exc:
            logger.warning("Unexpected error resolving %s: %s", locator, exc)
            continue
        if value:
            return value
    return None


def find_displayed(
    session,
    locators: Iterable[str],
    within: Any = None,
    timeout_ms: Optional[int] = None,
) -> Optional[Match]:
    """First displayed element from an ordered locator list"""
    for locator in locators:
        try:
            element = session.find_one(locator, within=within, timeout_ms=timeout_ms)
            if element is not None and session.is_displayed(element):
                return Match(locator, element)
        except PlaywrightError:
            continue
        except Exception as exc:
            logger.warning("Error checking locator %s: %s", locator, exc)
    return None
