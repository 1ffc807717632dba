"""
Content matching used by content recall.

Three matchers, all returning ``MatchDetails`` with spans taken from the
original (un-lowercased) content:
- regex: every match of a pattern, relevance = count / len(content)
- exact keywords: non-overlapping occurrences, +1 each
- fuzzy keywords: sliding window of keyword length, accepted when the
  Levenshtein distance is within a fraction of the keyword length,
  +(1 - distance / length) each

Keyword relevance is normalized by content length.
"""

import math
import re

from memory_graph.models.recall import MatchDetails, SearchOptions
from memory_graph.utils.exceptions import ValidationError

DEFAULT_FUZZY_THRESHOLD = 0.3


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with unit insert, delete and substitute costs."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    current[j - 1] + 1,
                    previous[j] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        previous = current
    return previous[-1]


def compile_pattern(pattern: str, case_sensitive: bool = False) -> re.Pattern:
    """
    Compile a user-supplied search pattern.

    Raises:
        ValidationError: If the pattern is not a valid regular expression
    """
    try:
        return re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)
    except re.error as e:
        raise ValidationError(
            f"Invalid search pattern: {e}", context={"pattern": pattern}
        ) from e


def regex_matches(content: str, pattern: re.Pattern) -> MatchDetails:
    details = MatchDetails()
    for match in pattern.finditer(content):
        details.matches.append(match.group(0))
        details.positions.append(match.start())
    if details.matches and content:
        details.relevance = len(details.matches) / len(content)
    return details


def _exact_occurrences(haystack: str, needle: str) -> list[int]:
    positions = []
    pos = haystack.find(needle)
    while pos != -1:
        positions.append(pos)
        pos = haystack.find(needle, pos + len(needle))
    return positions


def _fuzzy_windows(haystack: str, term: str, threshold: float) -> list[tuple[int, int]]:
    size = len(term)
    max_distance = math.floor(size * threshold)
    windows = []
    for start in range(len(haystack) - size + 1):
        distance = levenshtein_distance(term, haystack[start : start + size])
        if distance <= max_distance:
            windows.append((start, distance))
    return windows


def keyword_matches(
    content: str,
    keywords: list[str],
    fuzzy: bool = False,
    case_sensitive: bool = False,
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
) -> MatchDetails:
    """Score ``content`` against each keyword, exact or fuzzy."""
    details = MatchDetails()
    haystack = content if case_sensitive else content.lower()

    for keyword in keywords:
        if not keyword:
            continue
        term = keyword if case_sensitive else keyword.lower()
        size = len(term)

        if fuzzy:
            for start, distance in _fuzzy_windows(haystack, term, fuzzy_threshold):
                details.matches.append(content[start : start + size])
                details.positions.append(start)
                details.relevance += 1 - distance / size
        else:
            for start in _exact_occurrences(haystack, term):
                details.matches.append(content[start : start + size])
                details.positions.append(start)
                details.relevance += 1

    if details.matches:
        details.relevance /= len(content)
    return details


def match_content(
    content: str,
    options: SearchOptions,
    pattern: re.Pattern | None = None,
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
) -> MatchDetails | None:
    """
    Run the configured matcher over one piece of content.

    A regex takes precedence over keywords.

    Returns:
        MatchDetails, or None when nothing matched
    """
    if pattern is not None:
        details = regex_matches(content, pattern)
    elif options.keywords:
        details = keyword_matches(
            content,
            options.keywords,
            fuzzy=options.fuzzy_match,
            case_sensitive=options.case_sensitive,
            fuzzy_threshold=fuzzy_threshold,
        )
    else:
        return None
    return details if details.matches else None
