"""Free-text location matching against incident place names."""
import math
import re
from typing import Iterable, List

from crimewatch.schemas.incident import Incident

_TOKEN_SPLIT = re.compile(r"[\s,]+")

MIN_TOKEN_LENGTH = 3
TOKEN_MATCH_RATIO = 0.7
MAX_SUGGESTIONS = 5


def _tokens(text: str) -> List[str]:
    return [token for token in _TOKEN_SPLIT.split(text) if token]


def match_location(candidate: str, query: str) -> bool:
    """
    Decide whether an incident location matches a search query.

    Tried in order, first hit wins:
      1. case-insensitive equality
      2. case-insensitive substring, in either direction
      3. token overlap: query tokens shorter than three characters are
         dropped, and at least ceil(0.7 * n) of the remaining n must contain,
         or be contained in, some token of the candidate. A query with no
         token long enough needs zero hits, so it matches.
    """
    candidate_lower = candidate.strip().lower()
    query_lower = query.strip().lower()
    if not candidate_lower or not query_lower:
        return False

    if candidate_lower == query_lower:
        return True

    if query_lower in candidate_lower or candidate_lower in query_lower:
        return True

    query_words = [w for w in _tokens(query_lower) if len(w) >= MIN_TOKEN_LENGTH]
    candidate_words = _tokens(candidate_lower)

    matched = sum(
        1
        for word in query_words
        if any(word in other or other in word for other in candidate_words)
    )
    return matched >= math.ceil(len(query_words) * TOKEN_MATCH_RATIO)


def matching_incidents(incidents: Iterable[Incident], query: str) -> List[Incident]:
    return [incident for incident in incidents if match_location(incident.location, query)]


def suggest_locations(
    incidents: Iterable[Incident], partial: str, limit: int = MAX_SUGGESTIONS
) -> List[str]:
    """Distinct incident locations matching a partial query, first seen first."""
    if not partial.strip():
        return []

    suggestions: List[str] = []
    seen = set()
    for incident in incidents:
        location = incident.location
        if location in seen or not match_location(location, partial):
            continue
        seen.add(location)
        suggestions.append(location)
        if len(suggestions) >= limit:
            break
    return suggestions
