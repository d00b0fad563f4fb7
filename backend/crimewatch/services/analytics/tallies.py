"""Counting helpers shared by the analytics services."""
import math
from collections import Counter
from typing import Iterable, List, Tuple


def round_half_up(value: float, digits: int = 0) -> float:
    """Round half away from zero (the Math.round/toFixed behavior the UI shows)."""
    factor = 10 ** digits
    scaled = math.floor(abs(value) * factor + 0.5) / factor
    return math.copysign(scaled, value) if scaled else 0.0


def percentage(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round_half_up(count / total * 100, 1)


def top_counts(values: Iterable[str], limit: int = 5) -> List[Tuple[str, int]]:
    """
    Most frequent values, highest count first.

    Ties keep first-encountered order (Counter preserves insertion order and
    sorted() is stable).
    """
    counts = Counter(values)
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)[:limit]
