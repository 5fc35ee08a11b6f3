"""
Sliding time-window math over event timestamps.
"""

from typing import Iterable, List, Optional

from threatlens.normalizer.models import LogEntry
from threatlens.normalizer.timestamps import epoch_seconds


def sorted_epochs(entries: Iterable[LogEntry]) -> List[float]:
    """Valid entry timestamps as ascending epoch seconds; invalid ones are skipped."""
    times = [epoch_seconds(entry.timestamp) for entry in entries]
    return sorted(t for t in times if t is not None)


def has_window(times: List[float], size: int, seconds: float) -> bool:
    """
    True if some ``size`` consecutive sorted timestamps span at most ``seconds``.

    Args:
        times: Ascending epoch seconds
        size: Events the window must contain
        seconds: Maximum window duration
    """
    span = tightest_span(times, size)
    return span is not None and span <= seconds


def tightest_span(times: List[float], size: int) -> Optional[float]:
    """Smallest duration covering ``size`` consecutive timestamps, or None if too few."""
    if size < 1 or len(times) < size:
        return None
    return min(times[i + size - 1] - times[i] for i in range(len(times) - size + 1))


def max_events_in_window(times: List[float], seconds: float) -> int:
    """
    Largest number of events inside any window of ``seconds`` duration.

    Two-pointer scan over ascending timestamps, linear in len(times).
    """
    best = 0
    start = 0
    for end, current in enumerate(times):
        while current - times[start] > seconds:
            start += 1
        best = max(best, end - start + 1)
    return best
