"""
Grouped counts over a list of canonical events.

All three functions are pure: they read the list, never mutate it, and
share no state. Empty input gives an empty dict.

Null handling differs on purpose between the two classifications:
a missing event type is counted under `UNKNOWN_LABEL`, while a missing
device type is left out of the device counts altogether. Unifying the
two would change reported totals and needs product sign-off first.
"""

from collections import Counter
from typing import Dict, Sequence

from models import CanonicalEvent

UNKNOWN_LABEL = "Unknown"


def page_statistics(events: Sequence[CanonicalEvent]) -> Dict[str, int]:
    """Visits per url, most visited first.

    Ties keep the order in which the urls were first seen (Counter keeps
    insertion order and `sorted` is stable).
    """

    counts = Counter(e.url for e in events if e.url is not None)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return dict(ranked)


def event_type_statistics(events: Sequence[CanonicalEvent]) -> Dict[str, int]:
    counts = Counter(
        e.event_type if e.event_type is not None else UNKNOWN_LABEL for e in events
    )
    return dict(counts)


def device_type_statistics(events: Sequence[CanonicalEvent]) -> Dict[str, int]:
    counts = Counter(e.device_type for e in events if e.device_type is not None)
    return dict(counts)
