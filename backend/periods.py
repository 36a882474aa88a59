"""
Period filter: keeps the events whose timestamp falls inside a window.

Every window ends at "now" and starts at `now - Period.window`; an event
must be strictly after that cutoff. Events without a timestamp never
match, not even for `Period.ALL`.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from models import CanonicalEvent, Period


def cutoff_for(period: Period, now: Optional[datetime] = None) -> Optional[datetime]:
    """Start of the window for `period`, or None for `Period.ALL`."""

    window = period.window
    if window is None:
        return None
    return (now or datetime.now(timezone.utc)) - window


def filter_by_period(
    events: Sequence[CanonicalEvent],
    period: Period,
    now: Optional[datetime] = None,
) -> List[CanonicalEvent]:
    """Return a new list of the events inside `period`, order preserved."""

    cutoff = cutoff_for(Period(period), now)
    return [
        e for e in events
        if e.timestamp is not None and (cutoff is None or e.timestamp > cutoff)
    ]
