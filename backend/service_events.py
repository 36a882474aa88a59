"""
Service / facade layer for analytics reports.

This module turns repository reads into report-ready numbers. It is
intentionally free of SQL — it calls `EventRepo` for data, `periods`
for windowing and `aggregations` for counts.

Key responsibilities:
- one repository read per public call (no caching between calls)
- period filtering before any windowed aggregation
- the statistics endpoints consumed by the dashboard
"""

from typing import Dict, List, Optional
from datetime import datetime, timezone

from aggregations import device_type_statistics, event_type_statistics, page_statistics
from models import CanonicalEvent, Period, ReportOut
from periods import filter_by_period
from repo_events import EventRepo


class AnalyticsService:
    """Reports over the analytics events.

    Example usage:
        repo = EventRepo()
        svc = AnalyticsService(repo)
        svc.get_events_by_period(Period.WEEK)
    """

    def __init__(self, repo: EventRepo):
        self.repo = repo

    def get_events_by_period(
        self, period: Period, now: Optional[datetime] = None
    ) -> List[CanonicalEvent]:
        """Events inside `period`; untimestamped events are never included."""

        return filter_by_period(self.repo.fetch_events(), period, now=now)

    def get_page_statistics(self) -> Dict[str, int]:
        """Visits per url over the full, unfiltered read, most visited first."""

        return page_statistics(self.repo.fetch_events())

    def get_event_type_stats(self) -> Dict[str, int]:
        return event_type_statistics(self.repo.fetch_events())

    def get_device_type_stats(self) -> Dict[str, int]:
        return device_type_statistics(self.repo.fetch_events())

    def build_report(self, period: Period, now: Optional[datetime] = None) -> ReportOut:
        """All three aggregations over one filtered read.

        Unlike the `get_*_stats` methods, counts here honor `period`.
        """

        now = now or datetime.now(timezone.utc)
        events = self.get_events_by_period(period, now=now)
        return ReportOut(
            period=period,
            total_events=len(events),
            pages=page_statistics(events),
            event_types=event_type_statistics(events),
            device_types=device_type_statistics(events),
            generated_at=now,
        )

    def health_check(self) -> Dict[str, Optional[int]]:
        """Ping the store and report candidate collection sizes."""

        self.repo.ping()
        return self.repo.candidate_counts()
