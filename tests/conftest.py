"""
Shared fixtures and fakes.

Nothing here touches a database or the network: the repository is
replaced by an in-memory fake and the identity service by canned
responses.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from models import CanonicalEvent


NOW = datetime(2026, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


def make_event(i: int | str = 0, **overrides: Any) -> CanonicalEvent:
    fields: Dict[str, Any] = {"id": f"e{i}", "url": "/home", "timestamp": NOW}
    fields.update(overrides)
    return CanonicalEvent(**fields)


class FakeRepo:
    """Stands in for `EventRepo`; counts reads to check there is no caching."""

    def __init__(self, events: Optional[List[CanonicalEvent]] = None):
        self.events = list(events or [])
        self.reads = 0
        self.candidates = ["analytics_events"]
        self.inserted: List[tuple] = []

    def fetch_events(self) -> List[CanonicalEvent]:
        self.reads += 1
        return list(self.events)

    def ping(self) -> None:
        return None

    def candidate_counts(self) -> Dict[str, Optional[int]]:
        return {"analytics_events": len(self.events), "events": None}

    def insert_documents(self, name: str, docs: List[Dict[str, Any]]) -> int:
        self.inserted.append((name, docs))
        return len(docs)


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def fake_repo() -> FakeRepo:
    return FakeRepo()
