"""
Repository: reads raw analytics records for the report pipeline.

This file contains only store access and row mapping. Collection naming
was never fixed by the data producer, so the repository checks an
ordered list of candidate tables and reads the first one that holds any
rows. Rows are plain dicts (see `db.get_conn`) and go through
`normalize.to_canonical`.

Important notes:
- The read is capped at `MAX_READ_RECORDS` rows per call. This bounds
  latency against an unbounded table and silently truncates beyond it.
- A store fault never reaches callers of `fetch_events`: they get the
  synthetic `fallback_events()` instead, so reports are never empty
  because of a fault.
- Nothing is cached; every call re-reads.
"""

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

import psycopg
from psycopg import sql
from psycopg.types.json import Jsonb

from db import get_conn
from models import CanonicalEvent
from normalize import to_canonical
from settings import MAX_READ_RECORDS, settings

logger = logging.getLogger(__name__)

STORE_ERRORS = (psycopg.Error, OSError)

FALLBACK_URLS = ("/home", "/login", "/dashboard", "/profile", "/settings")
FALLBACK_DEVICES = ("Desktop", "Mobile", "Tablet")
FALLBACK_EVENT_TYPES = ("page_view", "click", "scroll", "download")
FALLBACK_SIZE = 3


def fallback_events(now: Optional[datetime] = None) -> List[CanonicalEvent]:
    """Synthetic events served when no real data can be read.

    Ids, urls, devices and types are fixed; event i is stamped i hours
    before `now` so every fallback event falls inside every period.
    """

    now = now or datetime.now(timezone.utc)
    return [
        CanonicalEvent(
            id=f"test_{i}",
            url=FALLBACK_URLS[i % len(FALLBACK_URLS)],
            timestamp=now - timedelta(hours=i),
            device_type=FALLBACK_DEVICES[i % len(FALLBACK_DEVICES)],
            event_type=FALLBACK_EVENT_TYPES[i % len(FALLBACK_EVENT_TYPES)],
            load_time=random.randint(0, 2999),
        )
        for i in range(FALLBACK_SIZE)
    ]


class EventRepo:
    """Store access only. No filtering or aggregation here.

    Responsibilities:
    - Scan candidate collections, first non-empty wins
    - Read at most `limit` raw rows and map them to `CanonicalEvent`
    - Degrade to fallback data on store faults
    """

    def __init__(
        self,
        candidates: Optional[List[str]] = None,
        limit: Optional[int] = None,
        connect: Callable[[], Any] = get_conn,
    ):
        # None means "use settings"; an explicit empty list or 0 is kept as given.
        self.candidates = list(settings.collection_candidates if candidates is None else candidates)
        self.limit = settings.max_read_records if limit is None else limit
        self._connect = connect

    def fetch_events(self) -> List[CanonicalEvent]:
        """Return canonical events from the first non-empty collection.

        Records lacking an id or url are dropped. If no candidate holds
        data, or the store fails, fallback events are returned instead.
        """

        try:
            with self._connect() as conn:
                name = self.find_collection(conn)
                if name is None:
                    logger.warning(
                        "No analytics collection found among %s, serving fallback data",
                        self.candidates,
                    )
                    return fallback_events()
                rows = self.read_rows(conn, name)
        except STORE_ERRORS as exc:
            logger.warning("Analytics read failed (%s), serving fallback data", exc)
            return fallback_events()

        events = self.to_events(rows)
        logger.info(
            "Read %d records from '%s': %d usable, %d dropped",
            len(rows), name, len(events), len(rows) - len(events),
        )
        return events

    @staticmethod
    def to_events(rows: Iterable[Dict[str, Any]]) -> List[CanonicalEvent]:
        now = datetime.now(timezone.utc)
        events: List[CanonicalEvent] = []
        for row in rows:
            event = to_canonical(row, now=now)
            if event is None:
                logger.debug("Dropping record without id or url: %r", sorted(row))
                continue
            events.append(event)
        return events

    def find_collection(self, conn) -> Optional[str]:
        """First candidate holding at least one row, in configured order."""

        for name in self.candidates:
            if self.has_rows(conn, name):
                logger.info("Using analytics collection '%s'", name)
                return name
            logger.debug("Collection '%s' missing or empty", name)
        return None

    def has_rows(self, conn, name: str) -> bool:
        """True if table `name` exists and is non-empty.

        A missing or unreadable table (any per-table ProgrammingError,
        e.g. a broken view) counts as empty; connection-level faults
        propagate so the caller can fall back once.
        """

        query = sql.SQL("SELECT EXISTS (SELECT 1 FROM {}) AS has_rows").format(
            sql.Identifier(name)
        )
        try:
            with conn.cursor() as cur:
                cur.execute(query)
                row = cur.fetchone()
        except psycopg.ProgrammingError as exc:
            conn.rollback()
            logger.info("Collection '%s' not accessible: %s", name, exc)
            return False
        return bool(row and row["has_rows"])

    def read_rows(self, conn, name: str) -> List[Dict[str, Any]]:
        query = sql.SQL("SELECT * FROM {} LIMIT %s").format(sql.Identifier(name))
        with conn.cursor() as cur:
            cur.execute(query, (self.limit,))
            return list(cur.fetchall())

    def candidate_counts(self) -> Dict[str, Optional[int]]:
        """Row count per candidate; None where the table is missing or unreadable.

        Diagnostic only (health endpoint, count script). Raises on
        connection faults.
        """

        counts: Dict[str, Optional[int]] = {}
        with self._connect() as conn:
            for name in self.candidates:
                query = sql.SQL("SELECT COUNT(*) AS n FROM {}").format(sql.Identifier(name))
                try:
                    with conn.cursor() as cur:
                        cur.execute(query)
                        counts[name] = cur.fetchone()["n"]
                except psycopg.ProgrammingError:
                    conn.rollback()
                    counts[name] = None
        return counts

    def insert_documents(self, name: str, docs: List[Dict[str, Any]]) -> int:
        """Batch-insert raw documents into collection `name`.

        The table must have a JSONB `doc` column (see
        `scripts/create_events_table.py`). Commits once.
        """

        if not docs:
            return 0
        query = sql.SQL("INSERT INTO {} (doc) VALUES (%s)").format(sql.Identifier(name))
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.executemany(query, [(Jsonb(d),) for d in docs])
            conn.commit()
        return len(docs)

    def ping(self) -> None:
        """Lightweight store health check. Raises on error."""

        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
