"""
CSV rendering of canonical events for the dashboard's export button.

Columns follow the French dashboard headers. Dates use the detail-table
format (`dd/mm/YYYY HH:MM`, "N/A" when missing); absent classifications
are written as empty cells.
"""

import csv
import io
from typing import Iterable, Iterator

from models import CanonicalEvent

CSV_HEADER = ("URL", "Date", "Appareil", "Type")


def event_row(event: CanonicalEvent) -> tuple:
    return (
        event.url,
        event.formatted_date,
        event.device_type or "",
        event.event_type or "",
    )


def iter_csv(events: Iterable[CanonicalEvent]) -> Iterator[str]:
    """Yield the CSV text line by line, header first."""

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")

    writer.writerow(CSV_HEADER)
    yield buf.getvalue()
    buf.seek(0)
    buf.truncate(0)

    for event in events:
        writer.writerow(event_row(event))
        yield buf.getvalue()
        buf.seek(0)
        buf.truncate(0)


def to_csv(events: Iterable[CanonicalEvent]) -> str:
    return "".join(iter_csv(events))
