from datetime import datetime, timezone

from export import CSV_HEADER, iter_csv, to_csv

from conftest import make_event


def test_header_only_for_no_events():
    assert to_csv([]) == "URL,Date,Appareil,Type\n"


def test_rows_use_display_date_and_blank_cells():
    events = [
        make_event(1, url="/a", timestamp=datetime(2026, 3, 1, 9, 5, tzinfo=timezone.utc),
                   device_type="Mobile", event_type="click"),
        make_event(2, url="/b", timestamp=None),
    ]
    lines = to_csv(events).splitlines()
    assert lines[0] == ",".join(CSV_HEADER)
    assert lines[1] == "/a,01/03/2026 09:05,Mobile,click"
    assert lines[2] == "/b,N/A,,"


def test_values_with_commas_are_quoted():
    event = make_event(1, url="/search?q=a,b")
    assert to_csv([event]).splitlines()[1].startswith('"/search?q=a,b"')


def test_streaming_yields_one_chunk_per_line():
    chunks = list(iter_csv([make_event(1), make_event(2)]))
    assert len(chunks) == 3
    assert all(chunk.endswith("\n") for chunk in chunks)
