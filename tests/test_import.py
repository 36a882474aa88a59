"""
Export loader: extended-JSON unwrapping, file formats, batching.

`import` is a keyword, so the script module is loaded through importlib.
Inserts go to the shared `FakeRepo`.
"""

from __future__ import annotations

import importlib
import json
from datetime import datetime, timezone

import pytest

from repo_events import EventRepo

from conftest import FakeRepo

loader = importlib.import_module("import")


def _write_jsonl(path, docs) -> str:
    path.write_text("\n".join(json.dumps(d) for d in docs) + "\n", encoding="utf-8")
    return str(path)


# ---------------------------------------------------------------------------
# Extended-JSON unwrapping
# ---------------------------------------------------------------------------


class TestUnwrap:
    def test_oid(self) -> None:
        assert loader.unwrap({"$oid": "65f0c0ffee"}) == "65f0c0ffee"

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("2026-03-01T14:05:09.000Z", "2026-03-01T14:05:09"),
            ("2026-03-01T14:05:09+02:00", "2026-03-01T12:05:09"),
            ("2026-03-01T14:05:09", "2026-03-01T14:05:09"),
            (1772359509000, "2026-03-01T10:05:09"),
            ({"$numberLong": "1772359509000"}, "2026-03-01T10:05:09"),
        ],
    )
    def test_dates_become_utc_stored_form(self, raw, expected) -> None:
        assert loader.unwrap({"$date": raw}) == expected

    def test_unreadable_date_string_passes_through(self) -> None:
        assert loader.unwrap({"$date": "yesterday"}) == "yesterday"

    def test_numbers(self) -> None:
        assert loader.unwrap({"$numberLong": "42"}) == 42
        assert loader.unwrap({"$numberInt": "7"}) == 7

    def test_nested_values_are_unwrapped(self) -> None:
        doc = {
            "_id": {"$oid": "a1"},
            "meta": {"screen": {"width": {"$numberInt": "1920"}}},
            "visits": [{"at": {"$date": "2026-03-01T09:00:00Z"}}],
        }
        assert loader.unwrap(doc) == {
            "_id": "a1",
            "meta": {"screen": {"width": 1920}},
            "visits": [{"at": "2026-03-01T09:00:00"}],
        }

    def test_plain_single_key_dict_is_kept(self) -> None:
        assert loader.unwrap({"width": 3}) == {"width": 3}


# ---------------------------------------------------------------------------
# Files and batches
# ---------------------------------------------------------------------------


class TestFiles:
    def test_json_array(self, tmp_path) -> None:
        path = tmp_path / "export.json"
        path.write_text(json.dumps([
            {"_id": {"$oid": "a"}, "url": "/a"},
            "not a document",
            {"_id": {"$oid": "b"}, "url": "/b"},
        ]), encoding="utf-8")
        assert [d["_id"] for d in loader.iter_documents(str(path))] == ["a", "b"]

    def test_json_lines_skip_blank_lines(self, tmp_path) -> None:
        path = tmp_path / "export.jsonl"
        path.write_text('{"_id": "a", "url": "/a"}\n\n{"_id": "b", "url": "/b"}\n', encoding="utf-8")
        assert [d["_id"] for d in loader.iter_documents(str(path))] == ["a", "b"]

    def test_batches(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setattr(loader, "BATCH_SIZE", 2)
        path = _write_jsonl(tmp_path / "export.jsonl", [{"_id": str(i), "url": "/x"} for i in range(5)])
        repo = FakeRepo()

        total = loader.main(path, "analytics_events", repo=repo)

        assert total == 5
        assert [len(docs) for _, docs in repo.inserted] == [2, 2, 1]
        assert {name for name, _ in repo.inserted} == {"analytics_events"}
        assert [d["_id"] for _, docs in repo.inserted for d in docs] == ["0", "1", "2", "3", "4"]


# ---------------------------------------------------------------------------
# Imported documents read back
# ---------------------------------------------------------------------------


class TestReadBack:
    def test_imported_dates_keep_their_instant(self, tmp_path) -> None:
        path = _write_jsonl(tmp_path / "export.jsonl", [
            {"_id": {"$oid": "a"}, "url": "/a", "date": {"$date": "2026-03-01T14:05:09+02:00"}},
            {"_id": {"$oid": "b"}, "url": "/b", "date": {"$date": 1772359509000}},
        ])
        repo = FakeRepo()
        loader.main(path, "analytics_events", repo=repo)

        rows = [{"id": n, "doc": doc} for n, doc in enumerate(repo.inserted[0][1], 1)]
        events = EventRepo.to_events(rows)

        assert [e.id for e in events] == ["a", "b"]
        assert events[0].timestamp == datetime(2026, 3, 1, 12, 5, 9, tzinfo=timezone.utc)
        assert events[1].timestamp == datetime(2026, 3, 1, 10, 5, 9, tzinfo=timezone.utc)
