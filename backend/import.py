import json
import sys
from datetime import datetime, timezone

from normalize import DATE_STRING_FORMAT
from repo_events import EventRepo
from settings import settings

BATCH_SIZE = 1000


def iter_documents(path: str):
    """Yield documents from a JSON array file or a JSON-lines file.

    Extended-JSON wrappers from document-store exports (`{"$oid": ...}`,
    `{"$date": ...}`, `{"$numberLong": ...}`) are unwrapped at any depth.
    """

    with open(path, encoding="utf-8") as fh:
        head = fh.read(1)
        fh.seek(0)
        if head == "[":
            docs = json.load(fh)
        else:
            docs = (json.loads(line) for line in fh if line.strip())
        for doc in docs:
            if isinstance(doc, dict):
                yield unwrap(doc)


def unwrap(value):
    if isinstance(value, list):
        return [unwrap(v) for v in value]
    if not isinstance(value, dict):
        return value
    if len(value) == 1:
        key, inner = next(iter(value.items()))
        if key == "$oid":
            return str(inner)
        if key in ("$numberLong", "$numberInt"):
            return int(inner)
        if key == "$date":
            return _export_date(inner)
    return {k: unwrap(v) for k, v in value.items()}


def _export_date(inner):
    """`$date` payload -> the stored "%Y-%m-%dT%H:%M:%S" form, in UTC.

    Exports carry either an ISO string with an offset or epoch millis
    (bare or as `{"$numberLong": ...}`). Unreadable strings pass through.
    """

    if isinstance(inner, dict) and "$numberLong" in inner:
        inner = int(inner["$numberLong"])
    if isinstance(inner, (int, float)) and not isinstance(inner, bool):
        moment = datetime.fromtimestamp(inner / 1000, tz=timezone.utc)
    elif isinstance(inner, str):
        try:
            moment = datetime.fromisoformat(inner.replace("Z", "+00:00"))
        except ValueError:
            return inner
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        moment = moment.astimezone(timezone.utc)
    else:
        return inner
    return moment.strftime(DATE_STRING_FORMAT)


def main(export_path: str, collection: str, repo: EventRepo = None):
    print(f"Importing analytics documents from: {export_path} into '{collection}'")
    repo = repo or EventRepo(candidates=[collection])
    total_inserted = 0
    batch = []

    for doc in iter_documents(export_path):
        batch.append(doc)
        if len(batch) >= BATCH_SIZE:
            total_inserted += repo.insert_documents(collection, batch)
            print(f"Inserted {total_inserted} documents...")
            batch = []

    # Insert remaining
    if batch:
        total_inserted += repo.insert_documents(collection, batch)

    print(f"Import complete. Total documents inserted: {total_inserted}")
    return total_inserted


if __name__ == "__main__":
    if len(sys.argv) not in (2, 3):
        print("Usage: python import.py <export.json|export.jsonl> [collection]")
        sys.exit(1)

    target = sys.argv[2] if len(sys.argv) == 3 else settings.collection_candidates[0]
    main(sys.argv[1], target)
