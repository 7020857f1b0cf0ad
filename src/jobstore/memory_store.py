"""
In-process DocumentStore.

Used for tests and single-process development. Honours the same contract
as the HTTP client: monotonically increasing per-document versions and an
atomic compare-and-swap on conditional writes.

Supported search filters (the ones the job store issues):
    {"filter": {"and": [...]}}, {"term": {field: value}},
    {"range": {field: {"gte"|"gt"|"lte"|"lt": n}}}
"""

import copy
import threading
from typing import Optional

from .document_store import GetResult, PutResult, SearchHit


def _matches(document: dict, clause: dict) -> bool:
    if "and" in clause:
        return all(_matches(document, sub) for sub in clause["and"])

    if "term" in clause:
        return all(document.get(field) == value for field, value in clause["term"].items())

    if "range" in clause:
        for field, bounds in clause["range"].items():
            value = document.get(field)
            if value is None:
                return False
            if "gte" in bounds and not value >= bounds["gte"]:
                return False
            if "gt" in bounds and not value > bounds["gt"]:
                return False
            if "lte" in bounds and not value <= bounds["lte"]:
                return False
            if "lt" in bounds and not value < bounds["lt"]:
                return False
        return True

    raise ValueError(f"Unsupported filter clause: {clause}")


class InMemoryDocumentStore:
    """Thread-safe dict-backed document store with optimistic versioning."""

    def __init__(self):
        self._collections: dict[str, dict[str, tuple[int, dict]]] = {}
        self._lock = threading.Lock()

    def _collection(self, name: str) -> dict[str, tuple[int, dict]]:
        return self._collections.setdefault(name, {})

    def get(self, collection: str, doc_id: str) -> GetResult:
        with self._lock:
            entry = self._collection(collection).get(doc_id)
            if entry is None:
                return GetResult(found=False)
            version, document = entry
            return GetResult(found=True, version=version, source=copy.deepcopy(document))

    def put(
        self,
        collection: str,
        doc_id: str,
        document: dict,
        expected_version: Optional[int] = None,
        create_only: bool = False,
    ) -> PutResult:
        with self._lock:
            docs = self._collection(collection)
            entry = docs.get(doc_id)

            if create_only and entry is not None:
                return PutResult(ok=False, conflict=True)

            if expected_version is not None:
                if entry is None or entry[0] != expected_version:
                    return PutResult(ok=False, conflict=True)

            version = entry[0] + 1 if entry else 1
            docs[doc_id] = (version, copy.deepcopy(document))
            return PutResult(ok=True, created=entry is None, version=version)

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            return self._collection(collection).pop(doc_id, None) is not None

    def search(self, collection: str, query: dict, size: Optional[int] = None) -> list[SearchHit]:
        clause = query.get("filter") or {}
        with self._lock:
            hits = [
                SearchHit(id=doc_id, source=copy.deepcopy(document))
                for doc_id, (_, document) in self._collection(collection).items()
                if not clause or _matches(document, clause)
            ]
        return hits[:size] if size is not None else hits

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collection(collection))
