"""
Embedded document store with JSON-file persistence.

Each collection lives in <root>/<name>.json as {"documents": [...]}.
Writes are atomic (temp file + move) and serialized through a re-entrant
lock, so concurrent updates to one document are last-write-wins.

Queries use a small Mongo-style filter language:
    {"userId": "u1"}                                  equality
    {"title": {"$regex": "rome", "$options": "i"}}    regex search
    {"visitedDate": {"$gte": start, "$lte": end}}     range
    {"$or": [{...}, {...}]}                           disjunction
"""

import json
import re
import shutil
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse
from uuid import uuid4

from ..utils.exceptions import StoreError
from ..utils.logger import get_logger

logger = get_logger(__name__)

SortSpec = Sequence[Tuple[str, int]]


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"$date": value.isoformat()}
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_encode(v) for v in value]
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value) == {"$date"}:
            return datetime.fromisoformat(value["$date"])
        return {k: _decode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode(v) for v in value]
    return value


def _match_condition(actual: Any, condition: Any) -> bool:
    if not isinstance(condition, dict) or not any(k.startswith("$") for k in condition):
        return actual == condition

    for op, expected in condition.items():
        if op == "$regex":
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if not isinstance(actual, str) or not re.search(expected, actual, flags):
                return False
        elif op == "$options":
            continue
        elif op == "$gte":
            if actual is None or actual < expected:
                return False
        elif op == "$lte":
            if actual is None or actual > expected:
                return False
        else:
            raise StoreError(f"Unsupported query operator: {op}")
    return True


def matches(document: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
    """Return True if the document satisfies the filter"""
    for key, condition in (query or {}).items():
        if key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif not _match_condition(document.get(key), condition):
            return False
    return True


class Collection:
    """A named set of documents backed by one JSON file"""

    def __init__(self, store: "DocumentStore", name: str):
        self.store = store
        self.name = name
        self.path = store.root / f"{name}.json"

    def _load(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise StoreError(f"Failed to load collection '{self.name}' from {self.path}: {e}")
        return [_decode(doc) for doc in data.get("documents", [])]

    def _save(self, documents: List[Dict[str, Any]]) -> None:
        payload = {"documents": [_encode(doc) for doc in documents]}
        self.store.atomic_write(self.path, payload)

    def insert_one(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a document, assigning an _id when it has none"""
        doc = dict(document)
        doc.setdefault("_id", uuid4().hex)
        with self.store.lock:
            documents = self._load()
            if any(d.get("_id") == doc["_id"] for d in documents):
                raise StoreError(f"Duplicate _id '{doc['_id']}' in collection '{self.name}'")
            documents.append(doc)
            self._save(documents)
        return dict(doc)

    def find_one(self, query: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        with self.store.lock:
            for doc in self._load():
                if matches(doc, query):
                    return doc
        return None

    def find(
        self,
        query: Optional[Dict[str, Any]] = None,
        sort: Optional[SortSpec] = None,
    ) -> List[Dict[str, Any]]:
        """Return matching documents in insertion order, optionally sorted"""
        with self.store.lock:
            results = [doc for doc in self._load() if matches(doc, query)]
        # Apply keys last-to-first; Python's sort is stable
        for field, direction in reversed(list(sort or [])):
            results.sort(key=lambda d: (d.get(field) is not None, d.get(field)), reverse=direction < 0)
        return results

    def update_one(self, query: Dict[str, Any], changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Set the given fields on the first match; returns the updated document"""
        with self.store.lock:
            documents = self._load()
            for i, doc in enumerate(documents):
                if matches(doc, query):
                    updated = {**doc, **changes, "_id": doc["_id"]}
                    documents[i] = updated
                    self._save(documents)
                    return dict(updated)
        return None

    def delete_one(self, query: Dict[str, Any]) -> bool:
        with self.store.lock:
            documents = self._load()
            for i, doc in enumerate(documents):
                if matches(doc, query):
                    del documents[i]
                    self._save(documents)
                    return True
        return False

    def count_documents(self, query: Optional[Dict[str, Any]] = None) -> int:
        return len(self.find(query))


class DocumentStore:
    """Store client owning the data directory; inject one per application"""

    def __init__(self, root):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.lock = threading.RLock()
        self._collections: Dict[str, Collection] = {}

    @classmethod
    def from_connection_string(cls, connection_string: str) -> "DocumentStore":
        """
        Build a store from json:///abs/path, json://relative/path or a bare path.
        """
        if "://" not in connection_string:
            return cls(connection_string)
        parsed = urlparse(connection_string)
        if parsed.scheme != "json":
            raise StoreError(f"Unsupported store scheme: {parsed.scheme}")
        location = f"{parsed.netloc}{parsed.path}"
        if not location:
            raise StoreError(f"Connection string has no path: {connection_string}")
        return cls(location)

    def collection(self, name: str) -> Collection:
        if name not in self._collections:
            self._collections[name] = Collection(self, name)
        return self._collections[name]

    def __getitem__(self, name: str) -> Collection:
        return self.collection(name)

    def list_collection_names(self) -> List[str]:
        return sorted(p.stem for p in self.root.glob("*.json"))

    def atomic_write(self, path: Path, payload: Dict[str, Any]) -> None:
        """Write JSON file atomically"""
        with tempfile.NamedTemporaryFile(
            mode="w", dir=str(path.parent), delete=False, encoding="utf-8", suffix=".tmp"
        ) as tf:
            json.dump(payload, tf, indent=2, ensure_ascii=False)
            temp_path = Path(tf.name)

        try:
            shutil.move(str(temp_path), str(path))
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            logger.error("Store write failed", path=str(path), error=str(e))
            raise StoreError(f"Failed to save {path}: {e}")
