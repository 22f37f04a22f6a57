"""
Memo record store.

A small key-value abstraction (set / get / delete / list / clear) with three
backings:

- InMemoryMemoStore: process-local dict, used by tests and single-process dev
- FileSystemMemoStore: one JSON file per memo with an optional read cache
- RedisMemoStore: JSON documents under ``<prefix><memo_id>`` keys

Records are plain JSON-serializable dicts (``Memo.dict()``).
"""

from __future__ import annotations

import copy
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from loguru import logger
from redis import from_url as redis_from_url

from voicememo.config import StoreConfig
from voicememo.models import ListOptions, MemoPage


def apply_list_options(records: Iterable[Dict[str, Any]], options: ListOptions) -> MemoPage:
    """Filter by status, sort on one key, then slice offset:offset+limit."""
    items = [r for r in records if not options.status or r.get("status") == options.status]

    present = [r for r in items if r.get(options.sort) is not None]
    missing = [r for r in items if r.get(options.sort) is None]
    present.sort(key=lambda r: str(r.get(options.sort)), reverse=(options.order != "asc"))
    items = present + missing

    count = len(items)
    page = items[options.offset:options.offset + options.limit]
    return MemoPage(count=count, results=page)


class MemoStore(ABC):
    """Interface every memo store implements."""

    @abstractmethod
    def set(self, memo_id: str, record: Dict[str, Any]) -> bool:
        ...

    @abstractmethod
    def get(self, memo_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def delete(self, memo_id: str) -> bool:
        ...

    @abstractmethod
    def list(self, options: Optional[ListOptions] = None) -> MemoPage:
        ...

    @abstractmethod
    def clear(self) -> bool:
        ...

    @staticmethod
    def _with_id(memo_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        data = copy.deepcopy(dict(record))
        data["id"] = memo_id
        return data


class InMemoryMemoStore(MemoStore):
    """Dict-backed store. Returns copies so callers cannot mutate stored records."""

    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, Any]] = {}

    def set(self, memo_id: str, record: Dict[str, Any]) -> bool:
        self._records[memo_id] = self._with_id(memo_id, record)
        return True

    def get(self, memo_id: str) -> Optional[Dict[str, Any]]:
        record = self._records.get(memo_id)
        return copy.deepcopy(record) if record is not None else None

    def delete(self, memo_id: str) -> bool:
        self._records.pop(memo_id, None)
        return True

    def list(self, options: Optional[ListOptions] = None) -> MemoPage:
        records = [copy.deepcopy(r) for r in self._records.values()]
        return apply_list_options(records, options or ListOptions())

    def clear(self) -> bool:
        self._records.clear()
        return True


class FileSystemMemoStore(MemoStore):
    """Persist each memo as ``<data_dir>/memos/<memo_id>.json``.

    The read cache is keyed on each file's (mtime, size), so records written
    by another process sharing ``data_dir`` (a Celery worker) are picked up
    on the next read.
    """

    def __init__(self, data_dir: Path, use_cache: bool = True) -> None:
        self.data_dir = Path(data_dir)
        self.memos_dir = self.data_dir / "memos"
        self.memos_dir.mkdir(parents=True, exist_ok=True)
        self.use_cache = use_cache
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._stamps: Dict[str, Tuple[int, int]] = {}
        if self.use_cache:
            self._refresh()
            logger.debug(f"Loaded {len(self._cache)} memos into cache from {self.memos_dir}")

    def _path(self, memo_id: str) -> Path:
        return self.memos_dir / f"{memo_id}.json"

    @staticmethod
    def _stamp(p: Path) -> Optional[Tuple[int, int]]:
        try:
            st = p.stat()
        except OSError:
            return None
        return st.st_mtime_ns, st.st_size

    @staticmethod
    def _read(p: Path) -> Optional[Dict[str, Any]]:
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read memo file {p.name}: {e}")
            return None
        return data if isinstance(data, dict) and data.get("id") else None

    def _load(self, memo_id: str) -> Optional[Dict[str, Any]]:
        """Return the cached record, re-reading the file when it changed on disk."""
        p = self._path(memo_id)
        stamp = self._stamp(p)
        if stamp is None:
            self._cache.pop(memo_id, None)
            self._stamps.pop(memo_id, None)
            return None
        if self.use_cache and self._stamps.get(memo_id) == stamp:
            return self._cache[memo_id]
        data = self._read(p)
        if data is None:
            return None
        if self.use_cache:
            self._cache[memo_id] = data
            self._stamps[memo_id] = stamp
        return data

    def _refresh(self) -> List[Dict[str, Any]]:
        """Sync the cache with the directory and return every readable record."""
        ids = [p.stem for p in sorted(self.memos_dir.glob("*.json"))]
        for gone in set(self._cache) - set(ids):
            self._cache.pop(gone, None)
            self._stamps.pop(gone, None)
        records = []
        for memo_id in ids:
            data = self._load(memo_id)
            if data is not None:
                records.append(data)
        return records

    def set(self, memo_id: str, record: Dict[str, Any]) -> bool:
        data = self._with_id(memo_id, record)
        p = self._path(memo_id)
        try:
            p.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error(f"Error saving memo {memo_id}: {e}")
            raise
        if self.use_cache:
            self._cache[memo_id] = data
            self._stamps[memo_id] = self._stamp(p)
        return True

    def get(self, memo_id: str) -> Optional[Dict[str, Any]]:
        data = self._load(memo_id)
        return copy.deepcopy(data) if data is not None else None

    def delete(self, memo_id: str) -> bool:
        p = self._path(memo_id)
        try:
            if p.exists():
                p.unlink()
        except OSError as e:
            logger.error(f"Error deleting memo {memo_id}: {e}")
            raise
        self._cache.pop(memo_id, None)
        self._stamps.pop(memo_id, None)
        return True

    def list(self, options: Optional[ListOptions] = None) -> MemoPage:
        records = [copy.deepcopy(r) for r in self._refresh()]
        return apply_list_options(records, options or ListOptions())

    def clear(self) -> bool:
        for p in self.memos_dir.glob("*.json"):
            p.unlink()
        self._cache.clear()
        self._stamps.clear()
        return True


class RedisMemoStore(MemoStore):
    """Store memos as JSON strings in Redis."""

    def __init__(self, client, key_prefix: str = "memo:") -> None:
        self.client = client
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "memo:") -> "RedisMemoStore":
        return cls(redis_from_url(url), key_prefix=key_prefix)

    def _key(self, memo_id: str) -> str:
        return f"{self.key_prefix}{memo_id}"

    def _keys(self) -> List[Any]:
        return list(self.client.scan_iter(match=f"{self.key_prefix}*"))

    @staticmethod
    def _decode(raw: Any) -> Optional[Dict[str, Any]]:
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning(f"Skipping undecodable memo document: {e}")
            return None

    def set(self, memo_id: str, record: Dict[str, Any]) -> bool:
        self.client.set(self._key(memo_id), json.dumps(self._with_id(memo_id, record)))
        return True

    def get(self, memo_id: str) -> Optional[Dict[str, Any]]:
        return self._decode(self.client.get(self._key(memo_id)))

    def delete(self, memo_id: str) -> bool:
        self.client.delete(self._key(memo_id))
        return True

    def list(self, options: Optional[ListOptions] = None) -> MemoPage:
        records = []
        for key in self._keys():
            record = self._decode(self.client.get(key))
            if record is not None:
                records.append(record)
        return apply_list_options(records, options or ListOptions())

    def clear(self) -> bool:
        keys = self._keys()
        if keys:
            self.client.delete(*keys)
        return True


def create_store(config: StoreConfig) -> MemoStore:
    """Build the store configured by ``StoreConfig.backend``."""
    if config.backend == "memory":
        return InMemoryMemoStore()
    if config.backend == "redis":
        return RedisMemoStore.from_url(config.redis_url, key_prefix=config.key_prefix)
    return FileSystemMemoStore(config.data_dir, use_cache=config.use_cache)
