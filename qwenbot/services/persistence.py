"""Optional persistence for conversations, persona preferences and custom personas.

Records are JSON-serializable dicts. Every record written by the services
carries an ISO-8601 ``updated_at`` field, which the retention sweep uses.
"""

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import aiofiles

from qwenbot.exceptions import PersistenceException
from qwenbot.utils import parse_timestamp

logger = logging.getLogger(__name__)


class PersistenceStore(ABC):
    """Namespaced key/record store."""

    @abstractmethod
    async def save(self, namespace: str, key: str, record: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def load(self, namespace: str, key: str) -> Optional[dict[str, Any]]:
        pass

    @abstractmethod
    async def remove(self, namespace: str, key: str) -> bool:
        pass

    @abstractmethod
    async def sweep_older_than(self, namespace: str, cutoff: datetime) -> int:
        """Remove records whose ``updated_at`` predates ``cutoff``."""
        pass


def _select_stale(records: dict[str, dict[str, Any]], cutoff: datetime) -> list[str]:
    stale = []
    for key, record in records.items():
        updated_at = parse_timestamp(record.get("updated_at")) if isinstance(record, dict) else None
        if updated_at is not None and updated_at < cutoff:
            stale.append(key)
    return stale


class InMemoryPersistence(PersistenceStore):
    """Dict-backed store used in tests and when persistence is disabled."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, dict[str, Any]]] = {}

    async def save(self, namespace: str, key: str, record: dict[str, Any]) -> None:
        # Round-trip through JSON so callers cannot mutate stored records.
        self._data.setdefault(namespace, {})[key] = json.loads(json.dumps(record))

    async def load(self, namespace: str, key: str) -> Optional[dict[str, Any]]:
        record = self._data.get(namespace, {}).get(key)
        return json.loads(json.dumps(record)) if record is not None else None

    async def remove(self, namespace: str, key: str) -> bool:
        return self._data.get(namespace, {}).pop(key, None) is not None

    async def sweep_older_than(self, namespace: str, cutoff: datetime) -> int:
        records = self._data.get(namespace, {})
        stale = _select_stale(records, cutoff)
        for key in stale:
            del records[key]
        return len(stale)


class JsonFilePersistence(PersistenceStore):
    """One JSON file per namespace under ``data_dir``.

    Files are read and written with aiofiles; writes go to a temporary file
    that replaces the target. A file that cannot be parsed raises
    ``PersistenceException`` instead of being silently overwritten.
    """

    def __init__(self, data_dir: str = "data") -> None:
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._locks: dict[str, asyncio.Lock] = {}

    def _path(self, namespace: str) -> Path:
        safe = "".join(c for c in namespace if c.isalnum() or c in ("-", "_")) or "default"
        return self.data_dir / f"{safe}.json"

    def _lock(self, namespace: str) -> asyncio.Lock:
        if namespace not in self._locks:
            self._locks[namespace] = asyncio.Lock()
        return self._locks[namespace]

    async def _read(self, namespace: str) -> dict[str, dict[str, Any]]:
        path = self._path(namespace)
        if not path.exists():
            return {}
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                content = await f.read()
        except OSError as e:
            raise PersistenceException(
                "Failed to read persistence file", {"path": str(path), "error": e}
            ) from e

        if not content.strip():
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise PersistenceException(
                "Corrupt persistence file", {"path": str(path), "error": e.msg}
            ) from e
        if not isinstance(data, dict):
            raise PersistenceException("Persistence file is not a JSON object", {"path": str(path)})
        return data

    async def _write(self, namespace: str, data: dict[str, dict[str, Any]]) -> None:
        path = self._path(namespace)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(data, ensure_ascii=False, indent=2))
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceException(
                "Failed to write persistence file", {"path": str(path), "error": e}
            ) from e

    async def save(self, namespace: str, key: str, record: dict[str, Any]) -> None:
        async with self._lock(namespace):
            data = await self._read(namespace)
            data[key] = record
            await self._write(namespace, data)

    async def load(self, namespace: str, key: str) -> Optional[dict[str, Any]]:
        async with self._lock(namespace):
            data = await self._read(namespace)
        return data.get(key)

    async def remove(self, namespace: str, key: str) -> bool:
        async with self._lock(namespace):
            data = await self._read(namespace)
            if key not in data:
                return False
            del data[key]
            await self._write(namespace, data)
            return True

    async def sweep_older_than(self, namespace: str, cutoff: datetime) -> int:
        async with self._lock(namespace):
            data = await self._read(namespace)
            stale = _select_stale(data, cutoff)
            if not stale:
                return 0
            for key in stale:
                del data[key]
            await self._write(namespace, data)

        logger.info("Swept %d stale records from %s", len(stale), namespace)
        return len(stale)
