"""Async key-value persistence behind the meet state.

Values are JSON strings under fixed keys. Access is last-writer-wins: there is
no locking or versioning, so callers await each write before issuing the next.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path

ATHLETES_KEY = "athletes"
TEAMS_KEY = "teams"
EVENT_SEQUENCE_KEY = "eventSequence"
REVEALED_INDEX_KEY = "revealedIndex"
EVENT_RESULTS_KEY = "eventResults"
EVENT_ASSIGNMENTS_KEY = "eventAssignments"
EVENT_POOL_KEY = "eventPool"
ROULETTE_SETTINGS_KEY = "settings.roulette"


class StoreError(Exception):
    """Raised by a store backend when it cannot read or write."""


class KeyValueStore(ABC):
    """
    Interface for the external store holding serialized meet state.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Returns the value stored under `key`, or None."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """In-process store; state lives as long as the object."""

    def __init__(self, data: dict[str, str] | None = None):
        self.data = dict(data or {})

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value

    async def remove(self, key):
        self.data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """
    Keeps every key in one JSON object on disk.

    Each operation re-reads the file, so two stores pointed at the same path see
    each other's writes (and can overwrite them).

    Attributes:
        path (Path): Location of the JSON file. Created on first write.
    """

    def __init__(self, path):
        self.path = Path(path)

    def __repr__(self):
        return f"{self.path}"

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StoreError(f"Could not read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"{self.path} does not contain a JSON object")
        return data

    def _write(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            tmp_path.replace(self.path)
        except OSError as e:
            raise StoreError(f"Could not write {self.path}: {e}") from e

    def _set(self, key, value):
        data = self._read()
        data[key] = value
        self._write(data)

    def _remove(self, key):
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    async def get(self, key):
        data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def set(self, key, value):
        await asyncio.to_thread(self._set, key, value)

    async def remove(self, key):
        await asyncio.to_thread(self._remove, key)
