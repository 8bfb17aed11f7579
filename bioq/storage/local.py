from __future__ import annotations

"""Local durable key-value store (string keys, string values).

`JsonFileStore` keeps everything in one JSON object on disk, rewritten on
every change. A failed write raises StorageWriteFailure; callers decide
whether to care.
"""

import json
import os
from pathlib import Path
from typing import Dict, Optional, Protocol
from uuid import uuid4

from ..errors import StorageWriteFailure

DEVICE_ID_KEY = "device_id"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except OSError as e:
            if tmp.exists():
                tmp.unlink()
            raise StorageWriteFailure(f"Could not write {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = str(value)
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


def device_id(store: KeyValueStore) -> str:
    """Anonymous per-install identifier, created on first use."""
    try:
        existing = store.get(DEVICE_ID_KEY)
    except Exception:
        existing = None
    if existing:
        return existing
    new_id = str(uuid4())
    try:
        store.set(DEVICE_ID_KEY, new_id)
    except Exception:
        pass
    return new_id
