# store.py
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping

STOP_REQUESTED = "stopRequested"
AVAILABLE_CATEGORIES = "availableCategories"
SAVED_FILTER_POLICY = "savedFilterPolicy"


class StoreUnavailable(Exception):
    """The state file could not be read or written."""


class JsonStateStore:
    """Small key-value store shared between clipper processes.

    Values are read and written whole; every write replaces the file
    atomically so a reader never sees a half-written document.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read_all(self) -> Dict[str, Any]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StoreUnavailable(f"Cannot read {self.path}: {exc}") from exc

        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StoreUnavailable(f"Corrupt state file {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreUnavailable(f"State file {self.path} does not hold a JSON object.")
        return data

    def _write_all(self, data: Mapping[str, Any]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as exc:
            raise StoreUnavailable(f"Cannot write {self.path}: {exc}") from exc

    def get(self, key: str, default: Any = None) -> Any:
        return self._read_all().get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, values: Mapping[str, Any]) -> None:
        data = self._read_all()
        data.update(values)
        self._write_all(data)
