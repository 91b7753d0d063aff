"""
Persistence adapter: the whole Dataset in one named storage slot.

SlotStorage is a small string-keyed store (one JSON file per key) standing in
for browser-side storage. DatasetStore serializes the Dataset into a single
fixed, versionless key and recovers from corrupted slots by falling back to
the default seed.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from models import Dataset, default_dataset

logger = logging.getLogger(__name__)

STORAGE_KEY = "edusmart_ai_data"


class SlotStorage:
    """Key/value string storage backed by one file per key."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class DatasetStore:
    """Load, save and clear the Dataset slot."""

    def __init__(self, storage: SlotStorage, key: str = STORAGE_KEY, default_api_key: str = "") -> None:
        self.storage = storage
        self.key = key
        self.default_api_key = default_api_key

    def default(self) -> Dataset:
        return default_dataset(self.default_api_key)

    def save(self, dataset: Dataset) -> None:
        self.storage.set_item(self.key, json.dumps(dataset.to_dict(), ensure_ascii=False, indent=2))

    def load(self) -> Dataset:
        try:
            raw = self.storage.get_item(self.key)
            if raw is None:
                return self.default()
            return Dataset.from_dict(json.loads(raw))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Stored dataset %r is corrupt, starting from defaults: %s", self.key, exc)
            return self.default()

    def clear(self) -> None:
        self.storage.remove_item(self.key)
