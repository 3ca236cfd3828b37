"""
JSON file record store.

One store owns one file holding a JSON array of entities. Every write
re-serializes the whole collection; there is no atomic rename, so a crash in
the middle of ``save_all`` can leave a truncated file behind. Concurrent
writers are not coordinated: the last ``save_all`` wins.
"""
import json
import logging
import os
from typing import Callable, List, Optional

from ..core.errors import StorageError

logger = logging.getLogger(__name__)


class JsonRecordStore:
    """Load and save a list of JSON-serializable dicts in a single file."""

    def __init__(self, path: str, seed: Optional[Callable[[], List[dict]]] = None):
        self.path = path
        self._seed = seed

    def _seed_records(self) -> List[dict]:
        return self._seed() if self._seed else []

    def load(self, strict: bool = False) -> List[dict]:
        """Return the persisted collection.

        A missing file is created with the seed value. A corrupt or unreadable
        file yields an empty list (logged); with ``strict=True`` it raises
        ``StorageError`` instead, so write paths never overwrite a store they
        could not read.
        """
        if not os.path.exists(self.path):
            records = self._seed_records()
            self.save_all(records)
            return records

        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                records = json.load(fh)
            if not isinstance(records, list):
                raise ValueError("expected a JSON array at the top level")
        except (OSError, ValueError) as exc:
            logger.error("Error reading record store %s: %s", self.path, exc)
            if strict:
                raise StorageError(f"Error reading {os.path.basename(self.path)}: {exc}") from exc
            return []

        if not records and self._seed:
            records = self._seed_records()
            if records:
                self.save_all(records)
        return records

    def save_all(self, records: List[dict]) -> None:
        """Overwrite the file with the full collection, pretty-printed."""
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as fh:
                json.dump(records, fh, indent=2)
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"Error saving {os.path.basename(self.path)}: {exc}") from exc
