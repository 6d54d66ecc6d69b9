"""JSON-file record storage.

Each collection lives in one JSON file holding a list of records. Writes go
to a temporary file first and then replace the target, so a crash never
leaves a half-written collection behind.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from nexus.utils.logging import get_logger

logger = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class JsonRecordStore(Generic[RecordT]):
    """Ordered list of pydantic records persisted to a single JSON file."""

    def __init__(self, path: str | Path, record_type: type[RecordT]) -> None:
        """Initialize the store.

        Args:
            path: Location of the collection file. Parent directories are created.
            record_type: Pydantic model of the stored records.
        """
        self._path = Path(path).expanduser()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._record_type = record_type
        self._adapter = TypeAdapter(list[record_type])  # type: ignore[valid-type]

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[RecordT]:
        """Read all records. A corrupted file is reset and read as empty."""
        if not self._path.exists():
            return []
        try:
            raw = self._path.read_text(encoding="utf-8")
            return list(self._adapter.validate_json(raw))
        except (ValidationError, ValueError, OSError) as e:
            logger.warning(
                "Resetting unreadable record file",
                path=str(self._path),
                record_type=self._record_type.__name__,
                error=str(e),
            )
            self.write([])
            return []

    def write(self, records: list[RecordT]) -> None:
        data = self._adapter.dump_python(records, mode="json")
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(self._path)

    def find(self, record_id: str) -> RecordT | None:
        for record in self.load():
            if getattr(record, "id", None) == record_id:
                return record
        return None

    def remove(self, record_id: str) -> bool:
        """Delete a record by ID. Returns False if it did not exist."""
        records = self.load()
        remaining = [r for r in records if getattr(r, "id", None) != record_id]
        if len(remaining) == len(records):
            return False
        self.write(remaining)
        return True
