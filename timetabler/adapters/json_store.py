"""
Schedule store persisted to a JSON file.

File layout:
{
    "teachers": [{"id": "...", "name": "...", "employeeId": "..."}],
    "subjects": [{"id": "...", "name": "...", "code": "..."}],
    "classes":  [{"id": "...", "name": "...", "grade": 10}],
    "rooms":    [{"id": "...", "name": "...", "capacity": 30}],
    "scheduleSlots": [
        {"id": "...", "dayOfWeek": 1, "startTime": "08:00", "endTime": "09:30",
         "teacherId": "...", "subjectId": "...", "classId": "...", "roomId": "..."}
    ]
}
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List

from ..domain.exceptions import StoreError
from ..domain.master_data import EntityType, MasterRecord, record_from_dict, record_to_dict
from ..domain.models import ScheduleSlot
from .memory_store import InMemoryScheduleStore

logger = logging.getLogger(__name__)

SAMPLE_DATA_FILE = Path(__file__).parent / "sample_timetable.json"

SLOTS_KEY = "scheduleSlots"


class JsonScheduleStore(InMemoryScheduleStore):
    """
    In-memory store loaded from and written back to a JSON file.

    With ``read_only=True`` mutations stay in memory and the file is never
    written (used for the bundled sample data).
    """

    def __init__(self, path: Path, read_only: bool = False, **kwargs):
        self.path = Path(path)
        self.read_only = read_only
        self._loading = True
        data = self._read_file()
        super().__init__(
            slots=self._parse_slots(data),
            master_data=self._parse_master_data(data),
            **kwargs,
        )
        self._loading = False

    @classmethod
    def sample(cls) -> "JsonScheduleStore":
        """The bundled demo timetable, never written back."""
        return cls(SAMPLE_DATA_FILE, read_only=True)

    def save(self) -> None:
        """
        Write the current state to disk.

        Raises:
            StoreError: If the file cannot be written
        """
        payload: Dict[str, Any] = {
            entity_type.plural: [record_to_dict(record) for record in self.repository(entity_type).list()]
            for entity_type in EntityType
        }
        payload[SLOTS_KEY] = [slot.to_dict() for slot in self.list_slots()]

        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StoreError(f"Could not write timetable data to {self.path}: {exc}") from exc

        logger.debug("Saved %d slots to %s", len(payload[SLOTS_KEY]), self.path)

    def _changed(self) -> None:
        if self._loading or self.read_only:
            return
        self.save()

    def _read_file(self) -> Dict[str, Any]:
        if not self.path.exists():
            if self.read_only:
                raise FileNotFoundError(f"Timetable data file not found: {self.path}")
            logger.info("Data file %s does not exist yet, starting empty", self.path)
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise StoreError(f"Invalid JSON in {self.path}: {exc}") from exc
        except OSError as exc:
            raise StoreError(f"Could not read timetable data from {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise StoreError(f"{self.path} must contain a JSON object at the root level.")

        return data

    def _parse_master_data(self, data: Dict[str, Any]) -> Dict[EntityType, List[MasterRecord]]:
        master_data: Dict[EntityType, List[MasterRecord]] = {}
        for entity_type in EntityType:
            records: List[MasterRecord] = []
            for item in data.get(entity_type.plural, []):
                try:
                    records.append(record_from_dict(entity_type, item))
                except (KeyError, TypeError) as exc:
                    logger.warning("Skipping invalid %s record in %s: %s", entity_type.value, self.path, exc)
            master_data[entity_type] = records
        return master_data

    def _parse_slots(self, data: Dict[str, Any]) -> List[ScheduleSlot]:
        slots: List[ScheduleSlot] = []
        for item in data.get(SLOTS_KEY, []):
            try:
                slots.append(ScheduleSlot.from_dict(item))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping invalid schedule slot in %s: %s", self.path, exc)
        return slots
