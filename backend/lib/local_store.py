# backend/lib/local_store.py
"""
Local fallback store for development, used when DynamoDB is not enabled.

Data lives in two JSON Lines files under a data directory:
    meters.jsonl    {"meter_id": 1042, "client_name": "...", "address": "...", "sector": "Norte"}
    readings.jsonl  {"reading_id": 88, "meter_id": 1042, "month": 3, "year": 2024,
                     "meter_value": 1530, "consumption": 12}

If the same key appears twice the later line wins, so appending a corrected
row is enough to replace an old one.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from backend.lib.water_core.errors import BackendError, NotFoundError
from backend.lib.water_core.models import Meter, Reading, parse_rows

logger = logging.getLogger(__name__)


class LocalStore:
    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.meters_file = self.data_dir / "meters.jsonl"
        self.readings_file = self.data_dir / "readings.jsonl"

    def _load(self, path: Path) -> List[Dict]:
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8") as f:
                return [json.loads(line) for line in f if line.strip()]
        except (OSError, ValueError) as e:
            raise BackendError(f"Could not read {path.name}: {e}") from e

    def _append(self, path: Path, rows: Iterable[Dict]) -> None:
        try:
            with path.open("a", encoding="utf-8") as f:
                for row in rows:
                    f.write(json.dumps(row) + "\n")
        except OSError as e:
            raise BackendError(f"Could not write {path.name}: {e}") from e

    def _meters(self) -> Dict[int, Meter]:
        seen = {}
        for meter in parse_rows(self._load(self.meters_file), Meter.from_row):
            seen[meter.meter_id] = meter
        return seen

    def _readings(self) -> Dict[Tuple[int, int], Reading]:
        seen = {}
        for reading in parse_rows(self._load(self.readings_file), Reading.from_row):
            seen[(reading.meter_id, reading.reading_id)] = reading
        return seen

    def get_meter(self, meter_id: int) -> Meter:
        meter = self._meters().get(meter_id)
        if meter is None:
            raise NotFoundError(f"No meter found with ID {meter_id}")
        return meter

    def list_meters(self) -> List[Meter]:
        return list(self._meters().values())

    def count_meters(self) -> int:
        return len(self._meters())

    def get_readings_for_meter(self, meter_id: int) -> List[Reading]:
        return [r for r in self._readings().values() if r.meter_id == meter_id]

    def get_all_readings(self) -> List[Reading]:
        return list(self._readings().values())

    def update_meter_value(self, meter_id: int, reading_id: int, meter_value: float) -> Reading:
        reading = self._readings().get((meter_id, reading_id))
        if reading is None:
            raise NotFoundError(f"No reading {reading_id} for meter {meter_id}")
        reading.meter_value = meter_value
        self._append(self.readings_file, [reading.to_row()])
        return reading

    def put_meter(self, meter: Meter) -> None:
        self._append(self.meters_file, [meter.to_row()])

    def put_readings_batch(self, readings: List[Reading]) -> int:
        self._append(self.readings_file, [r.to_row() for r in readings])
        return len(readings)

    def status(self) -> Dict:
        return {"backend": "local", "data_dir": str(self.data_dir)}
