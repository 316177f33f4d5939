# tests/conftest.py
import os
import tempfile

import pytest

# backend.app builds its store at import time; keep it off AWS and out of the repo
os.environ["USE_DYNAMODB"] = "false"
os.environ["USE_S3_STORAGE"] = "false"
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="water-portal-"))

from backend.lib.water_core.errors import NotFoundError
from backend.lib.water_core.models import Meter, Reading


class FakeStore:
    """In-memory store that records every call made to it."""

    def __init__(self, meters=(), readings=()):
        self.meters = {m.meter_id: m for m in meters}
        self.readings = list(readings)
        self.calls = []

    def get_meter(self, meter_id):
        self.calls.append(("get_meter", meter_id))
        if meter_id not in self.meters:
            raise NotFoundError(f"No meter found with ID {meter_id}")
        return self.meters[meter_id]

    def list_meters(self):
        self.calls.append(("list_meters",))
        return list(self.meters.values())

    def count_meters(self):
        self.calls.append(("count_meters",))
        return len(self.meters)

    def get_readings_for_meter(self, meter_id):
        self.calls.append(("get_readings_for_meter", meter_id))
        return [r for r in self.readings if r.meter_id == meter_id]

    def get_all_readings(self):
        self.calls.append(("get_all_readings",))
        return list(self.readings)

    def update_meter_value(self, meter_id, reading_id, meter_value):
        self.calls.append(("update_meter_value", meter_id, reading_id, meter_value))
        for r in self.readings:
            if r.meter_id == meter_id and r.reading_id == reading_id:
                r.meter_value = meter_value
                return r
        raise NotFoundError(f"No reading {reading_id} for meter {meter_id}")

    def status(self):
        return {"backend": "fake"}


def reading(reading_id, meter_id, month, year, consumption, meter_value=0.0):
    return Reading(
        reading_id=reading_id,
        meter_id=meter_id,
        month=month,
        year=year,
        meter_value=meter_value,
        consumption=consumption,
    )


@pytest.fixture
def sample_store():
    meters = [
        Meter(1, "Ana Rojas", "Los Aromos 12", "Norte"),
        Meter(2, "Luis Pino", "Av. Central 400", "Norte"),
        Meter(3, "Marta Soto", "Calle Sur 8", "Sur"),
        Meter(4, "Pedro Vidal", "Camino Viejo 3", "Unknown"),
    ]
    readings = [
        reading(10, 1, 11, 2023, 4, 100),
        reading(11, 1, 3, 2024, 5, 105),
        reading(12, 1, 12, 2023, "abc", 100),
        reading(20, 2, 3, 2024, 7, 207),
        reading(30, 3, 3, 2024, 9, 309),
        reading(40, 4, 3, 2024, 100, 400),
    ]
    return FakeStore(meters, readings)
