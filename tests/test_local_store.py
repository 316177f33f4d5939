# tests/test_local_store.py
import pytest

from backend.lib.local_store import LocalStore
from backend.lib.water_core.directory import edit_meter_value, meter_history, search_meters
from backend.lib.water_core.errors import BackendError, InputError, NotFoundError
from backend.lib.water_core.models import Meter
from backend.lib.water_core.reports import ReportAssembler, ReportRequest
from conftest import reading


@pytest.fixture
def store(tmp_path):
    s = LocalStore(tmp_path)
    s.put_meter(Meter(1, "Ana Rojas", "Los Aromos 12", "Norte"))
    s.put_meter(Meter(2, "Luis Pino", "Av. Central 400", "Sur"))
    s.put_readings_batch([
        reading(10, 1, 3, 2024, 5, 105),
        reading(11, 1, 11, 2023, "4", 100),
    ])
    return s


def test_round_trip_through_files(store):
    assert store.count_meters() == 2
    assert store.get_meter(2).client_name == "Luis Pino"
    assert sorted(r.reading_id for r in store.get_readings_for_meter(1)) == [10, 11]


def test_later_lines_replace_earlier_ones(store):
    store.put_meter(Meter(1, "Ana Rojas Vega", "Los Aromos 12", "Norte"))
    assert store.count_meters() == 2
    assert store.get_meter(1).client_name == "Ana Rojas Vega"


def test_missing_meter(store):
    with pytest.raises(NotFoundError):
        store.get_meter(42)


def test_edit_meter_value_keeps_consumption(store):
    updated = edit_meter_value(store, "1", "10", "110.5")
    assert updated.meter_value == 110.5
    stored = {r.reading_id: r for r in store.get_readings_for_meter(1)}
    assert stored[10].meter_value == 110.5
    assert stored[10].consumption == 5


def test_edit_rejects_non_numbers(store):
    with pytest.raises(InputError):
        edit_meter_value(store, 1, 10, "ten")
    with pytest.raises(InputError):
        edit_meter_value(store, 1, "x", 10)
    with pytest.raises(NotFoundError):
        edit_meter_value(store, 1, 77, 10)


def test_history_is_sorted(store):
    result = meter_history(store, 1)
    assert [r.reading_id for r in result.readings] == [11, 10]


def test_search_matches_any_field(store):
    meters = store.list_meters()
    assert [m.meter_id for m in search_meters(meters, "aromos")] == [1]
    assert [m.meter_id for m in search_meters(meters, "SUR")] == [2]
    assert [m.meter_id for m in search_meters(meters, "")] == [1, 2]


def test_corrupt_file_is_a_backend_error(tmp_path):
    s = LocalStore(tmp_path)
    s.meters_file.write_text("{not json\n", encoding="utf-8")
    with pytest.raises(BackendError):
        s.list_meters()


def test_malformed_rows_are_skipped(store, caplog):
    with store.readings_file.open("a", encoding="utf-8") as f:
        f.write('{"reading_id": "n/a", "meter_id": 1, "month": 4, "year": 2024, "consumption": 3}\n')
        f.write('{"meter_id": 1, "month": 5, "year": 2024}\n')
        f.write('[1, 2, 3]\n')
    with store.meters_file.open("a", encoding="utf-8") as f:
        f.write('{"meter_id": null, "client_name": "Ghost"}\n')

    report = ReportAssembler(store).sector(ReportRequest(sector="Norte"))
    assert report.grand_total == 9.0
    assert store.count_meters() == 2
    assert "Skipping malformed row" in caplog.text
