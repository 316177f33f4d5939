# tests/test_run_local.py
from backend.lib.local_store import LocalStore
from backend.lib.water_core.models import Meter
from backend.run_local import main
from conftest import reading


def test_prints_history_and_bill(tmp_path, capsys):
    store = LocalStore(tmp_path)
    store.put_meter(Meter(7, "Ana Rojas", "Los Aromos 12", "Norte"))
    store.put_readings_batch([reading(1, 7, 2, 2024, 10, 210), reading(2, 7, 1, 2024, 3, 200)])

    assert main("7", tmp_path) == 0
    out = capsys.readouterr().out
    assert out.index("1/2024") < out.index("2/2024")
    assert "Bill for 2/2024: 3550 + 5500 = 9050" in out


def test_meter_without_readings(tmp_path, capsys):
    LocalStore(tmp_path).put_meter(Meter(8, "Luis Pino", "Av. Central 400", None))
    assert main("8", tmp_path) == 0
    assert "No consumption data for meter 8" in capsys.readouterr().out
