# tests/test_reports.py
import pytest

from backend.lib.water_core.errors import BackendError, InputError, NotFoundError
from backend.lib.water_core.models import EmptyResult, IndividualReport, Meter, PeriodTotal, SectorReport
from backend.lib.water_core.periods import Period
from backend.lib.water_core.processor import ConsumptionAggregator
from backend.lib.water_core.reports import ReportAssembler, ReportRequest, parse_meter_id
from conftest import FakeStore, reading


def test_start_after_end_fails_before_any_fetch(sample_store):
    assembler = ReportAssembler(sample_store)
    with pytest.raises(InputError):
        assembler.individual(ReportRequest(meter_id=1, start="2024-06-01", end="2024-01-01"))
    with pytest.raises(InputError):
        assembler.sector(ReportRequest(sector="Norte", start="2024-06-01", end="2024-01-01"))
    assert sample_store.calls == []


@pytest.mark.parametrize("request_", [
    ReportRequest(),
    ReportRequest(meter_id=1, sector="Norte"),
    ReportRequest(meter_id="12a"),
    ReportRequest(sector="Atlantis"),
    ReportRequest(meter_id=1, start="not-a-date"),
])
def test_input_errors_never_reach_the_store(sample_store, request_):
    with pytest.raises(InputError):
        ReportAssembler(sample_store).build(request_)
    assert sample_store.calls == []


def test_individual_report_is_chronological(sample_store):
    report = ReportAssembler(sample_store).individual(ReportRequest(meter_id="1"))
    assert isinstance(report, IndividualReport)
    assert report.meter.client_name == "Ana Rojas"
    assert [r.period for r in report.readings] == [Period(2023, 11), Period(2023, 12), Period(2024, 3)]


def test_individual_report_respects_range(sample_store):
    report = ReportAssembler(sample_store).individual(
        ReportRequest(meter_id=1, start="2023-12", end="2024-02")
    )
    assert [r.reading_id for r in report.readings] == [12]


def test_individual_report_empty_range_is_not_an_error(sample_store):
    report = ReportAssembler(sample_store).individual(ReportRequest(meter_id=1, start="2025-01"))
    assert isinstance(report, EmptyResult)
    assert report.to_json()["empty"] is True


def test_unknown_meter_is_not_found(sample_store):
    with pytest.raises(NotFoundError):
        ReportAssembler(sample_store).individual(ReportRequest(meter_id=999))


def test_sector_report_one_entry_per_period_and_grand_total():
    store = FakeStore(
        [Meter(1, "A", "x", "Norte"), Meter(2, "B", "y", "Norte")],
        [reading(1, 1, 1, 2024, 5), reading(2, 2, 2, 2024, 7)],
    )
    report = ReportAssembler(store).sector(ReportRequest(sector="Norte"))
    assert isinstance(report, SectorReport)
    assert [(e.period, e.consumption) for e in report.entries] == [
        (Period(2024, 1), 5.0),
        (Period(2024, 2), 7.0),
    ]
    assert report.grand_total == 12


def test_sector_report_sums_meters_within_a_period(sample_store):
    report = ReportAssembler(sample_store).sector(ReportRequest(sector="norte", start="2024-03"))
    assert report.sector == "Norte"
    assert [(e.period.key, e.consumption) for e in report.entries] == [("2024-03", 12.0)]
    assert report.to_json()["grand_total"] == 12.0


def test_sector_report_without_readings(sample_store):
    report = ReportAssembler(sample_store).sector(ReportRequest(sector="Centro"))
    assert isinstance(report, EmptyResult)


def test_backend_errors_pass_through():
    class BrokenStore(FakeStore):
        def get_all_readings(self):
            raise BackendError("connection reset by peer")

    store = BrokenStore([Meter(1, "A", "x", "Norte")])
    with pytest.raises(BackendError, match="connection reset by peer"):
        ReportAssembler(store).sector(ReportRequest(sector="Norte"))


@pytest.mark.parametrize("raw", ["-5", "+5", "1_000", "١٢", "1.0"])
def test_meter_id_accepts_plain_ascii_digits_only(raw):
    with pytest.raises(InputError, match="only digits"):
        parse_meter_id(raw)
    assert parse_meter_id(" 0042 ") == 42


def test_sector_totals_round_half_up_like_the_dashboard():
    store = FakeStore([Meter(1, "A", "x", "Norte")], [reading(1, 1, 1, 2024, 0.125)])
    report = ReportAssembler(store).sector(ReportRequest(sector="Norte"))
    dashboard = ConsumptionAggregator(store.readings, {1: "Norte"}).sector_breakdown(["Norte"])

    body = report.to_json()
    assert body["entries"][0]["consumption"] == 0.13
    assert body["grand_total"] == 0.13
    assert dashboard[0]["total"] == body["grand_total"]
    assert PeriodTotal(Period(2024, 2), 2.675).to_json()["consumption"] == 2.68
