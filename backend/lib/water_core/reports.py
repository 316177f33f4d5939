# backend/lib/water_core/reports.py
"""
Report assembly: validate the request, fetch once, aggregate, return.

Nothing is cached between calls and nothing is retried. Store errors
(BackendError) travel up unchanged.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from .errors import InputError
from .models import EmptyResult, IndividualReport, PeriodTotal, SectorReport
from .periods import DateRange, sort_chronologically
from .processor import ConsumptionAggregator, time_series

logger = logging.getLogger(__name__)

DEFAULT_SECTORS = ("Centro", "Norte", "Sur", "Oriente", "Poniente")


def parse_meter_id(value) -> int:
    text = str(value if value is not None else "").strip()
    if not text:
        raise InputError("A meter ID is required")
    # int() alone would also take "-5", "+5", "1_000" and non-ASCII digits
    if not (text.isascii() and text.isdigit()):
        raise InputError(f"Invalid meter ID '{text}', only digits are allowed")
    return int(text)


@dataclass
class ReportRequest:
    meter_id: Optional[Union[int, str]] = None
    sector: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None

    def validate(self, known_sectors: Iterable[str] = DEFAULT_SECTORS) -> "ValidRequest":
        has_meter = self.meter_id not in (None, "")
        has_sector = bool((self.sector or "").strip())
        if has_meter == has_sector:
            raise InputError("Provide either a meter ID or a sector")

        date_range = DateRange.parse(self.start, self.end).validate()

        if has_meter:
            return ValidRequest(meter_id=parse_meter_id(self.meter_id), date_range=date_range)

        wanted = self.sector.strip().lower()
        for name in known_sectors:
            if name.lower() == wanted:
                return ValidRequest(sector=name, date_range=date_range)
        raise InputError(f"Unknown sector '{self.sector.strip()}'")


@dataclass(frozen=True)
class ValidRequest:
    meter_id: Optional[int] = None
    sector: Optional[str] = None
    date_range: DateRange = DateRange()


class ReportAssembler:
    def __init__(self, store, known_sectors: Iterable[str] = DEFAULT_SECTORS):
        self.store = store
        self.known_sectors = tuple(known_sectors)

    def build(self, request: ReportRequest):
        valid = request.validate(self.known_sectors)
        if valid.meter_id is not None:
            return self._individual(valid)
        return self._sector(valid)

    def individual(self, request: ReportRequest) -> Union[IndividualReport, EmptyResult]:
        valid = request.validate(self.known_sectors)
        if valid.meter_id is None:
            raise InputError("A meter ID is required for an individual report")
        return self._individual(valid)

    def sector(self, request: ReportRequest) -> Union[SectorReport, EmptyResult]:
        valid = request.validate(self.known_sectors)
        if valid.sector is None:
            raise InputError("A sector is required for a sector report")
        return self._sector(valid)

    def _individual(self, valid: ValidRequest):
        meter = self.store.get_meter(valid.meter_id)
        readings = valid.date_range.filter(self.store.get_readings_for_meter(valid.meter_id))
        if not readings:
            logger.info("No readings in range for meter %s", valid.meter_id)
            return EmptyResult(f"No consumption data for meter {valid.meter_id} in the selected range")
        return IndividualReport(meter=meter, readings=sort_chronologically(readings))

    def _sector(self, valid: ValidRequest):
        sector_meters = {m.meter_id for m in self.store.list_meters() if m.sector == valid.sector}
        readings = [
            r for r in valid.date_range.filter(self.store.get_all_readings())
            if r.meter_id in sector_meters
        ]
        if not readings:
            logger.info("No readings in range for sector %s", valid.sector)
            return EmptyResult(f"No consumption data for sector {valid.sector} in the selected range")

        totals = ConsumptionAggregator(readings).by_period()
        entries = [PeriodTotal(period=p, consumption=v) for p, v in time_series(totals)]
        return SectorReport(
            sector=valid.sector,
            entries=entries,
            grand_total=sum(totals.values()),
        )
