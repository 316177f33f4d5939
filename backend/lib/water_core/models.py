# backend/lib/water_core/models.py
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from .periods import Period
from .processor import round2, to_int, to_number

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Raised by from_row on a missing or garbled key, or a row that is not an object
MALFORMED_ROW_ERRORS = (AttributeError, KeyError, TypeError, ValueError, OverflowError)


@dataclass
class Meter:
    meter_id: int
    client_name: str
    address: str
    sector: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Meter":
        """
        Build a Meter from a backend row. meter_id is required; the other
        fields default to empty when the backend leaves them out.
        """
        return cls(
            meter_id=int(row["meter_id"]),
            client_name=row.get("client_name") or "",
            address=row.get("address") or "",
            sector=row.get("sector") or None,
        )

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Reading:
    reading_id: int
    meter_id: int
    month: int
    year: int
    meter_value: float
    # Raw stored value; coerced with to_number wherever it is summed or billed
    consumption: Any = None

    @property
    def period(self) -> Period:
        return Period(year=self.year, month=self.month)

    @property
    def consumption_m3(self) -> float:
        return to_number(self.consumption)

    @classmethod
    def from_row(cls, row: Dict[str, Any], meter_id: Optional[int] = None) -> "Reading":
        return cls(
            reading_id=int(row["reading_id"]),
            meter_id=int(row["meter_id"]) if meter_id is None else meter_id,
            month=to_int(row.get("month")),
            year=to_int(row.get("year")),
            meter_value=to_number(row.get("meter_value")),
            consumption=row.get("consumption"),
        )

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> Dict[str, Any]:
        data = self.to_row()
        data["consumption"] = self.consumption_m3
        data["period"] = self.period.label
        return data


@dataclass
class MeterWithReadings:
    """The nested shape: a meter and all of its readings."""
    meter: Meter
    readings: List[Reading] = field(default_factory=list)


@dataclass
class Bill:
    meter: Meter
    reading: Reading
    fixed_charge: float
    consumption_charge: float
    total: float

    def to_json(self) -> Dict[str, Any]:
        return {
            "meter": self.meter.to_row(),
            "reading": self.reading.to_json(),
            "fixed_charge": self.fixed_charge,
            "consumption_charge": self.consumption_charge,
            "total": self.total,
        }


@dataclass
class EmptyResult:
    """No matching readings. Not an error and not a backend failure."""
    message: str

    def to_json(self) -> Dict[str, Any]:
        return {"empty": True, "message": self.message}


@dataclass
class IndividualReport:
    meter: Meter
    readings: List[Reading]

    def to_json(self) -> Dict[str, Any]:
        return {
            "empty": False,
            "meter": self.meter.to_row(),
            "readings": [r.to_json() for r in self.readings],
        }


@dataclass
class PeriodTotal:
    period: Period
    consumption: float

    def to_json(self) -> Dict[str, Any]:
        return {
            "period": self.period.label,
            "key": self.period.key,
            "consumption": round2(self.consumption),
        }


@dataclass
class SectorReport:
    sector: str
    entries: List[PeriodTotal]
    grand_total: float

    def to_json(self) -> Dict[str, Any]:
        return {
            "empty": False,
            "sector": self.sector,
            "entries": [e.to_json() for e in self.entries],
            "grand_total": round2(self.grand_total),
        }


def parse_rows(rows: Iterable[Dict[str, Any]], build: Callable[[Dict[str, Any]], T]) -> List[T]:
    """
    Build records from backend rows. A row without a usable meter_id or
    reading_id is skipped with a warning; the rest still load.
    """
    records = []
    for row in rows:
        try:
            records.append(build(row))
        except MALFORMED_ROW_ERRORS as e:
            logger.warning("Skipping malformed row %r: %s", row, e)
    return records
