# backend/lib/water_core/processor.py
import math
from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Tuple

from .periods import Period, period_of, sort_chronologically


def to_number(value: Any) -> float:
    """
    Lenient float parse. Text that does not parse, None and non-finite values
    all count as 0.0 so one bad row cannot break a whole report.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def round2(value: float) -> float:
    # ROUND_HALF_UP, not banker's rounding
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def aggregate(rows: Iterable, key: Callable[[Any], Hashable]) -> Dict[Hashable, float]:
    """Sum consumption per group key. Rows whose key is None are skipped."""
    totals: Dict[Hashable, float] = defaultdict(float)
    for row in rows:
        group = key(row)
        if group is None:
            continue
        totals[group] += to_number(row.consumption)
    return dict(totals)


def rounded(totals: Mapping[Hashable, float]) -> Dict[Hashable, float]:
    return {k: round2(v) for k, v in totals.items()}


def sorted_by_total(totals: Mapping[Hashable, float]) -> List[Tuple[Hashable, float]]:
    """Largest total first; ties keep a stable order by key text."""
    return sorted(totals.items(), key=lambda kv: (-kv[1], str(kv[0])))


def time_series(totals: Mapping[Period, float]) -> List[Tuple[Period, float]]:
    return sorted(totals.items(), key=lambda kv: kv[0])


class ConsumptionAggregator:
    def __init__(self, readings: Iterable, sectors: Optional[Mapping[int, str]] = None):
        """
        readings: Reading records
        sectors: meter_id -> sector name, needed only for the sector views
        """
        self.readings = sort_chronologically(readings)
        self.sectors = dict(sectors or {})

    def by_period(self) -> Dict[Period, float]:
        return aggregate(self.readings, period_of)

    def by_meter(self) -> Dict[int, float]:
        return aggregate(self.readings, lambda r: r.meter_id)

    def _sector_key(self, allowed_sectors: Iterable[str]) -> Callable[[Any], Optional[str]]:
        allowed = set(allowed_sectors)

        def key(reading):
            sector = self.sectors.get(reading.meter_id)
            return sector if sector in allowed else None
        return key

    def by_sector(self, allowed_sectors: Iterable[str]) -> Dict[str, float]:
        """
        Totals per sector. Sectors outside allowed_sectors (typos, unknown
        names, meters with no sector) are dropped without complaint.
        """
        return aggregate(self.readings, self._sector_key(allowed_sectors))

    def sector_breakdown(self, allowed_sectors: Iterable[str], recent: int = 3) -> List[Dict[str, Any]]:
        """
        Per sector: its total and its last `recent` monthly totals, newest
        first. Sectors are ordered by total, largest first.
        """
        key = self._sector_key(allowed_sectors)
        monthly: Dict[str, Dict[Period, float]] = defaultdict(lambda: defaultdict(float))
        for r in self.readings:
            sector = key(r)
            if sector is None:
                continue
            monthly[sector][period_of(r)] += to_number(r.consumption)

        result = []
        for sector, total in sorted_by_total(self.by_sector(allowed_sectors)):
            months = time_series(monthly[sector])[-recent:] if recent > 0 else []
            result.append({
                "sector": sector,
                "total": round2(total),
                "recent": [
                    {"period": p.label, "key": p.key, "consumption": round2(v)}
                    for p, v in reversed(months)
                ],
            })
        return result
