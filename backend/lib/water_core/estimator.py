# backend/lib/water_core/estimator.py
from typing import Iterable

from .errors import NoReadingsError
from .models import Bill, Meter, Reading
from .periods import period_of
from .processor import round2

FIXED_CHARGE = 3550.0
PRICE_PER_M3 = 550.0


def latest_reading(readings: Iterable[Reading], meter_id=None) -> Reading:
    """The newest reading by (year, month). Raises NoReadingsError when empty."""
    readings = list(readings)
    if not readings:
        raise NoReadingsError(meter_id)
    return max(readings, key=period_of)


class BillingCalculator:
    def __init__(self, fixed_charge: float = FIXED_CHARGE, price_per_m3: float = PRICE_PER_M3):
        """
        fixed_charge: flat amount on every bill, in currency units
        price_per_m3: price per cubic meter of consumption
        """
        self.fixed_charge = float(fixed_charge)
        self.price_per_m3 = float(price_per_m3)

    def charge_for(self, consumption: float) -> float:
        # negative consumption (meter swaps, bad data) is billed as zero
        return round2(max(consumption, 0.0) * self.price_per_m3)

    def bill_for(self, meter: Meter, readings: Iterable[Reading]) -> Bill:
        reading = latest_reading(readings, meter.meter_id)
        consumption_charge = self.charge_for(reading.consumption_m3)
        return Bill(
            meter=meter,
            reading=reading,
            fixed_charge=self.fixed_charge,
            consumption_charge=consumption_charge,
            total=round2(self.fixed_charge + consumption_charge),
        )
