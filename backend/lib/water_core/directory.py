# backend/lib/water_core/directory.py
import math
from typing import Iterable, List

from .errors import InputError
from .models import Meter, MeterWithReadings, Reading
from .periods import sort_chronologically
from .reports import parse_meter_id


def search_meters(meters: Iterable[Meter], term: str) -> List[Meter]:
    """
    Case-insensitive substring match on meter ID, client name, address and
    sector. An empty term returns every meter.
    """
    needle = (term or "").strip().lower()
    meters = sorted(meters, key=lambda m: m.meter_id)
    if not needle:
        return meters
    return [
        m for m in meters
        if needle in str(m.meter_id)
        or needle in m.client_name.lower()
        or needle in m.address.lower()
        or (m.sector and needle in m.sector.lower())
    ]


def lookup_meter(store, raw_id) -> Meter:
    return store.get_meter(parse_meter_id(raw_id))


def meter_history(store, raw_id) -> MeterWithReadings:
    meter_id = parse_meter_id(raw_id)
    meter = store.get_meter(meter_id)
    return MeterWithReadings(
        meter=meter,
        readings=sort_chronologically(store.get_readings_for_meter(meter_id)),
    )


def parse_meter_value(raw) -> float:
    # unlike consumption, an edited value must be a real number
    try:
        value = float(str(raw).strip())
    except ValueError:
        raise InputError("The meter value must be a valid number")
    if not math.isfinite(value):
        raise InputError("The meter value must be a valid number")
    return value


def edit_meter_value(store, raw_meter_id, raw_reading_id, raw_value) -> Reading:
    """
    Set a new meter value on one reading. Stored consumption is not
    recalculated.
    """
    meter_id = parse_meter_id(raw_meter_id)
    try:
        reading_id = int(str(raw_reading_id).strip())
    except ValueError:
        raise InputError(f"Invalid reading ID '{raw_reading_id}'")
    value = parse_meter_value(raw_value)
    return store.update_meter_value(meter_id, reading_id, value)
