# backend/lib/water_core/io.py
import csv
from io import BytesIO, StringIO
from typing import Dict, Iterable, List

from openpyxl import Workbook
from openpyxl.styles import Font

from .models import Meter, Reading
from .periods import period_of

# Column order of every export, key -> header label
EXPORT_COLUMNS = [
    ("meter_id", "Meter ID"),
    ("client_name", "Client Name"),
    ("sector", "Sector"),
    ("address", "Address"),
    ("meter_value", "Meter Value"),
    ("month", "Month"),
    ("year", "Year"),
]

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def export_rows(meters: Iterable[Meter], readings: Iterable[Reading]) -> List[Dict]:
    """
    One row per reading joined with its meter, ordered by meter then period.
    Meters without readings still get a row with empty reading columns.
    Readings whose meter is unknown are left out.
    """
    by_meter: Dict[int, List[Reading]] = {}
    for r in readings:
        by_meter.setdefault(r.meter_id, []).append(r)

    rows = []
    for meter in sorted(meters, key=lambda m: m.meter_id):
        base = {
            "meter_id": meter.meter_id,
            "client_name": meter.client_name,
            "sector": meter.sector or "",
            "address": meter.address,
        }
        meter_readings = sorted(by_meter.get(meter.meter_id, []), key=period_of)
        if not meter_readings:
            rows.append(dict(base, meter_value=None, month=None, year=None))
        for r in meter_readings:
            rows.append(dict(base, meter_value=r.meter_value, month=r.month, year=r.year))
    return rows


def to_xlsx(rows: Iterable[Dict], sheet_title: str = "Readings") -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_title

    sheet.append([label for _, label in EXPORT_COLUMNS])
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for row in rows:
        sheet.append([row.get(key) for key, _ in EXPORT_COLUMNS])

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


def to_csv(rows: Iterable[Dict]) -> str:
    f = StringIO()
    writer = csv.writer(f)
    writer.writerow([label for _, label in EXPORT_COLUMNS])
    for row in rows:
        writer.writerow(["" if row.get(key) is None else row.get(key) for key, _ in EXPORT_COLUMNS])
    return f.getvalue()
