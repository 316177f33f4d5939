# backend/run_local.py
import sys

from backend.lib.local_store import LocalStore
from backend.lib.water_core.errors import NoReadingsError, WaterPortalError
from backend.lib.water_core.estimator import BillingCalculator
from backend.lib.water_core.models import EmptyResult
from backend.lib.water_core.reports import ReportAssembler, ReportRequest


def main(meter_id, data_dir="backend/data"):
    store = LocalStore(data_dir)
    report = ReportAssembler(store).individual(ReportRequest(meter_id=meter_id))
    if isinstance(report, EmptyResult):
        print(report.message)
        return 0

    m = report.meter
    print(f"Meter {m.meter_id} - {m.client_name}, {m.address} ({m.sector or 'no sector'})")
    for r in report.readings:
        print(f" - {r.period.label:>8} : value {r.meter_value:g}, consumption {r.consumption_m3:g} m3")

    try:
        bill = BillingCalculator().bill_for(m, report.readings)
    except NoReadingsError as e:
        print(e)
        return 0
    print(f"Bill for {bill.reading.period.label}: {bill.fixed_charge:g} + "
          f"{bill.consumption_charge:g} = {bill.total:g}")
    return 0


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: python -m backend.run_local METER_ID [DATA_DIR]")
        sys.exit(2)
    try:
        sys.exit(main(*sys.argv[1:3]))
    except WaterPortalError as e:
        print(f"error: {e}")
        sys.exit(1)
