"""
=============================================================================
WATER PORTAL - MAIN FLASK APPLICATION
=============================================================================

REST API for the water utility customer portal and back-office panel:
- Client lookup and search
- Consumption dashboards per meter and per sector
- Meter reading edits
- Bill estimation from the latest reading
- Excel / CSV export of all readings

Storage:
- DynamoDB (USE_DYNAMODB=true), or local JSON Lines files as fallback
- S3 (USE_S3_STORAGE=true) keeps a copy of every export

The caller's role arrives in the X-User-Role header, set by the identity
service in front of this API.

How to run:
    python -m backend.app

Then visit: http://127.0.0.1:5000/health
=============================================================================
"""

import logging
import os
from datetime import date
from io import BytesIO
from pathlib import Path

from botocore.exceptions import BotoCoreError
from dotenv import load_dotenv
from flask import Flask, jsonify, request, send_file

# Environment must be loaded before anything below reads it
load_dotenv()

from backend.lib.water_core.access import Capability, Role, nav_items, navbar_style, require
from backend.lib.water_core.directory import edit_meter_value, lookup_meter, meter_history, search_meters
from backend.lib.water_core.errors import BackendError, InputError, WaterPortalError
from backend.lib.water_core.estimator import FIXED_CHARGE, PRICE_PER_M3, BillingCalculator
from backend.lib.water_core.io import XLSX_CONTENT_TYPE, export_rows, to_csv, to_xlsx
from backend.lib.water_core.processor import ConsumptionAggregator
from backend.lib.water_core.reports import DEFAULT_SECTORS, ReportAssembler, ReportRequest
from backend.lib.water_core.schedule import reading_window_notice

# =============================================================================
# LOGGING
# =============================================================================

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s | %(levelname)s | %(name)s | %(message)s'
)
logger = logging.getLogger("water_portal")

# =============================================================================
# CONFIGURATION
# =============================================================================

DATA_DIR = Path(os.getenv('DATA_DIR', 'backend/data'))

# Tariff: fixed fee per bill plus a price per cubic meter
TARIFF_FIXED_CHARGE = float(os.getenv('FIXED_CHARGE', FIXED_CHARGE))
TARIFF_PRICE_PER_M3 = float(os.getenv('PRICE_PER_M3', PRICE_PER_M3))

# Sector names that count in sector reports, comma separated
KNOWN_SECTORS = tuple(
    s.strip() for s in os.getenv('KNOWN_SECTORS', ','.join(DEFAULT_SECTORS)).split(',') if s.strip()
)

calculator = BillingCalculator(TARIFF_FIXED_CHARGE, TARIFF_PRICE_PER_M3)

# -----------------------------------------------------------------------------
# STORE - DynamoDB, or local files when DynamoDB is off or unreachable
# -----------------------------------------------------------------------------

USE_DYNAMODB = os.getenv('USE_DYNAMODB', 'false').lower() == 'true'
store = None

if USE_DYNAMODB:
    try:
        from backend.lib.dynamodb_service import DynamoDBService
        store = DynamoDBService()
        store.create_tables_if_not_exist()
        logger.info("DynamoDB storage enabled")
    except (BackendError, BotoCoreError) as e:
        logger.warning("DynamoDB initialization failed: %s. Using local storage.", e)
        USE_DYNAMODB = False
        store = None

if store is None:
    from backend.lib.local_store import LocalStore
    store = LocalStore(DATA_DIR)

# -----------------------------------------------------------------------------
# S3 - optional archive of exports
# -----------------------------------------------------------------------------

USE_S3 = os.getenv('USE_S3_STORAGE', 'false').lower() == 'true'
s3_service = None

if USE_S3:
    try:
        from backend.lib.s3_service import S3Service
        s3_service = S3Service()
        s3_service.create_bucket_if_not_exists()
        logger.info("S3 export archive enabled")
    except (BackendError, BotoCoreError) as e:
        logger.warning("S3 initialization failed: %s. Exports will not be archived.", e)
        USE_S3 = False
        s3_service = None

app = Flask(__name__)

# =============================================================================
# HELPERS
# =============================================================================


def current_role() -> Role:
    return Role.parse(request.headers.get("X-User-Role"))


def assembler() -> ReportAssembler:
    return ReportAssembler(store, KNOWN_SECTORS)


@app.errorhandler(WaterPortalError)
def handle_portal_error(e):
    """Every portal error becomes {"error": message} with its status code."""
    if isinstance(e, BackendError):
        logger.error("Backend failure on %s: %s", request.path, e)
    return jsonify({"error": str(e)}), e.status_code


# =============================================================================
# API ROUTES - GENERAL
# =============================================================================

@app.route("/health", methods=["GET"])
def health():
    return jsonify({
        "store": store.status(),
        "s3_enabled": USE_S3,
        "bucket_name": s3_service.bucket_name if s3_service else None
    })


@app.route("/nav", methods=["GET"])
def nav():
    """Navigation items and navbar style for the caller's role and route."""
    role = current_role()
    path = request.args.get("path", "/")
    return jsonify({
        "role": role.value,
        "items": nav_items(role),
        "style": navbar_style(path, role)
    })


# =============================================================================
# API ROUTES - CLIENTS AND METERS
# =============================================================================

@app.route("/meters", methods=["GET"])
def list_meters():
    """
    Back-office client search.

    Query Parameters:
        q (optional): matched against meter ID, name, address and sector

    Example Response:
        {"meters": [{"meter_id": 1042, "client_name": "...", ...}]}
    """
    require(current_role(), Capability.MANAGE_CLIENTS)
    meters = search_meters(store.list_meters(), request.args.get("q", ""))
    return jsonify({"meters": [m.to_row() for m in meters]})


@app.route("/meters/<meter_id>", methods=["GET"])
def get_meter(meter_id):
    require(current_role(), Capability.VIEW_CONSUMPTION)
    return jsonify({"meter": lookup_meter(store, meter_id).to_row()})


@app.route("/meters/<meter_id>/history", methods=["GET"])
def history(meter_id):
    """Meter identity plus every reading, oldest first."""
    require(current_role(), Capability.VIEW_CONSUMPTION)
    result = meter_history(store, meter_id)
    return jsonify({
        "meter": result.meter.to_row(),
        "readings": [r.to_json() for r in result.readings]
    })


@app.route("/meters/<meter_id>/consumption", methods=["GET"])
def consumption(meter_id):
    """
    Consumption dashboard for one meter.

    Query Parameters:
        start, end (optional): YYYY-MM or YYYY-MM-DD, inclusive

    An empty range returns 200 with {"empty": true, "message": ...}.
    """
    require(current_role(), Capability.VIEW_CONSUMPTION)
    report = assembler().individual(ReportRequest(
        meter_id=meter_id,
        start=request.args.get("start"),
        end=request.args.get("end")
    ))
    return jsonify(report.to_json())


@app.route("/meters/<meter_id>/bill", methods=["GET"])
def bill(meter_id):
    """
    Bill for the latest reading: fixed charge + consumption x price per m3.
    404 with a "No readings available" message when the meter has none.
    """
    require(current_role(), Capability.VIEW_BILL)
    meter = lookup_meter(store, meter_id)
    result = calculator.bill_for(meter, store.get_readings_for_meter(meter.meter_id))
    return jsonify(result.to_json())


@app.route("/readings/<meter_id>/<reading_id>", methods=["PUT"])
def update_reading(meter_id, reading_id):
    """
    Change the meter value of a reading.

    Request Body (JSON):
        {"meter_value": 1534.5}
    """
    require(current_role(), Capability.EDIT_READINGS)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InputError("Request body must be a JSON object")
    if "meter_value" not in data:
        raise InputError("meter_value required")
    reading = edit_meter_value(store, meter_id, reading_id, data["meter_value"])
    logger.info("Reading %s of meter %s set to %s", reading.reading_id, reading.meter_id, reading.meter_value)
    return jsonify({"reading": reading.to_json()})


# =============================================================================
# API ROUTES - SECTORS AND REPORTS
# =============================================================================

@app.route("/sectors/consumption", methods=["GET"])
def sector_consumption():
    """
    Total consumption per known sector, largest first, each with its most
    recent monthly totals.

    Query Parameters:
        recent (optional): how many recent months to include (default: 3)
    """
    require(current_role(), Capability.VIEW_REPORTS)
    try:
        recent = int(request.args.get("recent", 3))
    except ValueError:
        raise InputError("recent must be a number")

    sectors = {m.meter_id: m.sector for m in store.list_meters()}
    aggregator = ConsumptionAggregator(store.get_all_readings(), sectors)
    return jsonify({"sectors": aggregator.sector_breakdown(KNOWN_SECTORS, recent=recent)})


@app.route("/reports/sector", methods=["GET"])
def sector_report():
    """
    Consumption of one sector per period, with a grand total.

    Query Parameters:
        sector (required)
        start, end (optional): YYYY-MM or YYYY-MM-DD, inclusive
    """
    require(current_role(), Capability.VIEW_REPORTS)
    report = assembler().sector(ReportRequest(
        sector=request.args.get("sector"),
        start=request.args.get("start"),
        end=request.args.get("end")
    ))
    return jsonify(report.to_json())


# =============================================================================
# API ROUTES - ADMIN
# =============================================================================

@app.route("/admin/stats", methods=["GET"])
def admin_stats():
    require(current_role(), Capability.MANAGE_CLIENTS)
    return jsonify({
        "total_clients": store.count_meters(),
        "reading_notice": reading_window_notice(date.today())
    })


@app.route("/admin/export", methods=["GET"])
def admin_export():
    """
    Download every reading joined with its client.

    Query Parameters:
        format (optional): 'xlsx' or 'csv' (default: 'xlsx')

    With S3 enabled the file is archived too and the X-Export-Url header
    holds a presigned link to the copy.
    """
    require(current_role(), Capability.EXPORT)
    fmt = request.args.get("format", "xlsx").lower()
    if fmt not in ("xlsx", "csv"):
        raise InputError("format must be 'xlsx' or 'csv'")

    rows = export_rows(store.list_meters(), store.get_all_readings())
    if fmt == "xlsx":
        content, mimetype = to_xlsx(rows), XLSX_CONTENT_TYPE
    else:
        content, mimetype = to_csv(rows).encode("utf-8"), "text/csv"
    filename = f"readings_{date.today().isoformat()}.{fmt}"

    response = send_file(BytesIO(content), mimetype=mimetype, as_attachment=True, download_name=filename)
    if USE_S3 and s3_service:
        key = s3_service.upload_export(content, filename, mimetype)
        response.headers["X-Export-Key"] = key
        response.headers["X-Export-Url"] = s3_service.get_presigned_url(key)
    logger.info("Exported %d rows as %s", len(rows), fmt)
    return response


@app.route("/admin/exports", methods=["GET"])
def list_exports():
    require(current_role(), Capability.EXPORT)
    if not USE_S3 or not s3_service:
        return jsonify({"error": "S3 storage not enabled"}), 400
    return jsonify({"exports": s3_service.list_exports(), "bucket": s3_service.bucket_name})


if __name__ == "__main__":
    # debug reloader is for local development only
    app.run(debug=True)
