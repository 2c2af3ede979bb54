from flask import Blueprint, request, jsonify, current_app

from services.availability import search_vehicles
from services.pricing import quote
from services.vehicles import get_vehicle, serialize_vehicle
from utils.auth_context import current_caller
from utils.dates import parse_range

vehicles_bp = Blueprint("vehicles", __name__, url_prefix="/vehicles")


# ---------- PUBLIC: search the catalogue ----------
@vehicles_bp.get("")
def list_vehicles():
    # optional: start_date/end_date (YYYY-MM-DD) restrict to free vehicles
    start, end = parse_range(
        request.args.get("start_date"), request.args.get("end_date"), required=False
    )
    limit = min(request.args.get("limit", type=int) or 200, current_app.config.get("MAX_PAGE_SIZE", 200))

    rows = search_vehicles(
        start=start,
        end=end,
        make=(request.args.get("make") or "").strip() or None,
        model=(request.args.get("model") or "").strip() or None,
        fuel_type=(request.args.get("fuel_type") or "").strip() or None,
        transmission=(request.args.get("transmission") or "").strip() or None,
        min_seats=request.args.get("min_seats", type=int),
        max_rate=request.args.get("max_rate", type=int),
        limit=max(limit, 1),
    )
    return jsonify([serialize_vehicle(v) for v in rows]), 200


@vehicles_bp.get("/<int:vehicle_id>")
def vehicle_detail(vehicle_id: int):
    vehicle = get_vehicle(vehicle_id, current_caller())
    return jsonify(serialize_vehicle(vehicle)), 200


# ---------- PUBLIC: price quote for a date range ----------
@vehicles_bp.get("/<int:vehicle_id>/quote")
def vehicle_quote(vehicle_id: int):
    start, end = parse_range(request.args.get("start_date"), request.args.get("end_date"))
    vehicle = get_vehicle(vehicle_id, current_caller())
    return jsonify(quote(vehicle, start, end, current_app.config["MAX_RENTAL_DAYS"])), 200
