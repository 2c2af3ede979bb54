from flask import Blueprint, request, jsonify, g

from services.bookings import (
    bookings_for_renter,
    cancel_booking as cancel_booking_service,
    create_booking as create_booking_service,
    serialize_booking,
)
from services.errors import InvalidInput, VehicleUnavailable
from utils.audit import log_event
from utils.auth_context import login_required
from utils.dates import parse_range

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")


# ---------- RENTERS: book a vehicle (DOUBLE-BOOKING SAFE) ----------
@booking_bp.post("")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    vehicle_id = data.get("vehicle_id")
    if not isinstance(vehicle_id, int) or isinstance(vehicle_id, bool):
        raise InvalidInput("vehicle_id required")
    start, end = parse_range(data.get("start_date"), data.get("end_date"))

    try:
        booking = create_booking_service(g.caller, vehicle_id, start, end)
    except VehicleUnavailable:
        log_event(
            "BOOKING_FAIL_UNAVAILABLE",
            user_id=g.user.id,
            entity="vehicle",
            entity_id=vehicle_id,
            metadata={"start_date": start, "end_date": end},
        )
        raise

    log_event(
        "BOOKING_CREATE",
        user_id=g.user.id,
        entity="booking",
        entity_id=booking.id,
        metadata={"vehicle_id": vehicle_id, "total_price": booking.total_price},
    )
    return jsonify(serialize_booking(booking)), 201


# ---------- RENTERS: view my bookings ----------
@booking_bp.get("/me")
@login_required
def my_bookings():
    # optional: status filter CONFIRMED/CANCELLED
    rows = bookings_for_renter(g.caller, status=request.args.get("status"))
    return jsonify([serialize_booking(b) for b in rows]), 200


# ---------- RENTERS: cancel booking before pickup ----------
@booking_bp.post("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip()[:120] or None

    booking = cancel_booking_service(g.caller, booking_id, reason=reason)

    log_event("BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id, metadata={"reason": reason})
    return jsonify(message="Cancelled", booking=serialize_booking(booking)), 200
