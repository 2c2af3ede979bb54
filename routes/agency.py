from flask import Blueprint, request, jsonify, g

from services.bookings import bookings_for_agency, serialize_booking
from services.errors import AgencyNotFound
from services.stats import agency_stats
from services.vehicles import (
    create_vehicle as create_vehicle_service,
    serialize_vehicle,
    set_availability,
    update_vehicle as update_vehicle_service,
    vehicles_for_agency,
)
from services.verification import agency_for_owner, serialize_agency, submit_application
from utils.audit import log_event
from utils.auth_context import login_required

agency_bp = Blueprint("agency", __name__, url_prefix="/agency")


def _my_agency():
    agency = agency_for_owner(g.user.id)
    if agency is None:
        raise AgencyNotFound("No agency registration found")
    return agency


# ---------- OWNERS: onboarding (apply / resubmit after rejection) ----------
@agency_bp.post("")
@login_required
def submit_agency():
    data = request.get_json(silent=True) or {}
    resubmission = agency_for_owner(g.user.id) is not None

    agency = submit_application(g.caller, data)

    log_event(
        "AGENCY_RESUBMIT" if resubmission else "AGENCY_REGISTER_SUBMIT",
        user_id=g.user.id,
        entity="agency",
        entity_id=agency.id,
    )
    return jsonify(serialize_agency(agency)), 200 if resubmission else 201


@agency_bp.get("/me")
@login_required
def my_agency():
    return jsonify(serialize_agency(_my_agency())), 200


@agency_bp.get("/dashboard")
@login_required
def dashboard():
    agency = _my_agency()
    return jsonify(agency=serialize_agency(agency, include_documents=False), stats=agency_stats(agency)), 200


@agency_bp.get("/bookings")
@login_required
def agency_bookings():
    rows = bookings_for_agency(_my_agency(), status=request.args.get("status"))
    return jsonify([serialize_booking(b, include_renter=True) for b in rows]), 200


# ---------- OWNERS: manage vehicles ----------
@agency_bp.get("/vehicles")
@login_required
def my_vehicles():
    return jsonify([serialize_vehicle(v) for v in vehicles_for_agency(_my_agency())]), 200


@agency_bp.post("/vehicles")
@login_required
def create_vehicle():
    data = request.get_json(silent=True) or {}
    vehicle = create_vehicle_service(g.caller, data)
    log_event("VEHICLE_CREATE", user_id=g.user.id, entity="vehicle", entity_id=vehicle.id)
    return jsonify(serialize_vehicle(vehicle)), 201


@agency_bp.patch("/vehicles/<int:vehicle_id>")
@login_required
def update_vehicle(vehicle_id: int):
    data = request.get_json(silent=True) or {}
    vehicle = update_vehicle_service(g.caller, vehicle_id, data)
    log_event("VEHICLE_UPDATE", user_id=g.user.id, entity="vehicle", entity_id=vehicle.id,
              metadata={"fields": sorted(data.keys())})
    return jsonify(serialize_vehicle(vehicle)), 200


@agency_bp.post("/vehicles/<int:vehicle_id>/availability")
@login_required
def toggle_availability(vehicle_id: int):
    data = request.get_json(silent=True) or {}
    vehicle = set_availability(g.caller, vehicle_id, data.get("is_available"))
    log_event("VEHICLE_AVAILABILITY", user_id=g.user.id, entity="vehicle", entity_id=vehicle.id,
              metadata={"is_available": vehicle.is_available})
    return jsonify(serialize_vehicle(vehicle)), 200
