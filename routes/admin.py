from flask import Blueprint, jsonify, g, request

from models import db
from models.agency import Agency
from security.rbac import require_roles
from services.bookings import all_bookings, cancel_booking, serialize_booking
from services.errors import AgencyNotFound, InvalidInput
from services.stats import admin_stats
from services.users import force_sign_out, get_user, list_users, serialize_user, set_suspended
from services.verification import (
    REJECTED,
    VERIFIED,
    reject_agency,
    serialize_agency,
    verify_agency as verify_agency_service,
)
from services.vehicles import serialize_vehicle, vehicles_for_agency
from utils.audit import log_event

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.get("/dashboard")
@require_roles("ADMIN")
def dashboard():
    pending = (
        Agency.query
        .filter_by(verification_status="PENDING")
        .order_by(Agency.created_at.asc())
        .limit(200)
        .all()
    )
    log_event("ADMIN_DASHBOARD_VIEW", user_id=g.user.id)
    return jsonify(
        stats=admin_stats(),
        pending_agencies=[serialize_agency(a, include_documents=False) for a in pending],
    ), 200


# ---------- agencies ----------
@admin_bp.get("/agencies")
@require_roles("ADMIN")
def list_agencies():
    status = (request.args.get("status") or "").strip().upper()
    q = Agency.query
    if status:
        q = q.filter(Agency.verification_status == status)

    rows = q.order_by(Agency.created_at.desc()).limit(200).all()
    out = []
    for a in rows:
        item = serialize_agency(a, include_documents=False)
        item["owner_full_name"] = a.owner.full_name if a.owner else None
        out.append(item)
    return jsonify(out), 200


@admin_bp.get("/agencies/<int:agency_id>")
@require_roles("ADMIN")
def agency_detail(agency_id: int):
    agency = db.session.get(Agency, agency_id)
    if agency is None:
        raise AgencyNotFound()
    return jsonify(
        agency=serialize_agency(agency),
        owner=serialize_user(agency.owner) if agency.owner else None,
        vehicles=[serialize_vehicle(v) for v in vehicles_for_agency(agency)],
    ), 200


@admin_bp.post("/agencies/<int:agency_id>/verify")
@require_roles("ADMIN")
def verify_agency(agency_id: int):
    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip().upper()
    reason = data.get("reason")

    if status == VERIFIED:
        agency = verify_agency_service(g.caller, agency_id)
    elif status == REJECTED:
        agency = reject_agency(g.caller, agency_id, reason)
    else:
        raise InvalidInput("status must be VERIFIED or REJECTED")

    log_event(
        "ADMIN_AGENCY_VERIFY",
        user_id=g.user.id,
        entity="agency",
        entity_id=agency.id,
        metadata={"status": status, "reason": agency.rejection_reason},
    )
    return jsonify(message="Agency updated", agency=serialize_agency(agency)), 200


# ---------- users ----------
@admin_bp.get("/users")
@require_roles("ADMIN")
def users():
    return jsonify([serialize_user(u) for u in list_users(g.caller)]), 200


@admin_bp.get("/users/<int:user_id>")
@require_roles("ADMIN")
def user_detail(user_id: int):
    return jsonify(serialize_user(get_user(g.caller, user_id))), 200


@admin_bp.post("/users/<int:user_id>/suspend")
@require_roles("ADMIN")
def suspend_user(user_id: int):
    revoked = set_suspended(g.caller, user_id, True)
    log_event("ADMIN_USER_SUSPEND", user_id=g.user.id, entity="user", entity_id=user_id,
              metadata={"revoked_sessions": revoked})
    return jsonify(message="User suspended", revoked_sessions=revoked), 200


@admin_bp.post("/users/<int:user_id>/unsuspend")
@require_roles("ADMIN")
def unsuspend_user(user_id: int):
    set_suspended(g.caller, user_id, False)
    log_event("ADMIN_USER_UNSUSPEND", user_id=g.user.id, entity="user", entity_id=user_id)
    return jsonify(message="User reinstated"), 200


@admin_bp.post("/users/<int:user_id>/logout")
@require_roles("ADMIN")
def logout_user(user_id: int):
    revoked = force_sign_out(g.caller, user_id)
    log_event("ADMIN_USER_LOGOUT", user_id=g.user.id, entity="user", entity_id=user_id,
              metadata={"revoked_sessions": revoked})
    return jsonify(message=f"User {user_id} signed out successfully.", revoked_sessions=revoked), 200


# ---------- bookings ----------
@admin_bp.get("/bookings")
@require_roles("ADMIN")
def list_all_bookings():
    rows = all_bookings(status=request.args.get("status"))
    return jsonify([serialize_booking(b, include_renter=True) for b in rows]), 200


@admin_bp.post("/bookings/<int:booking_id>/cancel")
@require_roles("ADMIN")
def admin_cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip()[:120] or "Admin cancellation"

    booking = cancel_booking(g.caller, booking_id, reason=reason, as_admin=True)

    log_event("ADMIN_BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id, metadata={"reason": reason})
    return jsonify(message="Cancelled by admin", booking=serialize_booking(booking)), 200
