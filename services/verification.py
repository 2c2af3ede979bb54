"""Agency verification lifecycle.

    (none) --apply-->  PENDING   (applicant)
    PENDING --verify--> VERIFIED (admin)
    PENDING --reject--> REJECTED (admin, reason required)
    REJECTED --resubmit--> PENDING (owner, documents re-supplied)

VERIFIED is terminal. Only vehicles of VERIFIED agencies are visible to the
availability index, so every transition takes effect on the next search.
"""
from datetime import datetime
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.agency import Agency
from models.user import Role, User
from services.errors import (
    AgencyNotFound,
    Forbidden,
    InvalidInput,
    InvalidTransition,
    NotAuthenticated,
    PersistenceError,
)
from services.identity import ROLE_AGENCY_OWNER, Caller
from services.persistence import commit
from utils.validation import is_url

PENDING = "PENDING"
VERIFIED = "VERIFIED"
REJECTED = "REJECTED"

# (from, to) -> who may trigger it
TRANSITIONS = {
    (None, PENDING): "owner",
    (PENDING, VERIFIED): "admin",
    (PENDING, REJECTED): "admin",
    (REJECTED, PENDING): "owner",
}

REQUIRED_TEXT_FIELDS = ("agency_name", "address", "city", "wilaya", "trade_register_number")
REQUIRED_DOCUMENTS = ("trade_register_url", "id_card_url", "selfie_url")


def _clean_application(data: dict) -> dict:
    cleaned = {}
    missing = []
    for name in REQUIRED_TEXT_FIELDS:
        value = data.get(name)
        value = value.strip() if isinstance(value, str) else ""
        if not value:
            missing.append(name)
        cleaned[name] = value
    for name in REQUIRED_DOCUMENTS:
        value = data.get(name)
        if not is_url(value):
            missing.append(name)
        else:
            cleaned[name] = value.strip()
    if missing:
        raise InvalidInput("Missing or invalid fields: " + ", ".join(sorted(missing)))
    if len(cleaned["agency_name"]) > 120:
        raise InvalidInput("agency_name is too long")
    return cleaned


def _check_transition(current: Optional[str], target: str, caller: Caller, agency: Optional[Agency]):
    actor = TRANSITIONS.get((current, target))
    if actor is None:
        raise InvalidTransition(f"Cannot move agency from {current or 'new'} to {target}")
    if actor == "admin" and not caller.is_admin:
        raise Forbidden("Only an admin can review agencies")
    if actor == "owner" and agency is not None and agency.owner_user_id != caller.user_id:
        raise Forbidden("Only the agency owner can resubmit")


def _grant_owner_role(user_id: int) -> None:
    user = db.session.get(User, user_id)
    if user is None:
        return
    role = Role.query.filter_by(name=ROLE_AGENCY_OWNER).first()
    if role is None:
        role = Role(name=ROLE_AGENCY_OWNER)
        db.session.add(role)
        db.session.flush()
    if role not in user.roles:
        user.roles.append(role)


def agency_for_owner(user_id: int) -> Optional[Agency]:
    return Agency.query.filter_by(owner_user_id=user_id).first()


def submit_application(caller: Optional[Caller], data: dict) -> Agency:
    """Create the caller's agency in PENDING, or resubmit a REJECTED one."""
    if caller is None:
        raise NotAuthenticated()

    cleaned = _clean_application(data or {})
    agency = agency_for_owner(caller.user_id)
    current = agency.verification_status if agency else None
    _check_transition(current, PENDING, caller, agency)

    if agency is None:
        agency = Agency(owner_user_id=caller.user_id, **cleaned)
        db.session.add(agency)
    else:
        for name, value in cleaned.items():
            setattr(agency, name, value)
    agency.verification_status = PENDING
    agency.rejection_reason = None
    agency.reviewed_by = None
    agency.reviewed_at = None

    _grant_owner_role(caller.user_id)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        # uq_agency_owner: a parallel submission created the agency first
        raise InvalidTransition("Agency application already submitted")
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError(str(exc))

    current_app.logger.info("agency %s submitted for review by user %s", agency.id, caller.user_id)
    return agency


def _review(caller: Optional[Caller], agency_id: int, target: str, reason: Optional[str]) -> Agency:
    if caller is None:
        raise NotAuthenticated()
    agency = db.session.get(Agency, agency_id)
    if agency is None:
        raise AgencyNotFound()

    _check_transition(agency.verification_status, target, caller, agency)

    agency.verification_status = target
    agency.rejection_reason = reason if target == REJECTED else None
    agency.reviewed_by = caller.user_id
    agency.reviewed_at = datetime.utcnow()
    commit()

    current_app.logger.info("agency %s %s by admin %s", agency.id, target.lower(), caller.user_id)
    return agency


def verify_agency(caller: Optional[Caller], agency_id: int) -> Agency:
    return _review(caller, agency_id, VERIFIED, None)


def reject_agency(caller: Optional[Caller], agency_id: int, reason: str) -> Agency:
    if caller is None:
        raise NotAuthenticated()
    if not caller.is_admin:
        raise Forbidden("Only an admin can review agencies")
    reason = reason.strip() if isinstance(reason, str) else ""
    if not reason:
        raise InvalidInput("A rejection reason is required")
    if len(reason) > 255:
        raise InvalidInput("Rejection reason is too long")
    return _review(caller, agency_id, REJECTED, reason)


def serialize_agency(a: Agency, include_documents: bool = True) -> dict:
    out = {
        "id": a.id,
        "owner_user_id": a.owner_user_id,
        "agency_name": a.agency_name,
        "address": a.address,
        "city": a.city,
        "wilaya": a.wilaya,
        "trade_register_number": a.trade_register_number,
        "verification_status": a.verification_status,
        "rejection_reason": a.rejection_reason,
        "reviewed_at": a.reviewed_at.isoformat() if a.reviewed_at else None,
        "created_at": a.created_at.isoformat() if a.created_at else None,
    }
    if include_documents:
        out.update({name: getattr(a, name) for name in REQUIRED_DOCUMENTS})
    return out
