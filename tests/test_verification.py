from datetime import date

import pytest

from conftest import as_caller
from models import db
from models.user import User
from services.availability import available_vehicles
from services.errors import Forbidden, InvalidInput, InvalidTransition, NotAuthenticated
from services.verification import reject_agency, submit_application, verify_agency

APPLICATION = {
    "agency_name": "Sahara Cars",
    "address": "12 Boulevard Zirout Youcef",
    "city": "Oran",
    "wilaya": "Oran",
    "trade_register_number": "31/00-1234567B",
    "trade_register_url": "https://files.example.com/rc.pdf",
    "id_card_url": "https://files.example.com/cni.jpg",
    "selfie_url": "https://files.example.com/selfie.jpg",
}


def test_application_starts_pending_and_grants_owner_role(make_user):
    user = make_user()

    agency = submit_application(as_caller(user), dict(APPLICATION))

    assert agency.verification_status == "PENDING"
    assert agency.owner_user_id == user.id
    assert "AGENCY_OWNER" in db.session.get(User, user.id).role_names


def test_application_requires_documents(make_user):
    data = dict(APPLICATION, selfie_url="", trade_register_url="not a url")

    with pytest.raises(InvalidInput) as exc:
        submit_application(as_caller(make_user()), data)
    assert "selfie_url" in exc.value.message
    assert "trade_register_url" in exc.value.message


def test_anonymous_application_rejected(app):
    with pytest.raises(NotAuthenticated):
        submit_application(None, dict(APPLICATION))


def test_second_application_while_pending_rejected(make_user):
    caller = as_caller(make_user())
    submit_application(caller, dict(APPLICATION))

    with pytest.raises(InvalidTransition):
        submit_application(caller, dict(APPLICATION))


def test_only_admin_can_review(make_agency, make_user):
    agency = make_agency(status="PENDING")
    owner = db.session.get(User, agency.owner_user_id)

    with pytest.raises(Forbidden):
        verify_agency(as_caller(owner), agency.id)
    with pytest.raises(Forbidden):
        reject_agency(as_caller(make_user()), agency.id, "nope")


def test_verification_makes_vehicles_bookable(make_agency, make_vehicle, admin):
    agency = make_agency(status="PENDING")
    vehicle = make_vehicle(agency)
    window = (date(2024, 4, 1), date(2024, 4, 3))
    assert vehicle.id not in available_vehicles(*window)

    verified = verify_agency(as_caller(admin), agency.id)

    assert verified.verification_status == "VERIFIED"
    assert verified.reviewed_by == admin.id
    assert vehicle.id in available_vehicles(*window)


def test_rejection_then_resubmission(make_user, make_vehicle, admin):
    owner = make_user()
    agency = submit_application(as_caller(owner), dict(APPLICATION))
    vehicle = make_vehicle(agency)

    rejected = reject_agency(as_caller(admin), agency.id, "missing trade register")
    assert rejected.verification_status == "REJECTED"
    assert rejected.rejection_reason == "missing trade register"
    assert vehicle.id not in available_vehicles(date(2024, 4, 1), date(2024, 4, 3))

    resubmitted = submit_application(
        as_caller(owner), dict(APPLICATION, trade_register_url="https://files.example.com/rc-v2.pdf")
    )
    assert resubmitted.id == agency.id
    assert resubmitted.verification_status == "PENDING"
    assert resubmitted.rejection_reason is None
    assert resubmitted.trade_register_url.endswith("rc-v2.pdf")


@pytest.mark.parametrize("reason", [None, "", "   ", "x" * 256])
def test_rejection_reason_required_and_bounded(make_agency, admin, reason):
    agency = make_agency(status="PENDING")

    with pytest.raises(InvalidInput):
        reject_agency(as_caller(admin), agency.id, reason)
    assert agency.verification_status == "PENDING"


@pytest.mark.parametrize("status", ["VERIFIED", "REJECTED"])
def test_reviewed_agency_cannot_be_reviewed_again(make_agency, admin, status):
    agency = make_agency(status=status, reason="bad scan" if status == "REJECTED" else None)

    with pytest.raises(InvalidTransition):
        verify_agency(as_caller(admin), agency.id)
    with pytest.raises(InvalidTransition):
        reject_agency(as_caller(admin), agency.id, "again")


def test_verified_agency_cannot_resubmit(make_agency):
    agency = make_agency(status="VERIFIED")
    owner = db.session.get(User, agency.owner_user_id)

    with pytest.raises(InvalidTransition):
        submit_application(as_caller(owner), dict(APPLICATION))


@pytest.mark.parametrize("reason", [None, "", "missing trade register"])
def test_rejection_checks_caller_before_reason(make_agency, make_user, reason):
    agency = make_agency(status="PENDING")

    with pytest.raises(NotAuthenticated):
        reject_agency(None, agency.id, reason)
    with pytest.raises(Forbidden):
        reject_agency(as_caller(make_user()), agency.id, reason)
    assert agency.verification_status == "PENDING"
