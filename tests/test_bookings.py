"""
Booking writer: write-time re-check, price fixed at creation, storage-level
protection against two overlapping confirmed bookings.
"""
import random
import threading
from datetime import date, timedelta

import pytest

import services.bookings as bookings_mod
from app import create_app
from conftest import AppTestConfig, as_caller
from models import db
from models.agency import Agency
from models.booking import Booking, BookingDay
from models.user import User
from models.vehicle import Vehicle
from services.bookings import cancel_booking, create_booking
from services.errors import (
    BookingNotFound,
    Forbidden,
    InvalidDateRange,
    InvalidInput,
    InvalidTransition,
    NotAuthenticated,
    VehicleNotFound,
    VehicleUnavailable,
)
from services.identity import Caller


def _overlaps(a, b):
    return a.start_date < b.end_date and b.start_date < a.end_date


def test_booking_is_confirmed_with_computed_price(make_agency, make_vehicle, make_user):
    vehicle = make_vehicle(make_agency(), daily_rate=5000)
    renter = make_user()

    booking = create_booking(as_caller(renter), vehicle.id, date(2024, 1, 1), date(2024, 1, 5))

    assert booking.status == "CONFIRMED"
    assert booking.total_price == 20000
    assert booking.user_id == renter.id
    assert BookingDay.query.filter_by(booking_id=booking.id).count() == 4


def test_inverted_range_writes_nothing(make_agency, make_vehicle, make_user):
    vehicle = make_vehicle(make_agency())

    with pytest.raises(InvalidDateRange):
        create_booking(as_caller(make_user()), vehicle.id, date(2024, 1, 5), date(2024, 1, 5))
    with pytest.raises(InvalidDateRange):
        create_booking(as_caller(make_user(email="b@example.com")), vehicle.id, date(2024, 1, 6), date(2024, 1, 5))

    assert Booking.query.count() == 0
    assert BookingDay.query.count() == 0


def test_missing_identity_rejected(make_agency, make_vehicle):
    vehicle = make_vehicle(make_agency())
    with pytest.raises(NotAuthenticated):
        create_booking(None, vehicle.id, date(2024, 1, 1), date(2024, 1, 2))


def test_unknown_vehicle(make_user):
    with pytest.raises(VehicleNotFound):
        create_booking(as_caller(make_user()), 999, date(2024, 1, 1), date(2024, 1, 2))


def test_overlap_rejected_without_write(make_agency, make_vehicle, make_user):
    vehicle = make_vehicle(make_agency())
    create_booking(as_caller(make_user()), vehicle.id, date(2024, 1, 3), date(2024, 1, 6))

    with pytest.raises(VehicleUnavailable):
        create_booking(as_caller(make_user(email="late@example.com")), vehicle.id,
                       date(2024, 1, 5), date(2024, 1, 8))
    assert Booking.query.count() == 1


def test_unverified_agency_cannot_be_booked(make_agency, make_vehicle, make_user):
    vehicle = make_vehicle(make_agency(status="PENDING"))
    with pytest.raises(VehicleUnavailable):
        create_booking(as_caller(make_user()), vehicle.id, date(2024, 1, 1), date(2024, 1, 3))


def test_lost_race_is_reported_as_unavailable(monkeypatch, make_agency, make_vehicle, make_user):
    """
    Both requests pass the availability check (as if they read before either
    committed); the unique day claims must still let only one through.
    """
    vehicle = make_vehicle(make_agency())
    monkeypatch.setattr(bookings_mod, "is_vehicle_available", lambda *args: True)

    first = create_booking(as_caller(make_user(email="a@example.com")), vehicle.id,
                           date(2024, 1, 1), date(2024, 1, 5))
    with pytest.raises(VehicleUnavailable):
        create_booking(as_caller(make_user(email="b@example.com")), vehicle.id,
                       date(2024, 1, 4), date(2024, 1, 8))

    confirmed = Booking.query.filter_by(vehicle_id=vehicle.id, status="CONFIRMED").all()
    assert [b.id for b in confirmed] == [first.id]
    assert BookingDay.query.count() == 4


def test_confirmed_bookings_never_overlap(monkeypatch, make_agency, make_vehicle, make_user):
    vehicle = make_vehicle(make_agency())
    renter = as_caller(make_user())
    rng = random.Random(1234)
    base = date(2024, 3, 1)

    # half the attempts bypass the read check to exercise the constraint path
    real_check = bookings_mod.is_vehicle_available
    for i in range(60):
        start = base + timedelta(days=rng.randint(0, 60))
        end = start + timedelta(days=rng.randint(1, 6))
        if i % 2:
            monkeypatch.setattr(bookings_mod, "is_vehicle_available", lambda *args: True)
        else:
            monkeypatch.setattr(bookings_mod, "is_vehicle_available", real_check)
        try:
            create_booking(renter, vehicle.id, start, end)
        except VehicleUnavailable:
            pass

    confirmed = Booking.query.filter_by(vehicle_id=vehicle.id, status="CONFIRMED").all()
    assert confirmed
    for i, a in enumerate(confirmed):
        for b in confirmed[i + 1:]:
            assert not _overlaps(a, b)


def test_cancel_releases_dates(make_agency, make_vehicle, make_user):
    vehicle = make_vehicle(make_agency())
    renter = make_user()
    start = date.today() + timedelta(days=10)
    booking = create_booking(as_caller(renter), vehicle.id, start, start + timedelta(days=3))

    cancelled = cancel_booking(as_caller(renter), booking.id, reason="plans changed")
    assert cancelled.status == "CANCELLED"
    assert cancelled.cancel_reason == "plans changed"
    assert cancelled.total_price == booking.total_price
    assert BookingDay.query.count() == 0

    again = create_booking(as_caller(make_user(email="next@example.com")), vehicle.id,
                           start, start + timedelta(days=3))
    assert again.status == "CONFIRMED"


def test_cancel_rules(make_agency, make_vehicle, make_user, admin):
    vehicle = make_vehicle(make_agency())
    renter = make_user()
    stranger = make_user(email="stranger@example.com")
    start = date.today() + timedelta(days=5)
    booking = create_booking(as_caller(renter), vehicle.id, start, start + timedelta(days=2))

    with pytest.raises(BookingNotFound):
        cancel_booking(as_caller(stranger), booking.id)
    with pytest.raises(Forbidden):
        cancel_booking(as_caller(stranger), booking.id, as_admin=True)

    cancel_booking(as_caller(admin), booking.id, reason="fraud", as_admin=True)
    with pytest.raises(InvalidTransition):
        cancel_booking(as_caller(renter), booking.id)


def test_renter_cannot_cancel_started_rental(make_agency, make_vehicle, make_user):
    vehicle = make_vehicle(make_agency())
    renter = make_user()
    today = date.today()
    booking = create_booking(as_caller(renter), vehicle.id, today, today + timedelta(days=2))

    with pytest.raises(InvalidTransition):
        cancel_booking(as_caller(renter), booking.id)


def test_rental_length_is_capped(app, make_agency, make_vehicle, make_user):
    vehicle = make_vehicle(make_agency(), daily_rate=5000)
    caller = as_caller(make_user())
    start = date(2024, 1, 1)
    limit = app.config["MAX_RENTAL_DAYS"]

    with pytest.raises(InvalidInput):
        create_booking(caller, vehicle.id, start, date(2074, 1, 1))
    with pytest.raises(InvalidInput):
        create_booking(caller, vehicle.id, start, start + timedelta(days=limit + 1))
    assert Booking.query.count() == 0
    assert BookingDay.query.count() == 0

    booking = create_booking(caller, vehicle.id, start, start + timedelta(days=limit))
    assert booking.total_price == limit * 5000
    assert BookingDay.query.count() == limit


def test_quote_refuses_overlong_rentals(client, make_agency, make_vehicle):
    vehicle = make_vehicle(make_agency())

    resp = client.get(f"/vehicles/{vehicle.id}/quote?start_date=0001-01-01&end_date=9999-12-31")

    assert resp.status_code == 400


class FileDbConfig(AppTestConfig):
    SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"check_same_thread": False, "timeout": 30}}


@pytest.fixture
def file_app(tmp_path):
    config = type("RaceDbConfig", (FileDbConfig,), {
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'race.db'}",
    })
    app = create_app(config)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


def test_concurrent_writers_only_one_wins(file_app):
    writers = 8
    with file_app.app_context():
        owner = User(email="owner@example.com", password_hash="x")
        renters = [User(email=f"r{i}@example.com", password_hash="x") for i in range(writers)]
        db.session.add_all([owner] + renters)
        db.session.flush()
        agency = Agency(
            owner_user_id=owner.id, agency_name="Race Cars", address="1 Rue", city="Oran",
            wilaya="Oran", trade_register_number="TR-1",
            trade_register_url="https://files.example.com/tr.png",
            id_card_url="https://files.example.com/id.png",
            selfie_url="https://files.example.com/selfie.png",
            verification_status="VERIFIED",
        )
        db.session.add(agency)
        db.session.flush()
        vehicle = Vehicle(
            agency_id=agency.id, make="Kia", model="Picanto", year=2020, daily_rate=3000,
            seats=4, fuel_type="GASOLINE", transmission="MANUAL",
            car_registration_url="https://files.example.com/cg.png", image_urls=[],
        )
        db.session.add(vehicle)
        db.session.commit()
        vehicle_id = vehicle.id
        callers = [Caller(user_id=r.id, roles=frozenset({"RENTER"})) for r in renters]

    barrier = threading.Barrier(writers)
    outcomes = []
    lock = threading.Lock()

    def attempt(caller, offset):
        with file_app.app_context():
            start = date(2024, 6, 1) + timedelta(days=offset)
            barrier.wait()
            try:
                create_booking(caller, vehicle_id, start, start + timedelta(days=4))
                result = "ok"
            except VehicleUnavailable:
                result = "unavailable"
            except Exception as exc:
                result = repr(exc)
            with lock:
                outcomes.append(result)

    # every requested range overlaps every other one
    threads = [threading.Thread(target=attempt, args=(c, i % 2)) for i, c in enumerate(callers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(outcomes) == ["ok"] + ["unavailable"] * (writers - 1)
    with file_app.app_context():
        assert Booking.query.filter_by(vehicle_id=vehicle_id, status="CONFIRMED").count() == 1
        assert BookingDay.query.filter_by(vehicle_id=vehicle_id).count() == 4
