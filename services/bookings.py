"""Writing and cancelling bookings.

create_booking re-checks availability at write time and then inserts the
booking together with one BookingDay claim per rented day. The unique
(vehicle_id, day) constraint on the claims makes the check-then-insert
atomic: when two requests race for overlapping dates, the second commit
fails with an IntegrityError and is reported as VehicleUnavailable.
"""
from datetime import date, datetime
from typing import Optional

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.agency import Agency
from models.booking import Booking, BookingDay
from models.vehicle import Vehicle
from services.availability import is_vehicle_available
from services.errors import (
    BookingNotFound,
    Forbidden,
    InvalidTransition,
    NotAuthenticated,
    PersistenceError,
    VehicleNotFound,
    VehicleUnavailable,
)
from services.identity import Caller
from services.persistence import commit
from services.pricing import iter_days, price, validate_rental


def _lock_vehicle(vehicle_id: int) -> Optional[Vehicle]:
    # FOR UPDATE serialises writers on the same vehicle where the backend supports it
    stmt = select(Vehicle).where(Vehicle.id == vehicle_id).with_for_update()
    return db.session.execute(stmt).scalar_one_or_none()


def create_booking(caller: Optional[Caller], vehicle_id: int, start: date, end: date) -> Booking:
    if caller is None:
        raise NotAuthenticated()
    validate_rental(start, end, current_app.config["MAX_RENTAL_DAYS"])

    vehicle = _lock_vehicle(vehicle_id)
    if vehicle is None:
        db.session.rollback()
        raise VehicleNotFound()

    if not is_vehicle_available(vehicle_id, start, end):
        db.session.rollback()
        raise VehicleUnavailable()

    booking = Booking(
        user_id=caller.user_id,
        vehicle_id=vehicle_id,
        start_date=start,
        end_date=end,
        total_price=price(vehicle.daily_rate, start, end),
        status="CONFIRMED",
    )
    db.session.add(booking)
    for day in iter_days(start, end):
        db.session.add(BookingDay(booking=booking, vehicle_id=vehicle_id, day=day))

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        # uq_booking_day_vehicle triggers here: a concurrent booking won the dates
        current_app.logger.info(
            "booking race lost vehicle=%s range=%s..%s user=%s",
            vehicle_id, start, end, caller.user_id,
        )
        raise VehicleUnavailable()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError(str(exc))

    current_app.logger.info(
        "booking %s confirmed vehicle=%s range=%s..%s total=%s",
        booking.id, vehicle_id, start, end, booking.total_price,
    )
    return booking


def cancel_booking(caller: Optional[Caller], booking_id: int, reason: Optional[str] = None,
                   as_admin: bool = False) -> Booking:
    """Move a CONFIRMED booking to CANCELLED and release its reserved days.

    Renters may cancel their own booking until the pickup day; admins
    (with as_admin) may cancel any confirmed booking.
    """
    if caller is None:
        raise NotAuthenticated()

    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise BookingNotFound()
    if as_admin and not caller.is_admin:
        raise Forbidden()
    if not as_admin and booking.user_id != caller.user_id:
        # don't reveal other renters' bookings
        raise BookingNotFound()

    if booking.status != "CONFIRMED":
        raise InvalidTransition("Booking not cancellable")
    if not as_admin and booking.start_date <= date.today():
        raise InvalidTransition("Cancellation not allowed once the rental has started")

    booking.status = "CANCELLED"
    booking.cancelled_at = datetime.utcnow()
    booking.cancel_reason = reason
    BookingDay.query.filter_by(booking_id=booking.id).delete(synchronize_session=False)

    commit()
    return booking


def bookings_for_renter(caller: Caller, status: Optional[str] = None, limit: int = 200):
    q = Booking.query.filter_by(user_id=caller.user_id)
    if status:
        q = q.filter_by(status=status.upper())
    return q.order_by(Booking.start_date.desc(), Booking.id.desc()).limit(limit).all()


def bookings_for_agency(agency: Agency, status: Optional[str] = None, limit: int = 200):
    q = Booking.query.join(Vehicle, Booking.vehicle_id == Vehicle.id).filter(Vehicle.agency_id == agency.id)
    if status:
        q = q.filter(Booking.status == status.upper())
    return q.order_by(Booking.start_date.desc(), Booking.id.desc()).limit(limit).all()


def all_bookings(status: Optional[str] = None, limit: int = 200):
    q = Booking.query
    if status:
        q = q.filter(Booking.status == status.upper())
    return q.order_by(Booking.created_at.desc(), Booking.id.desc()).limit(limit).all()


def serialize_booking(b: Booking, include_vehicle: bool = True, include_renter: bool = False) -> dict:
    out = {
        "id": b.id,
        "vehicle_id": b.vehicle_id,
        "user_id": b.user_id,
        "start_date": b.start_date.isoformat(),
        "end_date": b.end_date.isoformat(),
        "total_price": b.total_price,
        "status": b.status,
        "created_at": b.created_at.isoformat() if b.created_at else None,
        "cancelled_at": b.cancelled_at.isoformat() if b.cancelled_at else None,
        "cancel_reason": b.cancel_reason,
    }
    if include_vehicle and b.vehicle is not None:
        out["vehicle"] = {
            "id": b.vehicle.id,
            "make": b.vehicle.make,
            "model": b.vehicle.model,
            "agency_id": b.vehicle.agency_id,
        }
    if include_renter:
        out["renter"] = {
            "id": b.renter.id,
            "email": b.renter.email,
            "full_name": b.renter.full_name,
            "phone_number": b.renter.phone_number,
        } if b.renter else None
    return out
