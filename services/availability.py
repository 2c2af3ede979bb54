"""Which vehicles can be booked for a date range.

A vehicle is available for [start, end) when its agency is VERIFIED, its
owner has not switched it off, and no CONFIRMED booking overlaps the range.
The whole rule is one SQL statement so that it is evaluated against a single
snapshot of the committed bookings.
"""
from datetime import date
from typing import Optional, Set

from sqlalchemy import and_, exists, func, select

from models import db
from models.agency import Agency
from models.booking import Booking
from models.vehicle import Vehicle
from services.pricing import validate_range


def _overlapping_booking(start: date, end: date):
    return exists().where(
        Booking.vehicle_id == Vehicle.id,
        Booking.status == "CONFIRMED",
        Booking.start_date < end,
        Booking.end_date > start,
    )


def visible_vehicles_stmt():
    """Vehicles a renter may see at all, regardless of dates."""
    return (
        select(Vehicle)
        .join(Agency, Vehicle.agency_id == Agency.id)
        .where(
            Agency.verification_status == "VERIFIED",
            Vehicle.is_available.is_(True),
        )
    )


def available_vehicles_stmt(start: date, end: date):
    validate_range(start, end)
    return visible_vehicles_stmt().where(~_overlapping_booking(start, end))


def available_vehicles(start: date, end: date) -> Set[int]:
    stmt = available_vehicles_stmt(start, end).with_only_columns(Vehicle.id)
    return set(db.session.execute(stmt).scalars().all())


def is_vehicle_available(vehicle_id: int, start: date, end: date) -> bool:
    stmt = (
        available_vehicles_stmt(start, end)
        .with_only_columns(Vehicle.id)
        .where(Vehicle.id == vehicle_id)
    )
    return db.session.execute(stmt).first() is not None


def is_publicly_visible(vehicle: Vehicle) -> bool:
    agency = vehicle.agency
    return bool(vehicle.is_available and agency and agency.verification_status == "VERIFIED")


def search_vehicles(
    start: Optional[date] = None,
    end: Optional[date] = None,
    make: Optional[str] = None,
    model: Optional[str] = None,
    fuel_type: Optional[str] = None,
    transmission: Optional[str] = None,
    min_seats: Optional[int] = None,
    max_rate: Optional[int] = None,
    limit: int = 200,
):
    """Catalogue search; restricted to the available set when dates are given."""
    if start is not None or end is not None:
        stmt = available_vehicles_stmt(start, end)
    else:
        stmt = visible_vehicles_stmt()

    filters = []
    # exact, case-insensitive: % and _ typed by the user are not wildcards
    if make:
        filters.append(func.lower(Vehicle.make) == make.lower())
    if model:
        filters.append(func.lower(Vehicle.model) == model.lower())
    if fuel_type:
        filters.append(Vehicle.fuel_type == fuel_type.upper())
    if transmission:
        filters.append(Vehicle.transmission == transmission.upper())
    if min_seats is not None:
        filters.append(Vehicle.seats >= min_seats)
    if max_rate is not None:
        filters.append(Vehicle.daily_rate <= max_rate)
    if filters:
        stmt = stmt.where(and_(*filters))

    stmt = stmt.order_by(Vehicle.daily_rate.asc(), Vehicle.id.asc()).limit(limit)
    return db.session.execute(stmt).scalars().all()
