from datetime import date
from typing import Optional

from sqlalchemy import func

from models import db
from models.agency import Agency
from models.booking import Booking
from models.user import User
from models.vehicle import Vehicle


def agency_stats(agency: Agency, today: Optional[date] = None) -> dict:
    today = today or date.today()
    confirmed = (
        db.session.query(Booking)
        .join(Vehicle, Booking.vehicle_id == Vehicle.id)
        .filter(Vehicle.agency_id == agency.id, Booking.status == "CONFIRMED")
    )
    listings = Vehicle.query.filter_by(agency_id=agency.id).count()
    active = confirmed.filter(Booking.start_date <= today, Booking.end_date > today).count()
    revenue = confirmed.with_entities(func.coalesce(func.sum(Booking.total_price), 0)).scalar()
    return {
        "listings": listings,
        "active_rentals": active,
        "total_revenue": int(revenue or 0),
    }


def admin_stats() -> dict:
    revenue = (
        db.session.query(func.coalesce(func.sum(Booking.total_price), 0))
        .filter(Booking.status == "CONFIRMED")
        .scalar()
    )
    return {
        "users": User.query.count(),
        "agencies": Agency.query.count(),
        "pending_agencies": Agency.query.filter_by(verification_status="PENDING").count(),
        "bookings": Booking.query.count(),
        "listings": Vehicle.query.count(),
        "revenue": int(revenue or 0),
    }
