from datetime import datetime
from models.db import db

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey("vehicles.id"), nullable=False, index=True)

    # half-open range: start_date is the pickup day, end_date the return day
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)

    total_price = db.Column(db.BigInteger, nullable=False)  # smallest unit, fixed at creation

    status = db.Column(db.String(20), nullable=False, default="CONFIRMED")
    # status values: CONFIRMED, CANCELLED

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(120), nullable=True)

    vehicle = db.relationship("Vehicle")
    renter = db.relationship("User")
    days = db.relationship("BookingDay", back_populates="booking", lazy=True)

    __table_args__ = (
        db.CheckConstraint("start_date < end_date", name="ck_booking_range"),
        db.Index("ix_bookings_vehicle_range", "vehicle_id", "start_date", "end_date"),
    )


class BookingDay(db.Model):
    """One reserved calendar day of a confirmed booking.

    The unique (vehicle_id, day) pair is what makes overlapping confirmed
    bookings impossible, whatever the isolation level of the database.
    Rows are deleted when their booking is cancelled.
    """

    __tablename__ = "booking_days"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey("vehicles.id"), nullable=False)
    day = db.Column(db.Date, nullable=False)

    booking = db.relationship("Booking", back_populates="days")

    __table_args__ = (
        # Hard business-rule: a vehicle can be reserved once per day (prevents double booking)
        db.UniqueConstraint("vehicle_id", "day", name="uq_booking_day_vehicle"),
    )
