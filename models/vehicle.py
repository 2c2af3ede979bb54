from datetime import datetime
from models.db import db

FUEL_TYPES = ("GASOLINE", "DIESEL", "HYBRID", "ELECTRIC")
TRANSMISSIONS = ("MANUAL", "AUTOMATIC")

class Vehicle(db.Model):
    __tablename__ = "vehicles"

    id = db.Column(db.Integer, primary_key=True)
    agency_id = db.Column(db.Integer, db.ForeignKey("agencies.id"), nullable=False, index=True)

    make = db.Column(db.String(60), nullable=False)
    model = db.Column(db.String(60), nullable=False)
    year = db.Column(db.Integer, nullable=False)

    daily_rate = db.Column(db.Integer, nullable=False)  # smallest currency unit
    seats = db.Column(db.Integer, nullable=False)
    fuel_type = db.Column(db.String(20), nullable=False)
    transmission = db.Column(db.String(20), nullable=False)

    # manual owner toggle, independent of date-based bookings
    is_available = db.Column(db.Boolean, default=True, nullable=False)

    description = db.Column(db.Text, nullable=True)
    car_registration_url = db.Column(db.String(500), nullable=False)
    image_urls = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    agency = db.relationship("Agency", back_populates="vehicles")

    __table_args__ = (
        db.CheckConstraint("daily_rate > 0", name="ck_vehicle_daily_rate_positive"),
        db.CheckConstraint("seats > 0", name="ck_vehicle_seats_positive"),
    )
