from datetime import datetime
from models.db import db

class Agency(db.Model):
    __tablename__ = "agencies"

    id = db.Column(db.Integer, primary_key=True)
    owner_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    agency_name = db.Column(db.String(120), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(120), nullable=False)
    wilaya = db.Column(db.String(120), nullable=False)
    trade_register_number = db.Column(db.String(60), nullable=False)

    # verification documents (public URLs from object storage)
    trade_register_url = db.Column(db.String(500), nullable=False)
    id_card_url = db.Column(db.String(500), nullable=False)
    selfie_url = db.Column(db.String(500), nullable=False)

    verification_status = db.Column(db.String(20), nullable=False, default="PENDING", index=True)
    # status values: PENDING, VERIFIED, REJECTED
    rejection_reason = db.Column(db.String(255), nullable=True)

    reviewed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    owner = db.relationship("User", foreign_keys=[owner_user_id])
    vehicles = db.relationship("Vehicle", back_populates="agency", lazy=True)

    __table_args__ = (
        # One owner <-> one agency
        db.UniqueConstraint("owner_user_id", name="uq_agency_owner"),
    )
