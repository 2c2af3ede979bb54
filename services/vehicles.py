from datetime import date
from typing import Optional

from flask import current_app

from models import db
from models.agency import Agency
from models.vehicle import FUEL_TYPES, TRANSMISSIONS, Vehicle
from services.availability import is_publicly_visible
from services.errors import (
    Forbidden,
    InvalidInput,
    NotAuthenticated,
    VehicleNotFound,
)
from services.identity import Caller
from services.persistence import commit
from services.verification import agency_for_owner
from utils.validation import is_url

MIN_YEAR = 1950


def _positive_int(data: dict, name: str, maximum: Optional[int] = None) -> int:
    value = data.get(name)
    # money and counts are whole numbers: 4999.99 or "5000" are rejected, not coerced
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise InvalidInput(f"{name} must be a positive integer")
    if maximum is not None and value > maximum:
        raise InvalidInput(f"{name} must be at most {maximum}")
    return value


def _text(data: dict, name: str, max_len: int) -> str:
    value = data.get(name)
    value = value.strip() if isinstance(value, str) else ""
    if not value:
        raise InvalidInput(f"{name} is required")
    if len(value) > max_len:
        raise InvalidInput(f"{name} is too long")
    return value


def _choice(data: dict, name: str, choices) -> str:
    value = (data.get(name) or "")
    value = value.strip().upper() if isinstance(value, str) else ""
    if value not in choices:
        raise InvalidInput(f"{name} must be one of {', '.join(choices)}")
    return value


def _clean_vehicle(data: dict, partial: bool = False) -> dict:
    """Validate vehicle fields. With partial=True only the given keys are checked."""
    validators = {
        "make": lambda: _text(data, "make", 60),
        "model": lambda: _text(data, "model", 60),
        "year": lambda: _positive_int(data, "year"),
        "daily_rate": lambda: _positive_int(data, "daily_rate", current_app.config["MAX_DAILY_RATE"]),
        "seats": lambda: _positive_int(data, "seats", current_app.config["MAX_SEATS"]),
        "fuel_type": lambda: _choice(data, "fuel_type", FUEL_TYPES),
        "transmission": lambda: _choice(data, "transmission", TRANSMISSIONS),
    }
    cleaned = {}
    for name, check in validators.items():
        if partial and name not in data:
            continue
        cleaned[name] = check()

    if "year" in cleaned and not (MIN_YEAR <= cleaned["year"] <= date.today().year + 1):
        raise InvalidInput("year is out of range")

    if not partial or "car_registration_url" in data:
        if not is_url(data.get("car_registration_url")):
            raise InvalidInput("car_registration_url is required")
        cleaned["car_registration_url"] = data["car_registration_url"].strip()

    if "image_urls" in data:
        urls = data.get("image_urls") or []
        if not isinstance(urls, list) or not all(is_url(u) for u in urls):
            raise InvalidInput("image_urls must be a list of URLs")
        cleaned["image_urls"] = [u.strip() for u in urls]
    elif not partial:
        cleaned["image_urls"] = []

    if "description" in data:
        desc = data.get("description")
        cleaned["description"] = desc.strip() if isinstance(desc, str) and desc.strip() else None

    return cleaned


def _require_owned_agency(caller: Optional[Caller]) -> Agency:
    if caller is None:
        raise NotAuthenticated()
    agency = agency_for_owner(caller.user_id)
    if agency is None:
        raise Forbidden("Create your agency before listing vehicles")
    return agency


def _load_for_write(caller: Optional[Caller], vehicle_id: int) -> Vehicle:
    if caller is None:
        raise NotAuthenticated()
    vehicle = db.session.get(Vehicle, vehicle_id)
    if vehicle is None:
        raise VehicleNotFound()
    if caller.is_admin:
        return vehicle
    if vehicle.agency is None or vehicle.agency.owner_user_id != caller.user_id:
        raise Forbidden("Not your vehicle")
    return vehicle


def create_vehicle(caller: Optional[Caller], data: dict) -> Vehicle:
    agency = _require_owned_agency(caller)
    cleaned = _clean_vehicle(data or {})
    vehicle = Vehicle(agency_id=agency.id, is_available=True, **cleaned)
    db.session.add(vehicle)
    commit()
    current_app.logger.info("vehicle %s listed by agency %s", vehicle.id, agency.id)
    return vehicle


def update_vehicle(caller: Optional[Caller], vehicle_id: int, data: dict) -> Vehicle:
    vehicle = _load_for_write(caller, vehicle_id)
    cleaned = _clean_vehicle(data or {}, partial=True)
    if not cleaned:
        raise InvalidInput("Nothing to update")
    for name, value in cleaned.items():
        setattr(vehicle, name, value)
    commit()
    return vehicle


def set_availability(caller: Optional[Caller], vehicle_id: int, is_available) -> Vehicle:
    if not isinstance(is_available, bool):
        raise InvalidInput("is_available must be true or false")
    vehicle = _load_for_write(caller, vehicle_id)
    vehicle.is_available = is_available
    commit()
    return vehicle


def get_vehicle(vehicle_id: int, caller: Optional[Caller] = None) -> Vehicle:
    vehicle = db.session.get(Vehicle, vehicle_id)
    if vehicle is None:
        raise VehicleNotFound()
    if is_publicly_visible(vehicle):
        return vehicle
    if caller is not None and (
        caller.is_admin or (vehicle.agency and vehicle.agency.owner_user_id == caller.user_id)
    ):
        return vehicle
    raise VehicleNotFound()


def vehicles_for_agency(agency: Agency):
    return Vehicle.query.filter_by(agency_id=agency.id).order_by(Vehicle.created_at.desc()).all()


def serialize_vehicle(v: Vehicle) -> dict:
    return {
        "id": v.id,
        "agency_id": v.agency_id,
        "agency_name": v.agency.agency_name if v.agency else None,
        "make": v.make,
        "model": v.model,
        "year": v.year,
        "daily_rate": v.daily_rate,
        "seats": v.seats,
        "fuel_type": v.fuel_type,
        "transmission": v.transmission,
        "is_available": v.is_available,
        "description": v.description,
        "image_urls": list(v.image_urls or []),
        "created_at": v.created_at.isoformat() if v.created_at else None,
    }
