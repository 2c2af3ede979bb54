import pytest

from app import create_app
from config import Config
from models import db
from models.agency import Agency
from models.user import Role, User
from models.vehicle import Vehicle
from security.password import hash_password
from services.identity import Caller

PASSWORD = "secret-pass-1"


class AppTestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    CREATE_TABLES = True
    BCRYPT_ROUNDS = 4
    LOG_LEVEL = "WARNING"


@pytest.fixture
def app():
    app = create_app(AppTestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(email="renter@example.com", roles=("RENTER",), suspended=False, full_name=None):
        user = User(
            email=email,
            password_hash=hash_password(PASSWORD),
            full_name=full_name,
            is_suspended=suspended,
        )
        user.roles = Role.query.filter(Role.name.in_(roles)).all()
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def make_agency(app, make_user):
    counter = {"n": 0}

    def _make(owner=None, status="VERIFIED", reason=None):
        counter["n"] += 1
        if owner is None:
            owner = make_user(email=f"owner{counter['n']}@example.com", roles=("RENTER", "AGENCY_OWNER"))
        agency = Agency(
            owner_user_id=owner.id,
            agency_name=f"Agency {counter['n']}",
            address="1 Rue Didouche",
            city="Alger Centre",
            wilaya="Alger",
            trade_register_number=f"TR-{counter['n']:04d}",
            trade_register_url="https://files.example.com/tr.png",
            id_card_url="https://files.example.com/id.png",
            selfie_url="https://files.example.com/selfie.png",
            verification_status=status,
            rejection_reason=reason,
        )
        db.session.add(agency)
        db.session.commit()
        return agency
    return _make


@pytest.fixture
def make_vehicle(app):
    def _make(agency, daily_rate=5000, is_available=True, make="Renault", model="Clio",
              fuel_type="GASOLINE", transmission="MANUAL", seats=5):
        vehicle = Vehicle(
            agency_id=agency.id,
            make=make,
            model=model,
            year=2021,
            daily_rate=daily_rate,
            seats=seats,
            fuel_type=fuel_type,
            transmission=transmission,
            is_available=is_available,
            car_registration_url="https://files.example.com/carte-grise.png",
            image_urls=[],
        )
        db.session.add(vehicle)
        db.session.commit()
        return vehicle
    return _make


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", roles=("ADMIN",))


def as_caller(user):
    return Caller.from_user(user)


def login(client, email):
    """Log the test client in and return headers carrying the CSRF token."""
    resp = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return {"X-CSRF-Token": client.get_cookie("csrf_token").value}
