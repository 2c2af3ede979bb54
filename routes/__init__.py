from .health import health_bp
from .auth import auth_bp
from .vehicles import vehicles_bp
from .bookings import booking_bp
from .agency import agency_bp
from .admin import admin_bp
from .audit_logs import audit_bp
