from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .agency import Agency
from .vehicle import Vehicle
from .booking import Booking, BookingDay
