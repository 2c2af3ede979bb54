"""
Error types raised by the booking, catalogue and verification services.

Each error carries the HTTP status the API answers with, so routes can let
them propagate and a single handler renders ``{"error": message}``.
"""


class CarRentalError(Exception):
    """Base class for every domain error."""

    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class InvalidInput(CarRentalError):
    """Malformed dates, missing or out-of-range fields."""

    default_message = "Invalid input"


class InvalidDateRange(InvalidInput):
    """Raised when start_date is not strictly before end_date."""

    default_message = "start_date must be before end_date"


class NotAuthenticated(CarRentalError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(CarRentalError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(CarRentalError):
    status_code = 404
    default_message = "Not found"


class VehicleNotFound(NotFound):
    default_message = "Vehicle not found"


class AgencyNotFound(NotFound):
    default_message = "Agency not found"


class BookingNotFound(NotFound):
    default_message = "Booking not found"


class UserNotFound(NotFound):
    default_message = "User not found"


class VehicleUnavailable(CarRentalError):
    """Raised when the dates overlap an existing booking or a concurrent writer won."""

    status_code = 409
    default_message = "Vehicle is not available for the selected dates"


class InvalidTransition(CarRentalError):
    status_code = 409
    default_message = "Transition not allowed"


class PersistenceError(CarRentalError):
    """Backing-store failure; the raw driver message is kept."""

    status_code = 500
    default_message = "Database error"
