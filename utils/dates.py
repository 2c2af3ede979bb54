from datetime import date

from services.errors import InvalidInput


def parse_date(value, field_name: str):
    # Expect ISO format like "2026-01-20"
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise InvalidInput(f"{field_name} must be a date string (YYYY-MM-DD)")
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise InvalidInput(f"Invalid {field_name}. Use YYYY-MM-DD")


def parse_range(start_value, end_value, required: bool = True):
    start = parse_date(start_value, "start_date")
    end = parse_date(end_value, "end_date")
    if required and (start is None or end is None):
        raise InvalidInput("start_date and end_date are required")
    if (start is None) != (end is None):
        raise InvalidInput("start_date and end_date must be given together")
    return start, end
