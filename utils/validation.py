from urllib.parse import urlparse


def normalize_email(value: str) -> str:
    return (value or "").strip().lower()


def is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def is_url(value) -> bool:
    # Storage hands back public http(s) URLs; we only keep the string
    if not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
