import bcrypt
from flask import current_app


def hash_password(plain_password: str) -> str:
    if not isinstance(plain_password, str) or len(plain_password) == 0:
        raise ValueError("Password must be a non-empty string")

    # bcrypt expects bytes; cost is configurable so tests can run with a cheap one
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8")
        )
    except ValueError:
        # malformed stored hash
        return False


def validate_password(pw) -> list:
    """Return the list of policy violations (empty when the password is acceptable)."""
    if not isinstance(pw, str):
        return ["Password must be a string"]
    min_len = int(current_app.config.get("PASSWORD_MIN_LEN", 8))
    errors = []
    if len(pw) < min_len:
        errors.append(f"Password must be at least {min_len} characters")
    if len(pw) > 128:
        errors.append("Password must be at most 128 characters")
    return errors
