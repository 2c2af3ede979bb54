from functools import wraps
from flask import g, jsonify


def has_role(role_name: str) -> bool:
    caller = getattr(g, "caller", None)
    if not caller:
        return False
    return role_name in caller.roles


def require_roles(*role_names: str):
    """
    Usage: @require_roles("ADMIN")
    ADMIN passes every role check.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            caller = getattr(g, "caller", None)
            if caller is None:
                return jsonify(error="Authentication required"), 401

            if not caller.is_admin and not caller.roles.intersection(set(role_names)):
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
