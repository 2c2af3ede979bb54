from typing import Optional

from flask import current_app

from models import db
from models.user import User
from security.session import revoke_all_sessions
from services.errors import Forbidden, InvalidInput, NotAuthenticated, UserNotFound
from services.identity import Caller
from services.persistence import commit


def _require_admin(caller: Optional[Caller]) -> None:
    if caller is None:
        raise NotAuthenticated()
    if not caller.is_admin:
        raise Forbidden("Forbidden: Not an admin")


def serialize_user(u: User) -> dict:
    return {
        "id": u.id,
        "email": u.email,
        "full_name": u.full_name or "N/A",
        "phone_number": u.phone_number,
        "avatar_url": u.avatar_url,
        "roles": sorted(u.role_names),
        "is_agency_owner": u.is_agency_owner,
        "is_suspended": u.is_suspended,
        "created_at": u.created_at.isoformat() if u.created_at else None,
    }


def list_users(caller: Optional[Caller], limit: int = 200):
    _require_admin(caller)
    return User.query.order_by(User.created_at.desc(), User.id.desc()).limit(limit).all()


def get_user(caller: Optional[Caller], user_id: int) -> User:
    _require_admin(caller)
    user = db.session.get(User, user_id)
    if user is None:
        raise UserNotFound()
    return user


def set_suspended(caller: Optional[Caller], user_id: int, suspended: bool) -> int:
    """Suspend or reinstate a user. Returns the number of sessions revoked."""
    user = get_user(caller, user_id)
    if user.id == caller.user_id:
        raise InvalidInput("Cannot suspend yourself")

    user.is_suspended = bool(suspended)
    commit()

    revoked = revoke_all_sessions(user.id) if suspended else 0
    current_app.logger.info(
        "user %s %s by admin %s (sessions revoked: %s)",
        user.id, "suspended" if suspended else "reinstated", caller.user_id, revoked,
    )
    return revoked


def force_sign_out(caller: Optional[Caller], user_id: int) -> int:
    user = get_user(caller, user_id)
    return revoke_all_sessions(user.id)
