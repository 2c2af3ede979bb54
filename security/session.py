import hashlib
import secrets
from datetime import datetime, timedelta
from flask import request, current_app, has_request_context

from models import db
from models.session import Session
from models.user import User


def _hash_token(token: str) -> str:
    # SHA-256 is fine for hashing random session tokens
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _client_ip():
    if not has_request_context():
        return None
    return request.headers.get("X-Forwarded-For", request.remote_addr)


def create_session(user_id: int) -> str:
    """
    Creates a server-side session and returns the RAW token (to set as cookie).
    Only the hash is stored in DB.
    """
    raw_token = secrets.token_urlsafe(32)

    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 28800)
    user_agent = (request.headers.get("User-Agent") or "")[:255] if has_request_context() else None

    row = Session(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        expires_at=datetime.utcnow() + timedelta(seconds=lifetime),
        ip=_client_ip(),
        user_agent=user_agent,
    )
    db.session.add(row)
    db.session.commit()
    return raw_token


def get_session_from_request():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "carrental_session")
    raw_token = request.cookies.get(cookie_name)
    if not raw_token:
        return None

    now = datetime.utcnow()
    sess = (
        Session.query
        .filter_by(token_hash=_hash_token(raw_token), revoked=False)
        .first()
    )
    if not sess:
        return None

    # Absolute expiry
    if sess.expires_at <= now:
        return None

    # Idle timeout
    idle_seconds = current_app.config.get("IDLE_TIMEOUT_SECONDS", 1800)
    last_seen = sess.last_seen_at or sess.created_at
    if (last_seen + timedelta(seconds=idle_seconds)) <= now:
        return None

    # Suspended users lose live sessions too
    user = db.session.get(User, sess.user_id)
    if user is None or user.is_suspended:
        sess.revoked = True
        sess.revoked_at = now
        db.session.commit()
        return None

    # Update activity timestamp (touch)
    sess.last_seen_at = now
    db.session.commit()

    return sess


def revoke_session(raw_token: str) -> bool:
    if not raw_token:
        return False
    sess = Session.query.filter_by(token_hash=_hash_token(raw_token)).first()
    if not sess:
        return False
    sess.revoked = True
    sess.revoked_at = datetime.utcnow()
    db.session.commit()
    return True


def revoke_all_sessions(user_id: int) -> int:
    now = datetime.utcnow()
    sessions = Session.query.filter_by(user_id=user_id, revoked=False).all()
    for s in sessions:
        s.revoked = True
        s.revoked_at = now
    db.session.commit()
    return len(sessions)
