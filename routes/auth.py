from datetime import datetime

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User, Role
from security.password import hash_password, verify_password, validate_password
from security.session import create_session, revoke_session, revoke_all_sessions
from security.csrf import issue_csrf_token
from services.identity import ROLE_RENTER
from services.users import serialize_user
from utils.audit import log_event
from utils.auth_context import login_required
from utils.validation import is_url, is_valid_email, normalize_email


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _cookie_name():
    return current_app.config.get("AUTH_COOKIE_NAME", "carrental_session")


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""
    full_name = (data.get("full_name") or "").strip() or None

    if not is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    errors = validate_password(password)
    if errors:
        return jsonify(error="Password does not meet policy", details=errors), 400
    if full_name and len(full_name) > 120:
        return jsonify(error="Invalid full_name"), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="Email already registered"), 409

    user = User(email=email, password_hash=hash_password(password), full_name=full_name)
    db.session.add(user)
    db.session.flush()

    renter_role = Role.query.filter_by(name=ROLE_RENTER).first()
    if renter_role:
        user.roles.append(renter_role)

    db.session.commit()
    log_event("REGISTER_SUCCESS", user_id=user.id)

    return jsonify(message="Registered successfully", id=user.id), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    if user.is_suspended:
        # correct credentials, but no session is ever issued
        log_event("LOGIN_SUSPENDED", user_id=user.id)
        return jsonify(error="Your account has been suspended. Please contact support."), 403

    # Rotate: revoke any existing sessions for this user
    revoked_count = revoke_all_sessions(user.id)

    raw_token = create_session(user.id)
    max_age = current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60)

    resp = jsonify(message="Login OK", user=serialize_user(user))
    resp.set_cookie(
        _cookie_name(),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=max_age,
        path="/",
    )

    resp = issue_csrf_token(resp)

    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"revoked_sessions": revoked_count})
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(serialize_user(g.user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    revoke_session(request.cookies.get(_cookie_name()))
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(_cookie_name(), path="/")
    return resp, 200


@auth_bp.post("/logout_all")
@login_required
def logout_all():
    count = revoke_all_sessions(g.user.id)
    log_event("LOGOUT_ALL", user_id=g.user.id, metadata={"revoked_sessions": count})

    resp = jsonify(message="Logged out everywhere", revoked_sessions=count)
    resp.delete_cookie(_cookie_name(), path="/")
    return resp, 200


@auth_bp.post("/change_password")
@login_required
def change_password():
    data = request.get_json(silent=True) or {}
    current_password = data.get("current_password") or ""
    new_password = data.get("new_password") or ""

    if not verify_password(current_password, g.user.password_hash):
        return jsonify(error="Invalid current password"), 401

    errors = validate_password(new_password)
    if errors:
        return jsonify(error="Password does not meet policy", details=errors), 400
    if verify_password(new_password, g.user.password_hash):
        return jsonify(error="New password must differ from the current one"), 400

    g.user.password_hash = hash_password(new_password)
    g.user.password_changed_at = datetime.utcnow()

    db.session.commit()
    log_event("PASSWORD_CHANGED", user_id=g.user.id)
    return jsonify(message="Password updated"), 200


@auth_bp.get("/profile")
@login_required
def get_profile():
    return jsonify(
        full_name=g.user.full_name,
        phone_number=g.user.phone_number,
        avatar_url=g.user.avatar_url,
    ), 200


@auth_bp.post("/profile")
@login_required
def update_profile():
    data = request.get_json(silent=True) or {}
    full_name = data.get("full_name")
    phone_number = data.get("phone_number")
    avatar_url = data.get("avatar_url")

    if full_name is not None:
        if not isinstance(full_name, str) or len(full_name.strip()) > 120:
            return jsonify(error="Invalid full_name"), 400
        g.user.full_name = full_name.strip()

    if phone_number is not None:
        if not isinstance(phone_number, str) or len(phone_number.strip()) > 30:
            return jsonify(error="Invalid phone_number"), 400
        g.user.phone_number = phone_number.strip()

    if avatar_url is not None:
        if not isinstance(avatar_url, str) or (avatar_url and not is_url(avatar_url)):
            return jsonify(error="Invalid avatar_url"), 400
        g.user.avatar_url = avatar_url.strip() or None

    db.session.commit()
    log_event("PROFILE_UPDATE", user_id=g.user.id)
    return jsonify(message="Profile updated", user=serialize_user(g.user)), 200
