from functools import wraps
from flask import g, jsonify
from security.session import get_session_from_request
from models import db
from models.user import User
from services.identity import Caller


def load_current_user():
    sess = get_session_from_request()
    if not sess:
        g.user = None
        g.session = None
        g.caller = None
        return
    g.session = sess
    g.user = db.session.get(User, sess.user_id)
    # roles are resolved once here and passed explicitly into the services
    g.caller = Caller.from_user(g.user)


def current_caller():
    return getattr(g, "caller", None)


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
