from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db
from services.errors import PersistenceError


def commit() -> None:
    """Commit the current unit of work; store failures surface as PersistenceError."""
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("commit failed: %s", exc)
        raise PersistenceError(str(exc))
