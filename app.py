import click
from flask import Flask, request, g, jsonify
from flask_migrate import Migrate

from config import Config
from routes import health_bp, auth_bp, vehicles_bp, booking_bp, agency_bp, admin_bp, audit_bp

from models import db
from models.user import User, Role
from services.errors import CarRentalError
from services.identity import ROLE_ADMIN
from utils.seed import seed_roles
from utils.auth_context import load_current_user
from security.csrf import require_csrf


CSRF_EXEMPT_PATHS = {
    "/auth/login",
    "/auth/register",
    "/health",
}


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(vehicles_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(agency_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(audit_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    with app.app_context():
        if app.config.get("CREATE_TABLES"):
            db.create_all()
        # Seed default roles at startup (safe & idempotent)
        seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.before_request
    def _csrf_protect():
        # Only protect state-changing requests
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Exempt auth bootstrap endpoints
            if request.path in CSRF_EXEMPT_PATHS:
                return None

            # Only enforce CSRF if user is already authenticated (cookie session)
            if getattr(g, "user", None) is not None:
                failure = require_csrf()
                if failure:
                    return failure

    @app.errorhandler(CarRentalError)
    def _domain_error(exc):
        db.session.rollback()
        if exc.status_code >= 500:
            app.logger.error("%s %s failed: %s", request.method, request.path, exc.message)
        return jsonify(error=exc.message), exc.status_code

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        admin_role = Role.query.filter_by(name=ROLE_ADMIN).first()
        if not admin_role:
            admin_role = Role(name=ROLE_ADMIN)
            db.session.add(admin_role)
            db.session.commit()

        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()

        click.echo(f"{user.email} promoted to ADMIN")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
