import logging

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from config import Config
from routes import health_bp, auth_bp

from models import db
from security.errors import AuthError, ErrorKind
from security.extensions import init_security
from utils.auth_context import load_current_user

logger = logging.getLogger(__name__)


def _configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger().setLevel(level)


def _engine_options(app):
    if "SQLALCHEMY_ENGINE_OPTIONS" in app.config:
        return
    timeout = app.config.get("DB_TIMEOUT_SECONDS", 5)
    uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if uri.startswith("sqlite"):
        # busy timeout: how long a writer waits for the database lock
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
            "connect_args": {"timeout": timeout, "check_same_thread": False},
        }
    else:
        # pool_timeout only bounds waiting for a connection, not a running query
        options = {"pool_timeout": timeout, "pool_pre_ping": True}
        if uri.startswith("postgresql"):
            options["connect_args"] = {"options": f"-c statement_timeout={int(timeout * 1000)}"}
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = options


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    _configure_logging(app)

    # X-Forwarded-For is only honoured for the configured number of proxy hops
    proxies = int(app.config.get("TRUSTED_PROXY_COUNT", 0))
    if proxies > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxies, x_proto=proxies)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)

    # Database init
    _engine_options(app)
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Encryption key + JWT secret are checked here: the app does not start without them
    init_security(app)

    @app.before_request
    def _load_user():
        load_current_user()

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        resp.headers["Cache-Control"] = "no-store"
        return resp

    register_error_handlers(app)
    register_cli(app)

    return app

#-------------------------

def register_error_handlers(app):
    @app.errorhandler(AuthError)
    def _auth_error(err: AuthError):
        if err.status_code >= 500:
            logger.error("request failed kind=%s detail=%s", err.kind.value, err.message,
                         exc_info=err.__cause__ is not None)
        resp = jsonify(err.to_dict())
        resp.status_code = err.status_code
        if err.retry_after is not None:
            resp.headers["Retry-After"] = str(err.retry_after)
        return resp

    @app.errorhandler(SQLAlchemyError)
    def _db_error(err):
        db.session.rollback()
        logger.exception("database failure")
        return _auth_error(AuthError(ErrorKind.DEPENDENCY_FAILURE))

    @app.errorhandler(HTTPException)
    def _http_error(err):
        return jsonify(error=err.name, message=err.description), err.code

#-------------------------
from models.parent import Parent
from security.encryption import generate_key_hex
from utils.validators import normalize_email

def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables (development / first run)."""
        db.create_all()
        click.echo("Database tables created")

    @app.cli.command("unlock-account")
    @click.argument("email")
    def unlock_account(email):
        """Clear the failed-login counter and lockout for a parent account."""
        parent = Parent.query.filter_by(email=normalize_email(email)).first()
        if not parent:
            click.echo("Parent not found")
            return

        parent.failed_login_attempts = 0
        parent.last_failed_login_at = None
        parent.locked_until = None
        db.session.commit()

        click.echo(f"{parent.email} unlocked")

    @app.cli.command("generate-encryption-key")
    def generate_encryption_key():
        """Print a fresh 32-byte key (hex) for ENCRYPTION_KEY."""
        click.echo(generate_key_hex())

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=3000)
