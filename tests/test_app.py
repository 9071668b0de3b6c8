"""
App factory and CLI tests.
"""

from datetime import datetime, timedelta

import pytest
from werkzeug.middleware.proxy_fix import ProxyFix

from app import create_app
from config import TestConfig
from models import db
from models.parent import Parent
from security.encryption import EncryptionService
from security.errors import EncryptionKeyError


def _config(**overrides):
    return type("OverrideConfig", (TestConfig,), overrides)


class TestStartup:

    @pytest.mark.parametrize("key", [None, "", "00" * 31, "not-hex" * 9])
    def test_refuses_to_start_without_valid_encryption_key(self, key):
        with pytest.raises(EncryptionKeyError):
            create_app(_config(ENCRYPTION_KEY=key))

    @pytest.mark.parametrize("secret", [None, "too-short", "x" * 31])
    def test_refuses_to_start_without_jwt_secret(self, secret):
        with pytest.raises(ValueError):
            create_app(_config(JWT_SECRET=secret))

    def test_services_registered(self, app):
        assert "satsblox.encryption" in app.extensions
        assert "satsblox.tokens" in app.extensions
        assert "satsblox.bruteforce_guard" in app.extensions


class TestTrustedProxy:

    def test_forwarded_for_ignored_by_default(self, app):
        assert not isinstance(app.wsgi_app, ProxyFix)

    def test_trusted_hop_sets_origin(self):
        proxied = create_app(_config(TRUSTED_PROXY_COUNT=1))
        with proxied.app_context():
            db.create_all()
            client = proxied.test_client()

            def attempt(forwarded_for):
                return client.post(
                    "/api/auth/login",
                    json={"email": "nobody@b.com", "password": "whatever123"},
                    headers={"X-Forwarded-For": forwarded_for},
                    environ_base={"REMOTE_ADDR": "10.0.0.1"},
                )

            # only the hop appended by the trusted proxy counts, not what the client prepended
            statuses = [attempt(f"198.51.100.{i}, 203.0.113.9").status_code for i in range(6)]
            assert statuses == [401] * 5 + [429]

            assert attempt("203.0.113.10").status_code == 401

            db.session.remove()
            db.drop_all()


class TestCli:

    def test_generate_encryption_key(self, app):
        result = app.test_cli_runner().invoke(args=["generate-encryption-key"])
        assert result.exit_code == 0

        key_hex = result.output.strip()
        assert len(key_hex) == 64
        EncryptionService.from_hex(key_hex)

    def test_unlock_account(self, app, make_parent):
        parent = make_parent()
        parent.failed_login_attempts = 5
        parent.locked_until = datetime.utcnow() + timedelta(minutes=15)
        db.session.commit()

        result = app.test_cli_runner().invoke(args=["unlock-account", "Parent@Example.com"])
        assert result.exit_code == 0
        assert "parent@example.com unlocked" in result.output

        db.session.expire_all()
        parent = db.session.get(Parent, parent.id)
        assert parent.failed_login_attempts == 0
        assert parent.locked_until is None

    def test_unlock_unknown_account(self, app):
        result = app.test_cli_runner().invoke(args=["unlock-account", "ghost@example.com"])
        assert "Parent not found" in result.output
