from datetime import datetime
from models.db import db

class Parent(db.Model):
    __tablename__ = "parents"
    __table_args__ = (
        db.CheckConstraint("failed_login_attempts >= 0", name="parents_failed_login_attempts_non_negative"),
    )

    id = db.Column(db.Integer, primary_key=True)

    # always stored lowercased + trimmed, so uniqueness is case-insensitive
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(255), nullable=False)
    # AES-GCM blob (base64), never plaintext
    phone_number = db.Column(db.Text, nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # security state: only security.lockout and security.tokens write these
    failed_login_attempts = db.Column(db.Integer, default=0, nullable=False)
    last_failed_login_at = db.Column(db.DateTime, nullable=True, index=True)
    locked_until = db.Column(db.DateTime, nullable=True, index=True)
    refresh_token_jti = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
