from datetime import datetime, timedelta
from flask import current_app
from sqlalchemy import update

from models import db
from models.parent import Parent


def _max_attempts() -> int:
    return int(current_app.config.get("MAX_LOGIN_ATTEMPTS", 5))

def _lockout_minutes() -> int:
    return int(current_app.config.get("LOCKOUT_MINUTES", 15))

def is_locked(parent: Parent) -> tuple[bool, int]:
    """
    Returns (locked, seconds_remaining).
    An expired lock is cleared here, counters included.
    """
    if not parent.locked_until:
        return False, 0

    now = datetime.utcnow()
    if parent.locked_until > now:
        seconds = int((parent.locked_until - now).total_seconds())
        return True, max(seconds, 1)

    db.session.execute(
        update(Parent)
        .where(Parent.id == parent.id, Parent.locked_until == parent.locked_until)
        .values(failed_login_attempts=0, last_failed_login_at=None, locked_until=None)
    )
    db.session.commit()
    db.session.refresh(parent)
    return False, 0

def register_failure(parent: Parent) -> tuple[int, bool]:
    """
    Increments the persisted failure counter. Returns (fail_count, locked_now).
    The increment happens in SQL so concurrent failures are all counted.
    """
    now = datetime.utcnow()

    db.session.execute(
        update(Parent)
        .where(Parent.id == parent.id)
        .values(
            failed_login_attempts=Parent.failed_login_attempts + 1,
            last_failed_login_at=now,
        )
    )
    db.session.commit()
    db.session.refresh(parent)

    locked_now = False
    if parent.failed_login_attempts >= _max_attempts() and not (
        parent.locked_until and parent.locked_until > now
    ):
        parent.locked_until = now + timedelta(minutes=_lockout_minutes())
        db.session.commit()
        locked_now = True

    return parent.failed_login_attempts, locked_now

def reset_attempts(parent: Parent):
    """
    Clears failure counter after successful login (or logout).
    """
    if parent.failed_login_attempts == 0 and parent.locked_until is None and parent.last_failed_login_at is None:
        return
    parent.failed_login_attempts = 0
    parent.last_failed_login_at = None
    parent.locked_until = None
    db.session.commit()
