import json
import logging

from models import db
from models.audit_log import AuditLog
from utils.client_info import client_ip, user_agent

audit_logger = logging.getLogger("audit")

SEVERITY_LEVELS = {
    "LOW": logging.INFO,
    "MEDIUM": logging.INFO,
    "HIGH": logging.WARNING,
    "CRITICAL": logging.CRITICAL,
}


def log_event(action: str, user_id=None, entity=None, entity_id=None, metadata=None,
              severity="LOW", result="SUCCESS"):
    """Persist a security event and mirror it to the ``audit`` logger.

    Callers must keep secrets out of ``metadata``: no passwords, tokens or
    decrypted PII.
    """
    ip = client_ip()
    ua = user_agent()

    row = AuditLog(
        user_id=user_id,
        action=action,
        severity=severity,
        result=result,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=ip,
        user_agent=ua or None,
        metadata_json=json.dumps(metadata) if metadata else None
    )
    db.session.add(row)
    db.session.commit()

    audit_logger.log(
        SEVERITY_LEVELS.get(severity, logging.INFO),
        "%s result=%s user_id=%s ip=%s metadata=%s",
        action, result, user_id, ip, row.metadata_json or "{}",
    )
    return row
