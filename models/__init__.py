from .db import db
from .parent import Parent
from .audit_log import AuditLog
