from .user import User
from .report import Report
from .audit_log import AuditLog

__all__ = ["User", "Report", "AuditLog"]
