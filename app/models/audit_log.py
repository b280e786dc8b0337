from app.extensions import db
from datetime import datetime

REPORT_ACTIONS = ('create', 'finalize', 'download', 'export', 'delete')


class AuditLog(db.Model):
    """One row per user action on a report. Rows outlive the report they name."""
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    report_id = db.Column(db.String(32), nullable=False, index=True)  # external RPT id
    action = db.Column(db.String(16), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)
    remote_addr = db.Column(db.String(64), nullable=True)
    details = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'reportId': self.report_id,
            'action': self.action,
            'userId': self.user_id,
            'remoteAddr': self.remote_addr,
            'details': self.details,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<AuditLog {self.action} {self.report_id}>"
