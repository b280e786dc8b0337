"""
Report Model
One row per uploaded X-ray and its analysis lifecycle
"""
from app.extensions import db
from .base import TimestampMixin

STATUS_PENDING = 'pending'
STATUS_COMPLETED = 'completed'
STATUS_ERROR = 'error'
REPORT_STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_ERROR)
TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_ERROR)

PENDING_CLASS_LABEL = 'Pending Analysis'


class Report(db.Model, TimestampMixin):
    """
    Report model for an X-ray upload.

    Status only moves pending -> completed or pending -> error. Writers go
    through app.services.report_service, which enforces that with
    conditional updates.
    """
    __tablename__ = 'reports'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    # Report identification (external, e.g. RPT20240131_042)
    report_id = db.Column(db.String(32), unique=True, nullable=False, index=True)

    # Relative URL of the stored upload, e.g. /uploads/<name>.jpg
    image = db.Column(db.String(500), nullable=False)

    # Analysis
    status = db.Column(db.String(20), default=STATUS_PENDING, nullable=False, index=True)
    # Classifier caption, free text of any length
    class_label = db.Column(db.Text, default=PENDING_CLASS_LABEL, nullable=False)
    confidence = db.Column(db.Float, default=0.0, nullable=False)
    tags = db.Column(db.JSON, default=list, nullable=False)
    # Role of the uploader at upload time
    user_type = db.Column(db.String(20), nullable=False)
    report_text = db.Column(db.Text)

    # Set when the client saves the finished report
    finalized_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.Index('ix_reports_user_created', 'user_id', 'created_at'),
    )

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    def to_status_dict(self):
        """Payload of the status endpoint"""
        return {
            'status': self.status,
            'class': self.class_label,
            'confidence': self.confidence,
            'tags': list(self.tags or []),
            'reportText': self.report_text,
            'image': self.image,
        }

    def to_dict(self):
        """Convert report to dictionary"""
        return {
            'id': self.id,
            'reportId': self.report_id,
            'image': self.image,
            'status': self.status,
            'class': self.class_label,
            'confidence': self.confidence,
            'tags': list(self.tags or []),
            'userType': self.user_type,
            'reportText': self.report_text,
            'finalizedAt': self.finalized_at.isoformat() if self.finalized_at else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None
        }

    def __repr__(self):
        return f"<Report {self.report_id} ({self.status})>"
