from models import db
from datetime import datetime, timezone

STATUS_PENDING = 'pending'
STATUS_IN_PROGRESS = 'in_progress'
STATUS_COMPLETED = 'completed'
STATUS_OVERDUE = 'overdue'
STATUS_SKIPPED = 'skipped'

VALID_STATUSES = [STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_COMPLETED, STATUS_OVERDUE, STATUS_SKIPPED]


class UnitAssignment(db.Model):
    """UnitAssignment model - a unit assigned to a learner by a tutor"""
    __tablename__ = 'unit_assignments'

    id = db.Column(db.Integer, primary_key=True)

    learner_id = db.Column(db.Integer, db.ForeignKey('learners.id'), nullable=False, index=True)
    unit_id = db.Column(db.Integer, db.ForeignKey('practice_units.id'), nullable=False)

    # pending, in_progress, completed, overdue, skipped
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)

    assigned_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    due_date = db.Column(db.Date)
    completed_at = db.Column(db.DateTime)

    # Relationships
    learner = db.relationship('Learner', back_populates='assignments')
    unit = db.relationship('PracticeUnit', back_populates='assignments')

    __table_args__ = (
        db.UniqueConstraint('unit_id', 'learner_id', name='uq_assignment_unit_learner'),
        db.Index('idx_assignment_learner_status', 'learner_id', 'status'),
    )

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED or self.completed_at is not None

    def __repr__(self):
        return f'<UnitAssignment learner_id={self.learner_id} unit_id={self.unit_id} status={self.status}>'
