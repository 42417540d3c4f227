from models import db
from datetime import datetime, timezone


class ProgressSession(db.Model):
    """ProgressSession model - in-flight answers for a unit, so an interrupted attempt can resume"""
    __tablename__ = 'progress_sessions'

    id = db.Column(db.Integer, primary_key=True)

    learner_id = db.Column(db.Integer, db.ForeignKey('learners.id'), nullable=False)
    unit_id = db.Column(db.Integer, db.ForeignKey('practice_units.id'), nullable=False)

    # YYYY-MM-DD, UTC; a new day starts a new row
    date_string = db.Column(db.String(10), nullable=False)

    current_index = db.Column(db.Integer, nullable=False, default=0)

    # [{"question_type", "question_index", "user_answer", "is_correct", "is_submitted"}]
    answers = db.Column(db.JSON, default=list)

    started_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    last_updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    is_completed = db.Column(db.Boolean, default=False)
    final_score = db.Column(db.Float)

    # Relationships
    learner = db.relationship('Learner', back_populates='progress_sessions')

    __table_args__ = (
        db.UniqueConstraint('learner_id', 'unit_id', 'date_string', name='uq_progress_learner_unit_day'),
        db.Index('idx_progress_learner_day', 'learner_id', 'date_string'),
    )

    def to_dict(self) -> dict:
        return {
            'learner_id': self.learner_id,
            'unit_id': self.unit_id,
            'date_string': self.date_string,
            'current_index': self.current_index,
            'answers': self.answers or [],
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'last_updated_at': self.last_updated_at.isoformat() if self.last_updated_at else None,
            'is_completed': bool(self.is_completed),
            'final_score': self.final_score,
        }

    def __repr__(self):
        return f'<ProgressSession learner_id={self.learner_id} unit_id={self.unit_id} day={self.date_string}>'
