from models import db
from datetime import datetime, timezone


class CompletionRecord(db.Model):
    """CompletionRecord model - proof that a learner finished a unit on a UTC calendar day"""
    __tablename__ = 'completion_records'

    id = db.Column(db.Integer, primary_key=True)

    learner_id = db.Column(db.Integer, db.ForeignKey('learners.id'), nullable=False)
    unit_id = db.Column(db.Integer, db.ForeignKey('practice_units.id'), nullable=False)

    # YYYY-MM-DD, UTC
    date_string = db.Column(db.String(10), nullable=False)

    score = db.Column(db.Float, nullable=False)
    correct_answers = db.Column(db.Integer, nullable=False)
    total_questions = db.Column(db.Integer, nullable=False)
    time_spent = db.Column(db.Integer, default=0)  # seconds

    # [{"question_type": ..., "question_index": ..., "user_answer": ..., "is_correct": ...}]
    answers = db.Column(db.JSON, default=list)

    # False for same-day replays, which are kept but never aggregated
    is_first_completion = db.Column(db.Boolean, nullable=False, default=True)

    completed_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    learner = db.relationship('Learner', back_populates='completion_records')
    unit = db.relationship('PracticeUnit', back_populates='completion_records')

    # One first completion per (learner, unit, day); replays fall outside the index
    __table_args__ = (
        db.Index(
            'uq_first_completion_per_day',
            'learner_id', 'unit_id', 'date_string',
            unique=True,
            sqlite_where=db.text('is_first_completion = 1'),
            postgresql_where=db.text('is_first_completion'),
        ),
        db.Index('idx_completion_learner_day', 'learner_id', 'date_string'),
    )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'unit_id': self.unit_id,
            'date_string': self.date_string,
            'score': self.score,
            'correct_answers': self.correct_answers,
            'total_questions': self.total_questions,
            'time_spent': self.time_spent,
            'is_first_completion': self.is_first_completion,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }

    def __repr__(self):
        return (
            f'<CompletionRecord learner_id={self.learner_id} unit_id={self.unit_id} '
            f'day={self.date_string} first={self.is_first_completion}>'
        )
