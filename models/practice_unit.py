from models import db
from datetime import datetime, timezone
from sqlalchemy.orm import validates

# Unit types; vocabulary and roleplay carry provider pronunciation scores
UNIT_TYPES = [
    'daily_focus',
    'vocabulary',
    'roleplay',
    'matching',
    'definition',
    'fill_blank',
    'sentence',
    'grammar',
    'summary',
    'listening',
    'reading',
]


class PracticeUnit(db.Model):
    """PracticeUnit model - a drill or daily focus a learner can complete"""
    __tablename__ = 'practice_units'

    id = db.Column(db.Integer, primary_key=True)

    title = db.Column(db.String, nullable=False)
    unit_type = db.Column(db.String(30), nullable=False, default='daily_focus')

    is_active = db.Column(db.Boolean, default=True)

    # Analytics over first completions only
    total_completions = db.Column(db.Integer, default=0)
    average_score = db.Column(db.Integer, default=0)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    completion_records = db.relationship('CompletionRecord', back_populates='unit', lazy='dynamic')
    assignments = db.relationship('UnitAssignment', back_populates='unit', lazy='dynamic')
    attempts = db.relationship('UnitAttempt', back_populates='unit', lazy='dynamic')

    @validates('unit_type')
    def validate_unit_type(self, key, unit_type):
        if unit_type not in UNIT_TYPES:
            raise ValueError(f'Invalid unit_type: {unit_type}. Must be one of: {UNIT_TYPES}')
        return unit_type

    def __repr__(self):
        return f'<PracticeUnit {self.id} {self.unit_type} "{self.title}">'
