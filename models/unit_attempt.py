from models import db
from datetime import datetime, timezone


class UnitAttempt(db.Model):
    """UnitAttempt model - a scored practice attempt handed over by the scoring provider"""
    __tablename__ = 'unit_attempts'

    id = db.Column(db.Integer, primary_key=True)

    learner_id = db.Column(db.Integer, db.ForeignKey('learners.id'), nullable=False, index=True)
    unit_id = db.Column(db.Integer, db.ForeignKey('practice_units.id'), nullable=False, index=True)

    # Copied from the unit so aggregation does not need a join
    unit_type = db.Column(db.String(30), nullable=False)

    # Overall 0-100 score, may be missing for partially scored attempts
    score = db.Column(db.Float)

    # Type specific results, e.g. {"word_scores": [{"word": "cat", "score": 80, "pronunciation_score": 78}]}
    results_json = db.Column(db.JSON)

    time_spent = db.Column(db.Integer, default=0)  # seconds

    started_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    completed_at = db.Column(db.DateTime, index=True)

    # Relationships
    learner = db.relationship('Learner', back_populates='attempts')
    unit = db.relationship('PracticeUnit', back_populates='attempts')

    @property
    def results(self) -> dict:
        return self.results_json or {}

    @property
    def has_pronunciation_scores(self) -> bool:
        return bool(self.results.get('word_scores') or self.results.get('scene_scores'))

    def __repr__(self):
        return f'<UnitAttempt learner_id={self.learner_id} unit_id={self.unit_id} type={self.unit_type} score={self.score}>'
