from models import db
from datetime import datetime, timezone

LABEL_EXCELLENT = 'Excellent'
LABEL_VERY_GOOD = 'Very Good'
LABEL_GOOD = 'Good'
LABEL_AVERAGE = 'Average'
LABEL_DEVELOPING = 'Developing'
LABEL_NEEDS_IMPROVEMENT = 'Needs Improvement'

TREND_IMPROVING = 'improving'
TREND_STABLE = 'stable'
TREND_DECLINING = 'declining'


class ConfidenceState(db.Model):
    """ConfidenceState model - blended completion/quality score for one learner"""
    __tablename__ = 'confidence_states'

    id = db.Column(db.Integer, primary_key=True)

    learner_id = db.Column(db.Integer, db.ForeignKey('learners.id'), nullable=False, unique=True, index=True)

    units_assigned = db.Column(db.Integer, default=0)
    units_completed = db.Column(db.Integer, default=0)

    # Completion pillar, max 40 points
    completion_rate = db.Column(db.Float, default=0.0)  # 0.0 - 1.0
    completion_contribution = db.Column(db.Float, default=0.0)

    # Quality pillar, max 60 points
    quality_score = db.Column(db.Float, default=0.0)  # 0 - 100
    quality_contribution = db.Column(db.Float, default=0.0)

    # Coach diagnostics
    pronunciation_confidence = db.Column(db.Float, default=0.0)
    completion_confidence = db.Column(db.Float, default=0.0)

    confidence_score = db.Column(db.Float, default=0.0)  # 0 - 100
    label = db.Column(db.String(30), default=LABEL_NEEDS_IMPROVEMENT)
    trend = db.Column(db.String(20), default=TREND_STABLE)

    # [{"score", "label", "computed_at", "completed_units"}], oldest first
    history = db.Column(db.JSON, default=list)

    last_computed_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            'learner_id': self.learner_id,
            'units_assigned': self.units_assigned,
            'units_completed': self.units_completed,
            'completion_rate': round(self.completion_rate or 0.0, 3),
            'completion_contribution': round(self.completion_contribution or 0.0, 1),
            'quality_score': round(self.quality_score or 0.0, 1),
            'quality_contribution': round(self.quality_contribution or 0.0, 1),
            'pronunciation_confidence': round(self.pronunciation_confidence or 0.0, 1),
            'completion_confidence': round(self.completion_confidence or 0.0, 1),
            'confidence_score': round(self.confidence_score or 0.0, 1),
            'label': self.label,
            'trend': self.trend,
            'history': self.history or [],
            'last_computed_at': self.last_computed_at.isoformat() if self.last_computed_at else None,
        }

    def __repr__(self):
        return f'<ConfidenceState learner_id={self.learner_id} score={self.confidence_score} label={self.label}>'
