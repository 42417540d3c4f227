from models import db
from datetime import datetime, timezone


class PronunciationState(db.Model):
    """PronunciationState model - mean pronunciation quality for one learner"""
    __tablename__ = 'pronunciation_states'

    id = db.Column(db.Integer, primary_key=True)

    learner_id = db.Column(db.Integer, db.ForeignKey('learners.id'), nullable=False, unique=True, index=True)

    overall_score = db.Column(db.Integer, default=0)  # 0 - 100
    total_words_pronounced = db.Column(db.Integer, default=0)

    # [{"score", "words_count", "computed_at"}], oldest first
    history = db.Column(db.JSON, default=list)

    # Newest attempt included in the last compute
    last_attempt_id = db.Column(db.Integer)

    last_computed_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            'learner_id': self.learner_id,
            'overall_score': self.overall_score,
            'total_words_pronounced': self.total_words_pronounced,
            'history': self.history or [],
            'last_computed_at': self.last_computed_at.isoformat() if self.last_computed_at else None,
        }

    def __repr__(self):
        return f'<PronunciationState learner_id={self.learner_id} score={self.overall_score}>'
