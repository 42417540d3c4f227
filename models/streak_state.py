from models import db
from datetime import datetime, timezone


class StreakState(db.Model):
    """StreakState model - consecutive-day streak, badges and weekday activity slots for one learner"""
    __tablename__ = 'streak_states'

    id = db.Column(db.Integer, primary_key=True)

    learner_id = db.Column(db.Integer, db.ForeignKey('learners.id'), nullable=False, unique=True, index=True)

    current_streak = db.Column(db.Integer, nullable=False, default=0)
    streak_start_date = db.Column(db.Date)
    last_activity_date = db.Column(db.Date)

    longest_streak = db.Column(db.Integer, nullable=False, default=0)

    # Append-only: [{"badge_id", "badge_name", "unlocked_at", "milestone"}]
    badges = db.Column(db.JSON, default=list)

    # Seven slots indexed by weekday (Monday = 0): {"date", "completed", "score"}
    weekly_activity = db.Column(db.JSON, default=list)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        db.CheckConstraint('current_streak >= 0', name='ck_streak_non_negative'),
    )

    def __repr__(self):
        return f'<StreakState learner_id={self.learner_id} current={self.current_streak} longest={self.longest_streak}>'
