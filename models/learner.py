from models import db
from datetime import datetime, timezone
from flask_login import UserMixin
from sqlalchemy.orm import validates
import re

ROLE_LEARNER = 'learner'
ROLE_TUTOR = 'tutor'
ROLE_ADMIN = 'admin'

VALID_ROLES = [ROLE_LEARNER, ROLE_TUTOR, ROLE_ADMIN]

# Roles allowed to read any learner's aggregates
PRIVILEGED_ROLES = [ROLE_TUTOR, ROLE_ADMIN]


class Learner(UserMixin, db.Model):
    """Learner model - the identity every completion, streak and score hangs off"""
    __tablename__ = 'learners'

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String, nullable=False, unique=True, index=True)
    name = db.Column(db.String)

    # learner, tutor, admin
    role = db.Column(db.String(20), nullable=False, default=ROLE_LEARNER)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    last_active_at = db.Column(db.DateTime)

    # Relationships
    completion_records = db.relationship('CompletionRecord', back_populates='learner', lazy='dynamic')
    progress_sessions = db.relationship('ProgressSession', back_populates='learner', lazy='dynamic')
    assignments = db.relationship('UnitAssignment', back_populates='learner', lazy='dynamic')
    attempts = db.relationship('UnitAttempt', back_populates='learner', lazy='dynamic')

    @validates('email')
    def validate_email(self, key, email):
        if not email:
            raise ValueError('Email is required')
        pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(pattern, email):
            raise ValueError(f'Invalid email format: {email}')
        return email

    @validates('role')
    def validate_role(self, key, role):
        if role not in VALID_ROLES:
            raise ValueError(f'Invalid role: {role}. Must be one of: {VALID_ROLES}')
        return role

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    def __repr__(self):
        return f'<Learner {self.email} ({self.role})>'
