"""
Intake Pydantic Models

Request bodies for the collaborators feeding the aggregates: the scoring
provider posting scored attempts and tutors assigning units.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional


class AttemptSubmission(BaseModel):
    """
    A scored attempt from the scoring provider.

    Example:
    {
        "unit_id": 12,
        "score": 78,
        "results": {"word_scores": [{"word": "through", "score": 70, "pronunciation_score": 74}]},
        "time_spent": 95
    }
    """
    unit_id: int = Field(gt=0)
    learner_id: Optional[int] = Field(
        default=None,
        gt=0,
        description="Target learner; defaults to the caller, other learners need a privileged role"
    )
    score: Optional[float] = Field(default=None, ge=0, le=100)
    results: dict = Field(default_factory=dict)
    time_spent: int = Field(default=0, ge=0)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class AssignmentRequest(BaseModel):
    """A unit assigned to a learner by a tutor"""
    learner_id: int = Field(gt=0)
    unit_id: int = Field(gt=0)
    due_date: Optional[date] = None
