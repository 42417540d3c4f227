"""
Completion Pydantic Models

Request body for submitting a finished unit.
"""

from pydantic import BaseModel, Field, model_validator
from typing import Any, List, Optional


class CompletionSubmission(BaseModel):
    """
    A finished unit submitted by the learner.

    Example:
    {
        "score": 85,
        "correct_answers": 17,
        "total_questions": 20,
        "time_spent": 240,
        "answers": [{"question_type": "matching", "question_index": 0, "user_answer": "cat", "is_correct": true}]
    }
    """
    score: float = Field(ge=0, le=100, description="Percentage score (0-100), fractions allowed")
    correct_answers: int = Field(ge=0, description="Number of correct answers")
    total_questions: int = Field(ge=1, description="Number of questions in the unit")
    time_spent: int = Field(default=0, ge=0, description="Seconds spent on the unit")
    answers: Optional[List[Any]] = Field(
        default=None,
        description="Optional structured answers kept for review"
    )

    @model_validator(mode='after')
    def check_counts(self):
        if self.correct_answers > self.total_questions:
            raise ValueError('correct_answers cannot exceed total_questions')
        return self
