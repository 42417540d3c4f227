"""
Progress Pydantic Models

Request body for saving in-flight answers of a unit.
"""

from pydantic import BaseModel, Field
from typing import Any, List, Optional


class ProgressAnswer(BaseModel):
    """One answer of an unfinished unit"""
    question_type: str = Field(description="Type of the question, e.g. 'matching'")
    question_index: int = Field(ge=0, description="Position of the question in the unit")
    user_answer: Any = Field(default=None, description="Whatever the learner entered")
    is_correct: Optional[bool] = Field(default=None, description="Correctness, once checked")
    is_submitted: bool = Field(description="Whether the answer was submitted")


class ProgressSave(BaseModel):
    """
    Snapshot of an unfinished unit.

    Example:
    {
        "current_index": 3,
        "answers": [{"question_type": "matching", "question_index": 0, "user_answer": "cat", "is_correct": true, "is_submitted": true}],
        "is_completed": false
    }
    """
    current_index: int = Field(ge=0, description="Question the learner is on")
    answers: List[ProgressAnswer] = Field(default_factory=list)
    is_completed: bool = Field(default=False)
    final_score: Optional[float] = Field(default=None, ge=0, le=100)
