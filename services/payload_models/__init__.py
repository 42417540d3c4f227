"""
Request Pydantic Models

Validated request bodies for the HTTP endpoints:
- Completion models (CompletionSubmission)
- Progress models (ProgressAnswer, ProgressSave)
- Intake models (AttemptSubmission, AssignmentRequest)
"""

from .completion_models import CompletionSubmission
from .progress_models import ProgressAnswer, ProgressSave
from .intake_models import AttemptSubmission, AssignmentRequest


def format_payload_errors(error) -> str:
    """One line per invalid field, e.g. 'score: Input should be less than or equal to 100'"""
    messages = []
    for detail in error.errors():
        location = '.'.join(str(part) for part in detail['loc'])
        messages.append(f"{location}: {detail['msg']}" if location else detail['msg'])
    return '; '.join(messages)


__all__ = [
    'CompletionSubmission',
    'ProgressAnswer',
    'ProgressSave',
    'AttemptSubmission',
    'AssignmentRequest',
    'format_payload_errors'
]
