"""
Progress Session Service - Resume cache for a unit being attempted today.

One row per (learner, unit, UTC day). Every save overwrites the previous
state: the last write wins and concurrent saves from two devices are not
merged. Completing a unit here does not count as a completion; that goes
through the completion service.
"""
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import IntegrityError
from models import db
from models.practice_unit import PracticeUnit
from models.progress_session import ProgressSession
from services.day_boundary import utc_now, day_string
from services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

REQUIRED_ANSWER_KEYS = ('question_type', 'question_index', 'is_submitted')


def get_progress(learner_id: int, unit_id: int, now: Optional[datetime] = None) -> Optional[ProgressSession]:
    """
    Today's in-progress session for a unit.

    Returns:
        The ProgressSession, or None when nothing was saved today
    """
    return ProgressSession.query.filter_by(
        learner_id=learner_id,
        unit_id=unit_id,
        date_string=day_string(now)
    ).first()


def _validate_save(current_index, answers, final_score) -> None:
    if not isinstance(current_index, int) or isinstance(current_index, bool) or current_index < 0:
        raise ValidationError(f"current_index must be a non-negative integer, got: {current_index}")
    if not isinstance(answers, list):
        raise ValidationError("answers must be a list")
    for position, answer in enumerate(answers):
        if not isinstance(answer, dict):
            raise ValidationError(f"answers[{position}] must be an object")
        missing = [key for key in REQUIRED_ANSWER_KEYS if key not in answer]
        if missing:
            raise ValidationError(f"answers[{position}] is missing: {', '.join(missing)}")
    if final_score is not None and not 0 <= final_score <= 100:
        raise ValidationError(f"final_score must be between 0 and 100, got: {final_score}")


def _apply(session: ProgressSession, current_index, answers, is_completed, final_score, now) -> None:
    session.current_index = current_index
    session.answers = list(answers)
    session.is_completed = bool(is_completed)
    session.final_score = final_score
    session.last_updated_at = now


def save_progress(
    learner_id: int,
    unit_id: int,
    current_index: int,
    answers: list,
    is_completed: bool = False,
    final_score: Optional[float] = None,
    now: Optional[datetime] = None
) -> ProgressSession:
    """
    Upsert today's session for a unit, overwriting any earlier state.

    started_at is only set when the row is created. If another request
    creates the row between our lookup and insert, the insert is retried
    as an overwrite of that row.

    Args:
        learner_id: The ID of the learner
        unit_id: The ID of the practice unit
        current_index: Position of the question being answered
        answers: [{'question_type', 'question_index', 'user_answer', 'is_correct', 'is_submitted'}]
        is_completed: Whether the learner reached the end
        final_score: Final 0-100 score, if completed
        now: Instant of the save (default: now)

    Returns:
        The saved ProgressSession

    Raises:
        ValidationError: If any field is malformed
        NotFoundError: If the unit does not exist
    """
    _validate_save(current_index, answers, final_score)

    if not db.session.get(PracticeUnit, unit_id):
        raise NotFoundError('Practice unit', unit_id)

    if now is None:
        now = utc_now()
    today = day_string(now)

    session = get_progress(learner_id, unit_id, now=now)
    if session:
        _apply(session, current_index, answers, is_completed, final_score, now)
        db.session.commit()
        logger.debug(f"Overwrote progress: learner_id={learner_id}, unit_id={unit_id}, day={today}")
        return session

    session = ProgressSession(
        learner_id=learner_id,
        unit_id=unit_id,
        date_string=today,
        started_at=now
    )
    _apply(session, current_index, answers, is_completed, final_score, now)
    db.session.add(session)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.debug(f"Progress row created concurrently, overwriting: learner_id={learner_id}, unit_id={unit_id}")
        session = get_progress(learner_id, unit_id, now=now)
        _apply(session, current_index, answers, is_completed, final_score, now)
        db.session.commit()
        return session

    logger.info(f"Started progress session: learner_id={learner_id}, unit_id={unit_id}, day={today}")
    return session


def mark_progress_completed(learner_id: int, unit_id: int, final_score: float, now: Optional[datetime] = None) -> Optional[ProgressSession]:
    """Close out today's session after a recorded completion. The caller commits."""
    session = get_progress(learner_id, unit_id, now=now)
    if session:
        session.is_completed = True
        session.final_score = final_score
    return session
