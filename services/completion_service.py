"""
Completion Service - Records finished units once per learner, unit and UTC day.

The unique index on first completions is the only concurrency control:
whichever submission commits first for a (learner, unit, day) key is the
first completion, every other one is stored as a replay. Replays are kept
for attempt history but never feed streaks or averages, and the first
record's score is never overwritten.

Derived state (streak, unit analytics, confidence, pronunciation) is
updated after the completion commit and outside its transaction. A failure
there is logged and leaves the completion in place; the derived rows catch
up on the next qualifying event or an explicit rebuild.
"""

import logging
from datetime import datetime
from typing import Optional
from flask import current_app
from sqlalchemy.exc import IntegrityError
from models import db
from models.completion_record import CompletionRecord
from models.learner import Learner
from models.practice_unit import PracticeUnit
from services.assignment_service import mark_assignment_completed
from services.confidence_service import compute_confidence_metrics
from services.day_boundary import utc_now, day_string
from services.errors import NotFoundError, ValidationError
from services.progress_session_service import mark_progress_completed
from services.pronunciation_service import compute_pronunciation_metrics, round_half_up
from services.streak_service import apply_qualifying_completion

logger = logging.getLogger(__name__)

DEFAULT_PASSING_SCORE = 70


def get_passing_score() -> int:
    return current_app.config.get('PASSING_SCORE_THRESHOLD', DEFAULT_PASSING_SCORE)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_submission(learner_id, unit_id, score, correct_answers, total_questions, time_spent, answers) -> None:
    """Fail fast on malformed input before anything touches the database."""
    for name, value in (('learner_id', learner_id), ('unit_id', unit_id)):
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ValidationError(f"{name} must be a positive integer, got: {value}")

    if not _is_number(score) or not 0 <= score <= 100:
        raise ValidationError(f"score must be between 0 and 100, got: {score}")

    if not isinstance(total_questions, int) or total_questions < 1:
        raise ValidationError(f"total_questions must be at least 1, got: {total_questions}")

    if not isinstance(correct_answers, int) or correct_answers < 0:
        raise ValidationError(f"correct_answers must be non-negative, got: {correct_answers}")

    if correct_answers > total_questions:
        raise ValidationError(
            f"correct_answers ({correct_answers}) cannot exceed total_questions ({total_questions})"
        )

    if not _is_number(time_spent) or time_spent < 0:
        raise ValidationError(f"time_spent must be non-negative, got: {time_spent}")

    if answers is not None and not isinstance(answers, list):
        raise ValidationError("answers must be a list")

    passing_score = get_passing_score()
    if score < passing_score:
        raise ValidationError(f"Score must be at least {passing_score} to count as a completion, got: {score}")


def get_first_completion(learner_id: int, unit_id: int, date_string: str) -> Optional[CompletionRecord]:
    return CompletionRecord.query.filter_by(
        learner_id=learner_id,
        unit_id=unit_id,
        date_string=date_string,
        is_first_completion=True
    ).first()


def _store_completion(learner_id, unit_id, date_string, fields: dict):
    """
    Insert the completion, as first completion if the key is still free.

    Returns:
        tuple: (CompletionRecord, is_first_completion)
    """
    if get_first_completion(learner_id, unit_id, date_string) is None:
        record = CompletionRecord(
            learner_id=learner_id,
            unit_id=unit_id,
            date_string=date_string,
            is_first_completion=True,
            **fields
        )
        db.session.add(record)
        try:
            db.session.commit()
            return record, True
        except IntegrityError:
            db.session.rollback()
            if get_first_completion(learner_id, unit_id, date_string) is None:
                raise
            logger.warning(
                f"Concurrent completion lost the race, storing as replay: "
                f"learner_id={learner_id}, unit_id={unit_id}, day={date_string}"
            )

    replay = CompletionRecord(
        learner_id=learner_id,
        unit_id=unit_id,
        date_string=date_string,
        is_first_completion=False,
        **fields
    )
    db.session.add(replay)
    db.session.commit()
    return replay, False


def _update_unit_progress(learner_id: int, unit_id: int, score: float, now: datetime) -> None:
    """Assignment status, unit analytics and today's resume session after a first completion."""
    mark_assignment_completed(learner_id, unit_id, now=now)
    mark_progress_completed(learner_id, unit_id, score, now=now)

    unit = db.session.get(PracticeUnit, unit_id)
    average = db.session.query(db.func.avg(CompletionRecord.score)).filter(
        CompletionRecord.unit_id == unit_id,
        CompletionRecord.is_first_completion.is_(True)
    ).scalar()
    # Incremented against the stored value, not the loaded one
    unit.total_completions = db.func.coalesce(PracticeUnit.total_completions, 0) + 1
    unit.average_score = round_half_up(average) if average is not None else 0

    learner = db.session.get(Learner, learner_id)
    learner.last_active_at = now

    db.session.commit()


def refresh_aggregates(learner_id: int, now: Optional[datetime] = None) -> None:
    """
    Recompute confidence and pronunciation for a learner.

    Each recompute is independent: a failure is logged and rolled back
    without stopping the other.
    """
    try:
        compute_confidence_metrics(learner_id, now=now)
    except Exception as e:
        db.session.rollback()
        logger.error(f"Confidence recompute failed for learner_id={learner_id}: {str(e)}", exc_info=True)

    try:
        compute_pronunciation_metrics(learner_id, now=now)
    except Exception as e:
        db.session.rollback()
        logger.error(f"Pronunciation recompute failed for learner_id={learner_id}: {str(e)}", exc_info=True)


def record_completion(
    learner_id: int,
    unit_id: int,
    score: float,
    correct_answers: int,
    total_questions: int,
    time_spent: int = 0,
    answers: Optional[list] = None,
    now: Optional[datetime] = None
) -> dict:
    """
    Record a finished unit and update every derived metric.

    Workflow:
    1. Validate the submission (including the passing threshold)
    2. Check the learner and unit exist
    3. Store the completion under today's UTC day key; a key already taken
       turns the submission into a replay
    4. On a first completion: streak update, assignment / unit analytics /
       resume session close-out, confidence and pronunciation recompute

    Args:
        learner_id: The ID of the learner
        unit_id: The ID of the practice unit
        score: Percentage score (0-100), at least the passing threshold
        correct_answers: Number of correct answers
        total_questions: Number of questions
        time_spent: Seconds spent (default: 0)
        answers: Optional structured answers
        now: Instant of the submission (default: now)

    Returns:
        dict: {
            'streak_updated': bool,
            'badge_unlocked': {'badge_id', 'badge_name', 'milestone'} or None,
            'is_first_completion': bool,
            'already_completed_today': bool,
            'current_streak': int or None,
            'date_string': str,
            'score': float
        }

    Raises:
        ValidationError: If any field is malformed or the score is below the threshold
        NotFoundError: If the learner or unit does not exist

    Example:
        >>> result = record_completion(learner_id=1, unit_id=4, score=85,
        ...                            correct_answers=17, total_questions=20)
        >>> result['streak_updated']
        True
    """
    _validate_submission(learner_id, unit_id, score, correct_answers, total_questions, time_spent, answers)

    if not db.session.get(Learner, learner_id):
        raise NotFoundError('Learner', learner_id)
    if not db.session.get(PracticeUnit, unit_id):
        raise NotFoundError('Practice unit', unit_id)

    if now is None:
        now = utc_now()
    today = day_string(now)

    record, is_first = _store_completion(learner_id, unit_id, today, {
        'score': score,
        'correct_answers': correct_answers,
        'total_questions': total_questions,
        'time_spent': time_spent,
        'answers': answers or [],
        'completed_at': now,
    })

    result = {
        'streak_updated': False,
        'badge_unlocked': None,
        'is_first_completion': is_first,
        'already_completed_today': not is_first,
        'current_streak': None,
        'date_string': today,
        'score': score,
    }

    if not is_first:
        logger.info(
            f"Learner already completed this unit today, stored replay: "
            f"learner_id={learner_id}, unit_id={unit_id}, day={today}, score={score}"
        )
        return result

    try:
        state, badge = apply_qualifying_completion(learner_id, score, now=now)
        result['streak_updated'] = True
        result['current_streak'] = state.current_streak
        if badge:
            result['badge_unlocked'] = {
                'badge_id': badge['badge_id'],
                'badge_name': badge['badge_name'],
                'milestone': badge['milestone'],
            }
    except Exception as e:
        db.session.rollback()
        logger.error(
            f"Streak update failed after completion {record.id} for learner_id={learner_id}: {str(e)}",
            exc_info=True
        )

    try:
        _update_unit_progress(learner_id, unit_id, score, now)
    except Exception as e:
        db.session.rollback()
        logger.error(
            f"Unit progress update failed after completion {record.id} for learner_id={learner_id}: {str(e)}",
            exc_info=True
        )

    refresh_aggregates(learner_id, now=now)

    logger.info(
        f"Completion recorded: learner_id={learner_id}, unit_id={unit_id}, day={today}, "
        f"score={score}, streak_updated={result['streak_updated']}, "
        f"badge_unlocked={result['badge_unlocked']['badge_id'] if result['badge_unlocked'] else None}"
    )

    return result


def get_completion_history(learner_id: int, limit: int = 30) -> list:
    """
    Recent completion records of a learner, newest first, replays included.

    Args:
        learner_id: The ID of the learner
        limit: Maximum number of records (default: 30)

    Returns:
        List of CompletionRecord objects
    """
    return CompletionRecord.query.filter_by(
        learner_id=learner_id
    ).order_by(CompletionRecord.completed_at.desc(), CompletionRecord.id.desc()).limit(limit).all()
