"""Attempt Service - Stores scored attempts handed over by the scoring provider"""
import logging
from datetime import datetime
from typing import Optional
from models import db
from models.learner import Learner
from models.practice_unit import PracticeUnit
from models.unit_attempt import UnitAttempt
from services.day_boundary import utc_now
from services.errors import NotFoundError, ValidationError
from services.pronunciation_service import compute_pronunciation_metrics

logger = logging.getLogger(__name__)


def record_attempt(
    learner_id: int,
    unit_id: int,
    score: Optional[float] = None,
    results: Optional[dict] = None,
    time_spent: int = 0,
    started_at: Optional[datetime] = None,
    completed_at: Optional[datetime] = None
) -> UnitAttempt:
    """
    Store a scored practice attempt.

    The score is treated as already validated by the provider apart from
    its range. Attempts carrying word or scene scores trigger a
    (debounced) pronunciation recompute; a failure there is logged and
    does not undo the stored attempt.

    Args:
        learner_id: The ID of the learner
        unit_id: The ID of the practice unit
        score: Overall 0-100 score, optional
        results: Type specific results, e.g. {'word_scores': [...]}
        time_spent: Seconds spent
        started_at: Start instant (default: now)
        completed_at: Completion instant (default: now)

    Returns:
        The stored UnitAttempt

    Raises:
        ValidationError: If the score or results are malformed
        NotFoundError: If the learner or unit does not exist
    """
    if score is not None and not 0 <= score <= 100:
        raise ValidationError(f"score must be between 0 and 100, got: {score}")
    if results is not None and not isinstance(results, dict):
        raise ValidationError("results must be an object")
    if time_spent is None or time_spent < 0:
        raise ValidationError(f"time_spent must be non-negative, got: {time_spent}")

    if not db.session.get(Learner, learner_id):
        raise NotFoundError('Learner', learner_id)
    unit = db.session.get(PracticeUnit, unit_id)
    if not unit:
        raise NotFoundError('Practice unit', unit_id)

    now = utc_now()
    attempt = UnitAttempt(
        learner_id=learner_id,
        unit_id=unit_id,
        unit_type=unit.unit_type,
        score=score,
        results_json=results or {},
        time_spent=time_spent,
        started_at=started_at or now,
        completed_at=completed_at or now
    )
    db.session.add(attempt)
    db.session.commit()

    logger.info(
        f"Recorded attempt: id={attempt.id}, learner_id={learner_id}, unit_id={unit_id}, "
        f"type={unit.unit_type}, score={score}"
    )

    if attempt.has_pronunciation_scores:
        try:
            compute_pronunciation_metrics(learner_id)
        except Exception as e:
            db.session.rollback()
            logger.error(
                f"Pronunciation recompute failed after attempt {attempt.id} "
                f"for learner_id={learner_id}: {str(e)}",
                exc_info=True
            )

    return attempt
