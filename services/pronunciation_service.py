"""
Pronunciation Service - Mean pronunciation quality over every scored word and scene.

Scores come from the external pronunciation provider through stored
attempts. A score of zero means the word was skipped or left unscored, so
only scores strictly above zero are counted.

The state is rebuilt by rescanning all of the learner's attempts; repeated
refreshes inside the debounce window are skipped unless a new attempt
arrived since the last compute.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from flask import current_app
from models import db
from models.pronunciation_state import PronunciationState
from models.unit_attempt import UnitAttempt
from services.day_boundary import utc_now, as_utc

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50
DEFAULT_DEBOUNCE_SECONDS = 30


def round_half_up(value: float) -> int:
    """Round .5 away from zero (82.5 -> 83) instead of to even."""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def _item_score(item: dict):
    """Provider pronunciation score when present, else the plain score."""
    if item.get('pronunciation_score') is not None:
        return item['pronunciation_score']
    return item.get('score')


def collect_pronunciation_scores(attempts: list) -> list:
    """
    Every counted word and scene score from the given attempts, in order.

    Example:
        >>> attempt.results_json = {'word_scores': [{'score': 80}, {'score': 0}]}
        >>> collect_pronunciation_scores([attempt])
        [80]
    """
    scores = []
    for attempt in attempts:
        results = attempt.results_json or {}
        for item in (results.get('word_scores') or []) + (results.get('scene_scores') or []):
            score = _item_score(item)
            if isinstance(score, (int, float)) and not isinstance(score, bool) and score > 0:
                scores.append(score)
    return scores


def _latest_attempt_id(learner_id: int) -> Optional[int]:
    return db.session.query(db.func.max(UnitAttempt.id)).filter(
        UnitAttempt.learner_id == learner_id
    ).scalar()


def _recently_computed(state: Optional[PronunciationState], now: datetime, latest_attempt_id: Optional[int]) -> bool:
    """True inside the debounce window when no attempt arrived since the last compute."""
    window = current_app.config.get('PRONUNCIATION_REFRESH_DEBOUNCE_SECONDS', DEFAULT_DEBOUNCE_SECONDS)
    if not state or not state.last_computed_at or window <= 0:
        return False
    if latest_attempt_id is not None and latest_attempt_id != state.last_attempt_id:
        return False
    return as_utc(now) - as_utc(state.last_computed_at) < timedelta(seconds=window)


def compute_pronunciation_metrics(
    learner_id: int,
    now: Optional[datetime] = None,
    force: bool = False
) -> PronunciationState:
    """
    Recompute and store the learner's pronunciation state.

    Args:
        learner_id: The ID of the learner
        now: Instant stamped on the history entry (default: now)
        force: Ignore the debounce window. Without it, a call inside the
            window still recomputes when an attempt arrived since the last compute

    Returns:
        The updated (or, inside the debounce window, the stored) PronunciationState

    Example:
        >>> state = compute_pronunciation_metrics(learner_id=1, force=True)
        >>> state.overall_score
        82
    """
    if now is None:
        now = utc_now()

    state = PronunciationState.query.filter_by(learner_id=learner_id).first()
    if not force and _recently_computed(state, now, _latest_attempt_id(learner_id)):
        logger.debug(f"Pronunciation recompute debounced for learner_id={learner_id}")
        return state

    attempts = UnitAttempt.query.filter_by(
        learner_id=learner_id
    ).order_by(UnitAttempt.completed_at.asc(), UnitAttempt.id.asc()).all()
    scores = collect_pronunciation_scores(attempts)

    count = len(scores)
    overall_score = round_half_up(sum(scores) / count) if count > 0 else 0

    if not state:
        state = PronunciationState(learner_id=learner_id, history=[])
        db.session.add(state)

    limit = current_app.config.get('PRONUNCIATION_HISTORY_LIMIT', DEFAULT_HISTORY_LIMIT)
    history = list(state.history or [])
    history.append({
        'score': overall_score,
        'words_count': count,
        'computed_at': now.isoformat(),
    })

    state.overall_score = overall_score
    state.total_words_pronounced = count
    state.history = history[-limit:]
    state.last_computed_at = now
    state.last_attempt_id = max((attempt.id for attempt in attempts), default=None)

    db.session.commit()

    logger.info(
        f"Pronunciation metrics computed: learner_id={learner_id}, "
        f"overall_score={overall_score}, words={count}"
    )

    return state


def get_stored_pronunciation(learner_id: int) -> Optional[PronunciationState]:
    """Stored pronunciation state without recomputing."""
    return PronunciationState.query.filter_by(learner_id=learner_id).first()


def has_uncounted_attempts(state: PronunciationState) -> bool:
    """True when an attempt was stored after the state was last computed."""
    latest_attempt_id = _latest_attempt_id(state.learner_id)
    return latest_attempt_id is not None and latest_attempt_id != state.last_attempt_id
