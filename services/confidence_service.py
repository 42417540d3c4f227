"""
Confidence Service - Blends completion rate and attempt quality into one 0-100 score.

    confidence = (completion_rate x 40) + (quality_score x 0.60)

Quality is a weighted mean of per-unit quality scores taken from the latest
completed attempt of every completed assignment. Attempts scored by the
pronunciation provider and attempts scored by plain correctness checks are
also averaged separately as coach diagnostics.

The whole state is recomputed from stored attempts on every call.
"""

import logging
from datetime import datetime
from typing import Optional
from flask import current_app
from models import db
from models.confidence_state import (
    ConfidenceState,
    LABEL_EXCELLENT,
    LABEL_VERY_GOOD,
    LABEL_GOOD,
    LABEL_AVERAGE,
    LABEL_DEVELOPING,
    LABEL_NEEDS_IMPROVEMENT,
    TREND_IMPROVING,
    TREND_STABLE,
    TREND_DECLINING,
)
from models.unit_attempt import UnitAttempt
from services.assignment_service import get_completed_unit_ids, get_assignment_counts
from services.day_boundary import utc_now

logger = logging.getLogger(__name__)

COMPLETION_WEIGHT = 40
QUALITY_WEIGHT = 0.60

# How much each unit type counts toward quality
UNIT_TYPE_WEIGHTS = {
    'vocabulary': 1.2,
    'roleplay': 1.5,
    'matching': 0.7,
    'definition': 0.7,
    'fill_blank': 0.7,
    'sentence': 1.0,
    'grammar': 1.0,
    'summary': 1.2,
    'listening': 0.6,
    'reading': 0.8,
}
DEFAULT_UNIT_WEIGHT = 1.0

# Types scored by the external pronunciation provider
PRONUNCIATION_SCORED_TYPES = {'vocabulary', 'roleplay'}

# Lower bound of each label, checked top down
LABEL_THRESHOLDS = [
    (95, LABEL_EXCELLENT),
    (88, LABEL_VERY_GOOD),
    (82, LABEL_GOOD),
    (75, LABEL_AVERAGE),
    (60, LABEL_DEVELOPING),
]

TREND_EPSILON = 0.5

DEFAULT_HISTORY_LIMIT = 20


def _mean(values: list) -> float:
    return sum(values) / len(values) if values else 0.0


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _positive_scores(items: list, *keys: str) -> list:
    """First present key per item, keeping only values above zero."""
    scores = []
    for item in items:
        value = None
        for key in keys:
            if item.get(key) is not None:
                value = item[key]
                break
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
            scores.append(value)
    return scores


def _share_correct(reviews: list) -> float:
    correct = sum(1 for review in reviews if review.get('is_correct'))
    return correct / len(reviews) * 100


def extract_attempt_quality_score(unit_type: str, results: Optional[dict], score: Optional[float]) -> Optional[float]:
    """
    Normalized 0-100 quality score of a single attempt.

    Each unit type has its own rule; when the type specific results are
    missing, the raw attempt score is used. None means the attempt carries
    no usable signal and is left out of the mean.

    Args:
        unit_type: Type of the practice unit
        results: Type specific results (results_json of the attempt)
        score: Raw overall attempt score

    Returns:
        float or None

    Example:
        >>> extract_attempt_quality_score('matching', {'accuracy': 0.9}, 50)
        90.0
        >>> extract_attempt_quality_score('listening', {'completed': False}, None)
        40
    """
    results = results or {}

    if unit_type == 'vocabulary' and results.get('word_scores'):
        scores = _positive_scores(results['word_scores'], 'pronunciation_score', 'score')
        return _mean(scores) if scores else score

    if unit_type == 'roleplay' and results.get('scene_scores'):
        scores = _positive_scores(results['scene_scores'], 'pronunciation_score', 'fluency_score', 'score')
        return _mean(scores) if scores else score

    if unit_type == 'matching' and results:
        accuracy = results.get('accuracy')
        return accuracy * 100 if accuracy is not None else score

    if unit_type == 'fill_blank' and results:
        return results['score'] if results.get('score') is not None else score

    if unit_type == 'sentence' and results:
        reviews = results.get('sentence_reviews') or []
        return _share_correct(reviews) if reviews else score

    if unit_type == 'grammar' and results.get('pattern_reviews'):
        return _share_correct(results['pattern_reviews'])

    if unit_type == 'summary' and results:
        if results.get('quality_score') is not None:
            return results['quality_score']
        review = results.get('review') or {}
        if review.get('is_acceptable') is not None:
            return 85 if review['is_acceptable'] else 50
        return score

    if unit_type == 'listening' and results:
        return 80 if results.get('completed') else 40

    if unit_type == 'definition' and results:
        accuracy = results.get('accuracy')
        return accuracy * 100 if isinstance(accuracy, (int, float)) else score

    return score


def get_confidence_label(score: float) -> str:
    """
    Qualitative label for a confidence score.

    Example:
        >>> get_confidence_label(90)
        'Very Good'
    """
    for threshold, label in LABEL_THRESHOLDS:
        if score >= threshold:
            return label
    return LABEL_NEEDS_IMPROVEMENT


def compute_trend(history: list, current_score: float) -> str:
    """Compare against the most recent history entry; stable without history."""
    if not history:
        return TREND_STABLE

    previous = history[-1].get('score', 0)
    if current_score > previous + TREND_EPSILON:
        return TREND_IMPROVING
    if current_score < previous - TREND_EPSILON:
        return TREND_DECLINING
    return TREND_STABLE


def _latest_attempts(learner_id: int, unit_ids: list) -> list:
    """Most recent completed attempt for each of the given units."""
    if not unit_ids:
        return []

    attempts = UnitAttempt.query.filter(
        UnitAttempt.learner_id == learner_id,
        UnitAttempt.unit_id.in_(unit_ids),
        UnitAttempt.completed_at.isnot(None)
    ).order_by(UnitAttempt.completed_at.desc(), UnitAttempt.id.desc()).all()

    latest = {}
    for attempt in attempts:
        latest.setdefault(attempt.unit_id, attempt)
    return list(latest.values())


def calculate_confidence(units_assigned: int, units_completed: int, attempts: list) -> dict:
    """
    Pure calculation of the confidence components.

    Args:
        units_assigned: Number of units assigned to the learner
        units_completed: Number of those units completed
        attempts: Latest attempt per completed unit

    Returns:
        dict with completion_rate, completion_contribution, quality_score,
        quality_contribution, pronunciation_confidence, completion_confidence
        and confidence_score. confidence_score is exactly the sum of the two
        contributions.
    """
    weighted_sum = 0.0
    weight_total = 0.0
    pronunciation_scores = []
    correctness_scores = []

    for attempt in attempts:
        quality = extract_attempt_quality_score(attempt.unit_type, attempt.results_json, attempt.score)
        if quality is None:
            continue
        quality = _clamp(float(quality))
        weight = UNIT_TYPE_WEIGHTS.get(attempt.unit_type, DEFAULT_UNIT_WEIGHT)

        weighted_sum += quality * weight
        weight_total += weight

        if attempt.unit_type in PRONUNCIATION_SCORED_TYPES:
            pronunciation_scores.append(quality)
        else:
            correctness_scores.append(quality)

    completion_rate = units_completed / units_assigned if units_assigned > 0 else 0.0
    completion_rate = _clamp(completion_rate, 0.0, 1.0)
    quality_score = _clamp(weighted_sum / weight_total) if weight_total > 0 else 0.0

    completion_contribution = completion_rate * COMPLETION_WEIGHT
    quality_contribution = quality_score * QUALITY_WEIGHT

    return {
        'completion_rate': completion_rate,
        'completion_contribution': completion_contribution,
        'quality_score': quality_score,
        'quality_contribution': quality_contribution,
        'pronunciation_confidence': _mean(pronunciation_scores),
        'completion_confidence': _mean(correctness_scores),
        'confidence_score': _clamp(completion_contribution + quality_contribution),
    }


def compute_confidence_metrics(learner_id: int, now: Optional[datetime] = None) -> ConfidenceState:
    """
    Recompute and store the learner's confidence state.

    Workflow:
    1. Count assigned and completed units
    2. Take the latest completed attempt per completed unit
    3. Weighted quality mean plus diagnostic sub-scores
    4. Label, trend against the previous entry, capped history append
    5. Upsert the single per-learner row

    Args:
        learner_id: The ID of the learner
        now: Instant stamped on the history entry (default: now)

    Returns:
        The updated ConfidenceState

    Example:
        >>> state = compute_confidence_metrics(learner_id=1)
        >>> state.label
        'Good'
    """
    if now is None:
        now = utc_now()

    units_assigned, units_completed = get_assignment_counts(learner_id)
    if units_assigned > 0:
        attempts = _latest_attempts(learner_id, get_completed_unit_ids(learner_id))
    else:
        attempts = []

    metrics = calculate_confidence(units_assigned, units_completed, attempts)
    label = get_confidence_label(metrics['confidence_score'])

    state = ConfidenceState.query.filter_by(learner_id=learner_id).first()
    if not state:
        state = ConfidenceState(learner_id=learner_id, history=[])
        db.session.add(state)

    history = list(state.history or [])
    trend = compute_trend(history, metrics['confidence_score'])

    limit = current_app.config.get('CONFIDENCE_HISTORY_LIMIT', DEFAULT_HISTORY_LIMIT)
    history.append({
        'score': round(metrics['confidence_score'], 1),
        'label': label,
        'computed_at': now.isoformat(),
        'completed_units': units_completed,
    })

    state.units_assigned = units_assigned
    state.units_completed = units_completed
    for key, value in metrics.items():
        setattr(state, key, value)
    state.label = label
    state.trend = trend
    state.history = history[-limit:]
    state.last_computed_at = now

    db.session.commit()

    logger.info(
        f"Confidence metrics computed: learner_id={learner_id}, "
        f"score={metrics['confidence_score']:.1f}, label={label}, trend={trend}, "
        f"assigned={units_assigned}, completed={units_completed}"
    )

    return state


def get_stored_confidence(learner_id: int) -> Optional[ConfidenceState]:
    """Stored confidence state without recomputing."""
    return ConfidenceState.query.filter_by(learner_id=learner_id).first()
