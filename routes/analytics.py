"""
Analytics Blueprint

Provides read endpoints for the learner aggregates: streak and badges,
confidence score, and pronunciation score. Learners read their own
aggregates; tutors and admins may read any learner's.
"""

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from auth.utils import can_access_learner, resolve_learner
from models import db
from services.confidence_service import compute_confidence_metrics, get_stored_confidence
from services.errors import NotFoundError
from services.pronunciation_service import (
    compute_pronunciation_metrics,
    get_stored_pronunciation,
    has_uncounted_attempts,
)
from services.streak_service import get_streak_data, rebuild_streak_from_history
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('analytics', __name__, url_prefix='/analytics')


def _refresh_requested():
    return request.args.get('refresh', 'false').lower() in ('1', 'true', 'yes')


def _streak(learner_id, refresh):
    if refresh:
        rebuild_streak_from_history(learner_id)
    return get_streak_data(learner_id)


def _confidence(learner_id, refresh):
    state = None if refresh else get_stored_confidence(learner_id)
    if state is None:
        state = compute_confidence_metrics(learner_id)
    return state.to_dict()


def _pronunciation(learner_id, refresh):
    state = None if refresh else get_stored_pronunciation(learner_id)
    if state is None or has_uncounted_attempts(state):
        state = compute_pronunciation_metrics(learner_id, force=True)
    return state.to_dict()


METRICS = {
    'streak': _streak,
    'confidence': _confidence,
    'pronunciation': _pronunciation,
}


def _metric_response(metric, learner_id):
    """Run one metric reader and wrap the result the way every endpoint answers."""
    try:
        data = METRICS[metric](learner_id, _refresh_requested())
        return jsonify({'success': True, metric: data}), 200

    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error fetching {metric} for learner {learner_id}: {str(e)}")
        return jsonify({
            'success': False,
            'error': f'Failed to fetch {metric}. Please try again later.'
        }), 500


@bp.route('/streak', methods=['GET'])
@login_required
def get_my_streak():
    """
    Get the current learner's streak.

    Query Parameters:
        refresh (bool, optional): Rebuild the streak from completion history first (default: false)

    Returns:
        JSON response:
        {
            'success': True,
            'streak': {
                'current_streak': 4,
                'longest_streak': 9,
                'last_activity_date': '2025-01-15',
                'streak_start_date': '2025-01-12',
                'today_completed': True,
                'yesterday_completed': True,
                'weekly_activity': [{'date': '2025-01-09', 'completed': False}, ...],
                'badges': [{'badge_id': 'getting-started', ...}]
            }
        }
    """
    return _metric_response('streak', current_user.id)


@bp.route('/confidence', methods=['GET'])
@login_required
def get_my_confidence():
    """
    Get the current learner's confidence score.

    Query Parameters:
        refresh (bool, optional): Recompute before answering (default: false)

    Example:
        GET /analytics/confidence?refresh=true

    Response:
        {
            "success": true,
            "confidence": {
                "confidence_score": 76.3,
                "label": "Average",
                "trend": "improving",
                "completion_rate": 0.75,
                ...
            }
        }
    """
    return _metric_response('confidence', current_user.id)


@bp.route('/pronunciation', methods=['GET'])
@login_required
def get_my_pronunciation():
    """
    Get the current learner's pronunciation score.

    Query Parameters:
        refresh (bool, optional): Recompute before answering (default: false)
    """
    return _metric_response('pronunciation', current_user.id)


@bp.route('/learners/<int:learner_id>/<metric>', methods=['GET'])
@login_required
def get_learner_metric(learner_id, metric):
    """
    Get another learner's streak, confidence or pronunciation.

    Only tutors and admins may read other learners; a learner asking for
    their own ID is answered like the self endpoints.

    Returns:
        200: Same body as the matching self endpoint
        403: Caller may not read this learner
        404: Unknown metric or learner
    """
    if metric not in METRICS:
        return jsonify({'success': False, 'error': f'Unknown metric: {metric}'}), 404

    if not can_access_learner(learner_id):
        return jsonify({
            'success': False,
            'error': 'Not allowed to view this learner'
        }), 403

    try:
        resolve_learner(learner_id)
    except NotFoundError as e:
        return jsonify({'success': False, 'error': str(e)}), 404

    return _metric_response(metric, learner_id)
