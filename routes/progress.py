"""
Progress Routes - Endpoints for finishing units and resuming unfinished ones.

This module provides API endpoints for:
- POST /progress/units/<unit_id>/complete - Record a finished unit
- GET /progress/units/<unit_id>/session - Today's saved answers for a unit
- POST /progress/units/<unit_id>/session - Save in-flight answers
- GET /progress/history - Recent completion records
"""

import logging
from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from pydantic import ValidationError as PayloadValidationError

from models import db
from services.completion_service import record_completion, get_completion_history, get_passing_score
from services.errors import NotFoundError
from services.payload_models import CompletionSubmission, ProgressSave, format_payload_errors
from services.progress_session_service import get_progress, save_progress

logger = logging.getLogger(__name__)

bp = Blueprint('progress', __name__, url_prefix='/progress')

MAX_HISTORY_LIMIT = 100


@bp.route('/units/<int:unit_id>/complete', methods=['POST'])
@login_required
def complete_unit(unit_id):
    """
    Record a finished unit for the current learner.

    Request Body:
        {
            "score": 85,
            "correct_answers": 17,
            "total_questions": 20,
            "time_spent": 240,
            "answers": [...]
        }

    Returns:
        200: Completion recorded (first completion or same-day replay)
            {
                "success": true,
                "streak_updated": true,
                "badge_unlocked": {"badge_id": "getting-started", "badge_name": "Getting Started", "milestone": 3},
                "is_first_completion": true,
                "already_completed_today": false,
                "current_streak": 3,
                "date_string": "2025-01-15",
                "score": 85
            }
        400: Invalid body or score below the passing threshold
        404: Unit not found
        500: Server error

    Implementation Notes:
        - A second submission for the same unit on the same UTC day is
          stored as a replay and reported with already_completed_today
        - Streak, confidence and pronunciation are updated in the same request
    """
    data = request.get_json(silent=True)
    if data is None:
        return jsonify({'success': False, 'error': 'Request body must be JSON'}), 400

    try:
        submission = CompletionSubmission.model_validate(data)

        passing_score = get_passing_score()
        if submission.score < passing_score:
            logger.warning(
                f"Completion below passing score from learner {current_user.id}: "
                f"unit_id={unit_id}, score={submission.score}"
            )
            return jsonify({
                'success': False,
                'error': f'Score must be at least {passing_score} to count as a completion'
            }), 400

        result = record_completion(
            learner_id=current_user.id,
            unit_id=unit_id,
            score=submission.score,
            correct_answers=submission.correct_answers,
            total_questions=submission.total_questions,
            time_spent=submission.time_spent,
            answers=submission.answers
        )

        return jsonify({'success': True, **result}), 200

    except PayloadValidationError as e:
        logger.warning(f"Invalid completion payload from learner {current_user.id}: {e.error_count()} errors")
        return jsonify({'success': False, 'error': format_payload_errors(e)}), 400

    except NotFoundError as e:
        return jsonify({'success': False, 'error': str(e)}), 404

    except ValueError as e:
        logger.warning(f"Rejected completion from learner {current_user.id} for unit {unit_id}: {str(e)}")
        return jsonify({'success': False, 'error': str(e)}), 400

    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error recording completion for learner {current_user.id}, unit {unit_id}: {str(e)}")
        return jsonify({
            'success': False,
            'error': 'Failed to record completion. Please try again later.'
        }), 500


@bp.route('/units/<int:unit_id>/session', methods=['GET'])
@login_required
def get_unit_session(unit_id):
    """
    Get today's saved answers for a unit.

    Returns:
        200: {"success": true, "progress": {...}} or {"success": true, "progress": null}
    """
    try:
        progress = get_progress(current_user.id, unit_id)
        return jsonify({
            'success': True,
            'progress': progress.to_dict() if progress else None
        }), 200

    except Exception as e:
        logger.exception(f"Error fetching progress for learner {current_user.id}, unit {unit_id}: {str(e)}")
        return jsonify({
            'success': False,
            'error': 'Failed to fetch progress. Please try again later.'
        }), 500


@bp.route('/units/<int:unit_id>/session', methods=['POST'])
@login_required
def save_unit_session(unit_id):
    """
    Save in-flight answers for a unit, replacing whatever was saved today.

    Request Body:
        {
            "current_index": 3,
            "answers": [{"question_type": "matching", "question_index": 0,
                         "user_answer": "cat", "is_correct": true, "is_submitted": true}],
            "is_completed": false,
            "final_score": null
        }

    Returns:
        200: {"success": true, "progress": {...}}
        400: Invalid body
        404: Unit not found
    """
    data = request.get_json(silent=True)
    if data is None:
        return jsonify({'success': False, 'error': 'Request body must be JSON'}), 400

    try:
        payload = ProgressSave.model_validate(data)

        progress = save_progress(
            learner_id=current_user.id,
            unit_id=unit_id,
            current_index=payload.current_index,
            answers=[answer.model_dump() for answer in payload.answers],
            is_completed=payload.is_completed,
            final_score=payload.final_score
        )

        return jsonify({'success': True, 'progress': progress.to_dict()}), 200

    except PayloadValidationError as e:
        logger.warning(f"Invalid progress payload from learner {current_user.id}: {e.error_count()} errors")
        return jsonify({'success': False, 'error': format_payload_errors(e)}), 400

    except NotFoundError as e:
        return jsonify({'success': False, 'error': str(e)}), 404

    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error saving progress for learner {current_user.id}, unit {unit_id}: {str(e)}")
        return jsonify({
            'success': False,
            'error': 'Failed to save progress. Please try again later.'
        }), 500


@bp.route('/history', methods=['GET'])
@login_required
def get_history():
    """
    Recent completion records of the current learner, newest first.

    Query Parameters:
        limit (int, optional): Number of records (1-100, default: 30)

    Returns:
        200: {"success": true, "completions": [...]}
    """
    limit = request.args.get('limit', type=int)
    if limit is None:
        limit = 30

    if limit < 1 or limit > MAX_HISTORY_LIMIT:
        return jsonify({
            'success': False,
            'error': f'Invalid limit parameter. Must be between 1 and {MAX_HISTORY_LIMIT}.'
        }), 400

    try:
        records = get_completion_history(current_user.id, limit=limit)
        return jsonify({
            'success': True,
            'completions': [record.to_dict() for record in records]
        }), 200

    except Exception as e:
        logger.exception(f"Error fetching completion history for learner {current_user.id}: {str(e)}")
        return jsonify({
            'success': False,
            'error': 'Failed to fetch completion history. Please try again later.'
        }), 500
