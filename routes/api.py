from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required
from pydantic import ValidationError as PayloadValidationError
from models import db
from services.assignment_service import assign_unit
from services.attempt_service import record_attempt
from services.errors import NotFoundError
from services.payload_models import AttemptSubmission, AssignmentRequest, format_payload_errors
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('api', __name__, url_prefix='/api')


@bp.route('/attempts', methods=['POST'])
@login_required
def submit_attempt():
    """
    Store a scored attempt handed over by the scoring provider.

    Body:
        - unit_id: Practice unit the attempt belongs to
        - learner_id: Target learner (optional, defaults to the caller;
          other learners need a tutor or admin role)
        - score: Overall 0-100 score (optional)
        - results: Type specific results, e.g. {"word_scores": [...]}
        - time_spent, started_at, completed_at (optional)

    Returns:
        201: {"success": true, "attempt": {...}}
        400: Invalid body
        403: Posting for another learner without a privileged role
        404: Learner or unit not found
    """
    data = request.get_json(silent=True)
    if data is None:
        return jsonify({'success': False, 'error': 'Request body must be JSON'}), 400

    try:
        submission = AttemptSubmission.model_validate(data)

        learner_id = submission.learner_id or current_user.id
        if learner_id != current_user.id and not current_user.is_privileged:
            return jsonify({
                'success': False,
                'error': 'Not allowed to submit attempts for this learner'
            }), 403

        attempt = record_attempt(
            learner_id=learner_id,
            unit_id=submission.unit_id,
            score=submission.score,
            results=submission.results,
            time_spent=submission.time_spent,
            started_at=submission.started_at,
            completed_at=submission.completed_at
        )

        return jsonify({
            'success': True,
            'attempt': {
                'id': attempt.id,
                'learner_id': attempt.learner_id,
                'unit_id': attempt.unit_id,
                'unit_type': attempt.unit_type,
                'score': attempt.score,
                'completed_at': attempt.completed_at.isoformat() if attempt.completed_at else None
            }
        }), 201

    except PayloadValidationError as e:
        return jsonify({'success': False, 'error': format_payload_errors(e)}), 400

    except NotFoundError as e:
        return jsonify({'success': False, 'error': str(e)}), 404

    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error storing attempt for learner {current_user.id}: {str(e)}")
        return jsonify({
            'success': False,
            'error': 'Failed to store attempt. Please try again later.'
        }), 500


@bp.route('/assignments', methods=['POST'])
@login_required
def create_assignment():
    """
    Assign a unit to a learner. Tutors and admins only.

    Body:
        - learner_id: Learner receiving the unit
        - unit_id: Practice unit to assign
        - due_date: Optional YYYY-MM-DD

    Returns:
        201: {"success": true, "assignment": {...}}
        403: Caller is not a tutor or admin
        404: Learner or unit not found
    """
    if not current_user.is_privileged:
        return jsonify({
            'success': False,
            'error': 'Only tutors and admins can assign units'
        }), 403

    data = request.get_json(silent=True)
    if data is None:
        return jsonify({'success': False, 'error': 'Request body must be JSON'}), 400

    try:
        payload = AssignmentRequest.model_validate(data)

        assignment = assign_unit(payload.learner_id, payload.unit_id, due_date=payload.due_date)

        return jsonify({
            'success': True,
            'assignment': {
                'id': assignment.id,
                'learner_id': assignment.learner_id,
                'unit_id': assignment.unit_id,
                'status': assignment.status,
                'due_date': assignment.due_date.isoformat() if assignment.due_date else None
            }
        }), 201

    except PayloadValidationError as e:
        return jsonify({'success': False, 'error': format_payload_errors(e)}), 400

    except NotFoundError as e:
        return jsonify({'success': False, 'error': str(e)}), 404

    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error assigning unit for tutor {current_user.id}: {str(e)}")
        return jsonify({
            'success': False,
            'error': 'Failed to assign unit. Please try again later.'
        }), 500
