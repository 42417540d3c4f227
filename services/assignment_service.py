"""Assignment Service - Units assigned to learners, the denominator of the completion rate"""
import logging
from datetime import date, datetime
from typing import Optional
from sqlalchemy.exc import IntegrityError
from models import db
from models.learner import Learner
from models.practice_unit import PracticeUnit
from models.unit_assignment import UnitAssignment, STATUS_PENDING, STATUS_COMPLETED
from services.day_boundary import utc_now
from services.errors import NotFoundError

logger = logging.getLogger(__name__)


def get_assignment(learner_id: int, unit_id: int) -> Optional[UnitAssignment]:
    return UnitAssignment.query.filter_by(
        learner_id=learner_id,
        unit_id=unit_id
    ).first()


def assign_unit(learner_id: int, unit_id: int, due_date: Optional[date] = None) -> UnitAssignment:
    """
    Assign a unit to a learner.

    Assigning the same unit twice returns the existing assignment unchanged.

    Args:
        learner_id: The ID of the learner
        unit_id: The ID of the practice unit
        due_date: Optional due date

    Returns:
        The new or existing UnitAssignment

    Raises:
        NotFoundError: If the learner or unit does not exist
    """
    if not db.session.get(Learner, learner_id):
        raise NotFoundError('Learner', learner_id)
    if not db.session.get(PracticeUnit, unit_id):
        raise NotFoundError('Practice unit', unit_id)

    existing = get_assignment(learner_id, unit_id)
    if existing:
        logger.debug(f"Unit already assigned: learner_id={learner_id}, unit_id={unit_id}")
        return existing

    assignment = UnitAssignment(
        learner_id=learner_id,
        unit_id=unit_id,
        status=STATUS_PENDING,
        due_date=due_date
    )
    db.session.add(assignment)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.debug(f"Unit assigned concurrently: learner_id={learner_id}, unit_id={unit_id}")
        return get_assignment(learner_id, unit_id)

    logger.info(f"Assigned unit: learner_id={learner_id}, unit_id={unit_id}, due_date={due_date}")
    return assignment


def mark_assignment_completed(learner_id: int, unit_id: int, now: Optional[datetime] = None) -> Optional[UnitAssignment]:
    """
    Mark the learner's assignment for a unit as completed, if one exists.

    Units can be completed without being assigned (e.g. daily focus), in
    which case nothing happens. The caller commits.
    """
    assignment = get_assignment(learner_id, unit_id)
    if not assignment or assignment.is_completed:
        return assignment

    assignment.status = STATUS_COMPLETED
    assignment.completed_at = now or utc_now()
    return assignment


def get_assignment_counts(learner_id: int) -> tuple:
    """
    Assigned and completed unit counts for a learner.

    Returns:
        tuple: (units_assigned, units_completed)
    """
    assignments = UnitAssignment.query.filter_by(learner_id=learner_id).all()
    completed = sum(1 for assignment in assignments if assignment.is_completed)
    return len(assignments), completed


def get_completed_unit_ids(learner_id: int) -> list:
    assignments = UnitAssignment.query.filter_by(learner_id=learner_id).all()
    return [assignment.unit_id for assignment in assignments if assignment.is_completed]
