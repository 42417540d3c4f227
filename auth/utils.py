from models import db
from models.learner import Learner
from flask_login import current_user
from services.errors import NotFoundError
import logging

logger = logging.getLogger(__name__)


def can_access_learner(learner_id):
    """
    Check whether the current learner may read or write another learner's data.

    Learners may only touch their own data; tutors and admins may touch anyone's.

    Args:
        learner_id: ID of the learner whose data is requested

    Returns:
        bool: True if access is allowed
    """
    if not current_user.is_authenticated:
        return False
    if current_user.id == learner_id or current_user.is_privileged:
        return True

    logger.warning(f'Learner {current_user.id} denied access to learner {learner_id}')
    return False


def resolve_learner(learner_id):
    """
    Load a learner by ID.

    Raises:
        NotFoundError: If no such learner exists
    """
    learner = db.session.get(Learner, learner_id)
    if not learner:
        raise NotFoundError('Learner', learner_id)
    return learner
