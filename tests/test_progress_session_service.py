"""
Unit tests for the progress session service.

One resumable session per learner, unit and UTC day, overwritten on
every save.
"""

import pytest
from datetime import datetime, timedelta, timezone

from app import create_app
from models import db
from models.learner import Learner
from models.practice_unit import PracticeUnit
from models.progress_session import ProgressSession
from services.day_boundary import as_utc
from services.errors import NotFoundError, ValidationError
from services.progress_session_service import get_progress, save_progress, mark_progress_completed

NOW = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(scope='function')
def app_context():
    """Create a fresh app context and database for each test"""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def learner(app_context):
    learner = Learner(email='resumer@example.com')
    db.session.add(learner)
    db.session.commit()
    return learner


@pytest.fixture
def unit(app_context):
    unit = PracticeUnit(title='Matching drill', unit_type='matching')
    db.session.add(unit)
    db.session.commit()
    return unit


def answer(index, user_answer='cat', is_correct=True):
    return {
        'question_type': 'matching',
        'question_index': index,
        'user_answer': user_answer,
        'is_correct': is_correct,
        'is_submitted': True,
    }


class TestSaveProgress:
    """Test save_progress function"""

    def test_nothing_saved_yet(self, app_context, learner, unit):
        assert get_progress(learner.id, unit.id, now=NOW) is None

    def test_creates_session_for_today(self, app_context, learner, unit):
        save_progress(learner.id, unit.id, current_index=1, answers=[answer(0)], now=NOW)

        progress = get_progress(learner.id, unit.id, now=NOW)
        assert progress.date_string == '2025-01-15'
        assert progress.current_index == 1
        assert progress.answers == [answer(0)]
        assert progress.is_completed is False

    def test_last_write_wins(self, app_context, learner, unit):
        save_progress(learner.id, unit.id, current_index=2, answers=[answer(0), answer(1)], now=NOW)
        save_progress(learner.id, unit.id, current_index=1, answers=[answer(0, 'dog', False)],
                      now=NOW + timedelta(minutes=3))

        progress = get_progress(learner.id, unit.id, now=NOW)
        assert progress.current_index == 1
        assert progress.answers == [answer(0, 'dog', False)]
        assert ProgressSession.query.count() == 1

    def test_started_at_only_set_on_create(self, app_context, learner, unit):
        save_progress(learner.id, unit.id, current_index=0, answers=[], now=NOW)
        save_progress(learner.id, unit.id, current_index=3, answers=[], now=NOW + timedelta(minutes=10))

        progress = get_progress(learner.id, unit.id, now=NOW)
        assert as_utc(progress.started_at) == NOW
        assert as_utc(progress.last_updated_at) == NOW + timedelta(minutes=10)

    def test_new_day_starts_new_session(self, app_context, learner, unit):
        save_progress(learner.id, unit.id, current_index=5, answers=[], now=NOW)
        save_progress(learner.id, unit.id, current_index=1, answers=[], now=NOW + timedelta(days=1))

        assert ProgressSession.query.count() == 2
        assert get_progress(learner.id, unit.id, now=NOW).current_index == 5
        assert get_progress(learner.id, unit.id, now=NOW + timedelta(days=1)).current_index == 1

    def test_saving_completed_state(self, app_context, learner, unit):
        progress = save_progress(learner.id, unit.id, current_index=9, answers=[], is_completed=True,
                                 final_score=90, now=NOW)

        assert progress.is_completed is True
        assert progress.final_score == 90

    def test_to_dict(self, app_context, learner, unit):
        progress = save_progress(learner.id, unit.id, current_index=1, answers=[answer(0)], now=NOW)

        data = progress.to_dict()
        assert data['current_index'] == 1
        assert data['answers'] == [answer(0)]
        assert data['date_string'] == '2025-01-15'


class TestSaveProgressValidation:
    """Test rejected saves"""

    def test_negative_index(self, app_context, learner, unit):
        with pytest.raises(ValidationError):
            save_progress(learner.id, unit.id, current_index=-1, answers=[], now=NOW)

    def test_answers_must_be_list(self, app_context, learner, unit):
        with pytest.raises(ValidationError):
            save_progress(learner.id, unit.id, current_index=0, answers={'0': 'cat'}, now=NOW)

    def test_answer_missing_keys(self, app_context, learner, unit):
        with pytest.raises(ValidationError, match='question_index'):
            save_progress(learner.id, unit.id, current_index=0,
                          answers=[{'question_type': 'matching', 'is_submitted': True}], now=NOW)

    def test_final_score_out_of_range(self, app_context, learner, unit):
        with pytest.raises(ValidationError):
            save_progress(learner.id, unit.id, current_index=0, answers=[], final_score=101, now=NOW)

    def test_unknown_unit(self, app_context, learner):
        with pytest.raises(NotFoundError):
            save_progress(learner.id, 999, current_index=0, answers=[], now=NOW)

        assert ProgressSession.query.count() == 0


class TestMarkProgressCompleted:
    """Test mark_progress_completed function"""

    def test_closes_existing_session(self, app_context, learner, unit):
        save_progress(learner.id, unit.id, current_index=4, answers=[], now=NOW)

        mark_progress_completed(learner.id, unit.id, 88, now=NOW)
        db.session.commit()

        progress = get_progress(learner.id, unit.id, now=NOW)
        assert progress.is_completed is True
        assert progress.final_score == 88

    def test_without_session_does_nothing(self, app_context, learner, unit):
        assert mark_progress_completed(learner.id, unit.id, 88, now=NOW) is None
