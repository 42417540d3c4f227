"""
Unit tests for the confidence service.

Tests per-type quality extraction, the pure confidence calculation,
labels and trends, and the stored per-learner confidence state.
"""

import pytest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from app import create_app
from models import db
from models.confidence_state import (
    LABEL_AVERAGE,
    LABEL_DEVELOPING,
    LABEL_EXCELLENT,
    LABEL_GOOD,
    LABEL_NEEDS_IMPROVEMENT,
    LABEL_VERY_GOOD,
    TREND_DECLINING,
    TREND_IMPROVING,
    TREND_STABLE,
)
from models.learner import Learner
from models.practice_unit import PracticeUnit
from models.unit_attempt import UnitAttempt
from services.assignment_service import assign_unit, mark_assignment_completed
from services.confidence_service import (
    calculate_confidence,
    compute_confidence_metrics,
    compute_trend,
    extract_attempt_quality_score,
    get_confidence_label,
    get_stored_confidence,
)

NOW = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)


def attempt(unit_type, results=None, score=None):
    return SimpleNamespace(unit_type=unit_type, results_json=results, score=score)


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
    learner = Learner(email='confident@example.com')
    db.session.add(learner)
    db.session.commit()
    return learner


def make_unit(unit_type, title=None):
    unit = PracticeUnit(title=title or f'{unit_type} unit', unit_type=unit_type)
    db.session.add(unit)
    db.session.commit()
    return unit


def store_attempt(learner_id, unit, score=None, results=None, completed_at=NOW):
    stored = UnitAttempt(
        learner_id=learner_id,
        unit_id=unit.id,
        unit_type=unit.unit_type,
        score=score,
        results_json=results or {},
        completed_at=completed_at
    )
    db.session.add(stored)
    db.session.commit()
    return stored


def complete_assignment(learner_id, unit):
    assign_unit(learner_id, unit.id)
    mark_assignment_completed(learner_id, unit.id, now=NOW)
    db.session.commit()


class TestExtractAttemptQualityScore:
    """Test per-type quality extraction"""

    def test_vocabulary_prefers_pronunciation_score_and_skips_zeros(self):
        results = {'word_scores': [
            {'score': 50, 'pronunciation_score': 90},
            {'score': 70},
            {'score': 0},
        ]}
        assert extract_attempt_quality_score('vocabulary', results, 10) == pytest.approx(80.0)

    def test_vocabulary_all_zero_falls_back_to_score(self):
        results = {'word_scores': [{'score': 0}]}
        assert extract_attempt_quality_score('vocabulary', results, 64) == 64

    def test_boolean_word_scores_are_ignored(self):
        results = {'word_scores': [{'score': True}, {'pronunciation_score': True}, {'score': 60}]}
        assert extract_attempt_quality_score('vocabulary', results, 10) == 60

    def test_roleplay_uses_fluency_when_no_pronunciation(self):
        results = {'scene_scores': [{'fluency_score': 70, 'score': 10}, {'pronunciation_score': 90}]}
        assert extract_attempt_quality_score('roleplay', results, None) == pytest.approx(80.0)

    def test_matching_accuracy_is_scaled(self):
        assert extract_attempt_quality_score('matching', {'accuracy': 0.9}, 50) == pytest.approx(90.0)

    def test_fill_blank_uses_results_score(self):
        assert extract_attempt_quality_score('fill_blank', {'score': 72}, 40) == 72

    def test_sentence_share_of_correct_reviews(self):
        results = {'sentence_reviews': [{'is_correct': True}, {'is_correct': False}, {'is_correct': True}, {}]}
        assert extract_attempt_quality_score('sentence', results, 10) == pytest.approx(50.0)

    def test_grammar_share_of_correct_patterns(self):
        results = {'pattern_reviews': [{'is_correct': True}, {'is_correct': True}, {'is_correct': False}]}
        assert extract_attempt_quality_score('grammar', results, None) == pytest.approx(200 / 3)

    def test_summary_quality_score_wins(self):
        assert extract_attempt_quality_score('summary', {'quality_score': 77}, 10) == 77

    @pytest.mark.parametrize('acceptable, expected', [(True, 85), (False, 50)])
    def test_summary_review_verdict(self, acceptable, expected):
        results = {'review': {'is_acceptable': acceptable}}
        assert extract_attempt_quality_score('summary', results, 10) == expected

    @pytest.mark.parametrize('completed, expected', [(True, 80), (False, 40)])
    def test_listening_completion(self, completed, expected):
        assert extract_attempt_quality_score('listening', {'completed': completed}, 99) == expected

    def test_definition_accuracy(self):
        assert extract_attempt_quality_score('definition', {'accuracy': 0.5}, 90) == pytest.approx(50.0)

    def test_unknown_type_uses_score(self):
        assert extract_attempt_quality_score('reading', {'anything': 1}, 66) == 66

    def test_missing_results_uses_score(self):
        assert extract_attempt_quality_score('vocabulary', None, 58) == 58

    def test_no_signal_at_all(self):
        assert extract_attempt_quality_score('daily_focus', None, None) is None


class TestCalculateConfidence:
    """Test the pure confidence calculation"""

    def test_nothing_assigned(self):
        metrics = calculate_confidence(0, 0, [])

        assert metrics['completion_rate'] == 0.0
        assert metrics['quality_score'] == 0.0
        assert metrics['confidence_score'] == 0.0

    def test_weighted_quality_and_components(self):
        attempts = [
            attempt('matching', {'accuracy': 0.9}),
            attempt('vocabulary', {'word_scores': [{'score': 80}, {'score': 90}]}),
        ]

        metrics = calculate_confidence(4, 3, attempts)

        expected_quality = (90 * 0.7 + 85 * 1.2) / (0.7 + 1.2)
        assert metrics['completion_rate'] == pytest.approx(0.75)
        assert metrics['completion_contribution'] == pytest.approx(30.0)
        assert metrics['quality_score'] == pytest.approx(expected_quality)
        assert metrics['quality_contribution'] == pytest.approx(expected_quality * 0.6)
        assert metrics['pronunciation_confidence'] == pytest.approx(85.0)
        assert metrics['completion_confidence'] == pytest.approx(90.0)

    def test_score_is_exact_sum_of_contributions(self):
        attempts = [attempt('sentence', score=73), attempt('roleplay', {'scene_scores': [{'score': 61}]})]

        metrics = calculate_confidence(7, 5, attempts)

        assert metrics['confidence_score'] == pytest.approx(
            metrics['completion_contribution'] + metrics['quality_contribution']
        )

    def test_out_of_range_quality_is_clamped(self):
        metrics = calculate_confidence(1, 1, [attempt('fill_blank', {'score': 150})])

        assert metrics['quality_score'] == pytest.approx(100.0)
        assert 0.0 <= metrics['confidence_score'] <= 100.0
        assert metrics['confidence_score'] == pytest.approx(100.0)

    def test_attempts_without_signal_are_skipped(self):
        metrics = calculate_confidence(2, 2, [attempt('daily_focus'), attempt('reading', score=80)])

        assert metrics['quality_score'] == pytest.approx(80.0)


class TestLabelsAndTrend:
    """Test get_confidence_label and compute_trend"""

    @pytest.mark.parametrize('score, label', [
        (100, LABEL_EXCELLENT),
        (95, LABEL_EXCELLENT),
        (94.9, LABEL_VERY_GOOD),
        (88, LABEL_VERY_GOOD),
        (82, LABEL_GOOD),
        (75, LABEL_AVERAGE),
        (60, LABEL_DEVELOPING),
        (59.9, LABEL_NEEDS_IMPROVEMENT),
        (0, LABEL_NEEDS_IMPROVEMENT),
    ])
    def test_label_thresholds(self, score, label):
        assert get_confidence_label(score) == label

    def test_no_history_is_stable(self):
        assert compute_trend([], 80) == TREND_STABLE

    def test_small_change_is_stable(self):
        assert compute_trend([{'score': 80}], 80.5) == TREND_STABLE
        assert compute_trend([{'score': 80}], 79.5) == TREND_STABLE

    def test_rise_is_improving(self):
        assert compute_trend([{'score': 70}, {'score': 80}], 80.6) == TREND_IMPROVING

    def test_drop_is_declining(self):
        assert compute_trend([{'score': 90}, {'score': 80}], 79.4) == TREND_DECLINING


class TestComputeConfidenceMetrics:
    """Test the stored confidence state"""

    def test_nothing_stored_before_first_compute(self, app_context, learner):
        assert get_stored_confidence(learner.id) is None

    def test_new_learner_scores_zero(self, app_context, learner):
        state = compute_confidence_metrics(learner.id, now=NOW)

        assert state.confidence_score == 0.0
        assert state.label == LABEL_NEEDS_IMPROVEMENT
        assert state.trend == TREND_STABLE
        assert len(state.history) == 1

    def test_uses_latest_attempt_of_completed_units(self, app_context, learner):
        done = make_unit('reading')
        pending = make_unit('reading', title='not yet')
        complete_assignment(learner.id, done)
        assign_unit(learner.id, pending.id)

        store_attempt(learner.id, done, score=40, completed_at=NOW - timedelta(days=2))
        store_attempt(learner.id, done, score=90, completed_at=NOW - timedelta(days=1))
        store_attempt(learner.id, pending, score=10)

        state = compute_confidence_metrics(learner.id, now=NOW)

        assert state.units_assigned == 2
        assert state.units_completed == 1
        assert state.completion_rate == pytest.approx(0.5)
        assert state.quality_score == pytest.approx(90.0)
        assert state.confidence_score == pytest.approx(20.0 + 54.0)
        assert state.label == LABEL_DEVELOPING

    def test_trend_compares_with_previous_compute(self, app_context, learner):
        unit = make_unit('reading')
        assign_unit(learner.id, unit.id)
        compute_confidence_metrics(learner.id, now=NOW)

        mark_assignment_completed(learner.id, unit.id, now=NOW)
        db.session.commit()
        store_attempt(learner.id, unit, score=80)
        state = compute_confidence_metrics(learner.id, now=NOW + timedelta(minutes=1))

        assert state.trend == TREND_IMPROVING
        assert [entry['score'] for entry in state.history] == [0.0, 88.0]

    def test_history_is_capped(self, app_context, learner):
        for minute in range(25):
            state = compute_confidence_metrics(learner.id, now=NOW + timedelta(minutes=minute))

        assert len(state.history) == 20
        assert state.history[-1]['computed_at'] == (NOW + timedelta(minutes=24)).isoformat()

    def test_history_cap_from_config(self, app_context, learner):
        app_context.config['CONFIDENCE_HISTORY_LIMIT'] = 3

        for minute in range(5):
            state = compute_confidence_metrics(learner.id, now=NOW + timedelta(minutes=minute))

        assert len(state.history) == 3

    def test_single_row_per_learner(self, app_context, learner):
        compute_confidence_metrics(learner.id, now=NOW)
        compute_confidence_metrics(learner.id, now=NOW + timedelta(minutes=1))

        assert get_stored_confidence(learner.id).history[0]['computed_at'] == NOW.isoformat()
