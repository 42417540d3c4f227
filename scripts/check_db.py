"""
Database Health Check Script
Verifies that the database is working correctly
"""

from app import create_app
from models import db
from models.learner import Learner
from models.practice_unit import PracticeUnit
from models.completion_record import CompletionRecord
from models.streak_state import StreakState
from models.unit_attempt import UnitAttempt
from sqlalchemy import inspect

EXPECTED_TABLES = [
    'learners', 'practice_units', 'unit_assignments', 'unit_attempts',
    'completion_records', 'progress_sessions', 'streak_states',
    'confidence_states', 'pronunciation_states'
]


def check_database(config_name='development'):
    """Check if database is working correctly"""
    app = create_app(config_name)

    with app.app_context():
        try:
            print("=" * 60)
            print("DATABASE HEALTH CHECK")
            print("=" * 60)

            inspector = inspect(db.engine)
            tables = inspector.get_table_names()

            missing_tables = set(EXPECTED_TABLES) - set(tables)
            if missing_tables:
                print(f"\n❌ MISSING TABLES: {missing_tables}")
                return False

            print(f"\n✅ All {len(EXPECTED_TABLES)} expected tables exist")

            print("\n📊 Record Counts:")
            counts = {
                'Learners': Learner.query.count(),
                'Practice Units': PracticeUnit.query.count(),
                'Completions': CompletionRecord.query.count(),
                'Attempts': UnitAttempt.query.count(),
                'Streak Rows': StreakState.query.count(),
            }

            for name, count in counts.items():
                print(f"  - {name}: {count}")

            # Learners with first completions but no streak row
            orphaned = db.session.query(CompletionRecord.learner_id).filter(
                CompletionRecord.is_first_completion.is_(True),
                ~CompletionRecord.learner_id.in_(db.session.query(StreakState.learner_id))
            ).distinct().count()
            if orphaned:
                print(f"\n⚠️  WARNING: {orphaned} learners have completions but no streak row")
                print("   Run: python scripts/recompute_aggregates.py")

            print("\n" + "=" * 60)
            print("✅ DATABASE IS HEALTHY!")
            print("=" * 60)
            return True

        except Exception as e:
            print("\n" + "=" * 60)
            print(f"❌ DATABASE ERROR: {e}")
            print("=" * 60)
            return False


if __name__ == '__main__':
    check_database()
