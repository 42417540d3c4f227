"""
Aggregate Rebuild Script
Recomputes streaks, confidence and pronunciation for every learner from stored records.
Run after a crash between a completion and its streak update, or after bulk imports.
"""

import sys
from app import create_app
from models import db
from models.learner import Learner
from services.confidence_service import compute_confidence_metrics
from services.pronunciation_service import compute_pronunciation_metrics
from services.streak_service import rebuild_streak_from_history


def recompute_aggregates(config_name='development'):
    """Rebuild all per-learner aggregates"""
    app = create_app(config_name)

    with app.app_context():
        print("=" * 60)
        print("AGGREGATE REBUILD")
        print("=" * 60)

        learners = Learner.query.order_by(Learner.id).all()
        print(f"\n👥 Learners: {len(learners)}")

        failures = 0
        for learner in learners:
            try:
                streak = rebuild_streak_from_history(learner.id)
                confidence = compute_confidence_metrics(learner.id)
                pronunciation = compute_pronunciation_metrics(learner.id, force=True)
                print(
                    f"  - {learner.email}: streak {streak.current_streak} "
                    f"(longest {streak.longest_streak}), "
                    f"confidence {confidence.confidence_score:.1f} ({confidence.label}), "
                    f"pronunciation {pronunciation.overall_score}"
                )
            except Exception as e:
                db.session.rollback()
                failures += 1
                print(f"  ❌ {learner.email}: {e}")

        print("\n" + "=" * 60)
        if failures:
            print(f"⚠️  Finished with {failures} failed learners")
        else:
            print("✅ ALL AGGREGATES REBUILT")
        print("=" * 60)
        return failures == 0


if __name__ == '__main__':
    ok = recompute_aggregates(sys.argv[1] if len(sys.argv) > 1 else 'development')
    sys.exit(0 if ok else 1)
