"""Streak Service - Consecutive-day streaks and badge unlocks driven by first completions"""
import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Optional
from sqlalchemy.exc import IntegrityError
from models import db
from models.completion_record import CompletionRecord
from models.streak_state import StreakState
from services.day_boundary import utc_now, utc_day, previous_day, is_consecutive_day, parse_day_string

logger = logging.getLogger(__name__)

# Ascending by milestone; badges are permanent once unlocked
BADGE_DEFINITIONS = [
    {
        'badge_id': 'getting-started',
        'badge_name': 'Getting Started',
        'description': 'Complete practice on 3 consecutive days',
        'milestone': 3,
    },
    {
        'badge_id': 'week-warrior',
        'badge_name': 'Week Warrior',
        'description': 'Complete practice on 7 consecutive days',
        'milestone': 7,
    },
    {
        'badge_id': 'fortnight-focus',
        'badge_name': 'Fortnight Focus',
        'description': 'Complete practice on 14 consecutive days',
        'milestone': 14,
    },
    {
        'badge_id': 'monthly-master',
        'badge_name': 'Monthly Master',
        'description': 'Complete practice on 30 consecutive days',
        'milestone': 30,
    },
    {
        'badge_id': 'century-club',
        'badge_name': 'Century Club',
        'description': 'Complete practice on 100 consecutive days',
        'milestone': 100,
    },
]

WEEK_SLOTS = 7


def _empty_slot() -> dict:
    return {'date': None, 'completed': False, 'score': None}


def _empty_weekly_slots() -> list:
    return [_empty_slot() for _ in range(WEEK_SLOTS)]


def get_streak_state(learner_id: int) -> Optional[StreakState]:
    return StreakState.query.filter_by(learner_id=learner_id).first()


def get_or_create_streak_state(learner_id: int) -> StreakState:
    """
    Get the learner's streak row, creating an empty one if needed.

    Two requests creating the row at once are resolved by the unique
    learner_id column: the loser rolls back and reads the winner's row.
    The session must not hold other pending changes when this is called.
    """
    state = get_streak_state(learner_id)
    if state:
        return state

    state = StreakState(
        learner_id=learner_id,
        current_streak=0,
        longest_streak=0,
        badges=[],
        weekly_activity=_empty_weekly_slots()
    )
    db.session.add(state)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        logger.debug(f"Streak row for learner_id={learner_id} created concurrently, reloading")
        state = get_streak_state(learner_id)

    return state


def _unlock_badges(state: StreakState, streak_value: int, now: datetime) -> Optional[dict]:
    """
    Append every milestone badge reached by streak_value that is not yet held.

    Returns the highest newly unlocked badge, or None. The badge list is
    reassigned, never mutated in place: in-place JSON changes are not tracked.
    """
    badges = list(state.badges or [])
    held = {badge['badge_id'] for badge in badges}
    newest = None

    for definition in BADGE_DEFINITIONS:
        if definition['badge_id'] in held or definition['milestone'] > streak_value:
            continue
        newest = {
            'badge_id': definition['badge_id'],
            'badge_name': definition['badge_name'],
            'unlocked_at': now.isoformat(),
            'milestone': definition['milestone'],
        }
        badges.append(newest)
        logger.info(
            f"Badge unlocked: learner_id={state.learner_id}, badge_id={definition['badge_id']}, "
            f"streak={streak_value}"
        )

    if newest:
        state.badges = badges
    return newest


def _mark_weekly_slot(state: StreakState, day: date, score) -> None:
    slots = list(state.weekly_activity or [])
    while len(slots) < WEEK_SLOTS:
        slots.append(_empty_slot())
    slots[day.weekday()] = {'date': day.isoformat(), 'completed': True, 'score': score}
    state.weekly_activity = slots


def apply_qualifying_completion(learner_id: int, score: float, now: Optional[datetime] = None):
    """
    Advance the learner's streak for a first completion recorded today.

    Transitions (calendar days in UTC):
    - last activity yesterday: current_streak + 1
    - last activity today: unchanged, already counted
    - gap of two or more days, or no activity: current_streak = 1, new start date

    A last activity date later than today can only come from clock skew
    between writers; it is treated like today and left unchanged.

    Args:
        learner_id: The ID of the learner
        score: Score of the completion, stored in the weekday slot
        now: Instant of the completion (default: now)

    Returns:
        tuple: (StreakState, newly unlocked badge dict or None)

    Example:
        >>> state, badge = apply_qualifying_completion(learner_id=1, score=85)
        >>> state.current_streak
        3
        >>> badge['badge_id']
        'getting-started'
    """
    if now is None:
        now = utc_now()
    today = utc_day(now)

    state = get_or_create_streak_state(learner_id)
    last = state.last_activity_date

    if last is not None and last >= today:
        logger.debug(f"Streak already counted today for learner_id={learner_id}")
    elif last is not None and is_consecutive_day(last, today):
        state.current_streak = (state.current_streak or 0) + 1
        state.last_activity_date = today
    else:
        state.current_streak = 1
        state.streak_start_date = today
        state.last_activity_date = today

    state.longest_streak = max(state.longest_streak or 0, state.current_streak)

    new_badge = _unlock_badges(state, state.current_streak, now)
    _mark_weekly_slot(state, today, score)

    db.session.commit()

    logger.info(
        f"Streak updated: learner_id={learner_id}, current={state.current_streak}, "
        f"longest={state.longest_streak}, last_activity={state.last_activity_date}"
    )

    return state, new_badge


def calculate_longest_streak(day_strings: Iterable[str]) -> int:
    """
    Longest run of consecutive calendar days in a collection of YYYY-MM-DD keys.

    Example:
        >>> calculate_longest_streak(['2025-01-01', '2025-01-02', '2025-01-04'])
        2
    """
    days = sorted({parse_day_string(value) for value in day_strings})
    if not days:
        return 0

    longest = 1
    run = 1
    for earlier, later in zip(days, days[1:]):
        if is_consecutive_day(earlier, later):
            run += 1
            longest = max(longest, run)
        else:
            run = 1
    return longest


def _first_completion_days(learner_id: int) -> dict:
    """Map of day string to the earliest first-completion record of that day."""
    records = CompletionRecord.query.filter_by(
        learner_id=learner_id,
        is_first_completion=True
    ).order_by(CompletionRecord.completed_at.asc()).all()

    by_day = {}
    for record in records:
        by_day.setdefault(record.date_string, record)
    return by_day


def rebuild_streak_from_history(learner_id: int, now: Optional[datetime] = None) -> StreakState:
    """
    Recompute the streak row from the learner's first-completion records.

    Used when the row is missing or suspected stale, e.g. after a crash
    between writing a completion and updating the streak. The current
    streak counts back from today, or from yesterday when today has no
    completion yet. The longest streak never decreases and badges already
    held are kept.

    Args:
        learner_id: The ID of the learner
        now: Reference instant (default: now)

    Returns:
        The recomputed StreakState
    """
    if now is None:
        now = utc_now()
    today = utc_day(now)

    by_day = _first_completion_days(learner_id)
    state = get_or_create_streak_state(learner_id)

    anchor = None
    if today.isoformat() in by_day:
        anchor = today
    elif previous_day(today).isoformat() in by_day:
        anchor = previous_day(today)

    current = 0
    start = None
    if anchor is not None:
        cursor = anchor
        while cursor.isoformat() in by_day:
            current += 1
            start = cursor
            cursor = previous_day(cursor)

    longest = calculate_longest_streak(by_day.keys())

    state.current_streak = current
    state.streak_start_date = start
    state.last_activity_date = parse_day_string(max(by_day)) if by_day else None
    state.longest_streak = max(state.longest_streak or 0, longest, current)

    _unlock_badges(state, state.longest_streak, now)

    slots = _empty_weekly_slots()
    for offset in range(WEEK_SLOTS):
        day = today - timedelta(days=offset)
        record = by_day.get(day.isoformat())
        if record:
            slots[day.weekday()] = {'date': day.isoformat(), 'completed': True, 'score': record.score}
    state.weekly_activity = slots

    db.session.commit()

    logger.info(
        f"Streak rebuilt from history: learner_id={learner_id}, days={len(by_day)}, "
        f"current={state.current_streak}, longest={state.longest_streak}"
    )

    return state


def _weekly_window(state: Optional[StreakState], today: date) -> list:
    """Last seven days, oldest first, read from the weekday slots."""
    slots = list(state.weekly_activity or []) if state else []
    window = []
    for offset in range(WEEK_SLOTS - 1, -1, -1):
        day = today - timedelta(days=offset)
        slot = slots[day.weekday()] if day.weekday() < len(slots) else None
        completed = bool(slot and slot.get('date') == day.isoformat() and slot.get('completed'))
        entry = {'date': day.isoformat(), 'completed': completed}
        if completed:
            entry['score'] = slot.get('score')
        window.append(entry)
    return window


def _has_first_completion_on(learner_id: int, day: date) -> bool:
    return CompletionRecord.query.filter_by(
        learner_id=learner_id,
        date_string=day.isoformat(),
        is_first_completion=True
    ).first() is not None


def get_streak_data(learner_id: int, now: Optional[datetime] = None) -> dict:
    """
    Read model of the learner's streak.

    The stored current_streak only changes on qualifying events, so a
    streak whose last activity is older than yesterday is reported as 0
    here without touching the row. A missing row is rebuilt from history
    when the learner has completions.

    Returns:
        dict: {
            'current_streak': int,
            'longest_streak': int,
            'last_activity_date': str or None,
            'streak_start_date': str or None,
            'today_completed': bool,
            'yesterday_completed': bool,
            'weekly_activity': [{'date', 'completed', 'score'?}],
            'badges': [...]
        }
    """
    if now is None:
        now = utc_now()
    today = utc_day(now)
    yesterday = previous_day(today)

    state = get_streak_state(learner_id)
    if state is None and CompletionRecord.query.filter_by(
        learner_id=learner_id, is_first_completion=True
    ).first():
        logger.warning(f"Streak row missing for learner_id={learner_id}, rebuilding from history")
        state = rebuild_streak_from_history(learner_id, now=now)

    if state is None:
        return {
            'current_streak': 0,
            'longest_streak': 0,
            'last_activity_date': None,
            'streak_start_date': None,
            'today_completed': False,
            'yesterday_completed': False,
            'weekly_activity': _weekly_window(None, today),
            'badges': [],
        }

    last = state.last_activity_date
    is_alive = last is not None and last >= yesterday
    current = state.current_streak if is_alive else 0

    return {
        'current_streak': current,
        'longest_streak': state.longest_streak or 0,
        'last_activity_date': last.isoformat() if last else None,
        'streak_start_date': state.streak_start_date.isoformat() if is_alive and state.streak_start_date else None,
        'today_completed': _has_first_completion_on(learner_id, today),
        'yesterday_completed': _has_first_completion_on(learner_id, yesterday),
        'weekly_activity': _weekly_window(state, today),
        'badges': list(state.badges or []),
    }
