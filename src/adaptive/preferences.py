"""
Learner preference inference.

Derives a LearningPreferences snapshot from stored session history:
streak, typical session length, time-of-day habit, topic strengths and
weaknesses, and a current fatigue estimate. Nothing is stored; the
snapshot is recomputed for every recommendation request.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Sequence

from src.adaptive.models import FatigueLevel, LearningPreferences, TimeOfDay
from src.core.models import MasteryLevel, SavedSession
from src.study.spaced_repetition import DAY_MS, HOUR_MS, MINUTE_MS, round_half_up

MIN_SESSION_MINUTES = 5
DEFAULT_SESSION_MINUTES = 30

# Fatigue
RECENT_ACTIVITY_WINDOW_MS = 2 * HOUR_MS
HIGH_FATIGUE_MESSAGES = 20
MEDIUM_FATIGUE_MESSAGES = 10
HIGH_FATIGUE_IDLE_MS = 10 * MINUTE_MS
MEDIUM_FATIGUE_IDLE_MS = 30 * MINUTE_MS

# Topic classification
MIN_SESSIONS_PER_TOPIC = 2
SESSION_MASTERED_RATIO = 0.6
STRONG_TOPIC_RATIO = 0.6
WEAK_TOPIC_RATIO = 0.3

_TIME_BUCKETS = [TimeOfDay.MORNING, TimeOfDay.AFTERNOON, TimeOfDay.EVENING, TimeOfDay.NIGHT]


def compute_streak(sessions: Sequence[SavedSession], now: int) -> int:
    """
    Consecutive study days ending today.

    Sessions are walked newest first; the i-th one must fall within 24h
    before ``now - i days``.
    """
    dates = sorted((s.last_modified for s in sessions if s.last_modified), reverse=True)
    streak = 0
    for i, current in enumerate(dates):
        expected = now - i * DAY_MS
        if expected - current < DAY_MS:
            streak += 1
        else:
            break
    return streak


def average_session_length(sessions: Sequence[SavedSession]) -> int:
    """Mean session span in minutes, each session counting at least five."""
    if not sessions:
        return DEFAULT_SESSION_MINUTES

    total = 0.0
    for session in sessions:
        if len(session.messages) > 2 and session.last_modified:
            duration = (session.last_modified - session.messages[0].timestamp) / MINUTE_MS
        else:
            duration = MIN_SESSION_MINUTES
        total += max(duration, MIN_SESSION_MINUTES)
    return round_half_up(total / len(sessions))


def preferred_time_of_day(sessions: Sequence[SavedSession]) -> TimeOfDay:
    """Majority bucket of session activity; earlier buckets win ties."""
    counts = {bucket: 0 for bucket in _TIME_BUCKETS}
    for session in sessions:
        if session.last_modified:
            hour = datetime.fromtimestamp(session.last_modified / 1000).hour
            counts[TimeOfDay.from_hour(hour)] += 1

    best = _TIME_BUCKETS[0]
    for bucket in _TIME_BUCKETS[1:]:
        if counts[bucket] > counts[best]:
            best = bucket
    return best


def fatigue_level(
    sessions: Sequence[SavedSession],
    session_id: str | None,
    now: int,
) -> tuple[FatigueLevel, int | None]:
    """
    Estimate fatigue from the active session.

    Returns the level and the last study timestamp it was based on.
    """
    current = next((s for s in sessions if s.id == session_id), None) if session_id else None

    last_study = current.last_modified if current and current.last_modified else None
    if last_study is None:
        stamps = [s.last_modified for s in sessions if s.last_modified]
        last_study = max(stamps) if stamps else None

    since_last = now - last_study if last_study is not None else None
    recent = 0
    if current is not None:
        recent = sum(
            1 for m in current.messages
            if m.timestamp and now - m.timestamp < RECENT_ACTIVITY_WINDOW_MS
        )

    if recent > HIGH_FATIGUE_MESSAGES or (since_last is not None and since_last < HIGH_FATIGUE_IDLE_MS):
        level = FatigueLevel.HIGH
    elif recent > MEDIUM_FATIGUE_MESSAGES or (since_last is not None and since_last < MEDIUM_FATIGUE_IDLE_MS):
        level = FatigueLevel.MEDIUM
    else:
        level = FatigueLevel.LOW
    return level, last_study


def classify_topics(sessions: Sequence[SavedSession]) -> tuple[list[str], list[str]]:
    """
    Split topic keys (first word of the session topic) into strong and weak.

    A session counts as mastered when more than 60% of its concepts are at
    Expert. Topics need at least two sessions to be classified.
    """
    stats: dict[str, list[int]] = defaultdict(lambda: [0, 0])  # [mastered, total]

    for session in sessions:
        words = session.topic.lower().split()
        if not words:
            continue
        entry = stats[words[0]]
        entry[1] += 1

        concepts = session.concepts
        experts = sum(1 for c in concepts if c.mastery == MasteryLevel.EXPERT)
        if experts / (len(concepts) or 1) > SESSION_MASTERED_RATIO:
            entry[0] += 1

    strong: list[str] = []
    weak: list[str] = []
    for topic, (mastered, total) in stats.items():
        if total < MIN_SESSIONS_PER_TOPIC:
            continue
        ratio = mastered / total
        if ratio > STRONG_TOPIC_RATIO:
            strong.append(topic)
        elif ratio < WEAK_TOPIC_RATIO:
            weak.append(topic)
    return strong, weak


def preferred_difficulty(sessions: Sequence[SavedSession]) -> str:
    concepts = [c for s in sessions for c in s.concepts]
    experts = sum(1 for c in concepts if c.mastery == MasteryLevel.EXPERT)
    ratio = experts / (len(concepts) or 1)
    if ratio > 0.7:
        return "hard"
    if ratio < 0.3:
        return "easy"
    return "medium"


def analyze_learning_preferences(
    sessions: Sequence[SavedSession],
    session_id: str | None,
    now: int,
) -> LearningPreferences:
    """Build the preference snapshot for one recommendation request."""
    fatigue, last_study = fatigue_level(sessions, session_id, now)
    strong, weak = classify_topics(sessions)

    return LearningPreferences(
        preferred_time_of_day=preferred_time_of_day(sessions),
        average_session_length=average_session_length(sessions),
        preferred_difficulty=preferred_difficulty(sessions),
        strong_topics=strong,
        weak_topics=weak,
        learning_streak=compute_streak(sessions, now),
        last_study_time=last_study,
        fatigue_level=fatigue,
    )
