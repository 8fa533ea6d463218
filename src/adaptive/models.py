"""
Recommendation Engine Models.

Transient value objects: nothing here is persisted, a fresh set is
produced on every recommendation request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.core.models import Priority


class RecommendationType(str, Enum):
    """The five recommendation generators."""

    NEXT_TO_LEARN = "next_to_learn"
    WEAK_POINTS = "weak_points"
    RELATED_TOPICS = "related_topics"
    DUE_FOR_REVIEW = "due_for_review"
    REST_BREAK = "rest_break"


class FatigueLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TimeOfDay(str, Enum):
    MORNING = "morning"  # 06-12
    AFTERNOON = "afternoon"  # 12-18
    EVENING = "evening"  # 18-24
    NIGHT = "night"  # 00-06

    @classmethod
    def from_hour(cls, hour: int) -> TimeOfDay:
        if 6 <= hour < 12:
            return cls.MORNING
        if 12 <= hour < 18:
            return cls.AFTERNOON
        if 18 <= hour < 24:
            return cls.EVENING
        return cls.NIGHT


@dataclass
class Recommendation:
    """A single suggested next action."""

    id: str
    type: RecommendationType
    title: str
    description: str
    reason: str
    priority: Priority
    concepts: list[str]
    confidence_score: float  # 0-1
    estimated_time: int | None = None  # minutes

    related_cards: list[str] | None = None
    prerequisite_concepts: list[str] | None = None
    suggested_questions: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "reason": self.reason,
            "priority": self.priority.value,
            "concepts": list(self.concepts),
            "confidenceScore": self.confidence_score,
        }
        if self.estimated_time is not None:
            data["estimatedTime"] = self.estimated_time
        if self.related_cards is not None:
            data["relatedCards"] = list(self.related_cards)
        if self.prerequisite_concepts is not None:
            data["prerequisiteConcepts"] = list(self.prerequisite_concepts)
        if self.suggested_questions is not None:
            data["suggestedQuestions"] = list(self.suggested_questions)
        return data


@dataclass
class RecommendationConfig:
    """Tuning knobs for a recommendation request."""

    max_recommendations: int = 5
    enable_rest_breaks: bool = True
    min_confidence_threshold: float = 0.3
    diversity_factor: float = 0.4

    @classmethod
    def from_settings(cls) -> RecommendationConfig:
        from config import get_settings

        return cls(**get_settings().get_recommendation_config())


@dataclass
class LearningPreferences:
    """Learner signals derived from session history on each request."""

    preferred_time_of_day: TimeOfDay = TimeOfDay.MORNING
    average_session_length: int = 30  # minutes
    preferred_difficulty: str = "medium"  # easy | medium | hard
    strong_topics: list[str] = field(default_factory=list)
    weak_topics: list[str] = field(default_factory=list)
    learning_streak: int = 0
    last_study_time: int | None = None
    fatigue_level: FatigueLevel = FatigueLevel.LOW


@dataclass
class LearningPatternAnalysis:
    """Model-written overview of how the learner is doing."""

    summary: str = "Keep going"
    strong_points: list[str] = field(default_factory=list)
    weak_points: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "strongPoints": list(self.strong_points),
            "weakPoints": list(self.weak_points),
            "suggestions": list(self.suggestions),
        }
