"""
Review statistics for the flashcard dashboard.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from src.core.models import ReviewCard
from src.study.spaced_repetition import DAY_MS, memory_strength, now_ms


@dataclass
class StrengthDistribution:
    weak: int = 0  # 0-40
    medium: int = 0  # 41-70
    strong: int = 0  # 71-100

    def to_dict(self) -> dict[str, int]:
        return {"weak": self.weak, "medium": self.medium, "strong": self.strong}


@dataclass
class ReviewStatistics:
    total_cards: int = 0
    due_cards: int = 0
    reviewed_today: int = 0
    average_quality: float = 0.0
    average_ease_factor: float = 0.0
    memory_strength_distribution: StrengthDistribution = field(default_factory=StrengthDistribution)

    def to_dict(self) -> dict:
        return {
            "totalCards": self.total_cards,
            "dueCards": self.due_cards,
            "reviewedToday": self.reviewed_today,
            "averageQuality": self.average_quality,
            "averageEaseFactor": self.average_ease_factor,
            "memoryStrengthDistribution": self.memory_strength_distribution.to_dict(),
        }


def calculate_statistics(cards: Sequence[ReviewCard], now: int | None = None) -> ReviewStatistics:
    """
    Summarise a card collection.

    "Reviewed today" means a review within the trailing 24 hours.
    """
    if now is None:
        now = now_ms()
    one_day_ago = now - DAY_MS

    qualities = [record.quality for card in cards for record in card.review_history]
    average_quality = sum(qualities) / len(qualities) if qualities else 0.0
    average_ef = sum(card.ease_factor for card in cards) / len(cards) if cards else 0.0

    distribution = StrengthDistribution()
    for card in cards:
        strength = memory_strength(card)
        if strength <= 40:
            distribution.weak += 1
        elif strength <= 70:
            distribution.medium += 1
        else:
            distribution.strong += 1

    return ReviewStatistics(
        total_cards=len(cards),
        due_cards=sum(1 for card in cards if card.next_review_date <= now),
        reviewed_today=sum(
            1 for card in cards
            if card.last_review_date is not None and card.last_review_date > one_day_ago
        ),
        average_quality=round(average_quality, 1),
        average_ease_factor=round(average_ef, 2),
        memory_strength_distribution=distribution,
    )
