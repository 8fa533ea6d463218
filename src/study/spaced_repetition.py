"""
SM-2 Spaced Repetition Scheduler.

Implements the SuperMemo-2 variant the tutor uses for flashcards:
- Ease factor update with a 1.3 floor
- Forgotten items (q < 3) restart at a one-day interval
- Borderline passes (q == 3) keep interval and repetition count
- Successful recalls (q >= 4) grow 1 -> 6 -> round(I * EF)

Quality Scale:
1 - Complete blackout
2 - Incorrect, but the answer felt familiar once shown
3 - Correct, with serious difficulty
4 - Correct, after some hesitation
5 - Perfect recall

All operations return new card objects; the input card is never mutated.
"""

from __future__ import annotations

import math
import random
import string
import time
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Sequence

from loguru import logger

from src.core.models import Priority, ReviewCard, ReviewRecord

DAY_MS = 24 * 60 * 60 * 1000
HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000

_ID_ALPHABET = string.ascii_lowercase + string.digits


def round_half_up(value: float) -> int:
    """Round halves upward, matching the browser client's Math.round."""
    return math.floor(value + 0.5)


def now_ms() -> int:
    """Wall clock in epoch milliseconds."""
    return int(time.time() * 1000)


def memory_strength(card: ReviewCard) -> int:
    """
    Display metric in 0-100 combining repetitions and ease factor.

    Up to 60 points from repetitions (20 each) plus up to 40 from EF
    above the 1.3 floor. Not used for scheduling.
    """
    base = min(card.repetitions * 20, 60)
    ef_bonus = (card.ease_factor - 1.3) / 1.2 * 40
    return round_half_up(base + ef_bonus)


# =============================================================================
# SM-2 Algorithm
# =============================================================================


@dataclass
class SM2Config:
    """Configuration for SM-2 algorithm."""

    initial_easiness: float = 2.5
    minimum_easiness: float = 1.3
    first_interval: int = 1  # Days after first successful review
    second_interval: int = 6  # Days after second successful review

    @classmethod
    def from_settings(cls) -> SM2Config:
        from config import get_settings

        params = get_settings().get_sm2_config()
        return cls(
            initial_easiness=params["initial_ease_factor"],
            minimum_easiness=params["minimum_ease_factor"],
            first_interval=params["first_interval"],
            second_interval=params["second_interval"],
        )


@dataclass(frozen=True)
class Rating:
    """A learner rating for one card in a batch review."""

    card_id: str
    quality: int
    time_taken: int = 0


class SM2Scheduler:
    """
    Schedules review cards with the SM-2 algorithm.

    Each card carries:
    - Ease factor (EF): how fast intervals grow (2.5 default, min 1.3)
    - Interval: days until the next review
    - Repetitions: successful recalls since the last lapse

    The clock is injectable so scheduling is reproducible in tests.
    """

    def __init__(
        self,
        config: SM2Config | None = None,
        clock: Callable[[], int] | None = None,
    ):
        """
        Initialize SM-2 scheduler.

        Args:
            config: Custom configuration (uses defaults if None)
            clock: Callable returning epoch milliseconds (wall clock if None)
        """
        self.config = config or SM2Config()
        self.clock = clock or now_ms

    # -------------------------------------------------------------------------
    # Card lifecycle
    # -------------------------------------------------------------------------

    def create_card(
        self,
        question: str,
        answer: str,
        session_id: str,
        concept_id: str | None = None,
        priority: Priority = Priority.MEDIUM,
        tags: Iterable[str] = (),
    ) -> ReviewCard:
        """Create a new card that is due immediately."""
        now = self.clock()
        suffix = "".join(random.choices(_ID_ALPHABET, k=9))
        return ReviewCard(
            id=f"card-{now}-{suffix}",
            question=question,
            answer=answer,
            session_id=session_id,
            concept_id=concept_id,
            ease_factor=self.config.initial_easiness,
            interval=0,
            repetitions=0,
            next_review_date=now,
            created_date=now,
            priority=priority,
            tags=list(tags),
            review_history=[],
        )

    def is_due(self, card: ReviewCard, now: int | None = None) -> bool:
        """A card is due once its next review timestamp has passed."""
        if now is None:
            now = self.clock()
        return card.next_review_date <= now

    def get_due_cards(self, cards: Iterable[ReviewCard], now: int | None = None) -> list[ReviewCard]:
        if now is None:
            now = self.clock()
        return [card for card in cards if self.is_due(card, now)]

    # -------------------------------------------------------------------------
    # Algorithm
    # -------------------------------------------------------------------------

    def new_ease_factor(self, ease_factor: float, quality: int) -> float:
        """EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored."""
        delta = 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)
        return max(self.config.minimum_easiness, ease_factor + delta)

    def next_interval(
        self,
        interval: int,
        repetitions: int,
        quality: int,
        ease_factor: float,
    ) -> tuple[int, int]:
        """
        Compute (interval, repetitions) after a rating.

        ``ease_factor`` is the EF before this review's update.
        """
        if quality < 3:
            return self.config.first_interval, 0

        if quality == 3:
            return interval, repetitions

        new_repetitions = repetitions + 1
        if new_repetitions == 1:
            return self.config.first_interval, 1
        if new_repetitions == 2:
            return self.config.second_interval, 2
        return round_half_up(interval * ease_factor), new_repetitions

    def process_review(self, card: ReviewCard, quality: int, time_taken: int = 0) -> ReviewCard:
        """
        Apply a rating and return the updated card.

        Args:
            card: Card being reviewed
            quality: Learner rating 1-5
            time_taken: Answer time in milliseconds

        Returns:
            New ReviewCard with updated SM-2 state and one more history record
        """
        if not 1 <= quality <= 5:
            raise ValueError(f"quality must be between 1 and 5, got {quality}")

        now = self.clock()
        new_ef = self.new_ease_factor(card.ease_factor, quality)
        new_interval, new_repetitions = self.next_interval(
            card.interval, card.repetitions, quality, card.ease_factor
        )

        updated = replace(
            card,
            ease_factor=new_ef,
            interval=new_interval,
            repetitions=new_repetitions,
            next_review_date=now + new_interval * DAY_MS,
            last_review_date=now,
            tags=list(card.tags),
            review_history=[
                *card.review_history,
                ReviewRecord(date=now, quality=quality, time_taken=time_taken),
            ],
        )

        logger.debug(
            f"Reviewed {card.id}: q={quality}, EF {card.ease_factor:.2f}->{new_ef:.2f}, "
            f"interval={new_interval}d, reps={new_repetitions}"
        )
        return updated

    def process_batch(
        self,
        cards: Sequence[ReviewCard],
        ratings: Iterable[Rating],
    ) -> list[ReviewCard]:
        """
        Apply ratings by card id.

        Cards without a usable rating pass through unchanged: no rating,
        or a quality outside 1-5 (logged and skipped).
        """
        by_card: dict[str, Rating] = {}
        for rating in ratings:
            if not 1 <= rating.quality <= 5:
                logger.warning(
                    f"Skipping rating for {rating.card_id}: quality must be between 1 and 5, "
                    f"got {rating.quality}"
                )
                continue
            by_card[rating.card_id] = rating

        unknown = set(by_card) - {card.id for card in cards}
        if unknown:
            logger.debug(f"Ignoring ratings for unknown cards: {sorted(unknown)}")

        return [
            self.process_review(card, by_card[card.id].quality, by_card[card.id].time_taken)
            if card.id in by_card
            else card
            for card in cards
        ]

    # -------------------------------------------------------------------------
    # Queue helpers
    # -------------------------------------------------------------------------

    def sort_by_priority(self, cards: Iterable[ReviewCard], now: int | None = None) -> list[ReviewCard]:
        """
        Order a review queue.

        Due before not due, then higher priority, then weaker memory first.
        """
        if now is None:
            now = self.clock()
        return sorted(
            cards,
            key=lambda c: (
                0 if self.is_due(c, now) else 1,
                -c.priority.weight,
                memory_strength(c),
            ),
        )

    def time_until_review(self, card: ReviewCard, now: int | None = None) -> str:
        """Human readable countdown: "now", "2d3h", "4h10m" or "25m"."""
        if now is None:
            now = self.clock()
        diff = card.next_review_date - now
        if diff <= 0:
            return "now"

        days = diff // DAY_MS
        hours = (diff % DAY_MS) // HOUR_MS
        minutes = (diff % HOUR_MS) // MINUTE_MS

        if days > 0:
            return f"{days}d{hours}h"
        if hours > 0:
            return f"{hours}h{minutes}m"
        return f"{minutes}m"
