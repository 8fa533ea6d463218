"""
Unit tests for the SM-2 scheduler.

All tests run against a scheduler pinned to a fixed clock so next-review
timestamps are exact.
"""

import pytest

from src.core.models import Priority
from src.study.spaced_repetition import (
    DAY_MS,
    HOUR_MS,
    MINUTE_MS,
    Rating,
    SM2Config,
    SM2Scheduler,
    memory_strength,
    round_half_up,
)
from tests.conftest import NOW


class TestCreateCard:
    def test_new_card_defaults(self, scheduler):
        card = scheduler.create_card("What is a closure?", "A function with its scope", "s1")

        assert card.ease_factor == 2.5
        assert card.interval == 0
        assert card.repetitions == 0
        assert card.next_review_date == NOW
        assert card.created_date == NOW
        assert card.last_review_date is None
        assert card.priority == Priority.MEDIUM
        assert card.review_history == []

    def test_id_format(self, scheduler):
        card = scheduler.create_card("Q", "A", "s1")

        prefix, timestamp, suffix = card.id.split("-")
        assert prefix == "card"
        assert timestamp == str(NOW)
        assert len(suffix) == 9

    def test_new_card_is_due_immediately(self, scheduler):
        card = scheduler.create_card("Q", "A", "s1", concept_id="closures", tags=["js"])

        assert scheduler.is_due(card)
        assert card.concept_id == "closures"
        assert card.tags == ["js"]

    def test_custom_initial_ease(self):
        scheduler = SM2Scheduler(SM2Config(initial_easiness=2.0), clock=lambda: NOW)

        assert scheduler.create_card("Q", "A", "s1").ease_factor == 2.0


class TestProcessReview:
    def test_successful_progression(self, scheduler, make_card):
        card = make_card()

        card = scheduler.process_review(card, 4)
        assert (card.interval, card.repetitions) == (1, 1)

        card = scheduler.process_review(card, 4)
        assert (card.interval, card.repetitions) == (6, 2)

        card = scheduler.process_review(card, 4)
        assert (card.interval, card.repetitions) == (15, 3)
        assert card.ease_factor == pytest.approx(2.5)

    def test_perfect_recall_raises_ease(self, scheduler, make_card):
        card = scheduler.process_review(make_card(), 5)

        assert card.ease_factor == pytest.approx(2.6)
        assert card.next_review_date == NOW + DAY_MS

    def test_third_interval_uses_previous_ease(self, scheduler, make_card):
        card = make_card(interval=6, repetitions=2, ease_factor=2.7)

        updated = scheduler.process_review(card, 5)

        # round(6 * 2.7) = 16, not round(6 * 2.8)
        assert updated.interval == 16
        assert updated.ease_factor == pytest.approx(2.8)

    def test_failure_resets_progress(self, scheduler, make_card):
        card = make_card(interval=15, repetitions=3, ease_factor=2.5)

        updated = scheduler.process_review(card, 1)

        assert updated.interval == 1
        assert updated.repetitions == 0
        assert updated.ease_factor == pytest.approx(1.96)
        assert updated.next_review_date == NOW + DAY_MS

    def test_borderline_keeps_schedule(self, scheduler, make_card):
        card = make_card(interval=6, repetitions=2, ease_factor=2.5)

        updated = scheduler.process_review(card, 3)

        assert updated.interval == 6
        assert updated.repetitions == 2
        assert updated.ease_factor == pytest.approx(2.36)
        assert updated.next_review_date == NOW + 6 * DAY_MS

    def test_ease_floor(self, scheduler, make_card):
        updated = scheduler.process_review(make_card(ease_factor=1.3), 1)

        assert updated.ease_factor == 1.3

    def test_history_appended(self, scheduler, make_card):
        card = make_card()

        updated = scheduler.process_review(card, 4, time_taken=3200)

        assert len(updated.review_history) == 1
        record = updated.review_history[0]
        assert (record.date, record.quality, record.time_taken) == (NOW, 4, 3200)
        assert updated.last_review_date == NOW

    def test_input_card_not_mutated(self, scheduler, make_card):
        card = make_card()

        scheduler.process_review(card, 5)

        assert card.repetitions == 0
        assert card.review_history == []

    @pytest.mark.parametrize("quality", [0, 6, -1])
    def test_quality_out_of_range(self, scheduler, make_card, quality):
        with pytest.raises(ValueError):
            scheduler.process_review(make_card(), quality)


class TestDueCards:
    def test_is_due_boundary(self, scheduler, make_card):
        assert scheduler.is_due(make_card(next_review_date=NOW))
        assert not scheduler.is_due(make_card(next_review_date=NOW + 1))

    def test_get_due_cards(self, scheduler, make_card):
        cards = [
            make_card("due", next_review_date=NOW - HOUR_MS),
            make_card("later", next_review_date=NOW + DAY_MS),
        ]

        assert [c.id for c in scheduler.get_due_cards(cards)] == ["due"]


class TestBatchReview:
    def test_ratings_applied_by_id(self, scheduler, make_card):
        cards = [make_card("c1"), make_card("c2")]

        updated = scheduler.process_batch(cards, [Rating("c1", 5), Rating("unknown", 1)])

        assert updated[0].repetitions == 1
        assert updated[1] is cards[1]

    def test_out_of_range_quality_skipped_not_raised(self, scheduler, make_card):
        cards = [make_card("c1"), make_card("c2"), make_card("c3")]

        updated = scheduler.process_batch(
            cards, [Rating("c1", 5), Rating("c2", 0), Rating("c3", 6)]
        )

        assert updated[0].repetitions == 1
        assert updated[1] is cards[1]
        assert updated[2] is cards[2]


class TestSortByPriority:
    def test_due_then_priority_then_weakest(self, scheduler, make_card):
        cards = [
            make_card("due-low", priority=Priority.LOW),
            make_card("later-high", priority=Priority.HIGH, next_review_date=NOW + DAY_MS),
            make_card("due-high-strong", priority=Priority.HIGH, repetitions=3),
            make_card("due-high-weak", priority=Priority.HIGH),
        ]

        ordered = [c.id for c in scheduler.sort_by_priority(cards)]

        assert ordered == ["due-high-weak", "due-high-strong", "due-low", "later-high"]


class TestMemoryStrength:
    def test_new_card(self, make_card):
        assert memory_strength(make_card()) == 40

    def test_repetitions_capped(self, make_card):
        assert memory_strength(make_card(repetitions=3)) == 100
        assert memory_strength(make_card(repetitions=10)) == 100

    def test_floor_ease(self, make_card):
        assert memory_strength(make_card(ease_factor=1.3)) == 0

    def test_rounds_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(15.6) == 16
        assert round_half_up(-0.5) == 0


class TestTimeUntilReview:
    def test_formats(self, scheduler, make_card):
        assert scheduler.time_until_review(make_card(next_review_date=NOW - 1)) == "now"
        assert scheduler.time_until_review(make_card(next_review_date=NOW + 2 * DAY_MS + 3 * HOUR_MS)) == "2d3h"
        assert scheduler.time_until_review(make_card(next_review_date=NOW + 4 * HOUR_MS + 10 * MINUTE_MS)) == "4h10m"
        assert scheduler.time_until_review(make_card(next_review_date=NOW + 25 * MINUTE_MS)) == "25m"
