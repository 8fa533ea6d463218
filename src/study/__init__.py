"""
Study Module - spaced repetition review.

Provides:
- SM-2 scheduling of review cards
- Review statistics
- Anki-style import/export and card extraction
"""

from src.study.card_io import (
    AnkiCard,
    CardDraft,
    drafts_to_cards,
    export_to_anki,
    extract_key_cards,
    import_from_anki,
)
from src.study.spaced_repetition import Rating, SM2Config, SM2Scheduler, memory_strength
from src.study.statistics import ReviewStatistics, calculate_statistics

__all__ = [
    "SM2Scheduler",
    "SM2Config",
    "Rating",
    "memory_strength",
    "ReviewStatistics",
    "calculate_statistics",
    "AnkiCard",
    "CardDraft",
    "export_to_anki",
    "import_from_anki",
    "extract_key_cards",
    "drafts_to_cards",
]
