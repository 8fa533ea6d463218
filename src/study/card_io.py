"""
Card import, export and extraction.

- Anki-style export/import of plain question/answer/tags triples
- Heuristic extraction of flashcard drafts from a tutor reply
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from loguru import logger

from src.core.models import Priority, ReviewCard
from src.study.spaced_repetition import SM2Scheduler, now_ms

MAX_EXTRACTED_CARDS = 5


@dataclass
class AnkiCard:
    question: str
    answer: str
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"question": self.question, "answer": self.answer, "tags": list(self.tags)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnkiCard:
        return cls(
            question=data.get("question", ""),
            answer=data.get("answer", ""),
            tags=list(data.get("tags") or []),
        )


@dataclass
class CardDraft:
    """A proposed card the learner can accept or discard."""

    question: str
    answer: str
    priority: Priority = Priority.MEDIUM
    tags: list[str] = field(default_factory=list)


# =============================================================================
# Anki
# =============================================================================


def export_to_anki(cards: Iterable[ReviewCard]) -> list[AnkiCard]:
    return [AnkiCard(question=c.question, answer=c.answer, tags=list(c.tags)) for c in cards]


def import_from_anki(
    anki_cards: Sequence[AnkiCard],
    session_id: str,
    now: int | None = None,
) -> list[ReviewCard]:
    """Turn imported cards into fresh, immediately due review cards."""
    if now is None:
        now = now_ms()
    cards = [
        ReviewCard(
            id=f"imported-{now}-{index}",
            question=anki.question,
            answer=anki.answer,
            session_id=session_id,
            ease_factor=2.5,
            interval=0,
            repetitions=0,
            next_review_date=now,
            created_date=now,
            priority=Priority.MEDIUM,
            tags=list(anki.tags),
        )
        for index, anki in enumerate(anki_cards)
    ]
    logger.info(f"Imported {len(cards)} cards into session {session_id}")
    return cards


# =============================================================================
# Extraction
# =============================================================================

_CJK = re.compile(r"[一-鿿]")

_DEFINITION_PATTERNS = [
    re.compile(r"([^。！？\n]{2,20})是([^。！？\n]{10,200})。"),
    re.compile(r"([^。！？\n]{2,20})定义为([^。！？\n]{10,200})。"),
    re.compile(r"([^。！？\n]{2,20})：([^。！？\n]{10,200})"),
    re.compile(
        r"(?:^|(?<=[.!?]\s))([A-Z][\w\- ]{1,30}?) (?:is defined as|refers to|is) ([^.!?\n]{10,200})\."
    ),
    re.compile(r"^([A-Za-z][\w\- ]{1,30}):\s+([^\n]{10,200})$", re.MULTILINE),
]

_LIST_PATTERN = re.compile(r"^\s*[-•*]\s+([^。！？\n]{5,100})", re.MULTILINE)


def _is_cjk(text: str) -> bool:
    return bool(_CJK.search(text))


def extract_key_cards(content: str, limit: int = MAX_EXTRACTED_CARDS) -> list[CardDraft]:
    """
    Pull flashcard drafts out of a tutor reply.

    Definitions ("X is ...", "X是...", "Term: ...") become high priority
    cards; bullet points become medium priority summaries. Drafts are
    deduplicated by question and capped at ``limit``.
    """
    drafts: list[CardDraft] = []
    paragraphs = [p for p in content.split("\n\n") if p.strip()]

    for paragraph in paragraphs:
        for pattern in _DEFINITION_PATTERNS:
            for match in pattern.finditer(paragraph):
                term = match.group(1).strip()
                definition = match.group(2).strip()
                if len(term) > 1 and len(definition) > 5:
                    question = f"什么是{term}？" if _is_cjk(term) else f"What is {term}?"
                    drafts.append(CardDraft(question, definition, Priority.HIGH, ["definition"]))

    for match in _LIST_PATTERN.finditer(content):
        point = match.group(1).strip()
        if len(point) > 10:
            prefix = "请简述：" if _is_cjk(point) else "Summarize: "
            drafts.append(CardDraft(f"{prefix}{point[:30]}...", point, Priority.MEDIUM, ["key-point"]))

    unique: list[CardDraft] = []
    seen: set[str] = set()
    for draft in drafts:
        if draft.question not in seen:
            seen.add(draft.question)
            unique.append(draft)

    return unique[:limit]


def drafts_to_cards(
    drafts: Iterable[CardDraft],
    session_id: str,
    scheduler: SM2Scheduler,
    concept_id: str | None = None,
) -> list[ReviewCard]:
    return [
        scheduler.create_card(
            draft.question,
            draft.answer,
            session_id,
            concept_id=concept_id,
            priority=draft.priority,
            tags=draft.tags,
        )
        for draft in drafts
    ]
