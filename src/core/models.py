"""
Core Domain Models.

Plain value objects shared by the consolidator, the review scheduler and
the recommendation engine. Everything here is JSON-shaped: ``to_dict`` and
``from_dict`` use the camelCase keys the browser client stores and the
LLM adapters emit.

Design:
- MasteryLevel / Priority: string enums with ordinal helpers
- ConceptNode / ConceptLink: the knowledge graph
- ConceptPatch: partial node update coming from the LLM (None = absent)
- ReviewCard / ReviewRecord: spaced-repetition state
- SavedSession / LearningState / TutorResponse: learner history and turn payloads
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


# =============================================================================
# Enums
# =============================================================================


class MasteryLevel(str, Enum):
    """Ordinal learner proficiency on a concept."""

    UNKNOWN = "Unknown"
    NOVICE = "Novice"
    COMPETENT = "Competent"
    EXPERT = "Expert"

    @property
    def rank(self) -> int:
        return _MASTERY_ORDER.index(self)

    @property
    def is_mastered(self) -> bool:
        """Competent and Expert count as mastered."""
        return self in (MasteryLevel.COMPETENT, MasteryLevel.EXPERT)

    @classmethod
    def parse(cls, value: Any) -> MasteryLevel | None:
        """Lenient lookup by value or name; returns None for anything unrecognised."""
        if isinstance(value, cls):
            return value
        if not value or not isinstance(value, str):
            return None
        for level in cls:
            if value.strip().lower() in (level.value.lower(), level.name.lower()):
                return level
        return None


_MASTERY_ORDER = [
    MasteryLevel.UNKNOWN,
    MasteryLevel.NOVICE,
    MasteryLevel.COMPETENT,
    MasteryLevel.EXPERT,
]


class Priority(str, Enum):
    """Priority shared by review cards and recommendations."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def weight(self) -> int:
        return {Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}[self]

    @classmethod
    def parse(cls, value: Any, default: Priority | None = None) -> Priority:
        try:
            return cls(str(value).lower())
        except ValueError:
            return default or cls.MEDIUM


# =============================================================================
# Knowledge Graph
# =============================================================================


@dataclass
class ConceptNode:
    """A concept in the learner's knowledge graph."""

    id: str
    name: str
    mastery: MasteryLevel = MasteryLevel.UNKNOWN
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "mastery": self.mastery.value,
        }
        if self.description is not None:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConceptNode:
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            mastery=MasteryLevel.parse(data.get("mastery")) or MasteryLevel.UNKNOWN,
            description=data.get("description"),
        )


@dataclass
class ConceptPatch:
    """
    Partial concept update.

    The tutor model re-sends the whole graph every turn and frequently
    omits fields. A field that is None or an empty string is treated as
    absent and never overwrites the stored value.
    """

    id: str
    name: str | None = None
    mastery: MasteryLevel | None = None
    description: str | None = None

    @staticmethod
    def _present(value: Any) -> bool:
        return value is not None and value != ""

    def apply_to(self, existing: ConceptNode, keep_id: bool = True) -> ConceptNode:
        """Return ``existing`` with every present field of this patch applied."""
        return replace(
            existing,
            id=existing.id if keep_id else self.id,
            name=self.name if self._present(self.name) else existing.name,
            mastery=self.mastery if self._present(self.mastery) else existing.mastery,
            description=(
                self.description if self._present(self.description) else existing.description
            ),
        )

    def to_node(self) -> ConceptNode:
        """Materialise a brand new node; absent fields take neutral defaults."""
        return ConceptNode(
            id=self.id,
            name=self.name or "",
            mastery=self.mastery or MasteryLevel.UNKNOWN,
            description=self.description or None,
        )

    @classmethod
    def from_node(cls, node: ConceptNode) -> ConceptPatch:
        return cls(
            id=node.id,
            name=node.name,
            mastery=node.mastery,
            description=node.description,
        )


@dataclass(frozen=True)
class ConceptLink:
    """Directed edge between two concept ids."""

    source: str
    target: str
    relationship: str = ""

    @property
    def key(self) -> str:
        return f"{self.source}->{self.target}"

    @property
    def reverse_key(self) -> str:
        return f"{self.target}->{self.source}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "relationship": self.relationship,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConceptLink:
        return cls(
            source=str(data["source"]),
            target=str(data["target"]),
            relationship=data.get("relationship") or "",
        )


# =============================================================================
# Spaced Repetition
# =============================================================================


@dataclass(frozen=True)
class ReviewRecord:
    """A single rating event on a card."""

    date: int  # epoch ms
    quality: int  # 1-5
    time_taken: int  # ms

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "quality": self.quality, "timeTaken": self.time_taken}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReviewRecord:
        return cls(
            date=int(data["date"]),
            quality=int(data["quality"]),
            time_taken=int(data.get("timeTaken", 0)),
        )


@dataclass
class ReviewCard:
    """
    A flashcard with SM-2 scheduling state.

    ``concept_id`` is a weak reference into the knowledge graph and may
    point at a concept that no longer exists.
    """

    id: str
    question: str
    answer: str
    session_id: str
    concept_id: str | None = None

    # SM-2 state
    ease_factor: float = 2.5
    interval: int = 0  # days
    repetitions: int = 0

    # Scheduling (epoch ms)
    next_review_date: int = 0
    last_review_date: int | None = None
    created_date: int = 0

    priority: Priority = Priority.MEDIUM
    tags: list[str] = field(default_factory=list)
    review_history: list[ReviewRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "question": self.question,
            "answer": self.answer,
            "sessionId": self.session_id,
            "easeFactor": self.ease_factor,
            "interval": self.interval,
            "repetitions": self.repetitions,
            "nextReviewDate": self.next_review_date,
            "createdDate": self.created_date,
            "priority": self.priority.value,
            "tags": list(self.tags),
            "reviewHistory": [r.to_dict() for r in self.review_history],
        }
        if self.concept_id is not None:
            data["conceptId"] = self.concept_id
        if self.last_review_date is not None:
            data["lastReviewDate"] = self.last_review_date
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReviewCard:
        return cls(
            id=str(data["id"]),
            question=data.get("question", ""),
            answer=data.get("answer", ""),
            session_id=data.get("sessionId", ""),
            concept_id=data.get("conceptId"),
            ease_factor=float(data.get("easeFactor", 2.5)),
            interval=int(data.get("interval", 0)),
            repetitions=int(data.get("repetitions", 0)),
            next_review_date=int(data.get("nextReviewDate", 0)),
            last_review_date=data.get("lastReviewDate"),
            created_date=int(data.get("createdDate", 0)),
            priority=Priority.parse(data.get("priority")),
            tags=list(data.get("tags") or []),
            review_history=[ReviewRecord.from_dict(r) for r in data.get("reviewHistory") or []],
        )


# =============================================================================
# Sessions & Turns
# =============================================================================


class TeachingStage(str, Enum):
    INTRODUCTION = "Introduction"
    CONSTRUCTION = "Construction"
    CONSOLIDATION = "Consolidation"
    TRANSFER = "Transfer"
    REFLECTION = "Reflection"


@dataclass
class ChatMessage:
    id: str
    role: str  # "user" | "model"
    content: str
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChatMessage:
        return cls(
            id=str(data.get("id", "")),
            role=data.get("role", "user"),
            content=data.get("content", ""),
            timestamp=int(data.get("timestamp") or 0),
        )


@dataclass
class LearningState:
    """The running per-session graph plus tutor bookkeeping."""

    concepts: list[ConceptNode] = field(default_factory=list)
    links: list[ConceptLink] = field(default_factory=list)
    summary: list[str] = field(default_factory=list)
    current_stage: TeachingStage = TeachingStage.INTRODUCTION
    cognitive_load: str = "Optimal"
    current_strategy: str = ""
    feedback: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "concepts": [c.to_dict() for c in self.concepts],
            "links": [link.to_dict() for link in self.links],
            "summary": list(self.summary),
            "currentStage": self.current_stage.value,
            "cognitiveLoad": self.cognitive_load,
            "currentStrategy": self.current_strategy,
            "feedback": self.feedback,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LearningState:
        try:
            stage = TeachingStage(data.get("currentStage"))
        except ValueError:
            stage = TeachingStage.INTRODUCTION
        return cls(
            concepts=[ConceptNode.from_dict(c) for c in data.get("concepts") or []],
            links=[ConceptLink.from_dict(link) for link in data.get("links") or []],
            summary=list(data.get("summary") or []),
            current_stage=stage,
            cognitive_load=data.get("cognitiveLoad") or "Optimal",
            current_strategy=data.get("currentStrategy") or "",
            feedback=data.get("feedback") or "",
        )


@dataclass
class SavedSession:
    """A stored tutoring conversation, as consumed by preference inference."""

    id: str
    topic: str = ""
    title: str = ""
    messages: list[ChatMessage] = field(default_factory=list)
    learning_state: LearningState = field(default_factory=LearningState)
    last_modified: int | None = None

    @property
    def concepts(self) -> list[ConceptNode]:
        return self.learning_state.concepts

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "topic": self.topic,
            "messages": [m.to_dict() for m in self.messages],
            "learningState": self.learning_state.to_dict(),
            "lastModified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SavedSession:
        return cls(
            id=str(data.get("id", "")),
            topic=data.get("topic") or "",
            title=data.get("title") or "",
            messages=[ChatMessage.from_dict(m) for m in data.get("messages") or []],
            learning_state=LearningState.from_dict(data.get("learningState") or {}),
            last_modified=data.get("lastModified"),
        )


@dataclass
class TutorResponse:
    """The part of an LLM turn the engine consumes (already validated)."""

    updated_concepts: list[ConceptPatch] = field(default_factory=list)
    updated_links: list[ConceptLink] = field(default_factory=list)
    summary_fragments: list[str] = field(default_factory=list)
    detected_stage: TeachingStage | None = None
    cognitive_load_estimate: str | None = None
    applied_strategy: str | None = None
    internal_thought: str | None = None
    conversational_reply: str = ""
