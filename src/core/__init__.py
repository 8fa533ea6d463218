"""
Core Module - Shared domain models and payload schemas.

Components:
- models: Concept graph, review cards, sessions and tutor turns
- schemas: Pydantic validation of untrusted tutor payloads
"""

from src.core.models import (
    ChatMessage,
    ConceptLink,
    ConceptNode,
    ConceptPatch,
    LearningState,
    MasteryLevel,
    Priority,
    ReviewCard,
    ReviewRecord,
    SavedSession,
    TeachingStage,
    TutorResponse,
)
from src.core.schemas import parse_tutor_response

__all__ = [
    # Graph
    "ConceptNode",
    "ConceptPatch",
    "ConceptLink",
    "MasteryLevel",
    # Review
    "ReviewCard",
    "ReviewRecord",
    "Priority",
    # Sessions
    "ChatMessage",
    "LearningState",
    "SavedSession",
    "TeachingStage",
    "TutorResponse",
    "parse_tutor_response",
]
