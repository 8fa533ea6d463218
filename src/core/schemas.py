"""
Model Reply Schemas.

Pydantic models for the JSON an LLM adapter hands back: the per-turn
tutor payload and the learning-pattern overview.

Payloads are untrusted: models drop fields, invent mastery labels and
emit links to concepts that do not exist. Validation here is lenient so
that one bad item never discards a whole turn; per-item failures are
logged and skipped.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from src.core.models import (
    ConceptLink,
    ConceptPatch,
    MasteryLevel,
    TeachingStage,
    TutorResponse,
)


class ConceptSchema(BaseModel):
    """A concept fragment. Only ``id`` is required."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    name: str | None = None
    mastery: MasteryLevel | None = None
    description: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("mastery", mode="before")
    @classmethod
    def _lenient_mastery(cls, value: Any) -> MasteryLevel | None:
        return MasteryLevel.parse(value)

    def to_patch(self) -> ConceptPatch:
        return ConceptPatch(
            id=self.id,
            name=self.name,
            mastery=self.mastery,
            description=self.description,
        )


class LinkSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    source: str = Field(min_length=1)
    target: str = Field(min_length=1)
    relationship: str = ""

    @field_validator("relationship", mode="before")
    @classmethod
    def _empty_relationship(cls, value: Any) -> str:
        return value or ""

    def to_link(self) -> ConceptLink:
        return ConceptLink(
            source=self.source,
            target=self.target,
            relationship=self.relationship,
        )


class TutorResponseSchema(BaseModel):
    """
    Top-level turn payload.

    Concepts, links and summary fragments are kept as raw items here and
    checked one at a time in ``to_response`` so malformed entries can be
    skipped. Scalar fields of the wrong type are treated as absent.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    conversational_reply: str = Field(default="", alias="conversationalReply")
    internal_thought: str | None = Field(default=None, alias="internalThought")
    updated_concepts: list[Any] = Field(default_factory=list, alias="updatedConcepts")
    updated_links: list[Any] = Field(default_factory=list, alias="updatedLinks")
    applied_strategy: str | None = Field(default=None, alias="appliedStrategy")
    detected_stage: str | None = Field(default=None, alias="detectedStage")
    cognitive_load_estimate: str | None = Field(default=None, alias="cognitiveLoadEstimate")
    summary_fragments: list[Any] = Field(default_factory=list, alias="summaryFragments")

    @field_validator("updated_concepts", "updated_links", "summary_fragments", mode="before")
    @classmethod
    def _as_list(cls, value: Any, info: ValidationInfo) -> list[Any]:
        if value is None:
            return []
        if not isinstance(value, list):
            logger.warning(f"Ignoring {info.field_name} from tutor: expected a list, got {type(value).__name__}")
            return []
        return value

    @field_validator(
        "internal_thought",
        "applied_strategy",
        "detected_stage",
        "cognitive_load_estimate",
        mode="before",
    )
    @classmethod
    def _optional_text(cls, value: Any, info: ValidationInfo) -> str | None:
        if value is None or isinstance(value, str):
            return value
        logger.warning(f"Ignoring non-text {info.field_name} from tutor: {value!r}")
        return None

    @field_validator("conversational_reply", mode="before")
    @classmethod
    def _reply_text(cls, value: Any) -> str:
        if isinstance(value, str):
            return value
        if value is not None:
            logger.warning(f"Ignoring non-text conversational reply from tutor: {value!r}")
        return ""

    def to_response(self) -> TutorResponse:
        concepts: list[ConceptPatch] = []
        for raw in self.updated_concepts:
            if not isinstance(raw, dict):
                logger.warning(f"Skipping malformed concept from tutor: {raw!r} (not an object)")
                continue
            try:
                concepts.append(ConceptSchema.model_validate(raw).to_patch())
            except ValidationError as e:
                logger.warning(f"Skipping malformed concept from tutor: {raw!r} ({e.error_count()} errors)")

        links: list[ConceptLink] = []
        for raw in self.updated_links:
            if not isinstance(raw, dict):
                logger.warning(f"Skipping malformed link from tutor: {raw!r} (not an object)")
                continue
            try:
                links.append(LinkSchema.model_validate(raw).to_link())
            except ValidationError as e:
                logger.warning(f"Skipping malformed link from tutor: {raw!r} ({e.error_count()} errors)")

        fragments: list[str] = []
        for raw in self.summary_fragments:
            if isinstance(raw, str):
                if raw:
                    fragments.append(raw)
            else:
                logger.warning(f"Skipping non-text summary fragment from tutor: {raw!r}")

        stage = None
        if self.detected_stage:
            try:
                stage = TeachingStage(self.detected_stage)
            except ValueError:
                logger.debug(f"Ignoring unknown teaching stage {self.detected_stage!r}")

        return TutorResponse(
            updated_concepts=concepts,
            updated_links=links,
            summary_fragments=fragments,
            detected_stage=stage,
            cognitive_load_estimate=self.cognitive_load_estimate,
            applied_strategy=self.applied_strategy,
            internal_thought=self.internal_thought,
            conversational_reply=self.conversational_reply,
        )


def parse_tutor_response(payload: Any) -> TutorResponse:
    """
    Validate a raw tutor payload into a TutorResponse.

    Never raises: a payload that is not a JSON object yields an empty
    response.
    """
    if not isinstance(payload, dict):
        logger.warning(f"Ignoring tutor payload: expected an object, got {type(payload).__name__}")
        return TutorResponse()
    return TutorResponseSchema.model_validate(payload).to_response()


class LearningPatternSchema(BaseModel):
    """Learning-pattern overview returned by a language model."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    summary: str = ""
    strong_points: list[str] = Field(default_factory=list, alias="strongPoints")
    weak_points: list[str] = Field(default_factory=list, alias="weakPoints")
    suggestions: list[str] = Field(default_factory=list)

    @field_validator("summary", mode="before")
    @classmethod
    def _summary_text(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("strong_points", "weak_points", "suggestions", mode="before")
    @classmethod
    def _text_items(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]
