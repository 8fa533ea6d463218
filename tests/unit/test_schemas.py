"""
Unit tests for tutor payload validation and model serialization.
"""

import pytest

from src.core.models import (
    ConceptLink,
    LearningState,
    MasteryLevel,
    ReviewCard,
    SavedSession,
    TeachingStage,
)
from src.core.schemas import ConceptSchema, parse_tutor_response


class TestParseTutorResponse:
    def test_camel_case_payload(self):
        response = parse_tutor_response(
            {
                "conversationalReply": "Let's look at closures.",
                "internalThought": "Learner knows functions",
                "updatedConcepts": [
                    {"id": "c1", "name": "Functions", "mastery": "Competent"},
                    {"id": "c2", "name": "Closures"},
                ],
                "updatedLinks": [{"source": "c1", "target": "c2", "relationship": "enables"}],
                "detectedStage": "Construction",
                "cognitiveLoadEstimate": "Optimal",
                "summaryFragments": ["Functions are values"],
            }
        )

        assert response.conversational_reply == "Let's look at closures."
        assert [p.id for p in response.updated_concepts] == ["c1", "c2"]
        assert response.updated_concepts[0].mastery == MasteryLevel.COMPETENT
        assert response.updated_concepts[1].mastery is None
        assert response.updated_links == [ConceptLink("c1", "c2", "enables")]
        assert response.detected_stage == TeachingStage.CONSTRUCTION
        assert response.summary_fragments == ["Functions are values"]

    def test_malformed_items_skipped(self):
        response = parse_tutor_response(
            {
                "updatedConcepts": [{"name": "No id"}, {"id": "ok", "name": "Fine"}],
                "updatedLinks": [{"source": "ok"}, {"source": "ok", "target": "ok2"}],
            }
        )

        assert [p.id for p in response.updated_concepts] == ["ok"]
        assert response.updated_links == [ConceptLink("ok", "ok2")]

    def test_null_lists_and_unknown_stage(self):
        response = parse_tutor_response(
            {"updatedConcepts": None, "updatedLinks": None, "detectedStage": "Daydreaming"}
        )

        assert response.updated_concepts == []
        assert response.updated_links == []
        assert response.detected_stage is None

    def test_non_object_payload_yields_empty_response(self):
        response = parse_tutor_response(["not", "an", "object"])

        assert response.updated_concepts == []
        assert response.updated_links == []
        assert response.summary_fragments == []
        assert response.conversational_reply == ""

    def test_wrong_item_types_skipped_individually(self):
        response = parse_tutor_response(
            {
                "conversationalReply": "Still here.",
                "updatedConcepts": ["Closures", {"id": "c1", "name": "Functions"}, 42],
                "updatedLinks": [["c1", "c2"], {"source": "c1", "target": "c2"}],
                "summaryFragments": [None, "ok", 3, ""],
            }
        )

        assert [p.id for p in response.updated_concepts] == ["c1"]
        assert response.updated_links == [ConceptLink("c1", "c2")]
        assert response.summary_fragments == ["ok"]
        assert response.conversational_reply == "Still here."

    def test_wrong_scalar_and_list_types_treated_as_absent(self):
        response = parse_tutor_response(
            {
                "conversationalReply": 7,
                "updatedConcepts": [{"id": "c1"}],
                "updatedLinks": {"source": "c1", "target": "c2"},
                "summaryFragments": "not a list",
                "detectedStage": 3,
                "cognitiveLoadEstimate": ["High"],
            }
        )

        assert [p.id for p in response.updated_concepts] == ["c1"]
        assert response.updated_links == []
        assert response.summary_fragments == []
        assert response.detected_stage is None
        assert response.cognitive_load_estimate is None
        assert response.conversational_reply == ""


class TestConceptSchema:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("expert", MasteryLevel.EXPERT),
            ("NOVICE", MasteryLevel.NOVICE),
            ("bogus", None),
            (None, None),
        ],
    )
    def test_lenient_mastery(self, raw, expected):
        assert ConceptSchema.model_validate({"id": "c1", "mastery": raw}).mastery == expected

    def test_integer_id_coerced(self):
        assert ConceptSchema.model_validate({"id": 7}).id == "7"


class TestSerialization:
    def test_review_card_camel_case(self, make_card):
        card = make_card(concept_id="closures", tags=["js"])

        data = card.to_dict()

        assert data["sessionId"] == "s1"
        assert data["conceptId"] == "closures"
        assert "lastReviewDate" not in data
        assert ReviewCard.from_dict(data) == card

    def test_saved_session_from_partial_dict(self):
        session = SavedSession.from_dict({"id": "s1", "topic": "python basics"})

        assert session.learning_state == LearningState()
        assert session.messages == []
        assert session.last_modified is None

    def test_unknown_mastery_defaults_to_unknown(self):
        state = LearningState.from_dict({"concepts": [{"id": "c1", "name": "X", "mastery": "??"}]})

        assert state.concepts[0].mastery == MasteryLevel.UNKNOWN
