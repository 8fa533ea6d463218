"""
Recommendation generators.

Five independent generators, each returning zero or more candidates.
A generator whose precondition is unmet (no concepts, no due cards, low
fatigue) returns an empty list rather than failing.
"""

from __future__ import annotations

import math
from collections import defaultdict
from typing import Sequence

from src.adaptive.models import (
    FatigueLevel,
    LearningPreferences,
    Recommendation,
    RecommendationConfig,
    RecommendationType,
)
from src.core.models import ConceptLink, ConceptNode, MasteryLevel, Priority, ReviewCard
from src.graph.analysis import GraphAnalysis
from src.study.spaced_repetition import memory_strength, round_half_up

MAX_FOUNDATIONAL = 3
MAX_DEEPEN = 2
MAX_WEAK = 3
MAX_MASTERED_ANCHORS = 2
MAX_NEIGHBORS_PER_ANCHOR = 2
MAX_REVIEW_BATCH = 10
WEAK_MEMORY_STRENGTH = 40

_DIFFICULTY_ADJUSTMENT = {
    MasteryLevel.UNKNOWN: 0.3,
    MasteryLevel.NOVICE: 0.1,
    MasteryLevel.COMPETENT: -0.1,
    MasteryLevel.EXPERT: -0.3,
}


def is_unmastered(concept: ConceptNode) -> bool:
    return concept.mastery in (MasteryLevel.UNKNOWN, MasteryLevel.NOVICE)


def estimate_difficulty(concept: ConceptNode, analysis: GraphAnalysis) -> float:
    """
    Learning difficulty in [0, 1].

    Base 0.5, shifted by mastery, plus 0.1 per level of depth (max 0.3).
    """
    difficulty = 0.5 + _DIFFICULTY_ADJUSTMENT[concept.mastery]
    difficulty += min(analysis.depth(concept.id) * 0.1, 0.3)
    return max(0.0, min(1.0, difficulty))


# =============================================================================
# Next to learn
# =============================================================================


def next_to_learn(
    concepts: Sequence[ConceptNode],
    analysis: GraphAnalysis,
    config: RecommendationConfig,
) -> list[Recommendation]:
    """Foundational unmastered concepts first; otherwise deepen Competent ones."""
    recommendations: list[Recommendation] = []

    unmastered = [c for c in concepts if is_unmastered(c)]
    shallow = [c for c in unmastered if analysis.depth(c.id) <= 1][:MAX_FOUNDATIONAL]

    for concept in shallow:
        difficulty = estimate_difficulty(concept, analysis)
        recommendations.append(
            Recommendation(
                id=f"next-{concept.id}",
                type=RecommendationType.NEXT_TO_LEARN,
                title=f"Learn: {concept.name}",
                description=concept.description or "Build this foundation",
                reason=(
                    "This is a foundation of your learning path; mastering it "
                    "unlocks the concepts that build on it."
                ),
                priority=Priority.MEDIUM if difficulty > 0.6 else Priority.HIGH,
                estimated_time=round_half_up(15 + difficulty * 20),
                concepts=[concept.id],
                confidence_score=0.8,
                suggested_questions=[
                    f"What is {concept.name}?",
                    f"How should I think about the core idea of {concept.name}?",
                    f"Where is {concept.name} used in practice?",
                ],
            )
        )

    if not shallow:
        for concept in [c for c in concepts if c.mastery == MasteryLevel.COMPETENT][:MAX_DEEPEN]:
            recommendations.append(
                Recommendation(
                    id=f"advance-{concept.id}",
                    type=RecommendationType.NEXT_TO_LEARN,
                    title=f"Deepen: {concept.name}",
                    description=f"Go from understanding to expertise in {concept.name}",
                    reason=(
                        f"You have the basics of {concept.name}; now is a good "
                        "time to deepen your understanding."
                    ),
                    priority=Priority.MEDIUM,
                    estimated_time=25,
                    concepts=[concept.id],
                    confidence_score=0.7,
                    suggested_questions=[
                        f"Can you show a complex application of {concept.name}?",
                        f"How does {concept.name} connect to other concepts at a deeper level?",
                    ],
                )
            )

    return recommendations[: config.max_recommendations]


# =============================================================================
# Weak points
# =============================================================================


def weak_points(
    concepts: Sequence[ConceptNode],
    review_cards: Sequence[ReviewCard],
    config: RecommendationConfig,
    now: int,
) -> list[Recommendation]:
    """Unknown/Novice concepts, paired with cards to drill when any apply."""
    recommendations: list[Recommendation] = []

    for concept in [c for c in concepts if is_unmastered(c)][:MAX_WEAK]:
        related = [
            card for card in review_cards
            if card.concept_id == concept.id or card.next_review_date <= now
        ]

        if related:
            recommendations.append(
                Recommendation(
                    id=f"weak-{concept.id}",
                    type=RecommendationType.WEAK_POINTS,
                    title=f"Strengthen: {concept.name}",
                    description="Consolidate a weak spot with review cards",
                    reason=(
                        f"{concept.name} shows low mastery; drilling its review "
                        "cards will reinforce it."
                    ),
                    priority=Priority.HIGH,
                    estimated_time=10 * len(related),
                    concepts=[concept.id],
                    confidence_score=0.9,
                    related_cards=[card.id for card in related],
                )
            )
        else:
            recommendations.append(
                Recommendation(
                    id=f"weak-{concept.id}",
                    type=RecommendationType.WEAK_POINTS,
                    title=f"Review: {concept.name}",
                    description="Revisit this weak concept",
                    reason=f"{concept.name} is a weak spot; relearn and practise it.",
                    priority=Priority.HIGH,
                    estimated_time=20,
                    concepts=[concept.id],
                    confidence_score=0.8,
                    suggested_questions=[
                        f"Please explain {concept.name} again",
                        f"What misconceptions might I have about {concept.name}?",
                    ],
                )
            )

    return recommendations[: config.max_recommendations]


# =============================================================================
# Related topics
# =============================================================================


def related_topics(
    concepts: Sequence[ConceptNode],
    links: Sequence[ConceptLink],
    config: RecommendationConfig,
) -> list[Recommendation]:
    """Unmastered neighbours of mastered concepts, as low priority extensions."""
    recommendations: list[Recommendation] = []
    by_id = {c.id: c for c in concepts}

    adjacency: dict[str, list[str]] = defaultdict(list)
    for link in links:
        adjacency[link.source].append(link.target)
        adjacency[link.target].append(link.source)

    explored: set[str] = set()
    anchors = [c for c in concepts if c.mastery.is_mastered][:MAX_MASTERED_ANCHORS]

    for anchor in anchors:
        neighbor_ids = [
            n for n in adjacency.get(anchor.id, [])
            if n in by_id and is_unmastered(by_id[n])
        ][:MAX_NEIGHBORS_PER_ANCHOR]

        for neighbor_id in neighbor_ids:
            if neighbor_id in explored:
                continue
            explored.add(neighbor_id)
            neighbor = by_id[neighbor_id]

            relationship = next(
                (
                    link.relationship
                    for link in links
                    if {link.source, link.target} == {anchor.id, neighbor_id}
                    and link.relationship
                ),
                "related",
            )

            recommendations.append(
                Recommendation(
                    id=f"related-{neighbor.id}",
                    type=RecommendationType.RELATED_TOPICS,
                    title=f"Explore: {neighbor.name}",
                    description=f"Builds on {anchor.name} (relationship: {relationship})",
                    reason=(
                        f"You have mastered {anchor.name}; {neighbor.name} is a "
                        "natural next step."
                    ),
                    priority=Priority.LOW,
                    estimated_time=15,
                    concepts=[neighbor.id],
                    confidence_score=0.6,
                    prerequisite_concepts=[anchor.id],
                    suggested_questions=[
                        f"How are {anchor.name} and {neighbor.name} related?",
                        f"How do I get from {anchor.name} to {neighbor.name}?",
                    ],
                )
            )

    return recommendations[: math.ceil(config.max_recommendations / 2)]


# =============================================================================
# Due for review
# =============================================================================


def due_for_review(
    review_cards: Sequence[ReviewCard],
    session_id: str | None,
    now: int,
) -> list[Recommendation]:
    """One batched recommendation covering up to ten due cards."""
    due = [
        card for card in review_cards
        if card.next_review_date <= now and (session_id is None or card.session_id == session_id)
    ]
    if not due:
        return []

    batch = sorted(due, key=lambda c: (-c.priority.weight, memory_strength(c)))[:MAX_REVIEW_BATCH]
    strengths = [memory_strength(card) for card in batch]
    weak_count = sum(1 for s in strengths if s < WEAK_MEMORY_STRENGTH)
    average = sum(strengths) / len(strengths)

    return [
        Recommendation(
            id=f"review-{now}",
            type=RecommendationType.DUE_FOR_REVIEW,
            title=f"Today's review: {len(batch)} cards",
            description=(
                f"Includes {weak_count} weakly remembered cards that need reinforcement"
                if weak_count
                else "Routine review to keep memories strong"
            ),
            reason=(
                "Some items are fading from memory; review them soon."
                if average < 50
                else "Regular review keeps knowledge in long-term memory."
            ),
            priority=Priority.HIGH if weak_count else Priority.MEDIUM,
            estimated_time=len(batch) * 2,
            concepts=[],
            confidence_score=0.95,
            related_cards=[card.id for card in batch],
        )
    ]


# =============================================================================
# Rest break
# =============================================================================


def rest_break(
    preferences: LearningPreferences,
    config: RecommendationConfig,
    now: int,
) -> list[Recommendation]:
    if not config.enable_rest_breaks:
        return []

    if preferences.fatigue_level == FatigueLevel.HIGH:
        return [
            Recommendation(
                id=f"rest-{now}",
                type=RecommendationType.REST_BREAK,
                title="Take a break",
                description="You have been studying for a while; rest helps memories consolidate",
                reason=(
                    "Short breaks improve retention. Step away for 10-15 minutes "
                    "or switch to something relaxing."
                ),
                priority=Priority.HIGH,
                estimated_time=15,
                concepts=[],
                confidence_score=0.85,
            )
        ]

    if preferences.fatigue_level == FatigueLevel.MEDIUM:
        return [
            Recommendation(
                id=f"rest-light-{now}",
                type=RecommendationType.REST_BREAK,
                title="Stretch for a moment",
                description="A short pause keeps you efficient",
                reason="You have been at it for a while; stand up, walk around or grab some water.",
                priority=Priority.LOW,
                estimated_time=5,
                concepts=[],
                confidence_score=0.6,
            )
        ]

    return []
