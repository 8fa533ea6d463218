"""
Recommendation Engine.

Turns the consolidated knowledge graph, the review queue and the
learner's session history into a short ranked list of next actions.

Pipeline per request:
1. Graph analysis   - roots, depth, chains, clusters
2. Preferences      - streak, time of day, topic strength, fatigue
3. Generation       - five independent generators
4. Post-processing  - confidence filter, type round-robin, rank, truncate

The engine keeps no state between calls; the clock is read once per
``generate`` call.
"""

from __future__ import annotations

import json
import re
from dataclasses import replace
from datetime import datetime
from typing import Callable, Sequence

from loguru import logger
from pydantic import ValidationError

from src.adaptive import generators
from src.adaptive.models import (
    LearningPatternAnalysis,
    Recommendation,
    RecommendationConfig,
    RecommendationType,
)
from src.adaptive.preferences import analyze_learning_preferences
from src.core.models import ConceptLink, ConceptNode, MasteryLevel, ReviewCard, SavedSession
from src.core.schemas import LearningPatternSchema
from src.graph.analysis import DEFAULT_MAX_CHAINS, analyze_graph
from src.study.spaced_repetition import now_ms


class RecommendationEngine:
    """
    Generates ranked learning recommendations.

    Usage:
        engine = RecommendationEngine(RecommendationConfig(max_recommendations=3))
        recs = engine.generate(concepts, links, cards, session_id, sessions)
    """

    def __init__(
        self,
        config: RecommendationConfig | None = None,
        clock: Callable[[], int] | None = None,
        max_chains: int = DEFAULT_MAX_CHAINS,
    ):
        self.config = config or RecommendationConfig()
        self.clock = clock or now_ms
        self.max_chains = max_chains

    def generate(
        self,
        concepts: Sequence[ConceptNode],
        links: Sequence[ConceptLink],
        review_cards: Sequence[ReviewCard],
        session_id: str | None = None,
        session_history: Sequence[SavedSession] = (),
    ) -> list[Recommendation]:
        """
        Produce a fresh recommendation list.

        Args:
            concepts: Consolidated concept nodes
            links: Consolidated links
            review_cards: All review cards
            session_id: Active session, scopes the review batch and fatigue
            session_history: Stored sessions used for preference inference

        Returns:
            At most ``config.max_recommendations`` recommendations
        """
        now = self.clock()
        config = self.config

        analysis = analyze_graph(concepts, links, max_chains=self.max_chains)
        preferences = analyze_learning_preferences(session_history, session_id, now)

        candidates: list[Recommendation] = []

        if concepts:
            candidates.extend(generators.next_to_learn(concepts, analysis, config))

        if any(generators.is_unmastered(c) for c in concepts):
            candidates.extend(generators.weak_points(concepts, review_cards, config, now))

        if len(concepts) > 1 and links:
            candidates.extend(generators.related_topics(concepts, links, config))

        candidates.extend(generators.due_for_review(review_cards, session_id, now))
        candidates.extend(generators.rest_break(preferences, config, now))

        candidates = [r for r in candidates if r.confidence_score >= config.min_confidence_threshold]

        if config.diversity_factor > 0:
            candidates = self.diversify(candidates)

        ranked = self.rank(candidates)[: max(config.max_recommendations, 0)]

        logger.debug(
            f"Generated {len(ranked)} recommendations "
            f"(fatigue={preferences.fatigue_level.value}, streak={preferences.learning_streak})"
        )
        return ranked

    @staticmethod
    def diversify(recommendations: Sequence[Recommendation]) -> list[Recommendation]:
        """Round-robin across types, in order of each type's first appearance."""
        if len(recommendations) <= 1:
            return list(recommendations)

        groups: dict[RecommendationType, list[Recommendation]] = {}
        for rec in recommendations:
            groups.setdefault(rec.type, []).append(rec)

        diversified: list[Recommendation] = []
        longest = max(len(group) for group in groups.values())
        for round_index in range(longest):
            for group in groups.values():
                if round_index < len(group):
                    diversified.append(group[round_index])
        return diversified

    @staticmethod
    def rank(recommendations: Sequence[Recommendation]) -> list[Recommendation]:
        """Priority weight descending, then confidence descending (stable)."""
        return sorted(
            recommendations,
            key=lambda r: (-r.priority.weight, -r.confidence_score),
        )


def generate_recommendations(
    concepts: Sequence[ConceptNode],
    links: Sequence[ConceptLink],
    review_cards: Sequence[ReviewCard],
    session_id: str | None = None,
    session_history: Sequence[SavedSession] = (),
    config: RecommendationConfig | None = None,
) -> list[Recommendation]:
    """Convenience wrapper around RecommendationEngine.generate."""
    return RecommendationEngine(config).generate(
        concepts, links, review_cards, session_id, session_history
    )


# =============================================================================
# Enrichment & Export
# =============================================================================


def enhance_reasons(
    recommendations: Sequence[Recommendation],
    concepts: Sequence[ConceptNode],
    generate_fn: Callable[[str], str],
    limit: int = 3,
) -> list[Recommendation]:
    """
    Rewrite the reason of the top ``limit`` recommendations with a language model.

    ``generate_fn`` takes a prompt and returns text. A failure or an empty
    answer keeps the rule-based reason.
    """
    by_id = {c.id: c for c in concepts}
    enhanced: list[Recommendation] = []

    for index, rec in enumerate(recommendations):
        if index >= limit:
            enhanced.append(rec)
            continue

        related = [by_id[cid] for cid in rec.concepts if cid in by_id]
        prompt = (
            "Write a personalised, encouraging 1-2 sentence reason for this study "
            "recommendation, based on the learner's current mastery.\n\n"
            f"Title: {rec.title}\n"
            f"Description: {rec.description}\n"
            f"Concepts: {', '.join(c.name for c in related) or 'none'}\n"
            f"Mastery: {', '.join(f'{c.name} ({c.mastery.value})' for c in related) or 'n/a'}\n\n"
            "Reply with the reason text only."
        )

        try:
            reason = (generate_fn(prompt) or "").strip()
        except Exception as e:
            logger.error(f"Failed to enhance reason for {rec.id}: {e}")
            reason = ""

        if reason:
            rec = replace(rec, reason=reason)
        enhanced.append(rec)

    return enhanced


_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def analyze_learning_pattern(
    concepts: Sequence[ConceptNode],
    sessions: Sequence[SavedSession],
    generate_fn: Callable[[str], str],
) -> LearningPatternAnalysis:
    """
    Ask a language model for an overview of the learner's progress.

    The prompt carries mastery counts and the five most recent session
    topics. The reply must be a JSON object with ``summary``,
    ``strongPoints``, ``weakPoints`` and ``suggestions``; a failing
    callable or an unparseable reply yields the default analysis.
    """
    counts = {level: 0 for level in MasteryLevel}
    for concept in concepts:
        counts[concept.mastery] += 1

    recent_topics = [s.topic for s in list(sessions)[-5:] if s.topic]
    topic_lines = "\n".join(f"{i}. {topic}" for i, topic in enumerate(recent_topics, start=1))

    prompt = (
        "Analyse this learner's study pattern.\n\n"
        "Mastery:\n"
        f"- Expert: {counts[MasteryLevel.EXPERT]}\n"
        f"- Competent: {counts[MasteryLevel.COMPETENT]}\n"
        f"- Novice: {counts[MasteryLevel.NOVICE]}\n"
        f"- Unknown: {counts[MasteryLevel.UNKNOWN]}\n"
        f"- Total: {len(concepts)} concepts\n\n"
        "Recent topics:\n"
        f"{topic_lines or 'none'}\n\n"
        "Reply with JSON only, using specific, actionable and encouraging wording:\n"
        '{"summary": "one sentence", "strongPoints": ["..."], '
        '"weakPoints": ["..."], "suggestions": ["...", "...", "..."]}'
    )

    try:
        reply = _CODE_FENCE.sub("", (generate_fn(prompt) or "").strip())
        parsed = LearningPatternSchema.model_validate(json.loads(reply))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Could not parse learning pattern analysis: {e}")
        return LearningPatternAnalysis()
    except Exception as e:
        logger.error(f"Learning pattern analysis failed: {e}")
        return LearningPatternAnalysis()

    return LearningPatternAnalysis(
        summary=parsed.summary.strip() or "Learning is on track",
        strong_points=parsed.strong_points,
        weak_points=parsed.weak_points,
        suggestions=parsed.suggestions,
    )


def export_plan(recommendations: Sequence[Recommendation], generated_at: datetime | None = None) -> str:
    """Render recommendations as a Markdown study plan."""
    generated_at = generated_at or datetime.now()
    lines = [
        "# Personal Study Plan",
        "",
        f"Generated: {generated_at:%Y-%m-%d %H:%M}",
        "",
        "## Recommendations",
    ]

    for index, rec in enumerate(recommendations, start=1):
        lines += [
            "",
            f"### {index}. {rec.title}",
            "",
            f"**Type**: {rec.type.value}",
            f"**Priority**: {rec.priority.value}",
            f"**Estimated time**: {rec.estimated_time or 10} min",
            f"**Why**: {rec.reason}",
        ]
        if rec.suggested_questions:
            lines += ["", "**Questions to ask**:"]
            lines += [f"- {q}" for q in rec.suggested_questions]
        if index < len(recommendations):
            lines += ["", "---"]

    lines += [
        "",
        "## How to use this plan",
        "",
        "1. Work from high to low priority",
        "2. Rest five minutes after each item",
        "3. Adjust when something feels too hard",
        "",
    ]
    return "\n".join(lines)
