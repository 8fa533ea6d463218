"""
Graph Consolidator.

Merges the concept/link fragments returned by the tutor model on every
turn into one canonical, deduplicated knowledge graph.

The model is asked for the full graph each turn rather than a diff, so
the same concept arrives again and again with small naming drift
("JavaScript", "Javascript", "java-script"). Matching runs per incoming
node, first hit wins:

1. Exact id        - the model echoed a known id
2. Normalized name - casing / punctuation / whitespace variance
3. Fuzzy name      - character-set similarity above a high threshold
4. Insert          - genuinely new concept

Nothing here raises on bad input. Dangling links are dropped, cycles are
reported through ``validate_tree`` and a log line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence

from loguru import logger

from src.core.models import (
    ConceptLink,
    ConceptNode,
    ConceptPatch,
    LearningState,
    TutorResponse,
)

DEFAULT_SIMILARITY_THRESHOLD = 0.8

_STRIP_PATTERN = re.compile(r"[\s\-_.，。、；：]")
_STOPWORD_NAMES = frozenset({"的", "是", "和", "与", "或", "及"})


# =============================================================================
# Name Matching
# =============================================================================


def normalize_name(name: str | None) -> str:
    """Lower-case and strip separators so naming variants compare equal."""
    if not name:
        return ""
    normalized = _STRIP_PATTERN.sub("", name.lower())
    if normalized in _STOPWORD_NAMES:
        return ""
    return normalized.strip()


def name_similarity(name1: str | None, name2: str | None) -> float:
    """
    Similarity of two concept names in [0, 1].

    Containment scores ``len(shorter) / len(longer)``; otherwise the
    Jaccard index of the two character sets.
    """
    norm1 = normalize_name(name1)
    norm2 = normalize_name(name2)

    if not norm1 and not norm2:
        return 1.0
    if not norm1 or not norm2:
        return 0.0
    if norm1 == norm2:
        return 1.0

    if norm1 in norm2 or norm2 in norm1:
        shorter, longer = sorted((len(norm1), len(norm2)))
        return shorter / longer

    set1, set2 = set(norm1), set(norm2)
    union = set1 | set2
    if not union:
        return 0.0
    return len(set1 & set2) / len(union)


# =============================================================================
# Concept Merge
# =============================================================================


@dataclass
class ConceptMergeResult:
    """Merged nodes plus the incoming ids that were folded into other nodes."""

    concepts: list[ConceptNode] = field(default_factory=list)
    aliases: dict[str, str] = field(default_factory=dict)


def _as_patch(item: ConceptNode | ConceptPatch) -> ConceptPatch:
    if isinstance(item, ConceptPatch):
        return item
    return ConceptPatch.from_node(item)


def merge_concepts_with_aliases(
    existing: Sequence[ConceptNode],
    incoming: Iterable[ConceptNode | ConceptPatch],
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> ConceptMergeResult:
    """
    Merge ``incoming`` into ``existing``.

    Returns the merged list (existing order first, new nodes appended in
    arrival order) and an alias map from each incoming id that was merged
    into a differently-identified node to the id that survived. An id that
    is also inserted as its own node in the batch is not an alias.
    """
    by_id: dict[str, ConceptNode] = {}
    for node in existing:
        by_id.setdefault(node.id, node)

    # normalized name -> owning id; first writer wins
    by_name: dict[str, str] = {}
    for node in by_id.values():
        key = normalize_name(node.name)
        if key and key not in by_name:
            by_name[key] = node.id

    aliases: dict[str, str] = {}

    for item in incoming:
        patch = _as_patch(item)

        # 1. exact id
        if patch.id in by_id:
            by_id[patch.id] = patch.apply_to(by_id[patch.id])
            key = normalize_name(by_id[patch.id].name)
            if key and key not in by_name:
                by_name[key] = patch.id
            continue

        key = normalize_name(patch.name)

        # Nameless fragments can only ever match by id.
        if not key:
            logger.debug(f"Inserting nameless concept {patch.id!r}")
            by_id[patch.id] = patch.to_node()
            aliases.pop(patch.id, None)
            continue

        # 2. normalized name
        if key in by_name:
            target_id = by_name[key]
            by_id[target_id] = patch.apply_to(by_id[target_id])
            aliases[patch.id] = target_id
            logger.debug(f"Merged concept {patch.id!r} into {target_id!r} by name")
            continue

        # 3. fuzzy name
        match_id = None
        for candidate_id in by_name.values():
            score = name_similarity(patch.name, by_id[candidate_id].name)
            if score > similarity_threshold:
                match_id = candidate_id
                break

        if match_id is not None:
            by_id[match_id] = patch.apply_to(by_id[match_id])
            aliases[patch.id] = match_id
            logger.debug(f"Merged concept {patch.id!r} into {match_id!r} by similarity")
            continue

        # 4. new concept
        by_id[patch.id] = patch.to_node()
        by_name[key] = patch.id
        aliases.pop(patch.id, None)

    return ConceptMergeResult(concepts=list(by_id.values()), aliases=aliases)


def merge_concepts(
    existing: Sequence[ConceptNode],
    incoming: Iterable[ConceptNode | ConceptPatch],
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[ConceptNode]:
    """Merge a batch of concept fragments into the existing concept list."""
    return merge_concepts_with_aliases(existing, incoming, similarity_threshold).concepts


# =============================================================================
# Link Merge
# =============================================================================


def merge_links(
    existing_links: Iterable[ConceptLink],
    incoming_links: Iterable[ConceptLink],
    merged_concepts: Sequence[ConceptNode],
) -> list[ConceptLink]:
    """
    Merge links, keeping only those whose endpoints are both in ``merged_concepts``.

    The graph holds at most one edge between any two concepts: an exact
    duplicate or the reverse of an already kept edge is dropped, as is a
    self-loop. Existing links are considered before incoming ones, so the
    first-seen direction wins.
    """
    concept_ids = {c.id for c in merged_concepts}
    seen: set[str] = set()
    merged: list[ConceptLink] = []

    def _take(link: ConceptLink) -> None:
        if link.source not in concept_ids or link.target not in concept_ids:
            logger.debug(f"Dropping dangling link {link.key}")
            return
        if link.source == link.target:
            logger.debug(f"Dropping self-loop on {link.source!r}")
            return
        if link.key in seen or link.reverse_key in seen:
            return
        seen.add(link.key)
        merged.append(link)

    for link in existing_links:
        _take(link)
    for link in incoming_links:
        _take(link)

    return merged


def merge_summary(existing: Sequence[str], fragments: Iterable[str]) -> list[str]:
    """Append summary fragments not already present."""
    summary = list(existing)
    known = set(summary)
    for fragment in fragments:
        if fragment and fragment not in known:
            summary.append(fragment)
            known.add(fragment)
    return summary


# =============================================================================
# Validation
# =============================================================================

_WHITE, _GRAY, _BLACK = 0, 1, 2


def validate_tree(concepts: Sequence[ConceptNode], links: Sequence[ConceptLink]) -> bool:
    """
    Check that every link resolves and the graph has no directed cycle.

    Cycle detection is an iterative three-colour DFS over an index arena.
    It starts at every root (no incoming edge) and then sweeps any node
    still unvisited, so fully cyclic graphs are caught as well.
    """
    index = {}
    for concept in concepts:
        index.setdefault(concept.id, len(index))

    children: list[list[int]] = [[] for _ in range(len(index))]
    has_parent = [False] * len(index)

    for link in links:
        if link.source not in index or link.target not in index:
            logger.warning(f"Invalid link: node not found ({link.key})")
            return False
        children[index[link.source]].append(index[link.target])
        has_parent[index[link.target]] = True

    roots = [i for i in range(len(index)) if not has_parent[i]]
    if index and links and not roots:
        logger.warning(
            "No root nodes found, but nodes and links exist. "
            "This might indicate a cycle or disconnected components."
        )

    color = [_WHITE] * len(index)
    ids = list(index)

    start_order = roots + [i for i in range(len(index)) if has_parent[i]]
    for start in start_order:
        if color[start] != _WHITE:
            continue
        # stack of (node, next child position)
        stack: list[tuple[int, int]] = [(start, 0)]
        color[start] = _GRAY
        while stack:
            node, pos = stack[-1]
            if pos < len(children[node]):
                stack[-1] = (node, pos + 1)
                child = children[node][pos]
                if color[child] == _GRAY:
                    logger.warning(
                        f"Cycle detected in tree structure at {ids[child]!r} "
                        f"(search started from {ids[start]!r})"
                    )
                    return False
                if color[child] == _WHITE:
                    color[child] = _GRAY
                    stack.append((child, 0))
            else:
                color[node] = _BLACK
                stack.pop()

    return True


# =============================================================================
# Turn Consolidation
# =============================================================================


def consolidate_turn(
    state: LearningState,
    response: TutorResponse,
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> LearningState:
    """
    Apply one tutor turn to a learning state and return the new state.

    Incoming link endpoints that refer to a concept merged under another
    id are rewritten to the surviving id before links are merged.
    """
    result = merge_concepts_with_aliases(
        state.concepts, response.updated_concepts, similarity_threshold
    )

    incoming_links = [
        replace(
            link,
            source=result.aliases.get(link.source, link.source),
            target=result.aliases.get(link.target, link.target),
        )
        for link in response.updated_links
    ]
    links = merge_links(state.links, incoming_links, result.concepts)

    logger.info(
        f"Consolidated turn: {len(state.concepts)} -> {len(result.concepts)} concepts, "
        f"{len(state.links)} -> {len(links)} links"
    )

    return LearningState(
        concepts=result.concepts,
        links=links,
        summary=merge_summary(state.summary, response.summary_fragments),
        current_stage=response.detected_stage or state.current_stage,
        cognitive_load=response.cognitive_load_estimate or state.cognitive_load,
        current_strategy=response.applied_strategy or state.current_strategy,
        feedback=response.internal_thought or state.feedback,
    )
