"""
Knowledge graph structure analysis.

Derives the topology signals the recommendation engine ranks on:
roots, leaves, depth from the nearest root, root-to-leaf chains and
weakly connected clusters.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Sequence

from loguru import logger

from src.core.models import ConceptLink, ConceptNode

DEFAULT_MAX_CHAINS = 256


@dataclass
class GraphAnalysis:
    """Structural summary of a concept graph."""

    roots: list[str] = field(default_factory=list)
    leaves: list[str] = field(default_factory=list)
    chains: list[list[str]] = field(default_factory=list)
    clusters: list[list[str]] = field(default_factory=list)
    depth_map: dict[str, int] = field(default_factory=dict)
    outgoing: dict[str, list[str]] = field(default_factory=dict)
    incoming: dict[str, list[str]] = field(default_factory=dict)
    chains_truncated: bool = False

    def depth(self, concept_id: str) -> int:
        """Depth from the nearest root; 0 for nodes no root reaches."""
        return self.depth_map.get(concept_id, 0)

    def in_degree(self, concept_id: str) -> int:
        return len(self.incoming.get(concept_id, ()))

    def out_degree(self, concept_id: str) -> int:
        return len(self.outgoing.get(concept_id, ()))

    def neighbors(self, concept_id: str) -> list[str]:
        """Undirected neighbours: successors first, then predecessors."""
        return list(self.outgoing.get(concept_id, ())) + list(self.incoming.get(concept_id, ()))


def analyze_graph(
    concepts: Sequence[ConceptNode],
    links: Sequence[ConceptLink],
    max_chains: int = DEFAULT_MAX_CHAINS,
) -> GraphAnalysis:
    """
    Analyze graph structure.

    Links whose endpoints are not both in ``concepts`` are ignored.
    Depth is the shortest distance from any root (multi-source BFS), so
    a node reachable from several roots keeps the smaller depth.
    """
    analysis = GraphAnalysis()
    ids = [c.id for c in concepts]
    known = set(ids)

    for concept_id in ids:
        analysis.outgoing.setdefault(concept_id, [])
        analysis.incoming.setdefault(concept_id, [])

    for link in links:
        if link.source in known and link.target in known:
            analysis.outgoing[link.source].append(link.target)
            analysis.incoming[link.target].append(link.source)

    for concept_id in analysis.outgoing:
        in_deg = analysis.in_degree(concept_id)
        out_deg = analysis.out_degree(concept_id)
        if in_deg == 0 and out_deg > 0:
            analysis.roots.append(concept_id)
        if out_deg == 0 and in_deg > 0:
            analysis.leaves.append(concept_id)

    # Depth
    queue: deque[str] = deque()
    for root in analysis.roots:
        analysis.depth_map[root] = 0
        queue.append(root)
    while queue:
        current = queue.popleft()
        next_depth = analysis.depth_map[current] + 1
        for neighbor in analysis.outgoing[current]:
            if neighbor not in analysis.depth_map or next_depth < analysis.depth_map[neighbor]:
                analysis.depth_map[neighbor] = next_depth
                queue.append(neighbor)

    analysis.chains, analysis.chains_truncated = _enumerate_chains(
        analysis.roots, analysis.outgoing, max_chains
    )
    if analysis.chains_truncated:
        logger.debug(f"Chain enumeration stopped at {max_chains} chains")

    analysis.clusters = _find_clusters(analysis.outgoing, analysis.incoming)

    return analysis


def _enumerate_chains(
    roots: list[str],
    outgoing: dict[str, list[str]],
    max_chains: int,
) -> tuple[list[list[str]], bool]:
    """All root-to-leaf paths, depth first. A node already on the path ends it."""
    chains: list[list[str]] = []

    for root in roots:
        stack: list[list[str]] = [[root]]
        while stack:
            path = stack.pop()
            on_path = set(path)
            nexts = [n for n in outgoing[path[-1]] if n not in on_path]
            if not nexts:
                chains.append(path)
                if len(chains) >= max_chains:
                    return chains, True
                continue
            # reversed so the first child is expanded first
            for neighbor in reversed(nexts):
                stack.append(path + [neighbor])

    return chains, False


def _find_clusters(
    outgoing: dict[str, list[str]],
    incoming: dict[str, list[str]],
) -> list[list[str]]:
    """Weakly connected components, in concept order."""
    clusters: list[list[str]] = []
    processed: set[str] = set()

    for concept_id in outgoing:
        if concept_id in processed:
            continue
        cluster: list[str] = []
        queue: deque[str] = deque([concept_id])
        processed.add(concept_id)
        while queue:
            current = queue.popleft()
            cluster.append(current)
            for neighbor in outgoing[current] + incoming[current]:
                if neighbor not in processed:
                    processed.add(neighbor)
                    queue.append(neighbor)
        clusters.append(cluster)

    return clusters
