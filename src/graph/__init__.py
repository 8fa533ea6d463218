"""
Knowledge graph consolidation and analysis.

- consolidator: Merge per-turn fragments into one canonical DAG
- analysis: Roots, leaves, depth, chains and clusters
"""

from src.graph.analysis import GraphAnalysis, analyze_graph
from src.graph.consolidator import (
    consolidate_turn,
    merge_concepts,
    merge_concepts_with_aliases,
    merge_links,
    name_similarity,
    normalize_name,
    validate_tree,
)

__all__ = [
    "GraphAnalysis",
    "analyze_graph",
    "consolidate_turn",
    "merge_concepts",
    "merge_concepts_with_aliases",
    "merge_links",
    "name_similarity",
    "normalize_name",
    "validate_tree",
]
