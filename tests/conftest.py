"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.core.models import (  # noqa: E402
    ConceptLink,
    ConceptNode,
    MasteryLevel,
    ReviewCard,
)
from src.study.spaced_repetition import DAY_MS, SM2Scheduler  # noqa: E402

# Fixed "now" for deterministic scheduling (2023-11-14 22:13:20 UTC)
NOW = 1_700_000_000_000


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """Fixed epoch-millisecond timestamp."""
    return NOW


@pytest.fixture
def scheduler():
    """SM-2 scheduler pinned to NOW."""
    return SM2Scheduler(clock=lambda: NOW)


@pytest.fixture
def make_card():
    """Factory for review cards with sensible defaults."""

    def _make(card_id="c1", **overrides):
        fields = {
            "id": card_id,
            "question": f"Question {card_id}?",
            "answer": f"Answer {card_id}",
            "session_id": "s1",
            "next_review_date": NOW,
            "created_date": NOW - DAY_MS,
        }
        fields.update(overrides)
        return ReviewCard(**fields)

    return _make


@pytest.fixture
def sample_graph():
    """
    A small learning path:

        variables -> functions -> closures
                  \\-> loops
        recursion (isolated)
    """
    concepts = [
        ConceptNode("variables", "Variables", MasteryLevel.EXPERT, "Named storage"),
        ConceptNode("functions", "Functions", MasteryLevel.NOVICE),
        ConceptNode("closures", "Closures", MasteryLevel.UNKNOWN),
        ConceptNode("loops", "Loops", MasteryLevel.COMPETENT),
        ConceptNode("recursion", "Recursion", MasteryLevel.UNKNOWN),
    ]
    links = [
        ConceptLink("variables", "functions", "prerequisite"),
        ConceptLink("functions", "closures", "builds on"),
        ConceptLink("variables", "loops", "used by"),
    ]
    return concepts, links
