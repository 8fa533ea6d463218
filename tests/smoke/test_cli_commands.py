"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
Each test gets its own state database under tmp_path.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

from src.delivery.state_store import StateStore

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent

TURN = {
    "conversationalReply": "Closures keep their defining scope alive.",
    "updatedConcepts": [
        {"id": "c1", "name": "Functions", "mastery": "Competent"},
        {"id": "c2", "name": "Closures", "mastery": "Novice"},
        {"id": "c3", "name": "Scope", "mastery": "Unknown"},
    ],
    "updatedLinks": [
        {"source": "c1", "target": "c2", "relationship": "enables"},
        {"source": "c3", "target": "c2", "relationship": "prerequisite"},
    ],
    "summaryFragments": ["Functions are first-class values"],
    "detectedStage": "Construction",
}


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "state.db"


@pytest.fixture
def cli(db_path):
    """Run a CLI command against the test database; returns (code, stdout, stderr)."""

    def _run(*args: str, timeout: int = 30) -> tuple[int, str, str]:
        result = subprocess.run(
            [sys.executable, "-m", "src.cli", "--db", str(db_path), *args],
            cwd=PROJECT_ROOT,
            capture_output=True,
            text=True,
            encoding="utf-8",
            timeout=timeout,
            env={**os.environ, "PYTHONIOENCODING": "utf-8", "COLUMNS": "200"},
        )
        return result.returncode, result.stdout, result.stderr

    return _run


@pytest.fixture
def turn_file(tmp_path):
    path = tmp_path / "turn.json"
    path.write_text(json.dumps(TURN), encoding="utf-8")
    return path


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self, cli):
        code, stdout, stderr = cli("--help")

        assert code == 0, f"Help failed: {stderr}"
        assert "cogniguide" in stdout.lower()
        assert "Commands" in stdout

    def test_recommend_help(self, cli):
        code, stdout, stderr = cli("recommend", "--help")

        assert code == 0, f"Recommend help failed: {stderr}"


class TestCLIGraph:
    """Test turn consolidation commands."""

    def test_apply_turn_and_validate(self, cli, turn_file, db_path):
        cli("session", "s1", "--topic", "python closures")

        code, stdout, stderr = cli("apply-turn", str(turn_file))
        assert code == 0, f"apply-turn failed: {stderr}"
        assert "3 concepts" in stdout

        code, stdout, _ = cli("validate")
        assert code == 0
        assert "valid" in stdout

        store = StateStore(db_path)
        session = store.get_session("s1")
        store.close()
        assert [c.id for c in session.concepts] == ["c1", "c2", "c3"]
        assert session.learning_state.summary == ["Functions are first-class values"]
        assert session.messages[-1].role == "model"

    def test_apply_turn_twice_is_stable(self, cli, turn_file, db_path):
        cli("apply-turn", str(turn_file))
        code, stdout, _ = cli("apply-turn", str(turn_file))

        assert code == 0
        assert "(+0)" in stdout

    def test_stale_turn_discarded(self, cli, turn_file, db_path):
        cli("session", "s2")

        code, stdout, _ = cli("apply-turn", str(turn_file), "--session", "s1")

        assert code == 0
        assert "stale" in stdout.lower()
        store = StateStore(db_path)
        assert store.get_session("s2").concepts == []
        store.close()

    def test_graph_table(self, cli, turn_file):
        cli("apply-turn", str(turn_file))

        code, stdout, stderr = cli("graph")

        assert code == 0, f"graph failed: {stderr}"
        assert "Closures" in stdout

    def test_invalid_turn_file(self, cli, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json", encoding="utf-8")

        code, _, _ = cli("apply-turn", str(bad))

        assert code == 1


class TestCLIReview:
    """Test review queue commands."""

    def test_add_card_and_review(self, cli, db_path):
        code, _, stderr = cli("add-card", "What is a closure?", "A function plus its scope", "--priority", "high")
        assert code == 0, f"add-card failed: {stderr}"

        store = StateStore(db_path)
        card_id = store.load_cards()[0].id
        store.close()

        code, stdout, _ = cli("due")
        assert code == 0
        assert "What is a closure?" in stdout

        code, stdout, stderr = cli("review", card_id, "5")
        assert code == 0, f"review failed: {stderr}"
        assert "1d" in stdout

        store = StateStore(db_path)
        card = store.load_cards()[0]
        store.close()
        assert card.repetitions == 1
        assert len(card.review_history) == 1

    def test_review_unknown_card(self, cli):
        code, _, _ = cli("review", "missing", "4")

        assert code == 1

    def test_review_quality_out_of_range(self, cli):
        code, _, _ = cli("review", "missing", "9")

        assert code != 0

    def test_stats(self, cli):
        cli("add-card", "Q", "A")

        code, stdout, stderr = cli("stats")

        assert code == 0, f"stats failed: {stderr}"
        assert "Total cards" in stdout

    def test_anki_round_trip(self, cli, tmp_path, db_path):
        cli("add-card", "Q1", "A1", "--tag", "js")
        exported = tmp_path / "cards.json"

        code, _, _ = cli("export-anki", str(exported))
        assert code == 0
        assert json.loads(exported.read_text(encoding="utf-8")) == [
            {"question": "Q1", "answer": "A1", "tags": ["js"]}
        ]

        code, _, _ = cli("import-anki", str(exported))
        assert code == 0
        store = StateStore(db_path)
        assert len(store.load_cards()) == 2
        store.close()

    def test_import_anki_rejects_non_list(self, cli, tmp_path, db_path):
        cards_file = tmp_path / "cards.json"
        cards_file.write_text(json.dumps({"question": "Q1", "answer": "A1"}), encoding="utf-8")

        code, stdout, _ = cli("import-anki", str(cards_file))

        assert code == 1
        assert "JSON list" in stdout
        store = StateStore(db_path)
        assert store.load_cards() == []
        store.close()

    def test_import_anki_skips_non_object_entries(self, cli, tmp_path, db_path):
        cards_file = tmp_path / "cards.json"
        cards_file.write_text(json.dumps(["Q1", {"question": "Q2", "answer": "A2"}]), encoding="utf-8")

        code, _, stderr = cli("import-anki", str(cards_file))

        assert code == 0, f"import-anki failed: {stderr}"
        store = StateStore(db_path)
        assert [c.question for c in store.load_cards()] == ["Q2"]
        store.close()

    def test_extract_dry_run(self, cli, tmp_path, db_path):
        reply = tmp_path / "reply.txt"
        reply.write_text("Recursion is a technique where a function calls itself.", encoding="utf-8")

        code, stdout, _ = cli("extract", str(reply), "--dry-run")

        assert code == 0
        assert "What is Recursion?" in stdout
        store = StateStore(db_path)
        assert store.load_cards() == []
        store.close()


class TestCLIRecommend:
    """Test recommendation commands."""

    def test_recommend_json(self, cli, turn_file):
        cli("apply-turn", str(turn_file))

        code, stdout, stderr = cli("recommend", "--json", "--no-rest", "--max", "3")

        assert code == 0, f"recommend failed: {stderr}"
        recs = json.loads(stdout)
        assert 0 < len(recs) <= 3
        assert all(r["type"] != "rest_break" for r in recs)

    def test_recommend_empty_state(self, cli):
        code, stdout, _ = cli("recommend")

        assert code == 0
        assert "Nothing to recommend" in stdout

    def test_plan_to_file(self, cli, turn_file, tmp_path):
        cli("apply-turn", str(turn_file))
        output = tmp_path / "plan.md"

        code, _, _ = cli("plan", "--output", str(output))

        assert code == 0
        assert output.read_text(encoding="utf-8").startswith("# Personal Study Plan")


class TestCLIConfig:
    def test_config_table(self, cli):
        code, stdout, _ = cli("config")

        assert code == 0
        assert "merge_similarity_threshold" in stdout
