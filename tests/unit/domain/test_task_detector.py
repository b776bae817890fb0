"""Tests for task type detection."""

import pytest

from src.domain.entities.model_selection import RouterCategory, TaskType
from src.domain.services.task_detector import detect_task_type, file_extension


class TestDetectTaskType:
    """Tests for detect_task_type."""

    @pytest.mark.parametrize(
        "prompt,expected",
        [
            ("Fix the login crash", TaskType.DEBUGGING),
            ("Add a modal dialog with a button", TaskType.FRONTEND),
            ("Create an endpoint that runs a sql query", TaskType.BACKEND),
            ("Hello there", TaskType.GENERAL),
        ],
    )
    def test_keywords(self, prompt, expected):
        """Keyword counts pick the task type."""
        assert detect_task_type(prompt) is expected

    def test_debugging_wins_outright(self):
        """Any debugging keyword beats frontend keywords."""
        assert detect_task_type("the button throws an error") is TaskType.DEBUGGING

    def test_selected_file_boosts(self):
        """The focused file's extension adds two points."""
        assert detect_task_type("update this", selected_path="src/App.tsx") is TaskType.FRONTEND
        assert detect_task_type("update this", selected_path="server/main.py") is TaskType.BACKEND

    def test_codebase_tiebreak(self):
        """The dominant side of the codebase adds one point."""
        paths = ["a.tsx", "b.css", "c.py"]
        assert detect_task_type("update this", codebase_paths=paths) is TaskType.FRONTEND

    def test_tie_is_general(self):
        """Equal scores give general."""
        assert detect_task_type("button api") is TaskType.GENERAL


def test_file_extension():
    """Extension is the lowercased suffix after the last dot."""
    assert file_extension("a/B.TSX") == "tsx"
    assert file_extension("Makefile") == ""


class TestRouterCategory:
    """Tests for parsing router replies."""

    def test_parse_tolerates_punctuation(self):
        """Case and trailing punctuation are ignored."""
        assert RouterCategory.parse(" Frontend. ") is RouterCategory.FRONTEND
        assert RouterCategory.parse("`ultrathink`") is RouterCategory.ULTRATHINK

    def test_unknown(self):
        """Anything else is None."""
        assert RouterCategory.parse("frontend please") is None
