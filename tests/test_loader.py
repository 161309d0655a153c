"""Tests for project parsing and loading."""

from datetime import date
from pathlib import Path

import pytest

from gantry.exceptions import (
    CycleDetectedError,
    MissingReferenceError,
    ParseError,
    ValidationError,
)
from gantry.loader import load_project
from gantry.models import PredecessorType
from gantry.parser import ProjectParser


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "project.yaml"
    path.write_text(content)
    return path


class TestProjectParser:
    """Test parsing YAML into models."""

    def test_parse_sample_project(self, project_file: Path) -> None:
        """Test tasks, edges and the project header."""
        project = ProjectParser().parse_file(project_file)

        assert project.name == "Website relaunch"
        assert project.start_date == date(2026, 1, 5)
        assert [t.id for t in project.tasks] == ["design", "build", "docs", "launch"]
        assert [(e.task_id, e.predecessor_id) for e in project.predecessors] == [
            ("build", "design"),
            ("docs", "design"),
            ("launch", "build"),
            ("launch", "docs"),
        ]
        docs_edge = project.predecessors[1]
        assert docs_edge.type == PredecessorType.START_TO_START
        assert docs_edge.lag_time == 2

    def test_missing_dates_are_derived(self, project_file: Path) -> None:
        """Test end date from duration and duration from dates."""
        project = ProjectParser().parse_file(project_file)

        design = project.get_task_by_id("design")
        assert design is not None
        assert design.duration == 3
        build = project.get_task_by_id("build")
        assert build is not None
        assert build.end_date == date(2026, 1, 12)

    def test_compact_predecessor_forms(self) -> None:
        """Test the compact string forms of predecessors."""
        project = ProjectParser().parse_data(
            {"tasks": {"a": {}, "b": {"predecessors": "a FF-1d"}, "c": None}}
        )
        assert project.predecessors[0].type == PredecessorType.FINISH_TO_FINISH
        assert project.predecessors[0].lag_time == -1
        assert project.get_task_by_id("c") is not None

    def test_numeric_ids(self) -> None:
        """Test that numeric task IDs become strings."""
        project = ProjectParser().parse_data(
            {"tasks": {1: {}, 2: {"predecessors": [{"task": 1, "type": "SS"}]}}}
        )
        assert project.get_all_ids() == {"1", "2"}
        assert project.predecessors[0].predecessor_id == "1"

    def test_invalid_predecessor_string(self) -> None:
        """Test that a malformed edge raises ValidationError."""
        with pytest.raises(ValidationError, match="Invalid predecessor"):
            ProjectParser().parse_data({"tasks": {"a": {}, "b": {"predecessors": ["a XY"]}}})

    def test_invalid_date(self) -> None:
        """Test that an unparseable date raises ValidationError."""
        with pytest.raises(ValidationError, match="Invalid YAML structure"):
            ProjectParser().parse_data({"tasks": {"a": {"start_date": "tomorrow"}}})

    def test_negative_duration(self) -> None:
        """Test that durations cannot be negative."""
        with pytest.raises(ValidationError):
            ProjectParser().parse_data({"tasks": {"a": {"duration": -1}}})

    def test_bad_yaml(self, tmp_path: Path) -> None:
        """Test that broken YAML raises ParseError."""
        with pytest.raises(ParseError, match="Failed to parse YAML"):
            ProjectParser().parse_file(_write(tmp_path, "tasks: [unclosed\n"))

    def test_non_mapping_root(self, tmp_path: Path) -> None:
        """Test that a list at the root raises ParseError."""
        with pytest.raises(ParseError, match="dictionary"):
            ProjectParser().parse_file(_write(tmp_path, "- a\n- b\n"))

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file raises ParseError."""
        with pytest.raises(ParseError, match="File not found"):
            ProjectParser().parse_file(tmp_path / "missing.yaml")

    def test_empty_file(self, tmp_path: Path) -> None:
        """Test that an empty file is an empty project."""
        project = ProjectParser().parse_file(_write(tmp_path, ""))
        assert project.tasks == []


class TestLoadProject:
    """Test loading with validation."""

    def test_load_valid_project(self, project_file: Path) -> None:
        """Test that the sample project loads."""
        project = load_project(project_file)
        assert len(project.tasks) == 4

    def test_self_predecessor(self, tmp_path: Path) -> None:
        """Test that a task depending on itself is rejected."""
        path = _write(tmp_path, "tasks:\n  a:\n    predecessors: [a]\n")
        with pytest.raises(ValidationError, match="itself"):
            load_project(path)

    def test_unknown_predecessor(self, tmp_path: Path) -> None:
        """Test that an edge to an unknown task is rejected."""
        path = _write(tmp_path, "tasks:\n  a:\n    predecessors: [ghost]\n")
        with pytest.raises(MissingReferenceError, match="ghost"):
            load_project(path)

    def test_unknown_parent(self, tmp_path: Path) -> None:
        """Test that an unknown parent is rejected."""
        path = _write(tmp_path, "tasks:\n  a:\n    parent: ghost\n")
        with pytest.raises(MissingReferenceError, match="unknown parent"):
            load_project(path)

    def test_end_before_start(self, tmp_path: Path) -> None:
        """Test that inverted dates are rejected."""
        path = _write(
            tmp_path, "tasks:\n  a:\n    start_date: 2026-01-07\n    end_date: 2026-01-05\n"
        )
        with pytest.raises(ValidationError, match="before it starts"):
            load_project(path)

    def test_duration_disagrees_with_dates(self, tmp_path: Path) -> None:
        """Test that a duration inconsistent with the dates is rejected."""
        path = _write(
            tmp_path,
            "tasks:\n  a:\n    start_date: 2026-01-05\n    end_date: 2026-01-07\n    duration: 5\n",
        )
        with pytest.raises(ValidationError, match="span 3 day"):
            load_project(path)

    def test_cycle(self, tmp_path: Path) -> None:
        """Test that cyclic predecessors are rejected."""
        path = _write(
            tmp_path, "tasks:\n  a:\n    predecessors: [b]\n  b:\n    predecessors: [a]\n"
        )
        with pytest.raises(CycleDetectedError):
            load_project(path)
