"""Unit tests for spec workflow data models.

This module tests the dataclasses for tasks, approvals and ignore-file
results, including serialization and validation.
"""

import pytest

from spec_workflow.models import (
    APPROVAL_TRANSITIONS,
    ApprovalComment,
    ApprovalRequest,
    GitignoreResult,
    ParsedTask,
    TaskSummary,
    utc_timestamp,
)


class TestParsedTask:
    """Test cases for ParsedTask."""

    def test_to_dict(self):
        """Test dictionary conversion."""
        task = ParsedTask(id="1.2", description="Write tests", status="in-progress", requirements=["1.1"])

        data = task.to_dict()

        assert data["id"] == "1.2"
        assert data["status"] == "in-progress"
        assert data["requirements"] == ["1.1"]
        assert data["is_header"] is False
        assert "indent" not in data

    def test_marker_and_depth(self):
        """Test derived marker character and nesting depth."""
        assert ParsedTask(id="1", description="a", status="pending").marker == " "
        assert ParsedTask(id="1.2.3", description="a", status="completed").marker == "x"
        assert ParsedTask(id="1.2.3", description="a", status="completed").depth == 2


class TestTaskSummary:
    """Test cases for TaskSummary."""

    def test_from_tasks_skips_headers(self):
        """Test that header tasks are not counted."""
        tasks = [
            ParsedTask(id="1", description="Parent", status="pending", is_header=True),
            ParsedTask(id="1.1", description="A", status="completed"),
            ParsedTask(id="1.2", description="B", status="in-progress"),
            ParsedTask(id="2", description="C", status="pending"),
        ]

        summary = TaskSummary.from_tasks(tasks)

        assert summary.to_dict() == {"total": 3, "completed": 1, "in_progress": 1, "pending": 1}
        assert summary.all_completed is False

    def test_all_completed(self):
        """Test the all-completed flag."""
        summary = TaskSummary.from_tasks([ParsedTask(id="1", description="A", status="completed")])

        assert summary.all_completed is True
        assert TaskSummary().all_completed is False


class TestApprovalComment:
    """Test cases for ApprovalComment."""

    def test_round_trip(self):
        """Test serialization preserves optional selection fields."""
        comment = ApprovalComment(
            id="c1",
            type="selection",
            comment="Clarify",
            timestamp="2024-01-01T00:00:00.000Z",
            selected_text="quickly",
            highlight_color="#ffeb3b",
        )

        assert ApprovalComment.from_dict(comment.to_dict()) == comment

    def test_general_comment_omits_selection_keys(self):
        """Test general comments serialize without selection fields."""
        data = ApprovalComment(id="c1", type="general", comment="Ok").to_dict()

        assert "selected_text" not in data

    @pytest.mark.parametrize("kwargs, issue", [
        ({"type": "inline", "comment": "x"}, "Invalid comment type"),
        ({"type": "general", "comment": "  "}, "Comment text is required"),
        ({"type": "selection", "comment": "x"}, "selected_text"),
    ])
    def test_validation(self, kwargs, issue):
        """Test comment validation issues."""
        issues = ApprovalComment(id="c1", **kwargs).validate()

        assert any(issue in item for item in issues)


class TestApprovalRequest:
    """Test cases for ApprovalRequest."""

    def test_defaults(self):
        """Test a new request is pending with no response."""
        approval = ApprovalRequest(id="approval_1", spec_name="alpha", type="requirements", title="Review")

        assert approval.status == "pending"
        assert approval.responded_at is None
        assert approval.comments == []
        assert approval.validate() == []
        assert approval.is_terminal is False

    def test_round_trip(self):
        """Test dictionary conversion both ways."""
        approval = ApprovalRequest(
            id="approval_1",
            spec_name="alpha",
            type="design",
            title="Review",
            file_path="specs/alpha/design.md",
            status="needs-revision",
            responded_at="2024-01-02T00:00:00.000Z",
            response="More detail",
            comments=[ApprovalComment(id="c1", type="general", comment="Add diagram", timestamp="2024-01-02T00:00:00.000Z")],
        )

        restored = ApprovalRequest.from_dict(approval.to_dict())

        assert restored == approval

    def test_transition_table(self):
        """Test allowed transitions out of each state."""
        approval = ApprovalRequest(id="a", spec_name="s", type="t", title="x")

        for status in ("approved", "rejected", "needs-revision"):
            assert approval.can_transition_to(status)
        assert not approval.can_transition_to("pending")
        assert APPROVAL_TRANSITIONS["approved"] == frozenset()
        assert APPROVAL_TRANSITIONS["rejected"] == frozenset()

    def test_validate_reports_missing_fields(self):
        """Test validation of an incomplete request."""
        issues = ApprovalRequest(id="", spec_name="", type="", title="", status="unknown").validate()

        assert len(issues) == 5


class TestMisc:
    """Test cases for small helpers."""

    def test_utc_timestamp_format(self):
        """Test timestamps carry milliseconds and a Z suffix."""
        stamp = utc_timestamp()

        assert stamp.endswith("Z")
        assert len(stamp.split(".")[-1]) == 4

    def test_gitignore_result_to_dict(self):
        """Test errors are rendered as strings."""
        result = GitignoreResult(success=False, action="failed", error=OSError("disk"))

        assert result.to_dict()["error"] == "disk"
