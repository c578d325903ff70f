"""Unit tests for workflow path resolution."""

import os

import pytest

from spec_workflow.errors import NotFoundError, ValidationError
from spec_workflow.paths import PathUtils, validate_project_path


class TestPathUtils:
    """Test cases for the pure path helpers."""

    def test_workflow_layout(self, tmp_path):
        """Test every subtree sits under .spec-workflow."""
        root = tmp_path / ".spec-workflow"

        assert PathUtils.get_workflow_root(tmp_path) == root
        assert PathUtils.get_specs_path(tmp_path) == root / "specs"
        assert PathUtils.get_spec_path(tmp_path, "alpha") == root / "specs" / "alpha"
        assert PathUtils.get_archive_specs_path(tmp_path) == root / "archive" / "specs"
        assert PathUtils.get_archive_spec_path(tmp_path, "alpha") == root / "archive" / "specs" / "alpha"
        assert PathUtils.get_steering_path(tmp_path) == root / "steering"
        assert PathUtils.get_templates_path(tmp_path) == root / "templates"
        assert PathUtils.get_approvals_path(tmp_path) == root / "approvals"
        assert PathUtils.get_spec_approval_path(tmp_path, "alpha") == root / "approvals" / "alpha"

    def test_path_normalization(self, tmp_path):
        """Test redundant segments are collapsed."""
        messy = f"{tmp_path}{os.sep}sub{os.sep}..{os.sep}"

        assert PathUtils.get_workflow_root(messy) == tmp_path / ".spec-workflow"

    def test_unix_and_platform_paths(self):
        """Test separator conversion both ways."""
        native = os.sep.join(["specs", "alpha", "tasks.md"])

        assert PathUtils.to_unix_path(native) == "specs/alpha/tasks.md"
        assert PathUtils.to_platform_path("specs/alpha/tasks.md") == native

    def test_relative_path(self, tmp_path):
        """Test paths inside, equal to and outside the project root."""
        inside = tmp_path / "a" / "b.md"

        assert PathUtils.get_relative_path(tmp_path, inside) == os.path.join("a", "b.md")
        assert PathUtils.get_relative_path(tmp_path, tmp_path) == ""
        assert PathUtils.get_relative_path(tmp_path / "a", tmp_path / "ab") == str(tmp_path / "ab")


class TestValidateProjectPath:
    """Test cases for validate_project_path."""

    def test_existing_directory(self, tmp_path):
        """Test a valid directory resolves to an absolute path."""
        assert validate_project_path(str(tmp_path)) == tmp_path.resolve()

    def test_missing_directory(self, tmp_path):
        """Test a missing path."""
        with pytest.raises(NotFoundError, match="does not exist"):
            validate_project_path(tmp_path / "missing")

    def test_file_is_rejected(self, tmp_path):
        """Test a file path."""
        target = tmp_path / "file.txt"
        target.write_text("x", encoding="utf-8")

        with pytest.raises(ValidationError, match="not a directory"):
            validate_project_path(target)

    def test_empty_path(self):
        """Test an empty path."""
        with pytest.raises(ValidationError, match="required"):
            validate_project_path("")
