"""Unit tests for environment-driven settings."""

from pathlib import Path

import pytest

from spec_workflow.config import WorkflowSettings


class TestWorkflowSettings:
    """Test cases for WorkflowSettings.from_env."""

    def test_defaults(self):
        """Test an empty environment."""
        settings = WorkflowSettings.from_env({})

        assert settings.project_root is None
        assert settings.log_level == "INFO"
        assert settings.log_file is None
        assert settings.create_gitignore is True
        assert settings.write_retries == 3

    def test_values_from_environment(self, tmp_path):
        """Test every variable is read."""
        settings = WorkflowSettings.from_env({
            "SPEC_WORKFLOW_PROJECT_ROOT": str(tmp_path),
            "SPEC_WORKFLOW_LOG_LEVEL": "debug",
            "SPEC_WORKFLOW_LOG_FILE": str(tmp_path / "server.log"),
            "SPEC_WORKFLOW_CREATE_GITIGNORE": "false",
            "SPEC_WORKFLOW_WRITE_RETRIES": "5",
        })

        assert settings.project_root == Path(tmp_path)
        assert settings.log_level == "DEBUG"
        assert settings.log_file == tmp_path / "server.log"
        assert settings.create_gitignore is False
        assert settings.write_retries == 5

    def test_reads_process_environment(self, monkeypatch):
        """Test os.environ is used by default."""
        monkeypatch.setenv("SPEC_WORKFLOW_LOG_LEVEL", "warning")

        assert WorkflowSettings.from_env().log_level == "WARNING"

    def test_retries_at_least_one(self):
        """Test retries are clamped to a single attempt minimum."""
        assert WorkflowSettings.from_env({"SPEC_WORKFLOW_WRITE_RETRIES": "0"}).write_retries == 1

    def test_invalid_retries(self):
        """Test a non-numeric retry count."""
        with pytest.raises(ValueError, match="must be an integer"):
            WorkflowSettings.from_env({"SPEC_WORKFLOW_WRITE_RETRIES": "many"})
