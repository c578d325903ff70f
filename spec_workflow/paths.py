"""Canonical locations inside a project's workflow directory."""

from __future__ import annotations

import os
from pathlib import Path

from .errors import NotFoundError, ValidationError


WORKFLOW_DIR_NAME = ".spec-workflow"


class PathUtils:
    """Pure ``project root -> path`` helpers. None of these touch the disk."""

    @staticmethod
    def get_workflow_root(project_path: Path | str) -> Path:
        return Path(os.path.normpath(os.path.join(project_path, WORKFLOW_DIR_NAME)))

    @staticmethod
    def get_specs_path(project_path: Path | str) -> Path:
        return PathUtils.get_workflow_root(project_path) / "specs"

    @staticmethod
    def get_spec_path(project_path: Path | str, spec_name: str) -> Path:
        return Path(os.path.normpath(PathUtils.get_specs_path(project_path) / spec_name))

    @staticmethod
    def get_archive_specs_path(project_path: Path | str) -> Path:
        return PathUtils.get_workflow_root(project_path) / "archive" / "specs"

    @staticmethod
    def get_archive_spec_path(project_path: Path | str, spec_name: str) -> Path:
        return Path(os.path.normpath(PathUtils.get_archive_specs_path(project_path) / spec_name))

    @staticmethod
    def get_steering_path(project_path: Path | str) -> Path:
        return PathUtils.get_workflow_root(project_path) / "steering"

    @staticmethod
    def get_templates_path(project_path: Path | str) -> Path:
        return PathUtils.get_workflow_root(project_path) / "templates"

    @staticmethod
    def get_approvals_path(project_path: Path | str) -> Path:
        return PathUtils.get_workflow_root(project_path) / "approvals"

    @staticmethod
    def get_spec_approval_path(project_path: Path | str, spec_name: str) -> Path:
        return Path(os.path.normpath(PathUtils.get_approvals_path(project_path) / spec_name))

    # Ensure paths work across Windows, macOS, Linux
    @staticmethod
    def to_platform_path(path: str) -> str:
        return os.sep.join(path.split("/"))

    @staticmethod
    def to_unix_path(path: str) -> str:
        return "/".join(path.split(os.sep))

    @staticmethod
    def get_relative_path(project_path: Path | str, full_path: Path | str) -> str:
        """Return ``full_path`` relative to the project root, or unchanged if outside it."""
        normalized_project = os.path.normpath(str(project_path))
        normalized_full = os.path.normpath(str(full_path))
        if normalized_full == normalized_project:
            return ""
        prefix = normalized_project.rstrip(os.sep) + os.sep
        if normalized_full.startswith(prefix):
            return normalized_full[len(prefix):]
        return normalized_full


def validate_project_path(project_path: Path | str) -> Path:
    """Resolve ``project_path`` to an absolute, existing directory."""
    if project_path is None or not str(project_path).strip():
        raise ValidationError(
            "Project path is required",
            next_steps=["Provide project_path or set SPEC_WORKFLOW_PROJECT_ROOT"],
        )
    absolute = Path(project_path).expanduser().resolve()
    if not absolute.exists():
        raise NotFoundError(f"Project path does not exist: {project_path}")
    if not absolute.is_dir():
        raise ValidationError(f"Project path is not a directory: {absolute}")
    return absolute
