"""Workspace management for the spec workflow directory.

This module owns the on-disk layout under ``.spec-workflow/`` and makes sure
it exists, together with the repository's ignore rule, before anything is
read or written there.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Set

from .gitignore import GitignoreManager
from .models import GitignoreConfig, GitignoreResult
from .paths import PathUtils
from .workflow_logging import log_error_with_context, log_workflow_event


logger = logging.getLogger("spec_workflow.workspace")


class GitignoreCache:
    """Project roots whose ignore rule has already been ensured.

    Owned by the caller's session (normally one per ``WorkflowManager``), so
    its lifetime ends with the session rather than the process.
    """

    def __init__(self) -> None:
        self._ensured: Set[str] = set()

    @staticmethod
    def _key(project_path: Path | str) -> str:
        return str(Path(project_path).resolve())

    def __contains__(self, project_path: object) -> bool:
        return isinstance(project_path, (str, Path)) and self._key(project_path) in self._ensured

    def claim(self, project_path: Path | str) -> bool:
        """Mark ``project_path`` as ensured; False if it already was."""
        key = self._key(project_path)
        if key in self._ensured:
            return False
        self._ensured.add(key)
        return True

    def discard(self, project_path: Path | str) -> None:
        self._ensured.discard(self._key(project_path))

    def clear(self) -> None:
        self._ensured.clear()

    def __len__(self) -> int:
        return len(self._ensured)


class Workspace:
    """The ``.spec-workflow`` tree of one project."""

    def __init__(
        self,
        root: Path | str,
        *,
        gitignore_cache: Optional[GitignoreCache] = None,
        gitignore_manager: Optional[GitignoreManager] = None,
        gitignore_config: Optional[GitignoreConfig] = None,
    ):
        self.root = Path(root).resolve()
        self.gitignore_cache = gitignore_cache if gitignore_cache is not None else GitignoreCache()
        self.gitignore_manager = gitignore_manager or GitignoreManager()
        self.gitignore_config = gitignore_config or GitignoreConfig()
        self.last_gitignore_result: Optional[GitignoreResult] = None

        self.base_dir = PathUtils.get_workflow_root(self.root)
        self.specs_dir = PathUtils.get_specs_path(self.root)
        self.steering_dir = PathUtils.get_steering_path(self.root)
        self.approvals_dir = PathUtils.get_approvals_path(self.root)
        self.templates_dir = PathUtils.get_templates_path(self.root)
        self.archive_specs_dir = PathUtils.get_archive_specs_path(self.root)

    @property
    def directories(self) -> List[Path]:
        return [
            self.base_dir,
            self.specs_dir,
            self.steering_dir,
            self.approvals_dir,
            self.templates_dir,
            self.archive_specs_dir,
        ]

    async def ensure_gitignore(self) -> Optional[GitignoreResult]:
        """Run the ignore-file check once per cache; a failed check is retried, later calls return None."""
        if not self.gitignore_cache.claim(self.root):
            return None

        result = await self.gitignore_manager.ensure(self.root, self.gitignore_config)
        self.last_gitignore_result = result

        if result.action in ("created", "updated"):
            if result.message:
                logger.info(result.message)
            log_workflow_event("gitignore_" + result.action, path=result.file_path)
        elif result.action == "failed":
            # Retried on the next bootstrap of this session
            self.gitignore_cache.discard(self.root)
            if result.message:
                logger.warning(result.message)
        return result

    async def bootstrap(self) -> Path:
        """Create the workflow tree and ensure the ignore rule. Safe to repeat."""
        await self.ensure_gitignore()

        try:
            for directory in self.directories:
                await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)
        except OSError as e:
            log_error_with_context(e, {"operation": "workspace_bootstrap", "root": str(self.root)})
            raise

        return self.base_dir

    # ------------------------------------------------------------------
    # Document locations
    # ------------------------------------------------------------------

    def spec_dir(self, spec_name: str) -> Path:
        return PathUtils.get_spec_path(self.root, spec_name)

    def archived_spec_dir(self, spec_name: str) -> Path:
        return PathUtils.get_archive_spec_path(self.root, spec_name)

    def spec_document_path(self, spec_name: str, document: str) -> Path:
        return self.spec_dir(spec_name) / f"{document}.md"

    def tasks_path(self, spec_name: str) -> Path:
        return self.spec_document_path(spec_name, "tasks")

    def steering_document_path(self, document: str) -> Path:
        return self.steering_dir / f"{document}.md"

    def spec_approval_dir(self, spec_name: str) -> Path:
        return PathUtils.get_spec_approval_path(self.root, spec_name)

    def relative_to_workflow_root(self, path: Path | str) -> str:
        return PathUtils.to_unix_path(PathUtils.get_relative_path(self.base_dir, path))

    def list_spec_names(self, *, archived: bool = False) -> List[str]:
        base = self.archive_specs_dir if archived else self.specs_dir
        if not base.exists():
            return []
        return sorted(path.name for path in base.iterdir() if path.is_dir())
