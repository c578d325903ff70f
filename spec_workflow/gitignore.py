"""Keep the repository's .gitignore aware of the workflow directory."""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import List, Optional

from .fileio import DEFAULT_WRITE_RETRIES, read_text, write_file_with_retry
from .models import GitignoreConfig, GitignorePattern, GitignoreResult, RepositoryInfo
from .paths import WORKFLOW_DIR_NAME


logger = logging.getLogger("spec_workflow.gitignore")


class GitignoreManager:
    """Detects, adds and removes the workflow-root ignore rule."""

    PATTERNS = (
        f"**/{WORKFLOW_DIR_NAME}/",
        f"{WORKFLOW_DIR_NAME}/",
        WORKFLOW_DIR_NAME,
        f"/{WORKFLOW_DIR_NAME}/",
        f"**/{WORKFLOW_DIR_NAME}",
    )
    TARGET_PATTERN = f"**/{WORKFLOW_DIR_NAME}/"
    PATTERN_COMMENT = "# Spec workflow files"

    def __init__(self, *, max_retries: int = DEFAULT_WRITE_RETRIES, home: Optional[Path] = None):
        self.max_retries = max_retries
        self._home = home

    @property
    def home(self) -> Path:
        return (self._home or Path.home()).resolve()

    async def ensure(self, project_path: Path | str, config: Optional[GitignoreConfig] = None) -> GitignoreResult:
        """Make sure the workflow directory is ignored by the enclosing repository.

        Never raises: unexpected failures are reported as a ``failed`` result.
        """
        settings = config or GitignoreConfig()

        try:
            repo_info = await asyncio.to_thread(self.find_repository, Path(project_path))
            if not repo_info.exists:
                return GitignoreResult(success=True, action="skipped", message="Not a git repository")

            gitignore_path = Path(repo_info.root_path) / ".gitignore"

            if gitignore_path.exists():
                content = await asyncio.to_thread(read_text, gitignore_path)
                if not settings.force and self.is_pattern_present(content):
                    logger.debug(f"{gitignore_path} already ignores {WORKFLOW_DIR_NAME}")
                    return GitignoreResult(success=True, action="skipped", file_path=str(gitignore_path))

                await self._append_pattern(gitignore_path, content, settings.pattern)
                return GitignoreResult(
                    success=True,
                    action="updated",
                    file_path=str(gitignore_path),
                    message=None if settings.silent else f"Added {WORKFLOW_DIR_NAME}/ to {gitignore_path}",
                )

            if settings.create_if_missing:
                await self._create_gitignore(gitignore_path, settings.pattern)
                return GitignoreResult(
                    success=True,
                    action="created",
                    file_path=str(gitignore_path),
                    message=None if settings.silent else f"Created {gitignore_path} with {WORKFLOW_DIR_NAME}/ entry",
                )

            return GitignoreResult(
                success=True,
                action="skipped",
                message=".gitignore does not exist and create_if_missing is false",
            )
        except Exception as e:
            return GitignoreResult(
                success=False,
                action="failed",
                error=e,
                message=f"Warning: Could not update .gitignore: {e}",
            )

    def find_repository(self, start_path: Path) -> RepositoryInfo:
        git_root = self.find_git_root(start_path)
        if git_root is None:
            return RepositoryInfo(root_path=str(start_path), exists=False)

        # A .git file instead of a directory marks a submodule or worktree
        is_submodule = (git_root / ".git").is_file()
        return RepositoryInfo(
            root_path=str(git_root),
            exists=True,
            is_submodule=is_submodule,
            gitignore_path=str(git_root / ".gitignore"),
        )

    def find_git_root(self, start_path: Path) -> Optional[Path]:
        """Walk up from ``start_path`` until the home directory or filesystem root."""
        current = Path(start_path).resolve()
        home = self.home

        while current != home and current != current.parent:
            if (current / ".git").exists():
                return current
            current = current.parent
        return None

    @staticmethod
    def normalize_pattern(pattern: str) -> str:
        normalized = re.sub(r"^\*\*/", "", pattern.strip())
        normalized = re.sub(r"^/", "", normalized)
        normalized = re.sub(r"/$", "", normalized)
        normalized = re.sub(r"^\*\*", "", normalized)
        return normalized.strip()

    def is_pattern_present(self, content: str) -> bool:
        target = self.normalize_pattern(self.TARGET_PATTERN)
        for line in content.splitlines():
            trimmed = line.strip()
            if not trimmed or trimmed.startswith("#"):
                continue
            if trimmed in self.PATTERNS or self.normalize_pattern(trimmed) == target:
                return True
        return False

    def get_pattern_variations(self, pattern: str) -> List[str]:
        if not pattern or pattern.startswith("#"):
            return []
        variations = [pattern]
        if self.normalize_pattern(pattern) == WORKFLOW_DIR_NAME:
            variations.extend(self.PATTERNS)
        # dict.fromkeys keeps first-seen order while dropping duplicates
        return list(dict.fromkeys(variations))

    async def parse_gitignore(self, gitignore_path: Path | str) -> List[GitignorePattern]:
        """List the non-empty lines of a .gitignore; an unreadable file yields nothing."""
        try:
            content = await asyncio.to_thread(read_text, Path(gitignore_path))
        except OSError:
            return []

        patterns: List[GitignorePattern] = []
        for index, line in enumerate(content.splitlines(), start=1):
            trimmed = line.strip()
            if not trimmed:
                continue
            patterns.append(
                GitignorePattern(
                    pattern=trimmed,
                    variations=self.get_pattern_variations(trimmed),
                    is_comment=trimmed.startswith("#"),
                    line_number=index,
                )
            )
        return patterns

    async def remove_pattern(self, gitignore_path: Path | str) -> GitignoreResult:
        """Remove every workflow ignore line (and its identifying comment)."""
        gitignore_path = Path(gitignore_path)
        try:
            if not gitignore_path.exists():
                return GitignoreResult(success=True, action="skipped", message=".gitignore does not exist")

            content = await asyncio.to_thread(read_text, gitignore_path)
            lines = content.split("\n")
            kept: List[str] = []
            removed = False
            index = 0
            while index < len(lines):
                line = lines[index]
                trimmed = line.strip()
                if trimmed == self.PATTERN_COMMENT and index + 1 < len(lines):
                    if lines[index + 1].strip() in self.PATTERNS:
                        removed = True
                        index += 2
                        continue
                if not trimmed.startswith("#") and trimmed in self.PATTERNS:
                    removed = True
                    index += 1
                    continue
                kept.append(line)
                index += 1

            if not removed:
                return GitignoreResult(success=True, action="skipped", message="Pattern not found in .gitignore")

            cleaned = re.sub(r"\n{3,}", "\n\n", "\n".join(kept))
            await write_file_with_retry(gitignore_path, cleaned, max_retries=self.max_retries)
            return GitignoreResult(
                success=True,
                action="updated",
                file_path=str(gitignore_path),
                message=f"Removed {WORKFLOW_DIR_NAME}/ pattern from .gitignore",
            )
        except Exception as e:
            return GitignoreResult(
                success=False,
                action="failed",
                error=e,
                message=f"Failed to remove pattern: {e}",
            )

    async def _append_pattern(self, gitignore_path: Path, existing_content: str, pattern: str) -> None:
        # Exactly one blank line separates existing rules from the new block
        content = existing_content.rstrip("\r\n")
        if content:
            content += "\n\n"
        content += f"{self.PATTERN_COMMENT}\n{pattern}\n"
        await write_file_with_retry(gitignore_path, content, max_retries=self.max_retries)

    async def _create_gitignore(self, gitignore_path: Path, pattern: str) -> None:
        await write_file_with_retry(
            gitignore_path,
            f"{self.PATTERN_COMMENT}\n{pattern}\n",
            max_retries=self.max_retries,
        )
