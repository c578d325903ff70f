"""Environment-driven settings for the workflow server."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .fileio import DEFAULT_WRITE_RETRIES


PROJECT_ROOT_ENV = "SPEC_WORKFLOW_PROJECT_ROOT"
LOG_LEVEL_ENV = "SPEC_WORKFLOW_LOG_LEVEL"
LOG_FILE_ENV = "SPEC_WORKFLOW_LOG_FILE"
CREATE_GITIGNORE_ENV = "SPEC_WORKFLOW_CREATE_GITIGNORE"
WRITE_RETRIES_ENV = "SPEC_WORKFLOW_WRITE_RETRIES"

_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(slots=True)
class WorkflowSettings:
    project_root: Optional[Path] = None
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    create_gitignore: bool = True
    write_retries: int = DEFAULT_WRITE_RETRIES

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "WorkflowSettings":
        env = os.environ if environ is None else environ

        project_root = env.get(PROJECT_ROOT_ENV)
        log_file = env.get(LOG_FILE_ENV)

        retries_raw = env.get(WRITE_RETRIES_ENV, "").strip()
        try:
            write_retries = max(1, int(retries_raw)) if retries_raw else DEFAULT_WRITE_RETRIES
        except ValueError:
            raise ValueError(f"{WRITE_RETRIES_ENV} must be an integer, got '{retries_raw}'") from None

        return cls(
            project_root=Path(project_root).expanduser() if project_root else None,
            log_level=env.get(LOG_LEVEL_ENV, "INFO").upper(),
            log_file=Path(log_file).expanduser() if log_file else None,
            create_gitignore=env.get(CREATE_GITIGNORE_ENV, "true").strip().lower() not in _FALSE_VALUES,
            write_retries=write_retries,
        )
