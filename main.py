"""MCP server exposing the spec workflow engine."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from spec_workflow.config import PROJECT_ROOT_ENV, WorkflowSettings
from spec_workflow.errors import SpecWorkflowError, ValidationError
from spec_workflow.paths import WORKFLOW_DIR_NAME, validate_project_path
from spec_workflow.workflow import WorkflowManager
from spec_workflow.workflow_logging import setup_logging
from spec_workflow.workspace import GitignoreCache

mcp = FastMCP("spec-workflow")

logger = logging.getLogger("spec_workflow.server")

SERVER_ROOT = Path(__file__).resolve().parent


class ServerSession:
    """Managers and the gitignore cache shared by the tools of one server run."""

    def __init__(self, settings: Optional[WorkflowSettings] = None):
        self.settings = settings or WorkflowSettings.from_env()
        self.gitignore_cache = GitignoreCache()
        self.managers: Dict[Path, WorkflowManager] = {}

    def manager(self, root: Path) -> WorkflowManager:
        manager = self.managers.get(root)
        if manager is None:
            manager = WorkflowManager(root, settings=self.settings, gitignore_cache=self.gitignore_cache)
            self.managers[root] = manager
        return manager


_session: Optional[ServerSession] = None


def _get_session() -> ServerSession:
    global _session
    if _session is None:
        _session = ServerSession()
    return _session


def _candidate_bases() -> List[Path]:
    cwd = Path.cwd().resolve()
    bases: List[Path] = [cwd]
    bases.extend(cwd.parents)
    for base in (SERVER_ROOT, *SERVER_ROOT.parents):
        if base not in bases:
            bases.append(base)
    return bases


def _locate_workspace_root() -> Optional[Path]:
    for base in _candidate_bases():
        if (base / WORKFLOW_DIR_NAME).is_dir():
            return base
    return None


def _resolve_root(project_path: Optional[str]) -> Path:
    if project_path:
        return validate_project_path(Path(project_path).expanduser())

    configured_root = _get_session().settings.project_root
    if configured_root:
        root = configured_root.resolve()
        if not root.is_dir():
            raise ValidationError(
                f"Environment variable {PROJECT_ROOT_ENV} points to '{configured_root}', which does not exist.",
                next_steps=[f"Point {PROJECT_ROOT_ENV} at an existing project directory"],
            )
        return root

    detected_root = _locate_workspace_root()
    if detected_root:
        return detected_root

    raise ValidationError(
        "Unable to determine project root automatically. Provide the 'project_path' argument when calling the tool "
        f"or set the {PROJECT_ROOT_ENV} environment variable.",
        next_steps=["Pass project_path", "Run bootstrap_workflow with project_path to create .spec-workflow/"],
    )


def _manager(project_path: Optional[str]) -> WorkflowManager:
    return _get_session().manager(_resolve_root(project_path))


async def _call(project_path: Optional[str], operation: str, *args: Any, **kwargs: Any) -> Dict[str, Any]:
    """Run one manager operation; an unusable project root becomes a failure result."""
    try:
        manager = _manager(project_path)
    except SpecWorkflowError as e:
        logger.warning(f"Cannot run {operation}: {e.message}")
        return {"success": False, "message": e.message, "data": {}, "next_steps": e.next_steps}
    return await getattr(manager, operation)(*args, **kwargs)


@mcp.tool()
async def bootstrap_workflow(project_path: Optional[str] = None) -> Dict[str, Any]:
    """STEP 1: Create the .spec-workflow/ directory tree and add it to the repository's .gitignore.
    Safe to call repeatedly; existing files are never touched."""

    return await _call(project_path, "bootstrap")


@mcp.tool()
async def manage_tasks(
    spec_name: str,
    action: str = "list",
    task_id: Optional[str] = None,
    status: Optional[str] = None,
    project_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Work through the tasks.md checklist of a specification.

    Actions:
    - 'list': All tasks with a completed/in-progress/pending summary
    - 'get': One task by id (requires task_id)
    - 'next-pending': The first pending task in document order
    - 'set-status': Change a task marker (requires task_id and status: pending, in-progress, completed)
    - 'context': Task details plus requirements.md and design.md contents (requires task_id)
    """

    return await _call(project_path, "manage_tasks", spec_name, action, task_id=task_id, status=status)


@mcp.tool()
async def spec_status(spec_name: str, project_path: Optional[str] = None) -> Dict[str, Any]:
    """Report document presence, task progress, phase and approvals for a specification."""

    return await _call(project_path, "spec_status", spec_name)


@mcp.tool()
async def list_specs(project_path: Optional[str] = None) -> Dict[str, Any]:
    """Enumerate active and archived specifications in the workspace."""

    return await _call(project_path, "list_specs")


@mcp.tool()
async def archive_spec(spec_name: str, project_path: Optional[str] = None) -> Dict[str, Any]:
    """Move a finished specification to .spec-workflow/archive/specs/.
    Prerequisites: no approval request of the spec may still be open."""

    return await _call(project_path, "archive_spec", spec_name)


@mcp.tool()
async def unarchive_spec(spec_name: str, project_path: Optional[str] = None) -> Dict[str, Any]:
    """Restore an archived specification to .spec-workflow/specs/."""

    return await _call(project_path, "unarchive_spec", spec_name)


@mcp.tool()
async def request_approval(
    spec_name: str,
    type: str,
    title: str,
    file_path: Optional[str] = None,
    project_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Submit a document for review. `type` is requirements, design, tasks or a steering document;
    `file_path` (relative to .spec-workflow/) is required for any other document."""

    return await _call(project_path, "request_approval", spec_name, type, title, file_path=file_path)


@mcp.tool()
async def get_approval_status(approval_id: str, project_path: Optional[str] = None) -> Dict[str, Any]:
    """Poll an approval request. When it needs revision, the result carries the reviewer
    comments and a ready-to-use revision prompt."""

    return await _call(project_path, "get_approval_status", approval_id)


@mcp.tool()
async def respond_to_approval(
    approval_id: str,
    status: str,
    response: Optional[str] = None,
    annotations: Optional[str] = None,
    comments: Optional[List[Dict[str, Any]]] = None,
    project_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Record a reviewer decision: approved, rejected or needs-revision.

    Each comment is {"type": "general" | "selection", "comment": str, "selected_text"?: str,
    "highlight_color"?: str}; selection comments must quote the text they refer to.
    Approved and rejected are final decisions.
    """

    return await _call(
        project_path,
        "respond_to_approval",
        approval_id,
        status,
        response=response,
        annotations=annotations,
        comments=comments,
    )


@mcp.tool()
async def delete_approval(approval_id: str, project_path: Optional[str] = None) -> Dict[str, Any]:
    """Remove an approval request once it has been approved."""

    return await _call(project_path, "delete_approval", approval_id)


@mcp.tool()
def get_workflow_guide() -> Dict[str, Any]:
    """Get guidance on the recommended spec workflow."""
    return WorkflowManager.get_workflow_guide()


@mcp.resource("spec-workflow://specs")
async def resource_specs() -> str:
    """Resource view listing specifications and their task progress."""

    try:
        manager = _manager(None)
    except SpecWorkflowError:
        return f"No project root detected. Launch tools with a 'project_path' argument or set {PROJECT_ROOT_ENV}."

    result = await manager.list_specs()
    specs = result["data"].get("specs", []) if result["success"] else []
    if not specs:
        return "No specifications found."

    lines = ["Specifications"]
    for spec in specs:
        lines.append("")
        label = f"- {spec['spec_name']}"
        if spec["archived"]:
            label += " (archived)"
        lines.append(label)
        if spec["documents"]:
            lines.append(f"  Documents: {', '.join(spec['documents'])}")
        summary = spec.get("task_summary")
        if summary:
            lines.append(f"  Tasks: {summary['completed']}/{summary['total']} completed")

    return "\n".join(lines)


def run() -> None:
    settings = WorkflowSettings.from_env()
    setup_logging(settings.log_level, settings.log_file)

    global _session
    _session = ServerSession(settings)
    logger.info("Starting spec workflow MCP server")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    run()
