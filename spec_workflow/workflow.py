"""Workflow operations exposed to tool callers.

``WorkflowManager`` is the operation boundary: each public coroutine returns a
result dict with ``success``, ``message``, ``data`` and ``next_steps``.
Expected edge cases (unknown ids, no pending tasks, an already ignored
workflow directory) come back as results, never as exceptions.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import re
import shutil
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .approvals import ApprovalStorage, CommentInput, generate_revision_prompt, is_valid_approval_id
from .config import WorkflowSettings
from .errors import NotFoundError, SpecWorkflowError, ValidationError
from .fileio import PathLockRegistry, read_text_async, write_file_with_retry
from .gitignore import GitignoreManager
from .models import (
    SPEC_DOCUMENTS,
    STEERING_DOCUMENTS,
    TASK_STATUSES,
    ApprovalRequest,
    GitignoreConfig,
    ParsedTask,
    TaskSummary,
)
from .observation import ChangeObservationHub
from .task_parser import (
    find_next_pending_task,
    get_child_tasks,
    get_in_progress_tasks,
    get_task_by_id,
    parse_tasks_from_markdown,
    update_task_status,
)
from .workflow_logging import log_error_with_context, log_operation, log_task_update
from .workspace import GitignoreCache, Workspace


logger = logging.getLogger("spec_workflow.workflow")

TASK_ACTIONS = ("list", "get", "next-pending", "set-status", "context")

_SPEC_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

STATUS_SYMBOLS = {"completed": "✅", "in-progress": "⏳", "pending": "⏸️"}


def _success(message: str, data: Optional[Dict[str, Any]] = None, next_steps: Optional[List[str]] = None) -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "data": data or {},
        "next_steps": list(next_steps or []),
    }


def _failure(message: str, next_steps: Optional[List[str]] = None, **data: Any) -> Dict[str, Any]:
    return {
        "success": False,
        "message": message,
        "data": data,
        "next_steps": list(next_steps or []),
    }


def operation_boundary(operation_name: str):
    """Convert exceptions escaping a manager coroutine into failure results."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self: "WorkflowManager", *args, **kwargs) -> Dict[str, Any]:
            try:
                with log_operation(operation_name, project=str(self.workspace.root)):
                    return await func(self, *args, **kwargs)
            except SpecWorkflowError as e:
                return _failure(e.message, e.next_steps)
            except FileNotFoundError as e:
                return _failure(
                    f"Not found: {e.filename or e}",
                    ["Check that the project path is correct", "Run bootstrap_workflow first"],
                )
            except PermissionError as e:
                log_error_with_context(e, {"operation": operation_name, "root": str(self.workspace.root)})
                return _failure(
                    f"Permission denied: {e}",
                    ["Verify file permissions on the .spec-workflow directory"],
                )
            except Exception as e:
                log_error_with_context(e, {"operation": operation_name, "root": str(self.workspace.root)})
                return _failure(
                    f"Failed to {operation_name.replace('_', ' ')}: {e}",
                    ["Check that the project path is correct", "Verify file permissions"],
                )
        return wrapper
    return decorator


def validate_spec_name(spec_name: Optional[str]) -> str:
    if not spec_name or not spec_name.strip():
        raise ValidationError("Spec name is required", next_steps=["Provide a spec_name parameter"])
    name = spec_name.strip()
    if name in (".", "..") or not _SPEC_NAME_PATTERN.match(name):
        raise ValidationError(
            f"Invalid spec name: '{spec_name}'",
            next_steps=["Use letters, digits, '.', '_' and '-' only (e.g. 'user-authentication')"],
        )
    return name


def validate_approval_id(approval_id: Optional[str]) -> str:
    if not approval_id:
        raise ValidationError("Approval ID is required", next_steps=["Provide an approval_id parameter"])
    if not is_valid_approval_id(approval_id):
        raise ValidationError(
            f"Invalid approval ID: '{approval_id}'",
            next_steps=["Use the approval_id returned by request_approval (e.g. 'approval_1700000000000_1a2b3c4d')"],
        )
    return approval_id


class WorkflowManager:
    """Task, approval and layout operations for one project."""

    def __init__(
        self,
        root: Path | str,
        *,
        settings: Optional[WorkflowSettings] = None,
        hub: Optional[ChangeObservationHub] = None,
        gitignore_cache: Optional[GitignoreCache] = None,
        locks: Optional[PathLockRegistry] = None,
    ):
        self.settings = settings or WorkflowSettings()
        self.locks = locks or PathLockRegistry()
        self.workspace = Workspace(
            root,
            gitignore_cache=gitignore_cache,
            gitignore_manager=GitignoreManager(max_retries=self.settings.write_retries),
            gitignore_config=GitignoreConfig(create_if_missing=self.settings.create_gitignore),
        )
        self.approvals = ApprovalStorage(
            self.workspace.root,
            locks=self.locks,
            max_retries=self.settings.write_retries,
        )
        self.hub = hub or ChangeObservationHub(self.workspace.root)

    @property
    def project_context(self) -> Dict[str, str]:
        return {
            "project_path": str(self.workspace.root),
            "workflow_root": str(self.workspace.base_dir),
        }

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    @operation_boundary("bootstrap")
    async def bootstrap(self) -> Dict[str, Any]:
        """Create the workflow tree and report what happened to .gitignore."""
        already_ensured = self.workspace.root in self.workspace.gitignore_cache
        await self.workspace.bootstrap()

        gitignore = self.workspace.last_gitignore_result
        if already_ensured or gitignore is None:
            gitignore_data = {"success": True, "action": "skipped", "message": "Already ensured in this session"}
        else:
            gitignore_data = gitignore.to_dict()

        return _success(
            f"Workflow directory ready at {self.workspace.base_dir}",
            {
                "workflow_root": str(self.workspace.base_dir),
                "directories": [self.workspace.relative_to_workflow_root(path) for path in self.workspace.directories[1:]],
                "gitignore": gitignore_data,
            },
            ["Author requirements.md, design.md and tasks.md under specs/<spec-name>/"],
        )

    # ------------------------------------------------------------------
    # Task execution
    # ------------------------------------------------------------------

    @operation_boundary("manage_tasks")
    async def manage_tasks(
        self,
        spec_name: str,
        action: str = "list",
        task_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Dict[str, Any]:
        spec_name = validate_spec_name(spec_name)
        if action not in TASK_ACTIONS:
            return _failure(
                f"Unknown action: {action}",
                ["Use action: list, get, set-status, next-pending, or context"],
            )
        await self.workspace.bootstrap()

        if action == "set-status":
            return await self._set_task_status(spec_name, task_id, status)

        content = await self._read_tasks_document(spec_name)
        parsed = parse_tasks_from_markdown(content)
        tasks = parsed.tasks

        if not tasks:
            return _success(
                "No tasks found in tasks.md",
                {"tasks": [], "summary": parsed.summary.to_dict()},
                ['Add tasks to tasks.md using the format "- [ ] 1.1 Task description"'],
            )

        if action == "list":
            summary = parsed.summary
            return _success(
                f"Found {summary.total} tasks ({summary.completed} completed, "
                f"{summary.in_progress} in-progress, {summary.pending} pending)",
                parsed.to_dict(),
                [
                    'Use action: "next-pending" to get the next task to work on',
                    'Use action: "get" with task_id to view specific task details',
                    'Use action: "set-status" to update task progress',
                ],
            )

        if action == "next-pending":
            return self._next_pending_result(tasks)

        task = self._require_task(tasks, task_id, action)

        if action == "get":
            if task.status == "completed":
                hint = "Task is already completed"
            elif task.status == "in-progress":
                hint = "Task is currently in progress"
            else:
                hint = 'Use action: "set-status" to mark as in-progress when starting work'
            subtasks = get_child_tasks(tasks, task.id)
            return _success(
                f"Task {task.id}: {task.description}",
                {"task": task.to_dict(), "subtasks": [child.to_dict() for child in subtasks]},
                [hint, 'Use action: "context" to get full implementation context for this task'],
            )

        return await self._task_context(spec_name, task)

    async def _read_tasks_document(self, spec_name: str) -> str:
        path = self.workspace.tasks_path(spec_name)
        try:
            return await read_text_async(path)
        except FileNotFoundError:
            raise NotFoundError(
                f"tasks.md not found for specification '{spec_name}'",
                next_steps=[
                    f"Create {self.workspace.relative_to_workflow_root(path)} first",
                    "Ensure the specification exists and has completed the tasks phase",
                ],
            ) from None

    def _require_task(self, tasks: List[ParsedTask], task_id: Optional[str], action: str) -> ParsedTask:
        if not task_id:
            raise ValidationError(
                f"Task ID required for {action} action",
                next_steps=['Provide a task_id parameter (e.g., "1.1", "2.3")'],
            )
        task = get_task_by_id(tasks, task_id)
        if task is None:
            raise NotFoundError(
                f"Task {task_id} not found",
                next_steps=['Use action: "list" to see available task IDs'],
            )
        return task

    def _next_pending_result(self, tasks: List[ParsedTask]) -> Dict[str, Any]:
        next_task = find_next_pending_task(tasks)
        if next_task is None:
            in_progress = get_in_progress_tasks(tasks)
            if in_progress:
                return _success(
                    f"No pending tasks. {len(in_progress)} task(s) in progress.",
                    {"next_task": None, "in_progress_tasks": [task.to_dict() for task in in_progress]},
                    [
                        f"Continue working on in-progress tasks: {', '.join(task.id for task in in_progress)}",
                        "Mark in-progress tasks as completed when finished",
                    ],
                )
            return _success(
                "All tasks are completed!",
                {"next_task": None, "all_completed": True},
                ["Implementation phase is complete", "Run final testing and validation"],
            )

        return _success(
            f"Next pending task: {next_task.id} - {next_task.description}",
            {"next_task": next_task.to_dict()},
            [
                f'Use action: "set-status" with task_id: "{next_task.id}" and status: "in-progress" to start work',
                f'Use action: "context" with task_id: "{next_task.id}" to get implementation details',
            ],
        )

    async def _set_task_status(self, spec_name: str, task_id: Optional[str], status: Optional[str]) -> Dict[str, Any]:
        if not task_id:
            return _failure("Task ID required for set-status action", ["Provide a task_id parameter"])
        if not status:
            return _failure(
                "Status required for set-status action",
                ['Provide status: "pending", "in-progress", or "completed"'],
            )
        if status not in TASK_STATUSES:
            return _failure(
                f"Invalid status: {status}",
                ['Provide status: "pending", "in-progress", or "completed"'],
            )

        tasks_path = self.workspace.tasks_path(spec_name)
        async with self.locks.hold(tasks_path):
            content = await self._read_tasks_document(spec_name)
            task = self._require_task(parse_tasks_from_markdown(content).tasks, task_id, "set-status")

            updated = update_task_status(content, task.id, status)
            if updated == content and task.status != status:
                return _failure(
                    f"Could not find task {task_id} to update status",
                    [
                        "Check the task ID format in tasks.md",
                        'Ensure task follows format: "- [ ] 1.1 Task description"',
                    ],
                )
            if updated != content:
                await write_file_with_retry(tasks_path, updated, max_retries=self.settings.write_retries)

        if updated != content:
            await self.hub.notify_path(tasks_path)
        log_task_update(spec_name, task.id, task.status, status)

        summary = parse_tasks_from_markdown(updated).summary
        next_steps = ["Task status saved to tasks.md"]
        if status == "in-progress":
            next_steps.append("Begin implementation of this task")
        elif status == "completed":
            next_steps.append('Use action: "next-pending" to get the next task')
        else:
            next_steps.append("Task marked as pending")
        next_steps.append("Use spec_status to check overall progress")

        updated_task = task.to_dict()
        updated_task["status"] = status
        result = _success(
            f"{STATUS_SYMBOLS[status]} Task {task.id} status updated to {status}",
            {
                "task_id": task.id,
                "previous_status": task.status,
                "new_status": status,
                "updated_task": updated_task,
                "summary": summary.to_dict(),
            },
            next_steps,
        )
        result["project_context"] = {**self.project_context, "spec_name": spec_name, "current_phase": "implementation"}
        return result

    async def _task_context(self, spec_name: str, task: ParsedTask) -> Dict[str, Any]:
        spec_dir = self.workspace.spec_dir(spec_name)
        requirements = await self._read_optional(spec_dir / "requirements.md")
        design = await self._read_optional(spec_dir / "design.md")

        lines = [
            f"# Implementation Context for Task {task.id}",
            "",
            "## Task Details",
            f"**ID:** {task.id}",
            f"**Status:** {task.status}",
            f"**Description:** {task.description}",
        ]
        if task.requirements:
            lines.append(f"**Requirements Reference:** {', '.join(task.requirements)}")
        if task.leverage:
            lines.append(f"**Leverage Existing:** {task.leverage}")
        if task.implementation_details:
            lines.append("**Implementation Notes:**")
            lines.extend(f"- {detail}" for detail in task.implementation_details)
        if task.prompt:
            lines.append(f"**Prompt:** {task.prompt}")
        if requirements:
            lines.extend(["", "---", "", "## Requirements Context", requirements.rstrip()])
        if design:
            lines.extend(["", "---", "", "## Design Context", design.rstrip()])

        if task.status == "pending":
            status_hint = "Mark task as in-progress when starting work"
        elif task.status == "in-progress":
            status_hint = "Continue with implementation"
        else:
            status_hint = "Task is already completed"

        return _success(
            f"Implementation context loaded for task {task.id}",
            {
                "task": task.to_dict(),
                "context": "\n".join(lines) + "\n",
                "has_requirements": requirements is not None,
                "has_design": design is not None,
            },
            [
                "Review the full context above",
                status_hint,
                "Reference the requirements and design sections for implementation guidance",
            ],
        )

    async def _read_optional(self, path: Path) -> Optional[str]:
        try:
            return await read_text_async(path)
        except FileNotFoundError:
            return None

    # ------------------------------------------------------------------
    # Spec status and archiving
    # ------------------------------------------------------------------

    async def _task_summary(self, spec_dir: Path) -> Optional[TaskSummary]:
        content = await self._read_optional(spec_dir / "tasks.md")
        if content is None:
            return None
        return parse_tasks_from_markdown(content).summary

    @staticmethod
    def _phase(documents: Dict[str, bool], summary: Optional[TaskSummary]) -> str:
        for document in SPEC_DOCUMENTS:
            if not documents[document]:
                return document
        if summary is not None and summary.all_completed:
            return "completed"
        return "implementation"

    @operation_boundary("spec_status")
    async def spec_status(self, spec_name: str) -> Dict[str, Any]:
        spec_name = validate_spec_name(spec_name)
        await self.workspace.bootstrap()

        spec_dir = self.workspace.spec_dir(spec_name)
        archived = False
        if not spec_dir.is_dir():
            spec_dir = self.workspace.archived_spec_dir(spec_name)
            archived = True
            if not spec_dir.is_dir():
                raise NotFoundError(
                    f"Specification '{spec_name}' not found",
                    next_steps=["Use list_specs to see available specifications"],
                )

        documents = {document: (spec_dir / f"{document}.md").is_file() for document in SPEC_DOCUMENTS}
        summary = await self._task_summary(spec_dir)
        approvals = await self.approvals.list(spec_name)
        active = [approval for approval in approvals if not approval.is_terminal]

        phase = self._phase(documents, summary)
        next_steps: List[str] = []
        if phase in SPEC_DOCUMENTS:
            next_steps.append(f"Create {phase}.md and request approval for it")
        elif phase == "implementation":
            next_steps.append('Use manage_tasks with action: "next-pending" to continue implementation')
        else:
            next_steps.append("All tasks completed; the spec can be archived")
        if active:
            next_steps.append(f"{len(active)} approval request(s) awaiting a final decision")

        steering = {
            document: self.workspace.steering_document_path(document).is_file()
            for document in STEERING_DOCUMENTS
        }

        result = _success(
            f"Specification '{spec_name}' is in the {phase} phase",
            {
                "spec_name": spec_name,
                "archived": archived,
                "phase": phase,
                "documents": documents,
                "task_summary": summary.to_dict() if summary else None,
                "approvals": [self._approval_summary(approval) for approval in approvals],
                "active_approvals": [approval.id for approval in active],
                "steering": steering,
            },
            next_steps,
        )
        result["project_context"] = {**self.project_context, "spec_name": spec_name}
        return result

    @operation_boundary("list_specs")
    async def list_specs(self) -> Dict[str, Any]:
        await self.workspace.bootstrap()
        specs = []
        for archived in (False, True):
            for name in self.workspace.list_spec_names(archived=archived):
                spec_dir = (
                    self.workspace.archived_spec_dir(name) if archived else self.workspace.spec_dir(name)
                )
                summary = await self._task_summary(spec_dir)
                specs.append({
                    "spec_name": name,
                    "archived": archived,
                    "documents": [doc for doc in SPEC_DOCUMENTS if (spec_dir / f"{doc}.md").is_file()],
                    "task_summary": summary.to_dict() if summary else None,
                })

        active_count = sum(1 for spec in specs if not spec["archived"])
        return _success(
            f"Found {active_count} active and {len(specs) - active_count} archived specifications",
            {"specs": specs, "count": len(specs)},
            ["Use spec_status for details on one specification"] if specs else [
                "Create a specification under .spec-workflow/specs/<spec-name>/"
            ],
        )

    async def _move_spec(self, spec_name: str, source: Path, destination: Path) -> None:
        if not source.is_dir():
            raise NotFoundError(f"Specification '{spec_name}' not found at {source}")
        if destination.exists():
            raise ValidationError(
                f"Destination already exists: {destination}",
                next_steps=["Remove or rename the existing directory first"],
            )
        await asyncio.to_thread(destination.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.move, str(source), str(destination))
        logger.info(f"Moved spec '{spec_name}' to {self.workspace.relative_to_workflow_root(destination)}")
        await self.hub.notify_path(source, "deleted")
        await self.hub.notify_path(destination, "created")

    @operation_boundary("archive_spec")
    async def archive_spec(self, spec_name: str) -> Dict[str, Any]:
        spec_name = validate_spec_name(spec_name)
        await self.workspace.bootstrap()

        pending = [a for a in await self.approvals.list(spec_name) if not a.is_terminal]
        if pending:
            return _failure(
                f"Cannot archive '{spec_name}' while approvals are still open",
                ["Resolve open approval requests first"],
                active_approvals=[a.id for a in pending],
            )

        source = self.workspace.spec_dir(spec_name)
        destination = self.workspace.archived_spec_dir(spec_name)
        await self._move_spec(spec_name, source, destination)
        return _success(
            f"Specification '{spec_name}' archived",
            {"spec_name": spec_name, "archive_path": str(destination)},
            ["Use unarchive_spec to restore it"],
        )

    @operation_boundary("unarchive_spec")
    async def unarchive_spec(self, spec_name: str) -> Dict[str, Any]:
        spec_name = validate_spec_name(spec_name)
        await self.workspace.bootstrap()

        source = self.workspace.archived_spec_dir(spec_name)
        destination = self.workspace.spec_dir(spec_name)
        await self._move_spec(spec_name, source, destination)
        return _success(
            f"Specification '{spec_name}' restored",
            {"spec_name": spec_name, "spec_path": str(destination)},
            ["Use spec_status to review its progress"],
        )

    # ------------------------------------------------------------------
    # Approvals
    # ------------------------------------------------------------------

    @staticmethod
    def _approval_summary(approval: ApprovalRequest) -> Dict[str, Any]:
        return {
            "id": approval.id,
            "type": approval.type,
            "title": approval.title,
            "status": approval.status,
            "created_at": approval.created_at,
            "responded_at": approval.responded_at,
        }

    def _resolve_document(self, spec_name: str, document_type: str, file_path: Optional[str]) -> Path:
        if file_path:
            candidate = Path(file_path)
            if not candidate.is_absolute():
                candidate = self.workspace.base_dir / candidate
        elif document_type in SPEC_DOCUMENTS:
            candidate = self.workspace.spec_document_path(spec_name, document_type)
        elif document_type in STEERING_DOCUMENTS:
            candidate = self.workspace.steering_document_path(document_type)
        else:
            raise ValidationError(
                f"file_path is required for document type '{document_type}'",
                next_steps=["Provide file_path relative to .spec-workflow/"],
            )

        resolved = candidate.resolve()
        if not resolved.is_relative_to(self.workspace.base_dir.resolve()):
            raise ValidationError(f"Document must live under {self.workspace.base_dir}: {file_path}")
        if not resolved.is_file():
            raise NotFoundError(
                f"Document not found: {self.workspace.relative_to_workflow_root(resolved)}",
                next_steps=["Create the document before requesting approval"],
            )
        return resolved

    @operation_boundary("request_approval")
    async def request_approval(
        self,
        spec_name: str,
        type: str,
        title: str,
        file_path: Optional[str] = None,
    ) -> Dict[str, Any]:
        spec_name = validate_spec_name(spec_name)
        if not type or not type.strip():
            raise ValidationError("Document type is required", next_steps=['Provide type, e.g. "requirements"'])
        if not title or not title.strip():
            raise ValidationError("Title is required", next_steps=["Provide a short title for the reviewer"])
        await self.workspace.bootstrap()

        document = self._resolve_document(spec_name, type, file_path)
        relative = self.workspace.relative_to_workflow_root(document)
        approval = await self.approvals.create(spec_name, type, title, relative)
        await self.hub.notify_path(self.approvals.record_path(approval), "created")

        result = _success(
            f"Approval request created: {approval.id}",
            {"approval_id": approval.id, "approval": approval.to_dict()},
            [
                "Wait for the reviewer to respond in the dashboard",
                f'Poll with get_approval_status "{approval.id}" to check for updates',
            ],
        )
        result["project_context"] = {**self.project_context, "spec_name": spec_name}
        return result

    @operation_boundary("get_approval_status")
    async def get_approval_status(self, approval_id: str) -> Dict[str, Any]:
        validate_approval_id(approval_id)

        approval = await self.approvals.get(approval_id)
        if approval is None:
            return _failure(f"Approval request not found: {approval_id}")

        next_steps: List[str] = []
        if approval.status == "pending":
            next_steps.extend([
                "Approval is still pending",
                "Review the request in the dashboard",
                f'Poll again with get_approval_status "{approval_id}" to check for updates',
            ])
        elif approval.status == "approved":
            next_steps.extend(["Approval has been APPROVED", "You can now proceed with the approved document"])
            if approval.response:
                next_steps.append(f"Approval response: {approval.response}")
        elif approval.status == "rejected":
            next_steps.extend(["Approval has been REJECTED", "Review the rejection reason and make necessary changes"])
            if approval.response:
                next_steps.append(f"Rejection reason: {approval.response}")
            if approval.annotations:
                next_steps.append(f"Additional feedback: {approval.annotations}")
        else:
            next_steps.extend([
                "Approval NEEDS REVISION",
                "Use the feedback to revise the document and request a new review",
            ])
            if approval.response:
                next_steps.append(f"Feedback: {approval.response}")
            if approval.annotations:
                next_steps.append(f"Additional feedback: {approval.annotations}")
            if approval.comments:
                next_steps.append(f"Structured comments ({len(approval.comments)}): Use these for targeted improvements")

        data: Dict[str, Any] = {
            "approval_id": approval.id,
            "spec_name": approval.spec_name,
            "title": approval.title,
            "type": approval.type,
            "file_path": approval.file_path,
            "status": approval.status,
            "created_at": approval.created_at,
            "responded_at": approval.responded_at,
            "response": approval.response,
            "annotations": approval.annotations,
            "is_completed": approval.is_terminal,
        }
        if approval.status == "needs-revision" and approval.comments:
            data["comments"] = [comment.to_dict() for comment in approval.comments]
            data["revision_prompt"] = generate_revision_prompt(approval.comments, approval.response)

        result = _success(f"Approval status: {approval.status}", data, next_steps)
        result["project_context"] = {**self.project_context, "spec_name": approval.spec_name}
        return result

    @operation_boundary("respond_to_approval")
    async def respond_to_approval(
        self,
        approval_id: str,
        status: str,
        response: Optional[str] = None,
        annotations: Optional[str] = None,
        comments: Optional[Iterable[CommentInput]] = None,
    ) -> Dict[str, Any]:
        validate_approval_id(approval_id)

        approval = await self.approvals.respond(
            approval_id,
            status,
            response=response,
            annotations=annotations,
            comments=comments,
        )
        await self.hub.notify_path(self.approvals.record_path(approval))

        if approval.status == "approved":
            next_steps = ["Delete the approval with delete_approval once the document is final"]
        elif approval.status == "rejected":
            next_steps = ["The request is closed; create a new one after reworking the document"]
        else:
            next_steps = ["The author should revise the document using get_approval_status feedback"]

        return _success(
            f"Approval {approval.id} marked as {approval.status}",
            {"approval": approval.to_dict()},
            next_steps,
        )

    @operation_boundary("delete_approval")
    async def delete_approval(self, approval_id: str) -> Dict[str, Any]:
        validate_approval_id(approval_id)

        approval = await self.approvals.get(approval_id)
        if approval is None:
            return _failure(f"Approval request not found: {approval_id}")
        if approval.status != "approved":
            return _failure(
                f"Cannot delete approval {approval_id}: status is '{approval.status}'",
                ["Only approved requests are cleaned up", "Wait for the reviewer to approve the document"],
                status=approval.status,
            )

        record_path = self.approvals.record_path(approval)
        if not await self.approvals.delete(approval_id):
            return _failure(f"Approval request not found: {approval_id}")
        await self.hub.notify_path(record_path, "deleted")

        return _success(
            f"Approval request {approval_id} deleted",
            {"approval_id": approval_id, "spec_name": approval.spec_name},
            ["Continue with the next document of the specification"],
        )

    # ------------------------------------------------------------------
    # Workflow guidance
    # ------------------------------------------------------------------

    @staticmethod
    def get_workflow_guide() -> Dict[str, Any]:
        return {
            "workflow_overview": "Spec documents are written, approved, then implemented task by task",
            "steps": [
                {"step": 1, "tool": "bootstrap_workflow", "description": "Create .spec-workflow/ and ignore it in git"},
                {"step": 2, "tool": "request_approval", "description": "Submit requirements.md for review"},
                {"step": 3, "tool": "request_approval", "description": "Submit design.md for review"},
                {"step": 4, "tool": "request_approval", "description": "Submit tasks.md for review"},
                {"step": 5, "tool": "manage_tasks", "description": "next-pending -> set-status in-progress -> implement -> set-status completed"},
                {"step": 6, "tool": "archive_spec", "description": "Archive the spec once every task is completed"},
            ],
            "task_format": "- [ ] 1.1 Description   ([ ] pending, [-] in-progress, [x] completed)",
            "tips": [
                "Poll get_approval_status until a document is approved before moving on",
                "Always mark a task in-progress before starting work on it",
                "Delete approved requests with delete_approval to keep the approvals folder clean",
            ],
        }
