"""Data models for the spec workflow engine.

This module contains the core data structures used throughout the engine,
representing parsed tasks, approval requests and their comments, and the
results of ignore-file maintenance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


TASK_STATUSES = ("pending", "in-progress", "completed")

STATUS_MARKERS: Dict[str, str] = {
    "pending": " ",
    "in-progress": "-",
    "completed": "x",
}

MARKER_STATUSES: Dict[str, str] = {marker: status for status, marker in STATUS_MARKERS.items()}

APPROVAL_STATUSES = ("pending", "approved", "rejected", "needs-revision")
TERMINAL_APPROVAL_STATUSES = frozenset({"approved", "rejected"})

# Allowed approval transitions; terminal states have no outgoing edges.
APPROVAL_TRANSITIONS: Dict[str, frozenset] = {
    "pending": frozenset({"approved", "rejected", "needs-revision"}),
    "needs-revision": frozenset({"approved", "rejected", "needs-revision"}),
    "approved": frozenset(),
    "rejected": frozenset(),
}

COMMENT_TYPES = ("selection", "general")

SPEC_DOCUMENTS = ("requirements", "design", "tasks")
STEERING_DOCUMENTS = ("product", "tech", "structure")


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string with a Z suffix."""
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


@dataclass(slots=True)
class ParsedTask:
    """A single checklist entry of a tasks.md document."""

    id: str
    description: str
    status: str
    is_header: bool = False
    requirements: List[str] = field(default_factory=list)
    leverage: Optional[str] = None
    implementation_details: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    prompt: Optional[str] = None
    parent_id: Optional[str] = None
    line_number: int = 0
    indent: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "description": self.description,
            "status": self.status,
            "is_header": self.is_header,
            "requirements": list(self.requirements),
            "leverage": self.leverage,
            "implementation_details": list(self.implementation_details),
            "files": list(self.files),
            "prompt": self.prompt,
            "parent_id": self.parent_id,
            "line_number": self.line_number,
        }

    @property
    def marker(self) -> str:
        return STATUS_MARKERS[self.status]

    @property
    def depth(self) -> int:
        return self.id.count(".")


@dataclass(slots=True)
class TaskSummary:
    """Status counts over the non-header tasks of a document."""

    total: int = 0
    completed: int = 0
    in_progress: int = 0
    pending: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "completed": self.completed,
            "in_progress": self.in_progress,
            "pending": self.pending,
        }

    @classmethod
    def from_tasks(cls, tasks: List[ParsedTask]) -> "TaskSummary":
        summary = cls()
        for task in tasks:
            if task.is_header:
                continue
            summary.total += 1
            if task.status == "completed":
                summary.completed += 1
            elif task.status == "in-progress":
                summary.in_progress += 1
            else:
                summary.pending += 1
        return summary

    @property
    def all_completed(self) -> bool:
        return self.total > 0 and self.completed == self.total


@dataclass(slots=True)
class ParseResult:
    """Structured view of a task document."""

    tasks: List[ParsedTask]
    summary: TaskSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tasks": [task.to_dict() for task in self.tasks],
            "summary": self.summary.to_dict(),
        }


@dataclass(slots=True)
class ApprovalComment:
    """Reviewer feedback, either anchored to a text selection or general."""

    id: str
    type: str
    comment: str
    timestamp: str = field(default_factory=utc_timestamp)
    selected_text: Optional[str] = None
    highlight_color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "comment": self.comment,
            "timestamp": self.timestamp,
        }
        if self.selected_text is not None:
            data["selected_text"] = self.selected_text
        if self.highlight_color is not None:
            data["highlight_color"] = self.highlight_color
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApprovalComment":
        """Create from dictionary representation."""
        return cls(
            id=data["id"],
            type=data["type"],
            comment=data["comment"],
            timestamp=data.get("timestamp") or utc_timestamp(),
            selected_text=data.get("selected_text"),
            highlight_color=data.get("highlight_color"),
        )

    def validate(self) -> List[str]:
        """Validate the comment and return any issues."""
        issues = []
        if self.type not in COMMENT_TYPES:
            issues.append(f"Invalid comment type: {self.type}")
        if not self.comment or not self.comment.strip():
            issues.append("Comment text is required")
        if self.type == "selection" and not self.selected_text:
            issues.append("Selection comments require selected_text")
        return issues


@dataclass(slots=True)
class ApprovalRequest:
    """A reviewable unit tied to one spec document."""

    id: str
    spec_name: str
    type: str
    title: str
    file_path: Optional[str] = None
    status: str = "pending"
    created_at: str = field(default_factory=utc_timestamp)
    responded_at: Optional[str] = None
    response: Optional[str] = None
    annotations: Optional[str] = None
    comments: List[ApprovalComment] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "spec_name": self.spec_name,
            "type": self.type,
            "title": self.title,
            "file_path": self.file_path,
            "status": self.status,
            "created_at": self.created_at,
            "responded_at": self.responded_at,
            "response": self.response,
            "annotations": self.annotations,
            "comments": [comment.to_dict() for comment in self.comments],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApprovalRequest":
        """Create from dictionary representation."""
        return cls(
            id=data["id"],
            spec_name=data["spec_name"],
            type=data["type"],
            title=data.get("title", ""),
            file_path=data.get("file_path"),
            status=data.get("status", "pending"),
            created_at=data.get("created_at") or utc_timestamp(),
            responded_at=data.get("responded_at"),
            response=data.get("response"),
            annotations=data.get("annotations"),
            comments=[ApprovalComment.from_dict(item) for item in data.get("comments", [])],
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_APPROVAL_STATUSES

    def can_transition_to(self, status: str) -> bool:
        return status in APPROVAL_TRANSITIONS.get(self.status, frozenset())

    def validate(self) -> List[str]:
        """Validate the request and return any issues."""
        issues = []
        if not self.id:
            issues.append("Approval ID is required")
        if not self.spec_name:
            issues.append("Spec name is required")
        if not self.type:
            issues.append("Document type is required")
        if not self.title:
            issues.append("Title is required")
        if self.status not in APPROVAL_STATUSES:
            issues.append(f"Invalid status: {self.status}")
        return issues


@dataclass(slots=True)
class RepositoryInfo:
    """Location of the enclosing git repository, if any."""

    root_path: str
    exists: bool
    is_submodule: bool = False
    gitignore_path: Optional[str] = None


@dataclass(slots=True)
class GitignorePattern:
    """One non-empty line of a .gitignore file."""

    pattern: str
    variations: List[str]
    is_comment: bool
    line_number: Optional[int] = None


@dataclass(slots=True)
class GitignoreConfig:
    pattern: str = "**/.spec-workflow/"
    silent: bool = False
    create_if_missing: bool = True
    force: bool = False


@dataclass(slots=True)
class GitignoreResult:
    """Outcome of an ignore-file maintenance call."""

    success: bool
    action: str  # 'created', 'updated', 'skipped', 'failed'
    file_path: Optional[str] = None
    message: Optional[str] = None
    error: Optional[BaseException] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "action": self.action,
            "file_path": self.file_path,
            "message": self.message,
            "error": str(self.error) if self.error else None,
        }
