"""Approval requests for spec documents.

Each request is one JSON file at
``.spec-workflow/approvals/<spec-name>/<id>.json``. Status changes follow
``APPROVAL_TRANSITIONS``: ``pending`` and ``needs-revision`` may move to
``approved``, ``rejected`` or ``needs-revision``; ``approved`` and
``rejected`` are final. Comments are only ever appended, so repeated revision
rounds keep their full history.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from .errors import InvalidTransitionError, NotFoundError, ValidationError
from .fileio import DEFAULT_WRITE_RETRIES, PathLockRegistry, read_text, write_file_with_retry
from .models import (
    APPROVAL_STATUSES,
    TERMINAL_APPROVAL_STATUSES,
    ApprovalComment,
    ApprovalRequest,
    utc_timestamp,
)
from .paths import PathUtils
from .workflow_logging import log_approval_event


logger = logging.getLogger("spec_workflow.approvals")

CommentInput = Union[ApprovalComment, Dict[str, Any]]

_APPROVAL_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def generate_approval_id() -> str:
    return f"approval_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def is_valid_approval_id(approval_id: Optional[str]) -> bool:
    """Ids are plain file stems: no separators, dots or glob characters."""
    return bool(approval_id) and _APPROVAL_ID_PATTERN.fullmatch(approval_id) is not None


def generate_comment_id() -> str:
    return f"comment_{uuid.uuid4().hex[:12]}"


def generate_revision_prompt(comments: Iterable[ApprovalComment], general_feedback: Optional[str] = None) -> str:
    """Turn reviewer feedback into revision instructions for the document author."""
    comments = list(comments)
    sections: List[str] = []

    if general_feedback:
        sections.append(f"## General Feedback\n{general_feedback}")

    selection_comments = [c for c in comments if c.type == "selection" and c.selected_text]
    general_comments = [c for c in comments if c.type == "general"]

    if selection_comments:
        sections.append("## Specific Text Revisions Required")
        for index, comment in enumerate(selection_comments, start=1):
            sections.append(
                f"### Change {index}\n"
                f'**Original Text:** "{comment.selected_text}"\n'
                f"**Feedback:** {comment.comment}\n"
                "**Action Required:** Revise this specific section to address the feedback provided."
            )

    if general_comments:
        sections.append("## General Comments")
        for index, comment in enumerate(general_comments, start=1):
            sections.append(f"{index}. {comment.comment}")

    sections.append(
        "## Revision Instructions\n"
        "1. Address each piece of feedback systematically\n"
        "2. For text-specific comments, locate the exact text in the document and revise it\n"
        "3. Ensure all general comments are addressed throughout the document\n"
        "4. Maintain consistency with the overall document structure and style\n"
        "5. After revisions, the document should fully address all feedback points"
    )

    return "\n\n".join(sections)


def coerce_comment(item: CommentInput) -> ApprovalComment:
    """Build a validated comment, filling in id and timestamp when absent."""
    if isinstance(item, ApprovalComment):
        comment = item
    elif isinstance(item, dict):
        comment = ApprovalComment(
            id=item.get("id") or generate_comment_id(),
            type=item.get("type", "general"),
            comment=item.get("comment", ""),
            timestamp=item.get("timestamp") or utc_timestamp(),
            selected_text=item.get("selected_text"),
            highlight_color=item.get("highlight_color"),
        )
    else:
        raise ValidationError(f"Unsupported comment value: {item!r}")

    issues = comment.validate()
    if issues:
        raise ValidationError("Invalid comment: " + "; ".join(issues))
    return comment


class ApprovalStorage:
    """Reads and writes approval records for one project."""

    def __init__(
        self,
        project_path: Path | str,
        *,
        locks: Optional[PathLockRegistry] = None,
        max_retries: int = DEFAULT_WRITE_RETRIES,
    ):
        self.project_path = Path(project_path)
        self.approvals_dir = PathUtils.get_approvals_path(self.project_path)
        self.locks = locks or PathLockRegistry()
        self.max_retries = max_retries

    def _record_path(self, spec_name: str, approval_id: str) -> Path:
        return PathUtils.get_spec_approval_path(self.project_path, spec_name) / f"{approval_id}.json"

    def _find_record_path(self, approval_id: str) -> Optional[Path]:
        if not is_valid_approval_id(approval_id) or not self.approvals_dir.is_dir():
            return None
        filename = f"{approval_id}.json"
        for spec_dir in sorted(self.approvals_dir.iterdir()):
            candidate = spec_dir / filename
            if spec_dir.is_dir() and candidate.is_file():
                return candidate
        return None

    def _load(self, path: Path) -> ApprovalRequest:
        return ApprovalRequest.from_dict(json.loads(read_text(path)))

    async def _save(self, path: Path, approval: ApprovalRequest) -> None:
        await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
        content = json.dumps(approval.to_dict(), indent=2) + "\n"
        await write_file_with_retry(path, content, max_retries=self.max_retries)

    def record_path(self, approval: ApprovalRequest) -> Path:
        return self._record_path(approval.spec_name, approval.id)

    async def create(
        self,
        spec_name: str,
        type: str,
        title: str,
        file_path: Optional[str] = None,
    ) -> ApprovalRequest:
        approval = ApprovalRequest(
            id=generate_approval_id(),
            spec_name=spec_name,
            type=type,
            title=title,
            file_path=file_path,
        )
        issues = approval.validate()
        if issues:
            raise ValidationError("Invalid approval request: " + "; ".join(issues))

        active = [item for item in await self.list(spec_name) if item.type == type and not item.is_terminal]
        if active:
            # Not enforced: several active requests for one document are allowed but flagged.
            logger.warning(
                f"Spec '{spec_name}' already has {len(active)} active approval(s) for '{type}': "
                + ", ".join(item.id for item in active)
            )

        path = self.record_path(approval)
        async with self.locks.hold(path):
            await self._save(path, approval)

        log_approval_event("created", spec_name, approval.id, document_type=type)
        return approval

    async def get(self, approval_id: str) -> Optional[ApprovalRequest]:
        path = await asyncio.to_thread(self._find_record_path, approval_id)
        if path is None:
            return None
        try:
            return await asyncio.to_thread(self._load, path)
        except FileNotFoundError:
            return None

    async def list(self, spec_name: Optional[str] = None, status: Optional[str] = None) -> List[ApprovalRequest]:
        """Approvals oldest first, optionally filtered by spec and status."""
        def load_all() -> List[ApprovalRequest]:
            if not self.approvals_dir.is_dir():
                return []
            if spec_name:
                spec_dirs = [self.approvals_dir / spec_name]
            else:
                spec_dirs = [path for path in self.approvals_dir.iterdir() if path.is_dir()]
            records = []
            for spec_dir in spec_dirs:
                # Spec names are literal directory names, never patterns
                if spec_dir.parent != self.approvals_dir or not spec_dir.is_dir():
                    continue
                for path in spec_dir.glob("*.json"):
                    try:
                        records.append(self._load(path))
                    except (OSError, ValueError, KeyError) as e:
                        logger.warning(f"Skipping unreadable approval record {path}: {e}")
            return records

        records = await asyncio.to_thread(load_all)
        if status:
            records = [record for record in records if record.status == status]
        return sorted(records, key=lambda record: (record.created_at, record.id))

    async def respond(
        self,
        approval_id: str,
        status: str,
        response: Optional[str] = None,
        annotations: Optional[str] = None,
        comments: Optional[Iterable[CommentInput]] = None,
    ) -> ApprovalRequest:
        """Apply a reviewer decision; raises on unknown ids and illegal transitions."""
        if status not in APPROVAL_STATUSES or status == "pending":
            raise ValidationError(
                f"Invalid response status: {status}",
                next_steps=['Use status: "approved", "rejected", or "needs-revision"'],
            )
        new_comments = [coerce_comment(item) for item in comments or []]

        path = await asyncio.to_thread(self._find_record_path, approval_id)
        if path is None:
            raise NotFoundError(f"Approval request not found: {approval_id}")

        async with self.locks.hold(path):
            try:
                approval = await asyncio.to_thread(self._load, path)
            except FileNotFoundError:
                raise NotFoundError(f"Approval request not found: {approval_id}") from None

            if not approval.can_transition_to(status):
                raise InvalidTransitionError(approval.status, status)

            previous_status = approval.status
            approval.status = status
            if approval.responded_at is None:
                approval.responded_at = utc_timestamp()
            if response is not None:
                approval.response = response
            if annotations is not None:
                approval.annotations = annotations
            approval.comments.extend(new_comments)

            await self._save(path, approval)

        log_approval_event(
            "responded",
            approval.spec_name,
            approval.id,
            previous_status=previous_status,
            new_status=status,
            comments_added=len(new_comments),
        )
        return approval

    async def delete(self, approval_id: str) -> bool:
        path = await asyncio.to_thread(self._find_record_path, approval_id)
        if path is None:
            return False

        async with self.locks.hold(path):
            try:
                await asyncio.to_thread(path.unlink)
            except FileNotFoundError:
                return False

        spec_dir = path.parent
        try:
            await asyncio.to_thread(spec_dir.rmdir)
        except OSError:
            # Other records still live there
            pass

        logger.info(f"Deleted approval {approval_id}")
        return True

    @staticmethod
    def is_completed(approval: ApprovalRequest) -> bool:
        return approval.status in TERMINAL_APPROVAL_STATUSES
