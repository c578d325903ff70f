"""Parse and update the checklist in a spec's tasks.md.

The parser is a two-stage grammar. ``classify_line`` turns each physical line
into one of three tagged variants:

* ``TaskLine``: ``- [ ] 1.2 Description`` (marker ``' '``, ``'-'`` or ``'x'``)
* ``MetadataLine``: any other bullet, e.g. ``- _Requirements: 1.1, 2.3_``
* ``ProseLine``: everything else

``parse_tasks_from_markdown`` folds those into ``ParsedTask`` objects in a
single pass. ``update_task_status`` reuses the same classifier, so the line it
rewrites is always one the parser recognised, and it changes nothing but the
marker character.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

from .errors import ValidationError
from .models import (
    MARKER_STATUSES,
    STATUS_MARKERS,
    ParsedTask,
    ParseResult,
    TaskSummary,
)


_TASK_LINE_PATTERN = re.compile(
    r"^(?P<indent>[ \t]*)[-*] \[(?P<marker>[ x-])\] (?P<id>\d+(?:\.\d+)*)\.?[ \t]+(?P<description>\S.*?)[ \t]*$"
)
_BULLET_PATTERN = re.compile(r"^(?P<indent>[ \t]*)[-*][ \t]+(?P<content>\S.*?)[ \t]*$")

_METADATA_PATTERNS = (
    ("requirements", re.compile(r"^_?Requirements?:[ \t]*(?P<value>.*?)_?$", re.IGNORECASE)),
    ("leverage", re.compile(r"^_?Leverage:[ \t]*(?P<value>.*?)_?$", re.IGNORECASE)),
    ("prompt", re.compile(r"^_?Prompt:[ \t]*(?P<value>.*?)_?$", re.IGNORECASE)),
    ("file", re.compile(r"^_?Files?:[ \t]*(?P<value>.*?)_?$", re.IGNORECASE)),
)


@dataclass(frozen=True, slots=True)
class TaskLine:
    line_number: int
    indent: str
    marker: str
    task_id: str
    description: str
    marker_column: int


@dataclass(frozen=True, slots=True)
class MetadataLine:
    line_number: int
    indent: str
    kind: str  # 'requirements', 'leverage', 'prompt', 'file', 'detail'
    value: str
    text: str


@dataclass(frozen=True, slots=True)
class ProseLine:
    line_number: int
    text: str

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()

    @property
    def indent(self) -> str:
        return self.text[: len(self.text) - len(self.text.lstrip(" \t"))]


ClassifiedLine = Union[TaskLine, MetadataLine, ProseLine]


def _indent_width(indent: str) -> int:
    return len(indent.expandtabs(4))


def classify_line(line: str, line_number: int = 0) -> ClassifiedLine:
    """Classify one physical line (a trailing ``\\r`` is ignored)."""
    text = line[:-1] if line.endswith("\r") else line

    task_match = _TASK_LINE_PATTERN.match(text)
    if task_match:
        return TaskLine(
            line_number=line_number,
            indent=task_match.group("indent"),
            marker=task_match.group("marker"),
            task_id=task_match.group("id"),
            description=task_match.group("description"),
            marker_column=task_match.start("marker"),
        )

    bullet_match = _BULLET_PATTERN.match(text)
    if bullet_match:
        content = bullet_match.group("content")
        for kind, pattern in _METADATA_PATTERNS:
            metadata_match = pattern.match(content)
            if metadata_match:
                return MetadataLine(
                    line_number=line_number,
                    indent=bullet_match.group("indent"),
                    kind=kind,
                    value=metadata_match.group("value").strip(),
                    text=content,
                )
        return MetadataLine(
            line_number=line_number,
            indent=bullet_match.group("indent"),
            kind="detail",
            value=content,
            text=content,
        )

    return ProseLine(line_number=line_number, text=text)


def _iter_lines(content: str) -> Iterator[Tuple[int, int, str]]:
    """Yield ``(line_number, offset, line)`` with line endings stripped of ``\\n`` only."""
    offset = 0
    for index, line in enumerate(content.split("\n"), start=1):
        yield index, offset, line
        offset += len(line) + 1


def classify_lines(content: str) -> List[ClassifiedLine]:
    return [classify_line(line, number) for number, _, line in _iter_lines(content)]


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _attach_metadata(task: ParsedTask, line: MetadataLine) -> None:
    if line.kind == "requirements":
        task.requirements.extend(_split_list(line.value))
    elif line.kind == "leverage":
        task.leverage = line.value if task.leverage is None else f"{task.leverage}, {line.value}"
    elif line.kind == "prompt":
        task.prompt = line.value
    elif line.kind == "file":
        task.files.extend(_split_list(line.value))
        task.implementation_details.append(line.text)
    else:
        task.implementation_details.append(line.value)


def parse_tasks_from_markdown(content: str) -> ParseResult:
    """Build the task list of a document; unrecognised lines are skipped."""
    tasks: List[ParsedTask] = []
    current: Optional[ParsedTask] = None

    for line in classify_lines(content):
        if isinstance(line, TaskLine):
            current = ParsedTask(
                id=line.task_id,
                description=line.description,
                status=MARKER_STATUSES[line.marker],
                line_number=line.line_number,
                indent=line.indent,
            )
            tasks.append(current)
        elif isinstance(line, MetadataLine):
            if current is not None and _indent_width(line.indent) > _indent_width(current.indent):
                _attach_metadata(current, line)
            else:
                current = None
        elif current is not None and not line.is_blank:
            # Indented prose (a wrapped line, a nested numbered list) stays inside the task block
            if _indent_width(line.indent) <= _indent_width(current.indent):
                current = None

    _link_hierarchy(tasks)
    return ParseResult(tasks=tasks, summary=TaskSummary.from_tasks(tasks))


def _link_hierarchy(tasks: List[ParsedTask]) -> None:
    ids = {task.id for task in tasks}
    for task in tasks:
        parts = task.id.split(".")
        for size in range(len(parts) - 1, 0, -1):
            candidate = ".".join(parts[:size])
            if candidate in ids:
                task.parent_id = candidate
                break

    parents = {task.parent_id for task in tasks if task.parent_id is not None}
    for task in tasks:
        task.is_header = task.id in parents


def get_task_by_id(tasks: List[ParsedTask], task_id: str) -> Optional[ParsedTask]:
    wanted = str(task_id).strip()
    for task in tasks:
        if task.id == wanted:
            return task
    return None


def find_next_pending_task(tasks: List[ParsedTask]) -> Optional[ParsedTask]:
    """First pending, non-header task in document order (not numeric id order)."""
    for task in tasks:
        if not task.is_header and task.status == "pending":
            return task
    return None


def get_in_progress_tasks(tasks: List[ParsedTask]) -> List[ParsedTask]:
    return [task for task in tasks if not task.is_header and task.status == "in-progress"]


def get_child_tasks(tasks: List[ParsedTask], task_id: str) -> List[ParsedTask]:
    return [task for task in tasks if task.parent_id == task_id]


def update_task_status(content: str, task_id: str, status: str) -> str:
    """Return ``content`` with the marker of task ``task_id`` set to ``status``.

    Only that one character changes. When no line carries ``task_id`` the input
    is returned unchanged, which callers use as the "task not found" signal.
    """
    if status not in STATUS_MARKERS:
        raise ValidationError(
            f"Invalid task status: {status}",
            next_steps=['Use status: "pending", "in-progress", or "completed"'],
        )

    wanted = str(task_id).strip()
    new_marker = STATUS_MARKERS[status]
    for line_number, offset, line in _iter_lines(content):
        classified = classify_line(line, line_number)
        if isinstance(classified, TaskLine) and classified.task_id == wanted:
            position = offset + classified.marker_column
            return content[:position] + new_marker + content[position + 1:]
    return content
