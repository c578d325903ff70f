"""Change notification for viewers of the workflow directory.

The engine calls ``ChangeObservationHub.notify`` after every completed write.
Transports (a dashboard websocket, an SSE stream, a test probe) subscribe a
callback and forward the events; the engine itself knows nothing about them.
``scan`` lets a watcher pick up edits made by other processes by diffing file
snapshots of the workflow root.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from .models import utc_timestamp
from .paths import PathUtils


logger = logging.getLogger("spec_workflow.observation")

ChangeCallback = Callable[["ChangeEvent"], Union[None, Awaitable[None]]]

_Snapshot = Dict[str, Tuple[int, int]]


@dataclass(slots=True)
class ChangeEvent:
    """A file under the workflow root was created, modified or deleted."""

    kind: str  # 'created', 'modified', 'deleted'
    path: str
    relative_path: str
    category: str  # 'spec', 'steering', 'approval', 'archive', 'template', 'other'
    spec_name: Optional[str] = None
    timestamp: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "path": self.path,
            "relative_path": self.relative_path,
            "category": self.category,
            "spec_name": self.spec_name,
            "timestamp": self.timestamp,
        }


def categorize(relative_path: str) -> Tuple[str, Optional[str]]:
    """Map a workflow-root-relative path to ``(category, spec_name)``."""
    parts = PathUtils.to_unix_path(relative_path).split("/")
    head = parts[0] if parts else ""
    if head == "specs":
        return "spec", parts[1] if len(parts) > 2 else None
    if head == "approvals":
        return "approval", parts[1] if len(parts) > 2 else None
    if head == "archive" and len(parts) > 1 and parts[1] == "specs":
        return "archive", parts[2] if len(parts) > 3 else None
    if head == "steering":
        return "steering", None
    if head == "templates":
        return "template", None
    return "other", None


class ChangeObservationHub:
    """Fan-out of ``ChangeEvent`` objects to subscribed observers."""

    def __init__(self, project_path: Path | str):
        self.project_path = Path(project_path)
        self.workflow_root = PathUtils.get_workflow_root(self.project_path)
        self._observers: List[ChangeCallback] = []
        self._snapshot: Optional[_Snapshot] = None

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register ``callback``; the returned function unsubscribes it."""
        self._observers.append(callback)
        logger.debug(f"Observer registered ({len(self._observers)} total)")

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def event_for(self, path: Path | str, kind: str = "modified") -> ChangeEvent:
        relative = PathUtils.get_relative_path(self.workflow_root, path)
        category, spec_name = categorize(relative)
        return ChangeEvent(
            kind=kind,
            path=str(path),
            relative_path=PathUtils.to_unix_path(relative),
            category=category,
            spec_name=spec_name,
        )

    async def notify(self, event: ChangeEvent) -> None:
        """Deliver ``event`` to every observer. A failing observer is logged and skipped."""
        for callback in list(self._observers):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Observer failed for {event.relative_path}: {e}")

    async def notify_path(self, path: Path | str, kind: str = "modified") -> ChangeEvent:
        event = self.event_for(path, kind)
        await self.notify(event)
        return event

    def _take_snapshot(self) -> _Snapshot:
        snapshot: _Snapshot = {}
        if not self.workflow_root.exists():
            return snapshot
        for dirpath, _dirnames, filenames in os.walk(self.workflow_root):
            for name in filenames:
                # Atomic-write temp files are never surfaced
                if name.startswith(".") and name.endswith(".tmp"):
                    continue
                full = os.path.join(dirpath, name)
                try:
                    stat = os.stat(full)
                except FileNotFoundError:
                    continue
                snapshot[full] = (stat.st_mtime_ns, stat.st_size)
        return snapshot

    async def scan(self) -> List[ChangeEvent]:
        """Diff the workflow root against the previous scan and notify each change.

        The first call only records a baseline and reports nothing.
        """
        current = await asyncio.to_thread(self._take_snapshot)
        previous = self._snapshot
        self._snapshot = current
        if previous is None:
            return []

        events: List[ChangeEvent] = []
        for path in sorted(current.keys() - previous.keys()):
            events.append(self.event_for(path, "created"))
        for path in sorted(current.keys() & previous.keys()):
            if current[path] != previous[path]:
                events.append(self.event_for(path, "modified"))
        for path in sorted(previous.keys() - current.keys()):
            events.append(self.event_for(path, "deleted"))

        for event in events:
            await self.notify(event)
        return events
