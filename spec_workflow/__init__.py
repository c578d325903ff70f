"""Spec workflow engine - task documents, approvals and workflow layout."""

from .approvals import ApprovalStorage
from .config import WorkflowSettings
from .observation import ChangeObservationHub
from .workflow import WorkflowManager
from .workspace import GitignoreCache, Workspace

__all__ = [
    "ApprovalStorage",
    "ChangeObservationHub",
    "GitignoreCache",
    "WorkflowManager",
    "WorkflowSettings",
    "Workspace",
]
