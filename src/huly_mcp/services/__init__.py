"""Shared service layer for CLI and MCP.

Every operation takes a connected PlatformClient and returns a dict with a
human-readable ``summary`` plus the structured payload.
"""

from .issues import (
    list_issues,
    get_issue,
    create_issue,
    update_issue,
    delete_issue,
    set_assignee,
    set_milestone,
)
from .projects import list_projects, get_project
from .milestones import list_milestones, get_milestone, create_milestone, delete_milestone
from .labels import list_labels, create_label, delete_label, add_label, remove_label
from .links import add_relation, add_blocked_by, set_parent
from .persons import list_persons, get_person
from .metadata import list_task_types, list_statuses

__all__ = [
    "list_issues",
    "get_issue",
    "create_issue",
    "update_issue",
    "delete_issue",
    "set_assignee",
    "set_milestone",
    "list_projects",
    "get_project",
    "list_milestones",
    "get_milestone",
    "create_milestone",
    "delete_milestone",
    "list_labels",
    "create_label",
    "delete_label",
    "add_label",
    "remove_label",
    "add_relation",
    "add_blocked_by",
    "set_parent",
    "list_persons",
    "get_person",
    "list_task_types",
    "list_statuses",
]
