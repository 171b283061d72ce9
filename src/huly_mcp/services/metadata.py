"""Task type and issue status listings."""

from __future__ import annotations

from typing import Optional

from ..identifiers import find_project
from ..platform import Doc, PlatformClient, refs


def _short_name(ref: str) -> str:
    return ref.split(":")[-1]


def _is_issue_task_type(task_type: Doc) -> bool:
    descriptor = task_type.get("descriptor") or ""
    return (
        task_type.get("ofClass") == refs.ISSUE
        or task_type.get("targetClass") == refs.ISSUE
        or "tracker" in descriptor
    )


def _describe(task_type: Doc) -> str:
    descriptor = task_type.get("descriptor")
    if isinstance(descriptor, str):
        return descriptor
    if isinstance(descriptor, list):
        return ", ".join(descriptor)
    return ""


async def list_task_types(client: PlatformClient, project: str) -> dict:
    """List task types usable for issues (e.g. Issue, Epic, Bug)."""
    await find_project(client, project)

    task_types = [t for t in await client.find_all(refs.TASK_TYPE, {}) if _is_issue_task_type(t)]
    formatted = [
        {
            "id": t["_id"],
            "name": t.get("name") or _short_name(t["_id"]),
            "description": _describe(t),
        }
        for t in task_types
    ]
    lines = "\n".join(f"- {t['name']}" for t in formatted)
    return {
        "summary": f"Found {len(formatted)} task type(s):\n{lines}",
        "taskTypes": formatted,
    }


async def list_statuses(client: PlatformClient, project: Optional[str] = None) -> dict:
    """List issue statuses, optionally only those of a project's workflow."""
    statuses = await client.find_all(refs.ISSUE_STATUS, {})

    if project:
        project_doc = await find_project(client, project)
        project_type = None
        if project_doc.get("type"):
            project_type = await client.find_one(refs.PROJECT_TYPE, {"_id": project_doc["type"]})
        if project_type and project_type.get("statuses"):
            allowed = {s.get("_id") for s in project_type["statuses"]}
            statuses = [s for s in statuses if s["_id"] in allowed]

    formatted = [
        {"id": s["_id"], "name": s.get("name", ""), "category": s.get("category") or ""}
        for s in statuses
    ]
    lines = "\n".join(f"- {s['name']}" for s in formatted)
    return {
        "summary": f"Found {len(formatted)} status(es):\n{lines}",
        "statuses": formatted,
    }
