"""Milestone operations for CLI and MCP."""

from __future__ import annotations

import time
from typing import Optional

from ..dates import iso_to_ms, ms_to_iso
from ..enums import MilestoneStatus, milestone_status_to_string, string_to_milestone_status
from ..errors import NotFoundError
from ..identifiers import find_project
from ..platform import Doc, PlatformClient, refs

# Milestones created without a target date are due two weeks out
DEFAULT_TARGET_OFFSET_MS = 14 * 24 * 60 * 60 * 1000


def format_milestone(milestone: Doc) -> dict:
    return {
        "id": milestone["_id"],
        "label": milestone.get("label", ""),
        "status": milestone_status_to_string(milestone.get("status")),
        "targetDate": ms_to_iso(milestone.get("targetDate")),
    }


async def _find_milestone(client: PlatformClient, project_doc: Doc, label: str) -> Doc:
    milestone = await client.find_one(
        refs.MILESTONE, {"space": project_doc["_id"], "label": label}
    )
    if not milestone:
        raise NotFoundError(f'Milestone "{label}" not found', key=label)
    return milestone


async def list_milestones(client: PlatformClient, project: str) -> dict:
    project_doc = await find_project(client, project)
    milestones = await client.find_all(refs.MILESTONE, {"space": project_doc["_id"]})

    formatted = [format_milestone(m) for m in milestones]
    lines = "\n".join(f"- {m['label']}: {m['status']}" for m in formatted)
    return {
        "summary": f"Found {len(formatted)} milestone(s):\n{lines}",
        "milestones": formatted,
    }


async def get_milestone(client: PlatformClient, project: str, label: str) -> dict:
    project_doc = await find_project(client, project)
    milestone = await _find_milestone(client, project_doc, label)

    issues = await client.find_all(
        refs.ISSUE, {"space": project_doc["_id"], "milestone": milestone["_id"]}
    )
    formatted = format_milestone(milestone)
    return {
        "summary": (
            f"Milestone: {formatted['label']}\n"
            f"Status: {formatted['status']}\n"
            f"Issues: {len(issues)}"
        ),
        "milestone": {
            **formatted,
            "description": milestone.get("description") or "",
            "issueCount": len(issues),
        },
    }


async def create_milestone(
    client: PlatformClient,
    project: str,
    label: str,
    target_date: Optional[str] = None,
    status: Optional[str] = None,
) -> dict:
    """Create a milestone; an existing milestone with the same label is returned as is."""
    project_doc = await find_project(client, project)

    existing = await client.find_one(
        refs.MILESTONE, {"space": project_doc["_id"], "label": label}
    )
    if existing:
        return {
            "summary": f'Milestone "{label}" already exists',
            "milestone": {"id": existing["_id"], "label": label},
        }

    if target_date:
        target_ms = iso_to_ms(target_date)
    else:
        target_ms = int(time.time() * 1000) + DEFAULT_TARGET_OFFSET_MS

    milestone_id = await client.create_doc(
        refs.MILESTONE,
        project_doc["_id"],
        {
            "label": label,
            "status": int(string_to_milestone_status(status) if status else MilestoneStatus.PLANNED),
            "targetDate": target_ms,
            "comments": 0,
        },
        refs.generate_id(),
    )
    return {
        "summary": f"Created milestone: {label}",
        "milestone": {"id": milestone_id, "label": label},
    }


async def delete_milestone(client: PlatformClient, project: str, label: str) -> dict:
    project_doc = await find_project(client, project)
    milestone = await _find_milestone(client, project_doc, label)

    await client.remove_doc(refs.MILESTONE, project_doc["_id"], milestone["_id"])
    return {"summary": f"Deleted milestone: {label}", "success": True}
