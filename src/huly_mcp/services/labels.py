"""Shared label operations for CLI and MCP."""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import NotFoundError
from ..identifiers import find_issue_in_project, find_project
from ..platform import Doc, PlatformClient, refs
from ..relations import attach_label, detach_label, find_label

logger = logging.getLogger(__name__)

DEFAULT_LABEL_COLOR = 0x4ECDC4
DEFAULT_LABEL_SPACE = "tracker:project:Default"


def format_color(color: Optional[int]) -> Optional[str]:
    """Render an RGB integer as #rrggbb."""
    if not color:
        return None
    return f"#{color:06x}"


def format_label(tag: Doc) -> dict:
    return {"id": tag["_id"], "name": tag.get("title", ""), "color": format_color(tag.get("color"))}


async def list_labels(client: PlatformClient) -> dict:
    tags = await client.find_all(refs.TAG_ELEMENT, {"targetClass": refs.ISSUE})
    lines = "\n".join(f"- {t.get('title', '')}" for t in tags)
    return {
        "summary": f"Found {len(tags)} label(s):\n{lines}",
        "labels": [format_label(t) for t in tags],
    }


async def create_label(client: PlatformClient, name: str, color: Optional[int] = None) -> dict:
    existing = await find_label(client, name)
    if existing:
        return {
            "summary": f'Label "{name}" already exists',
            "label": {"id": existing["_id"], "name": name},
        }

    # Labels live in a project space; fall back to the default tracker project
    projects = await client.find_all(refs.PROJECT, {}, limit=1)
    space = projects[0]["_id"] if projects else DEFAULT_LABEL_SPACE

    tag_id = await client.create_doc(
        refs.TAG_ELEMENT,
        space,
        {
            "title": name,
            "targetClass": refs.ISSUE,
            "description": "",
            "color": color or DEFAULT_LABEL_COLOR,
            "category": refs.CATEGORY_OTHER,
        },
    )
    logger.info('Created label "%s"', name)
    return {"summary": f"Created label: {name}", "label": {"id": tag_id, "name": name}}


async def delete_label(client: PlatformClient, name: str) -> dict:
    tag = await find_label(client, name)
    if not tag:
        raise NotFoundError(f'Label "{name}" not found', key=name)

    await client.remove_doc(refs.TAG_ELEMENT, tag["space"], tag["_id"])
    return {"summary": f"Deleted label: {name}", "success": True}


async def add_label(client: PlatformClient, project: str, identifier: str, label: str) -> dict:
    project_doc = await find_project(client, project)
    issue = await find_issue_in_project(client, project_doc, identifier)

    if not await attach_label(client, project_doc, issue, label):
        return {"summary": f'Label "{label}" already exists on issue', "success": True}
    return {"summary": f'Added label "{label}" to {identifier}', "success": True}


async def remove_label(client: PlatformClient, project: str, identifier: str, label: str) -> dict:
    project_doc = await find_project(client, project)
    issue = await find_issue_in_project(client, project_doc, identifier)

    if not await detach_label(client, project_doc, issue, label):
        return {"summary": f'Label "{label}" is not on {identifier}', "success": True}
    return {"summary": f'Removed label "{label}" from {identifier}', "success": True}
