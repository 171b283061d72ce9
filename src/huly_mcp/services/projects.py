"""Shared project operations for CLI and MCP."""

from __future__ import annotations

from ..identifiers import find_project
from ..platform import Doc, PlatformClient, refs


def format_project(project: Doc) -> dict:
    return {
        "id": project["_id"],
        "identifier": project.get("identifier", ""),
        "name": project.get("name", ""),
        "description": project.get("description") or None,
    }


async def list_projects(client: PlatformClient) -> dict:
    projects = await client.find_all(refs.PROJECT, {})
    lines = "\n".join(f"- {p.get('identifier')}: {p.get('name', '')}" for p in projects)
    return {
        "summary": f"Found {len(projects)} project(s):\n{lines}",
        "projects": [format_project(p) for p in projects],
    }


async def get_project(client: PlatformClient, identifier: str) -> dict:
    project = await find_project(client, identifier)
    formatted = format_project(project)
    return {
        "summary": (
            f"Project: {formatted['identifier']}\n"
            f"Name: {formatted['name']}\n"
            f"Description: {formatted['description'] or 'none'}"
        ),
        "project": formatted,
    }
