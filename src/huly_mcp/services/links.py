"""Shared issue relationship operations for CLI and MCP."""

from __future__ import annotations

from .. import relations
from ..platform import PlatformClient


async def add_relation(
    client: PlatformClient,
    identifier: str,
    related_identifier: str,
    both_sides: bool = False,
) -> dict:
    added = await relations.add_relation(
        client, identifier, related_identifier, both_sides=both_sides
    )
    if not added:
        return {"summary": "Issues already related", "success": True}
    arrow = "<->" if both_sides else "->"
    return {
        "summary": f"Added relation: {identifier} {arrow} {related_identifier}",
        "success": True,
    }


async def add_blocked_by(client: PlatformClient, identifier: str, blocked_by_identifier: str) -> dict:
    added = await relations.add_blocked_by(client, identifier, blocked_by_identifier)
    if not added:
        return {
            "summary": f"{identifier} already blocked by {blocked_by_identifier}",
            "success": True,
        }
    return {
        "summary": f"Added dependency: {identifier} blocked by {blocked_by_identifier}",
        "success": True,
    }


async def set_parent(client: PlatformClient, identifier: str, parent_identifier: str) -> dict:
    await relations.set_parent(client, identifier, parent_identifier)
    return {
        "summary": f"Set parent issue: {identifier} is now a child of {parent_identifier}",
        "success": True,
    }
