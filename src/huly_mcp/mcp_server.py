"""MCP Server for Huly - issue tracker tools.

Exposes projects, issues, milestones, labels, issue relationships and
contacts of a Huly workspace to AI assistants over stdio.

Configuration comes from the environment (see huly_mcp.config).
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from mcp.server.fastmcp import FastMCP

from . import services
from .config import HulyConfig, load_config
from .connection import close_client, get_client
from .errors import ConfigurationError, HulyError
from .logging_setup import configure_logging

logger = logging.getLogger(__name__)


# ============================================================================
# Error handling
# ============================================================================


def _error_response(kind: str, message: str, **extra: Any) -> dict:
    """Failure payload: an error marker and message, never partial results."""
    return {"error": kind, "message": message, "summary": f"Error: {message}", **extra}


def tool_handler(fn: Callable[..., Awaitable[dict]]) -> Callable[..., Awaitable[dict]]:
    """Convert any failure of a tool into a structured error response."""

    @wraps(fn)
    async def wrapper(*args, **kwargs) -> dict:
        try:
            return await fn(*args, **kwargs)
        except ConfigurationError as e:
            logger.error("%s: %s", fn.__name__, e)
            return _error_response(
                e.kind, str(e), suggestions=e.suggestions, help=HulyConfig.get_help_message()
            )
        except HulyError as e:
            logger.warning("%s failed: %s", fn.__name__, e)
            return _error_response(e.kind, str(e))
        except Exception as e:
            logger.exception("%s failed unexpectedly", fn.__name__)
            return _error_response("internal_error", str(e) or type(e).__name__)

    return wrapper


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    logger.error(
        "Unhandled error in event loop: %s",
        context.get("message", "unknown"),
        exc_info=context.get("exception"),
    )


def _log_uncaught(exc_type, exc_value, exc_tb) -> None:
    logger.error("Uncaught exception", exc_info=(exc_type, exc_value, exc_tb))


@asynccontextmanager
async def server_lifespan(server: FastMCP) -> AsyncIterator[dict]:
    """Keep the server alive across stray errors and close the connection on exit."""
    asyncio.get_running_loop().set_exception_handler(_log_loop_exception)
    sys.excepthook = _log_uncaught
    try:
        yield {}
    finally:
        await close_client()


# Create the MCP server
mcp = FastMCP(
    "huly-mcp",
    instructions="""Huly issue tracker.

## Quick Reference

| Goal | Tool |
|------|------|
| Find projects | `list_projects`, `get_project` |
| Browse issues | `list_issues(project)`, `get_issue(project, identifier)` |
| New issue | `create_issue(project, title)` |
| Change issue | `update_issue`, `set_assignee`, `set_milestone`, `delete_issue` |
| Labels | `add_label`, `remove_label`, `list_labels`, `create_label`, `delete_label` |
| Relationships | `add_relation`, `add_blocked_by`, `set_parent` |
| Milestones | `list_milestones`, `get_milestone`, `create_milestone`, `delete_milestone` |
| Contacts | `list_persons`, `get_person` |
| Workflow | `list_statuses`, `list_task_types` |

Issue identifiers look like `HULY-123` (project code, hyphen, number).
`add_relation` only records the link on the first issue unless
`bothSides=true`.""",
    lifespan=server_lifespan,
)


# ============================================================================
# Issue tools
# ============================================================================


@mcp.tool()
@tool_handler
async def list_issues(project: str, limit: int = 20, status: Optional[str] = None) -> dict:
    """List issues in a project, most recently modified first.

    Args:
        project: Project identifier (e.g. HULY)
        limit: Result limit, default 20
        status: Status ID filter
    """
    client = await get_client()
    return await services.list_issues(client, project, limit=limit, status=status)


@mcp.tool()
@tool_handler
async def get_issue(project: str, identifier: str) -> dict:
    """Get issue details including its description as markdown.

    Args:
        project: Project identifier
        identifier: Issue identifier (e.g. HULY-123)
    """
    client = await get_client()
    return await services.get_issue(client, project, identifier)


@mcp.tool()
@tool_handler
async def create_issue(
    project: str,
    title: str,
    description: Optional[str] = None,
    priority: Optional[str] = None,
    assignee: Optional[str] = None,
) -> dict:
    """Create a new issue.

    Args:
        project: Project identifier
        title: Issue title
        description: Issue description (Markdown supported)
        priority: Priority (urgent/high/medium/low/none), default medium
        assignee: Assignee ID
    """
    client = await get_client()
    return await services.create_issue(
        client, project, title, description=description, priority=priority, assignee=assignee
    )


@mcp.tool()
@tool_handler
async def update_issue(
    project: str,
    identifier: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    assignee: Optional[str] = None,
) -> dict:
    """Update an issue. Only the given fields change.

    Args:
        project: Project identifier
        identifier: Issue identifier
        title: New title
        description: New description (Markdown supported)
        status: New status ID
        priority: New priority
        assignee: New assignee ID
    """
    client = await get_client()
    return await services.update_issue(
        client,
        project,
        identifier,
        title=title,
        description=description,
        status=status,
        priority=priority,
        assignee=assignee,
    )


@mcp.tool()
@tool_handler
async def delete_issue(project: str, identifier: str) -> dict:
    """Delete an issue.

    Args:
        project: Project identifier
        identifier: Issue identifier
    """
    client = await get_client()
    return await services.delete_issue(client, project, identifier)


@mcp.tool()
@tool_handler
async def set_assignee(project: str, identifier: str, assignee: Optional[str] = None) -> dict:
    """Set or clear the issue assignee.

    Args:
        project: Project identifier
        identifier: Issue identifier
        assignee: Assignee ID (null to unassign)
    """
    client = await get_client()
    return await services.set_assignee(client, project, identifier, assignee)


@mcp.tool()
@tool_handler
async def set_milestone(project: str, identifier: str, milestone: str) -> dict:
    """Set the issue milestone.

    Args:
        project: Project identifier
        identifier: Issue identifier
        milestone: Milestone label or ID
    """
    client = await get_client()
    return await services.set_milestone(client, project, identifier, milestone)


# ============================================================================
# Project tools
# ============================================================================


@mcp.tool()
@tool_handler
async def list_projects() -> dict:
    """List all projects."""
    client = await get_client()
    return await services.list_projects(client)


@mcp.tool()
@tool_handler
async def get_project(identifier: str) -> dict:
    """Get project details.

    Args:
        identifier: Project identifier (e.g. HULY)
    """
    client = await get_client()
    return await services.get_project(client, identifier)


# ============================================================================
# Milestone tools
# ============================================================================


@mcp.tool()
@tool_handler
async def list_milestones(project: str) -> dict:
    """List milestones for a project.

    Args:
        project: Project identifier
    """
    client = await get_client()
    return await services.list_milestones(client, project)


@mcp.tool()
@tool_handler
async def get_milestone(project: str, label: str) -> dict:
    """Get milestone details with the number of issues in it.

    Args:
        project: Project identifier
        label: Milestone name
    """
    client = await get_client()
    return await services.get_milestone(client, project, label)


@mcp.tool()
@tool_handler
async def create_milestone(
    project: str,
    label: str,
    targetDate: Optional[str] = None,
    status: Optional[str] = None,
) -> dict:
    """Create a new milestone.

    Args:
        project: Project identifier
        label: Milestone name
        targetDate: Target date (ISO 8601 format), default two weeks from now
        status: Status (Planned/InProgress/Completed/Canceled), default Planned
    """
    client = await get_client()
    return await services.create_milestone(
        client, project, label, target_date=targetDate, status=status
    )


@mcp.tool()
@tool_handler
async def delete_milestone(project: str, label: str) -> dict:
    """Delete a milestone.

    Args:
        project: Project identifier
        label: Milestone name
    """
    client = await get_client()
    return await services.delete_milestone(client, project, label)


# ============================================================================
# Label tools
# ============================================================================


@mcp.tool()
@tool_handler
async def add_label(project: str, identifier: str, label: str) -> dict:
    """Add a label to an issue, creating the label if it does not exist.

    Args:
        project: Project identifier
        identifier: Issue identifier
        label: Label name
    """
    client = await get_client()
    return await services.add_label(client, project, identifier, label)


@mcp.tool()
@tool_handler
async def remove_label(project: str, identifier: str, label: str) -> dict:
    """Remove a label from an issue.

    Args:
        project: Project identifier
        identifier: Issue identifier
        label: Label name
    """
    client = await get_client()
    return await services.remove_label(client, project, identifier, label)


@mcp.tool()
@tool_handler
async def list_labels() -> dict:
    """List all available issue labels."""
    client = await get_client()
    return await services.list_labels(client)


@mcp.tool()
@tool_handler
async def create_label(name: str, color: Optional[int] = None) -> dict:
    """Create a new label.

    Args:
        name: Label name
        color: Label color (hexadecimal number, e.g. 0xFF6B6B)
    """
    client = await get_client()
    return await services.create_label(client, name, color=color)


@mcp.tool()
@tool_handler
async def delete_label(name: str) -> dict:
    """Delete a label.

    Args:
        name: Label name
    """
    client = await get_client()
    return await services.delete_label(client, name)


# ============================================================================
# Relationship tools
# ============================================================================


@mcp.tool()
@tool_handler
async def add_relation(
    project: str,
    identifier: str,
    relatedToIdentifier: str,
    bothSides: bool = False,
) -> dict:
    """Add a relation between two issues.

    The relation is recorded on `identifier` only, unless bothSides is set.

    Args:
        project: Project identifier
        identifier: Issue identifier
        relatedToIdentifier: Related issue identifier
        bothSides: Also record the relation on the related issue
    """
    client = await get_client()
    return await services.add_relation(
        client, identifier, relatedToIdentifier, both_sides=bothSides
    )


@mcp.tool()
@tool_handler
async def add_blocked_by(project: str, identifier: str, blockedByIdentifier: str) -> dict:
    """Add dependency: first issue is blocked by second issue.

    Args:
        project: Project identifier
        identifier: Blocked issue identifier
        blockedByIdentifier: Blocking issue identifier
    """
    client = await get_client()
    return await services.add_blocked_by(client, identifier, blockedByIdentifier)


@mcp.tool()
@tool_handler
async def set_parent(project: str, identifier: str, parentIdentifier: str) -> dict:
    """Set parent issue (e.g. link a task to an epic).

    Args:
        project: Project identifier
        identifier: Child issue identifier
        parentIdentifier: Parent issue identifier
    """
    client = await get_client()
    return await services.set_parent(client, identifier, parentIdentifier)


# ============================================================================
# Workflow and contact tools
# ============================================================================


@mcp.tool()
@tool_handler
async def list_task_types(project: str) -> dict:
    """List all task types for a project (e.g. Issue, Epic, Bug).

    Args:
        project: Project identifier
    """
    client = await get_client()
    return await services.list_task_types(client, project)


@mcp.tool()
@tool_handler
async def list_statuses(project: Optional[str] = None) -> dict:
    """List issue statuses in the workspace, or only those of a project's workflow.

    Args:
        project: Project identifier (optional)
    """
    client = await get_client()
    return await services.list_statuses(client, project)


@mcp.tool()
@tool_handler
async def list_persons(name: Optional[str] = None, limit: int = 50) -> dict:
    """List contacts.

    Args:
        name: Only contacts whose name contains this text
        limit: Result limit, default 50
    """
    client = await get_client()
    return await services.list_persons(client, name=name, limit=limit)


@mcp.tool()
@tool_handler
async def get_person(name: str) -> dict:
    """Get contact details and communication channels.

    Args:
        name: Contact name (partial match)
    """
    client = await get_client()
    return await services.get_person(client, name)


def main():
    """Run the MCP server."""
    configure_logging()
    try:
        load_config()
    except ConfigurationError as e:
        logger.error("Failed to load configuration: %s", e)
        sys.exit(1)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
