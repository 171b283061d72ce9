"""Issue operations for CLI and MCP."""

from __future__ import annotations

import logging
from typing import Optional

from ..dates import ms_to_iso
from ..enums import Priority, priority_to_string, string_to_priority
from ..errors import NotFoundError
from ..identifiers import find_issue_in_project, find_project
from ..platform import Doc, PlatformClient, refs
from ..rank import rank_after
from ..sequence import format_identifier, next_number

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 20


def format_issue_summary(issue: Doc) -> dict:
    return {
        "id": issue["_id"],
        "identifier": issue["identifier"],
        "title": issue.get("title", ""),
        "status": issue.get("status"),
        "priority": priority_to_string(issue.get("priority")),
        "assignee": issue.get("assignee"),
    }


async def list_issues(
    client: PlatformClient,
    project: str,
    limit: int = DEFAULT_LIST_LIMIT,
    status: Optional[str] = None,
) -> dict:
    project_doc = await find_project(client, project)

    query: dict = {"space": project_doc["_id"]}
    if status:
        query["status"] = status

    issues = await client.find_all(
        refs.ISSUE, query, limit=limit, sort={"modifiedOn": refs.SORT_DESCENDING}
    )
    lines = "\n".join(f"- {i['identifier']}: {i.get('title', '')}" for i in issues)
    return {
        "summary": f"Found {len(issues)} issue(s):\n{lines}",
        "issues": [format_issue_summary(i) for i in issues],
    }


async def get_issue(client: PlatformClient, project: str, identifier: str) -> dict:
    project_doc = await find_project(client, project)
    issue = await find_issue_in_project(client, project_doc, identifier)

    description = None
    if issue.get("description"):
        description = await client.fetch_markup(
            issue.get("_class", refs.ISSUE), issue["_id"], "description", issue["description"]
        )

    summary = format_issue_summary(issue)
    return {
        "summary": (
            f"{issue['identifier']}: {summary['title']}\n"
            f"Status: {summary['status']}\n"
            f"Priority: {summary['priority']}\n"
            f"Assignee: {summary['assignee'] or 'unassigned'}"
        ),
        "issue": {
            **summary,
            "description": description,
            "milestone": issue.get("milestone"),
            "dueDate": ms_to_iso(issue.get("dueDate")),
            "subIssues": issue.get("subIssues", 0),
            "parents": [p.get("identifier") for p in issue.get("parents") or []],
        },
    }


async def create_issue(
    client: PlatformClient,
    project: str,
    title: str,
    description: Optional[str] = None,
    priority: Optional[str] = None,
    assignee: Optional[str] = None,
) -> dict:
    """Create an issue at the end of the project's list.

    The number comes from the project's atomic sequence; the rank is placed
    after the currently highest-ranked issue.
    """
    project_doc = await find_project(client, project)
    issue_id = refs.generate_id()

    number = await next_number(client, project_doc)
    identifier = format_identifier(project_doc, number)

    last = await client.find_one(
        refs.ISSUE, {"space": project_doc["_id"]}, sort={"rank": refs.SORT_DESCENDING}
    )

    description_ref = None
    if description:
        description_ref = await client.upload_markup(refs.ISSUE, issue_id, "description", description)

    await client.add_collection(
        refs.ISSUE,
        project_doc["_id"],
        project_doc["_id"],
        project_doc.get("_class", refs.PROJECT),
        refs.COLLECTION_ISSUES,
        {
            "title": title,
            "description": description_ref,
            "status": project_doc.get("defaultIssueStatus"),
            "number": number,
            "kind": refs.TASK_TYPE_ISSUE,
            "identifier": identifier,
            "priority": int(string_to_priority(priority) if priority else Priority.MEDIUM),
            "assignee": assignee,
            "component": None,
            "estimation": 0,
            "remainingTime": 0,
            "reportedTime": 0,
            "reports": 0,
            "subIssues": 0,
            "parents": [],
            "childInfo": [],
            "relations": [],
            "blockedBy": [],
            "dueDate": None,
            "milestone": None,
            "rank": rank_after(last.get("rank") if last else None),
        },
        issue_id,
    )
    logger.info("Created issue %s", identifier)

    return {
        "summary": f"Created issue: {identifier} - {title}",
        "issue": {"id": issue_id, "identifier": identifier, "title": title},
    }


async def update_issue(
    client: PlatformClient,
    project: str,
    identifier: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    assignee: Optional[str] = None,
) -> dict:
    project_doc = await find_project(client, project)
    issue = await find_issue_in_project(client, project_doc, identifier)

    updates: dict = {}
    if title:
        updates["title"] = title
    if status:
        updates["status"] = status
    if assignee is not None:
        updates["assignee"] = assignee
    if priority:
        updates["priority"] = int(string_to_priority(priority))

    if updates:
        await client.update_doc(refs.ISSUE, project_doc["_id"], issue["_id"], updates)

    # Description is stored as markup and referenced from the issue
    if description is not None:
        description_ref = await client.upload_markup(refs.ISSUE, issue["_id"], "description", description)
        await client.update_doc(
            refs.ISSUE, project_doc["_id"], issue["_id"], {"description": description_ref}
        )

    return {"summary": f"Updated issue: {identifier}", "success": True}


async def set_assignee(
    client: PlatformClient, project: str, identifier: str, assignee: Optional[str]
) -> dict:
    project_doc = await find_project(client, project)
    issue = await find_issue_in_project(client, project_doc, identifier)

    await client.update_doc(refs.ISSUE, project_doc["_id"], issue["_id"], {"assignee": assignee})
    return {
        "summary": f"Set assignee of {identifier} to {assignee or 'unassigned'}",
        "success": True,
    }


async def set_milestone(client: PlatformClient, project: str, identifier: str, milestone: str) -> dict:
    """Attach an issue to a milestone given by label or id."""
    project_doc = await find_project(client, project)
    issue = await find_issue_in_project(client, project_doc, identifier)

    milestone_doc = await client.find_one(
        refs.MILESTONE, {"space": project_doc["_id"], "label": milestone}
    ) or await client.find_one(refs.MILESTONE, {"space": project_doc["_id"], "_id": milestone})
    if not milestone_doc:
        raise NotFoundError(f'Milestone "{milestone}" not found', key=milestone)

    await client.update_doc(
        refs.ISSUE, project_doc["_id"], issue["_id"], {"milestone": milestone_doc["_id"]}
    )
    return {
        "summary": f"Set milestone of {identifier} to {milestone_doc.get('label', milestone)}",
        "success": True,
    }


async def delete_issue(client: PlatformClient, project: str, identifier: str) -> dict:
    project_doc = await find_project(client, project)
    issue = await find_issue_in_project(client, project_doc, identifier)

    await client.remove_doc(refs.ISSUE, project_doc["_id"], issue["_id"])
    logger.info("Deleted issue %s", identifier)
    return {"summary": f"Deleted issue: {identifier}", "success": True}
