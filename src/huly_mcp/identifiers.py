"""Resolution of projects and issues from human identifiers."""

import re
from dataclasses import dataclass
from typing import Literal, Optional

from .errors import NotFoundError, ValidationError
from .platform import Doc, PlatformClient, refs

ISSUE_IDENTIFIER = re.compile(r"^([A-Za-z0-9]+)-(\d+)$")

LookupStatus = Literal["found", "not_found", "malformed"]


@dataclass(frozen=True)
class ParsedIdentifier:
    """A "PROJECT-NUMBER" identifier split into its parts."""

    project: str  # upper-cased project code
    number: int

    def __str__(self) -> str:
        return f"{self.project}-{self.number}"


@dataclass
class ResolvedIssue:
    """An issue document together with its project."""

    project: Doc
    issue: Doc

    @property
    def identifier(self) -> str:
        return f"{self.project['identifier']}-{self.issue['number']}"


@dataclass
class IssueLookup:
    """Outcome of resolving an external identifier."""

    text: str
    status: LookupStatus
    resolved: Optional[ResolvedIssue] = None
    message: str = ""

    def unwrap(self) -> ResolvedIssue:
        """Return the resolved issue or raise the matching error."""
        if self.status == "found" and self.resolved is not None:
            return self.resolved
        if self.status == "malformed":
            raise ValidationError(self.message)
        raise NotFoundError(self.message, key=self.text)


def parse_issue_identifier(text: str) -> ParsedIdentifier:
    """Parse "HULY-12" (project code case-insensitive) into its parts."""
    match = ISSUE_IDENTIFIER.match((text or "").strip())
    if not match:
        raise ValidationError(
            f"Invalid issue ID format: {text}. Expected format: PROJECT-NUMBER"
        )
    return ParsedIdentifier(project=match.group(1).upper(), number=int(match.group(2)))


async def lookup_issue(client: PlatformClient, text: str) -> IssueLookup:
    """Resolve an external issue identifier without raising."""
    try:
        parsed = parse_issue_identifier(text)
    except ValidationError as e:
        return IssueLookup(text, "malformed", message=str(e))

    project = await client.find_one(refs.PROJECT, {"identifier": parsed.project})
    if not project:
        return IssueLookup(text, "not_found", message=f"Project not found: {parsed.project} (from {text})")

    issue = await client.find_one(
        refs.ISSUE, {"space": project["_id"], "number": parsed.number}
    )
    if not issue:
        return IssueLookup(text, "not_found", message=f"Issue not found: {text}")

    return IssueLookup(text, "found", resolved=ResolvedIssue(project=project, issue=issue))


async def find_issue(client: PlatformClient, text: str) -> ResolvedIssue:
    """Resolve an external issue identifier to its project and issue, or raise."""
    return (await lookup_issue(client, text)).unwrap()


async def find_project(client: PlatformClient, identifier: str) -> Doc:
    """Get a project by its identifier, e.g. "HULY"."""
    project = await client.find_one(refs.PROJECT, {"identifier": identifier})
    if not project:
        raise NotFoundError(f'Project "{identifier}" not found', key=identifier)
    return project


async def find_issue_in_project(client: PlatformClient, project: Doc, identifier: str) -> Doc:
    """Get an issue of a known project by its full identifier."""
    issue = await client.find_one(
        refs.ISSUE, {"space": project["_id"], "identifier": identifier}
    )
    if not issue:
        raise NotFoundError(f'Issue "{identifier}" not found', key=identifier)
    return issue
