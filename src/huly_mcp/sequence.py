"""Per-project issue number allocation."""

import logging

from .errors import NotFoundError
from .platform import Doc, PlatformClient, refs

logger = logging.getLogger(__name__)


async def next_number(client: PlatformClient, project: Doc) -> int:
    """Atomically increment the project's sequence and return the new value.

    The increment is a single ``$inc`` executed by the platform, which
    serializes updates per document. Never replace it with a local
    read-then-write: other server processes may allocate concurrently.
    """
    result = await client.update_doc(
        refs.PROJECT,
        refs.SPACE_SPACE,
        project["_id"],
        {"$inc": {"sequence": 1}},
        retrieve=True,
    )
    updated = (result or {}).get("object")
    if not updated:
        key = project.get("identifier") or project["_id"]
        raise NotFoundError(f'Project "{key}" not found', key=key)

    number = updated["sequence"]
    logger.debug("Allocated %s-%s", project.get("identifier"), number)
    return number


def format_identifier(project: Doc, number: int) -> str:
    """Build the external "PROJECT-NUMBER" identifier."""
    return f"{project['identifier']}-{number}"
