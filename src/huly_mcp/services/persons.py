"""Contact (person) lookups for CLI and MCP."""

from __future__ import annotations

from typing import Optional

from ..errors import NotFoundError
from ..platform import Doc, PlatformClient, refs

DEFAULT_PERSON_LIMIT = 50


def format_person(person: Doc) -> dict:
    return {
        "id": person["_id"],
        "name": person.get("name") or "unknown",
        "city": person.get("city") or None,
    }


async def list_persons(
    client: PlatformClient,
    name: Optional[str] = None,
    limit: int = DEFAULT_PERSON_LIMIT,
) -> dict:
    query = {"name": {"$like": f"%{name}%"}} if name else {}
    persons = await client.find_all(refs.PERSON, query, limit=limit)

    formatted = [format_person(p) for p in persons]
    lines = "\n".join(
        f"- {p['name']}" + (f" ({p['city']})" if p["city"] else "") for p in formatted
    )
    return {
        "summary": f"Found {len(formatted)} contact(s):\n{lines}",
        "persons": formatted,
    }


async def get_person(client: PlatformClient, name: str) -> dict:
    """Get the first contact whose name contains ``name``, with its channels."""
    persons = await client.find_all(refs.PERSON, {"name": {"$like": f"%{name}%"}}, limit=1)
    if not persons:
        raise NotFoundError(f'Person "{name}" not found', key=name)
    person = persons[0]

    channels = await client.find_all(
        refs.CHANNEL,
        {"attachedTo": person["_id"], "attachedToClass": person.get("_class", refs.PERSON)},
    )
    formatted = format_person(person)
    channel_lines = "\n".join(f"- {c.get('value', '')}" for c in channels) or "none"
    return {
        "summary": (
            f"Contact: {formatted['name']}\n"
            f"City: {formatted['city'] or 'unknown'}\n"
            f"Channels:\n{channel_lines}"
        ),
        "person": {
            **formatted,
            "channels": [
                {"type": c.get("provider", ""), "value": c.get("value", "")} for c in channels
            ],
        },
    }
