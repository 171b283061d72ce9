"""Issue relationship graph: relations, blocked-by, parent/child and labels.

Each edge is stored as denormalized state on the issue documents themselves:

- ``relations``: list of ``{_id, _class}`` on the issue the relation was
  added from. Only that side is written; add the reverse edge (or pass
  ``both_sides=True``) to make it visible from the other issue.
- ``blockedBy``: list of ``{_id, _class}`` on the blocked issue. There is no
  reciprocal "blocks" list.
- ``parents`` on the child and ``childInfo``/``subIssues`` on the parent.
  ``subIssues`` always equals ``len(childInfo)`` after a write from here.

All writes are read-check-then-write without client-side locking. Two
processes appending to the same list at the same time can lose an update;
see DESIGN.md.
"""

import logging
import zlib
from dataclasses import asdict, dataclass

from .errors import PlatformError, NotFoundError, ValidationError
from .identifiers import ResolvedIssue, find_issue
from .platform import Doc, PlatformClient, refs

logger = logging.getLogger(__name__)

# Labels created implicitly pick one of the platform's palette colors
LABEL_PALETTE_SIZE = 20


@dataclass
class IssueRef:
    """Entry of the ``relations`` and ``blockedBy`` lists."""

    _id: str
    _class: str = refs.ISSUE


@dataclass
class ParentInfo:
    """Entry of a child's ``parents`` list."""

    parentId: str
    identifier: str
    parentTitle: str
    space: str


@dataclass
class ChildInfo:
    """Entry of a parent's ``childInfo`` list."""

    childId: str
    estimation: float = 0
    reportedTime: float = 0


def _reject_self_link(a: ResolvedIssue, b: ResolvedIssue, what: str) -> None:
    if a.issue["_id"] == b.issue["_id"]:
        raise ValidationError(f"Cannot {what} an issue to itself: {a.identifier}")


async def _append_ref(client: PlatformClient, owner: ResolvedIssue, field: str, target: Doc) -> bool:
    """Append ``target`` to ``owner``'s ``field`` list unless already present."""
    current = list(owner.issue.get(field) or [])
    if any(entry.get("_id") == target["_id"] for entry in current):
        return False

    current.append(asdict(IssueRef(target["_id"], target.get("_class", refs.ISSUE))))
    await client.update_doc(
        refs.ISSUE, owner.project["_id"], owner.issue["_id"], {field: current}
    )
    owner.issue[field] = current
    return True


async def add_relation(
    client: PlatformClient,
    identifier: str,
    related_identifier: str,
    *,
    both_sides: bool = False,
) -> bool:
    """Relate ``identifier`` to ``related_identifier``.

    Returns True if any relations list changed, False if already related.
    """
    source = await find_issue(client, identifier)
    target = await find_issue(client, related_identifier)
    _reject_self_link(source, target, "relate")

    added = await _append_ref(client, source, "relations", target.issue)
    if both_sides:
        reverse = await _append_ref(client, target, "relations", source.issue)
        added = added or reverse

    if added:
        logger.info("Related %s -> %s", source.identifier, target.identifier)
    return added


async def add_blocked_by(client: PlatformClient, identifier: str, blocked_by_identifier: str) -> bool:
    """Record that ``identifier`` is blocked by ``blocked_by_identifier``.

    Returns False if the dependency already existed.
    """
    blocked = await find_issue(client, identifier)
    blocking = await find_issue(client, blocked_by_identifier)
    _reject_self_link(blocked, blocking, "block")

    added = await _append_ref(client, blocked, "blockedBy", blocking.issue)
    if added:
        logger.info("%s is now blocked by %s", blocked.identifier, blocking.identifier)
    return added


def _upsert_child(child_info: list[dict], entry: ChildInfo) -> list[dict]:
    """Replace the entry for ``entry.childId`` or append it."""
    updated = list(child_info)
    for index, existing in enumerate(updated):
        if existing.get("childId") == entry.childId:
            updated[index] = asdict(entry)
            return updated
    updated.append(asdict(entry))
    return updated


async def _write_child_info(client: PlatformClient, parent: ResolvedIssue, child_info: list[dict]) -> None:
    await client.update_doc(
        refs.ISSUE,
        parent.project["_id"],
        parent.issue["_id"],
        {"childInfo": child_info, "subIssues": len(child_info)},
    )
    parent.issue["childInfo"] = child_info
    parent.issue["subIssues"] = len(child_info)


async def _detach_from_previous_parent(client: PlatformClient, child: ResolvedIssue, new_parent_id: str) -> None:
    previous = (child.issue.get("parents") or [{}])[0]
    previous_id = previous.get("parentId")
    if not previous_id or previous_id == new_parent_id:
        return

    old_parent = await client.find_one(refs.ISSUE, {"_id": previous_id})
    if not old_parent:
        return
    remaining = [
        entry for entry in old_parent.get("childInfo") or []
        if entry.get("childId") != child.issue["_id"]
    ]
    old_project = {"_id": old_parent["space"], "identifier": previous.get("identifier", "")}
    await _write_child_info(client, ResolvedIssue(old_project, old_parent), remaining)
    logger.info("Detached %s from previous parent %s", child.identifier, previous.get("identifier"))


async def set_parent(client: PlatformClient, identifier: str, parent_identifier: str) -> ParentInfo:
    """Make ``parent_identifier`` the parent of ``identifier``.

    Re-running with the same pair leaves the same state. Moving a child to a
    new parent also removes it from the previous parent's ``childInfo``.
    """
    child = await find_issue(client, identifier)
    parent = await find_issue(client, parent_identifier)
    _reject_self_link(child, parent, "parent")

    ancestors = parent.issue.get("parents") or []
    if any(entry.get("parentId") == child.issue["_id"] for entry in ancestors):
        raise ValidationError(
            f"Cannot make {parent.identifier} the parent of {child.identifier}: "
            f"{child.identifier} is already one of its ancestors"
        )

    info = ParentInfo(
        parentId=parent.issue["_id"],
        identifier=parent.identifier,
        parentTitle=parent.issue.get("title", ""),
        space=parent.project["_id"],
    )
    await _detach_from_previous_parent(client, child, parent.issue["_id"])

    # Immediate parent first, then the parent's own ancestors
    parents = [asdict(info), *ancestors]
    await client.update_collection(
        refs.ISSUE,
        child.project["_id"],
        child.issue["_id"],
        parent.issue["_id"],
        refs.ISSUE,
        refs.COLLECTION_SUB_ISSUES,
        {"parents": parents},
    )
    child.issue["parents"] = parents

    entry = ChildInfo(
        childId=child.issue["_id"],
        estimation=child.issue.get("estimation") or 0,
        reportedTime=child.issue.get("reportedTime") or 0,
    )
    await _write_child_info(client, parent, _upsert_child(parent.issue.get("childInfo") or [], entry))

    logger.info("Set parent of %s to %s", child.identifier, parent.identifier)
    return info


# ----------------------------------------------------------------------------
# Labels
# ----------------------------------------------------------------------------


def _palette_color(name: str) -> int:
    return zlib.crc32(name.encode("utf-8")) % LABEL_PALETTE_SIZE


async def find_label(client: PlatformClient, name: str) -> Doc | None:
    return await client.find_one(refs.TAG_ELEMENT, {"targetClass": refs.ISSUE, "title": name})


async def _find_attachment(client: PlatformClient, issue: Doc, tag: Doc) -> Doc | None:
    return await client.find_one(
        refs.TAG_REFERENCE,
        {"attachedTo": issue["_id"], "attachedToClass": refs.ISSUE, "tag": tag["_id"]},
    )


async def attach_label(client: PlatformClient, project: Doc, issue: Doc, name: str) -> bool:
    """Attach label ``name`` to ``issue``, creating the label if needed.

    Returns False when the label was already attached.
    """
    tag = await find_label(client, name)
    if not tag:
        tag_id = await client.create_doc(
            refs.TAG_ELEMENT,
            refs.SPACE_WORKSPACE,
            {
                "title": name,
                "description": "",
                "targetClass": refs.ISSUE,
                "color": _palette_color(name),
                "category": refs.CATEGORY_OTHER,
            },
        )
        tag = await client.find_one(refs.TAG_ELEMENT, {"_id": tag_id})
        if not tag:
            raise PlatformError(f'Failed to create or find label "{name}"')
        logger.info('Created label "%s"', name)

    if await _find_attachment(client, issue, tag):
        return False

    await client.add_collection(
        refs.TAG_REFERENCE,
        project["_id"],
        issue["_id"],
        refs.ISSUE,
        refs.COLLECTION_LABELS,
        {"title": name, "color": tag.get("color"), "tag": tag["_id"]},
    )
    return True


async def detach_label(client: PlatformClient, project: Doc, issue: Doc, name: str) -> bool:
    """Detach label ``name`` from ``issue``.

    Returns False when it was not attached; the label itself must exist.
    """
    tag = await find_label(client, name)
    if not tag:
        raise NotFoundError(f'Label "{name}" not found', key=name)

    attachment = await _find_attachment(client, issue, tag)
    if not attachment:
        return False

    await client.remove_doc(refs.TAG_REFERENCE, project["_id"], attachment["_id"])
    return True
