"""Shared fixtures: an in-memory platform document store."""

from __future__ import annotations

import asyncio
import copy
import itertools
import re
from typing import Any, Optional

import pytest

from huly_mcp.platform import refs


def _matches(doc: dict, query: dict) -> bool:
    for key, expected in query.items():
        actual = doc.get(key)
        if isinstance(expected, dict) and "$like" in expected:
            pattern = "^" + ".*".join(re.escape(p) for p in expected["$like"].split("%")) + "$"
            if actual is None or not re.match(pattern, str(actual), re.IGNORECASE):
                return False
        elif isinstance(expected, dict) and "$in" in expected:
            if actual not in expected["$in"]:
                return False
        elif actual != expected:
            return False
    return True


class FakePlatformClient:
    """In-memory PlatformClient.

    Every call yields to the event loop first, so concurrent operations
    interleave between reads and writes the way they do against a server.
    Returned documents are copies: callers only see writes by reading again.
    """

    def __init__(self):
        self.docs: dict[str, dict] = {}
        self.markups: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []
        self.closed = False
        self._ids = itertools.count(1)

    # -- seeding helpers (synchronous) ------------------------------------

    def insert(self, _class: str, space: str = refs.SPACE_SPACE, **attributes: Any) -> dict:
        doc_id = attributes.pop("_id", None) or f"{_class.split(':')[-1].lower()}-{next(self._ids)}"
        doc = {"_id": doc_id, "_class": _class, "space": space, **attributes}
        self.docs[doc_id] = doc
        return doc

    def add_project(self, identifier: str = "HULY", **attributes: Any) -> dict:
        return self.insert(
            refs.PROJECT,
            refs.SPACE_SPACE,
            identifier=identifier,
            name=attributes.pop("name", f"{identifier} project"),
            sequence=attributes.pop("sequence", 0),
            defaultIssueStatus=attributes.pop("defaultIssueStatus", "tracker:status:Backlog"),
            **attributes,
        )

    def add_issue(self, project: dict, number: int, title: str = "", **attributes: Any) -> dict:
        return self.insert(
            refs.ISSUE,
            project["_id"],
            number=number,
            identifier=f"{project['identifier']}-{number}",
            title=title or f"Issue {number}",
            priority=3,
            status=project.get("defaultIssueStatus"),
            **attributes,
        )

    def of_class(self, _class: str) -> list[dict]:
        return [d for d in self.docs.values() if d["_class"] == _class]

    # -- PlatformClient ---------------------------------------------------

    async def find_all(
        self,
        _class: str,
        query: Optional[dict] = None,
        *,
        sort: Optional[dict[str, int]] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        await asyncio.sleep(0)
        self.calls.append(("find_all", _class))
        docs = [d for d in self.docs.values() if d["_class"] == _class and _matches(d, query or {})]
        for key, direction in reversed(list((sort or {}).items())):
            docs.sort(
                key=lambda d: (d.get(key) is not None, d.get(key)),
                reverse=direction == refs.SORT_DESCENDING,
            )
        if limit is not None:
            docs = docs[:limit]
        return copy.deepcopy(docs)

    async def find_one(self, _class: str, query: Optional[dict] = None, *, sort=None) -> Optional[dict]:
        docs = await self.find_all(_class, query, sort=sort, limit=1)
        return docs[0] if docs else None

    async def create_doc(self, _class: str, space: str, attributes: dict, object_id: Optional[str] = None) -> str:
        await asyncio.sleep(0)
        self.calls.append(("create_doc", _class))
        doc = self.insert(_class, space, _id=object_id, **copy.deepcopy(attributes))
        return doc["_id"]

    async def update_doc(self, _class: str, space: str, object_id: str, operations: dict, retrieve: bool = False) -> dict:
        await asyncio.sleep(0)
        self.calls.append(("update_doc", _class))
        doc = self.docs.get(object_id)
        if doc is None:
            return {}
        for key, value in operations.items():
            if key == "$inc":
                for field, amount in value.items():
                    doc[field] = doc.get(field, 0) + amount
            else:
                doc[key] = copy.deepcopy(value)
        return {"object": copy.deepcopy(doc)} if retrieve else {}

    async def remove_doc(self, _class: str, space: str, object_id: str) -> None:
        await asyncio.sleep(0)
        self.calls.append(("remove_doc", _class))
        self.docs.pop(object_id, None)

    async def add_collection(
        self, _class, space, attached_to, attached_to_class, collection, attributes, object_id=None
    ) -> str:
        owner = self.docs.get(attached_to)
        if owner is not None and isinstance(owner.get(collection), int):
            owner[collection] += 1
        return await self.create_doc(
            _class,
            space,
            {
                **attributes,
                "attachedTo": attached_to,
                "attachedToClass": attached_to_class,
                "collection": collection,
            },
            object_id,
        )

    async def update_collection(
        self, _class, space, object_id, attached_to, attached_to_class, collection, operations
    ) -> None:
        await self.update_doc(
            _class,
            space,
            object_id,
            {
                **operations,
                "attachedTo": attached_to,
                "attachedToClass": attached_to_class,
                "collection": collection,
            },
        )

    async def upload_markup(self, object_class, object_id, attribute, markdown) -> str:
        await asyncio.sleep(0)
        ref = f"blob-{object_id}-{attribute}-{next(self._ids)}"
        self.markups[ref] = markdown
        return ref

    async def fetch_markup(self, object_class, object_id, attribute, ref) -> str:
        await asyncio.sleep(0)
        return self.markups.get(ref, "")

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_client() -> FakePlatformClient:
    return FakePlatformClient()


@pytest.fixture
def project(fake_client: FakePlatformClient) -> dict:
    return fake_client.add_project("HULY")
