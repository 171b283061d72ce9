"""Wire string <-> platform code tables for issue priority and milestone status.

Each enumeration has one table of (wire string, platform code) entries and a
declared default used for unrecognized input in either direction.
"""

from enum import IntEnum
from typing import Optional


class Priority(IntEnum):
    """Issue priority codes as stored by the platform."""
    NO_PRIORITY = 0
    URGENT = 1
    HIGH = 2
    MEDIUM = 3
    LOW = 4


class MilestoneStatus(IntEnum):
    """Milestone status codes as stored by the platform."""
    PLANNED = 0
    IN_PROGRESS = 1
    COMPLETED = 2
    CANCELED = 3


class EnumCodec:
    """Bidirectional mapping between wire strings and platform codes."""

    def __init__(self, entries: list[tuple[str, int]], default: str, aliases: Optional[dict[str, str]] = None):
        self._to_code = {wire.lower(): code for wire, code in entries}
        self._to_wire = {code: wire for wire, code in entries}
        for alias, wire in (aliases or {}).items():
            self._to_code[alias.lower()] = self._to_code[wire.lower()]
        self.default = default
        self.default_code = self._to_code[default.lower()]

    @property
    def names(self) -> list[str]:
        return list(self._to_wire.values())

    def to_string(self, code: Optional[int]) -> str:
        return self._to_wire.get(code, self.default)

    def to_code(self, value: Optional[str]) -> int:
        if not value:
            return self.default_code
        return self._to_code.get(value.strip().lower(), self.default_code)


PRIORITIES = EnumCodec(
    [
        ("urgent", Priority.URGENT),
        ("high", Priority.HIGH),
        ("medium", Priority.MEDIUM),
        ("low", Priority.LOW),
        ("none", Priority.NO_PRIORITY),
    ],
    default="medium",
)

MILESTONE_STATUSES = EnumCodec(
    [
        ("Planned", MilestoneStatus.PLANNED),
        ("InProgress", MilestoneStatus.IN_PROGRESS),
        ("Completed", MilestoneStatus.COMPLETED),
        ("Canceled", MilestoneStatus.CANCELED),
    ],
    default="Planned",
    aliases={"in_progress": "InProgress"},
)


def priority_to_string(priority: Optional[int]) -> str:
    return PRIORITIES.to_string(priority)


def string_to_priority(value: Optional[str]) -> Priority:
    return Priority(PRIORITIES.to_code(value))


def milestone_status_to_string(status: Optional[int]) -> str:
    return MILESTONE_STATUSES.to_string(status)


def string_to_milestone_status(value: Optional[str]) -> MilestoneStatus:
    return MilestoneStatus(MILESTONE_STATUSES.to_code(value))
