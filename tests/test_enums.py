"""Tests for priority and milestone status codecs."""

import pytest

from huly_mcp.enums import (
    MILESTONE_STATUSES,
    PRIORITIES,
    MilestoneStatus,
    Priority,
    milestone_status_to_string,
    priority_to_string,
    string_to_milestone_status,
    string_to_priority,
)


class TestPriority:
    """Tests for the priority table."""

    @pytest.mark.parametrize("name", ["urgent", "high", "medium", "low", "none"])
    def test_round_trip(self, name):
        assert priority_to_string(string_to_priority(name)) == name

    def test_codes(self):
        assert string_to_priority("urgent") == Priority.URGENT == 1
        assert string_to_priority("none") == Priority.NO_PRIORITY == 0
        assert priority_to_string(4) == "low"

    def test_case_insensitive(self):
        assert string_to_priority("HIGH") == Priority.HIGH
        assert string_to_priority(" Low ") == Priority.LOW

    def test_unknown_values_use_default(self):
        assert string_to_priority("critical") == Priority.MEDIUM
        assert string_to_priority(None) == Priority.MEDIUM
        assert string_to_priority("") == Priority.MEDIUM
        assert priority_to_string(99) == "medium"
        assert priority_to_string(None) == "medium"

    def test_names(self):
        assert PRIORITIES.names == ["urgent", "high", "medium", "low", "none"]


class TestMilestoneStatus:
    """Tests for the milestone status table."""

    @pytest.mark.parametrize("name", ["Planned", "InProgress", "Completed", "Canceled"])
    def test_round_trip(self, name):
        assert milestone_status_to_string(string_to_milestone_status(name)) == name

    def test_accepts_lowercase_and_snake_case(self):
        assert string_to_milestone_status("completed") == MilestoneStatus.COMPLETED
        assert string_to_milestone_status("in_progress") == MilestoneStatus.IN_PROGRESS
        assert string_to_milestone_status("inprogress") == MilestoneStatus.IN_PROGRESS

    def test_unknown_values_use_default(self):
        assert string_to_milestone_status("archived") == MilestoneStatus.PLANNED
        assert milestone_status_to_string(7) == "Planned"
        assert MILESTONE_STATUSES.default == "Planned"
