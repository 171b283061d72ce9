"""Tests for the shared service layer against the in-memory platform."""

import asyncio

import pytest

from huly_mcp import services
from huly_mcp.errors import NotFoundError, ValidationError
from huly_mcp.platform import refs


def _issue(fake_client, identifier):
    return next(d for d in fake_client.of_class(refs.ISSUE) if d["identifier"] == identifier)


class TestCreateIssue:
    """Tests for create_issue."""

    @pytest.mark.asyncio
    async def test_numbers_and_ranks_in_creation_order(self, fake_client, project):
        first = await services.create_issue(fake_client, "HULY", "Login fails")
        second = await services.create_issue(fake_client, "HULY", "Logout fails")

        assert first["issue"]["identifier"] == "HULY-1"
        assert second["issue"]["identifier"] == "HULY-2"
        assert first["summary"] == "Created issue: HULY-1 - Login fails"

        one, two = _issue(fake_client, "HULY-1"), _issue(fake_client, "HULY-2")
        assert one["rank"] < two["rank"]
        assert fake_client.docs[project["_id"]]["sequence"] == 2

    @pytest.mark.asyncio
    async def test_issue_attributes(self, fake_client, project):
        await services.create_issue(
            fake_client, "HULY", "Crash", description="Steps", priority="urgent", assignee="person-1"
        )

        issue = _issue(fake_client, "HULY-1")
        assert issue["space"] == project["_id"]
        assert issue["attachedTo"] == project["_id"]
        assert issue["collection"] == "issues"
        assert issue["status"] == project["defaultIssueStatus"]
        assert issue["priority"] == 1
        assert issue["assignee"] == "person-1"
        assert issue["kind"] == refs.TASK_TYPE_ISSUE
        assert issue["subIssues"] == 0
        assert issue["childInfo"] == [] and issue["parents"] == []
        assert fake_client.markups[issue["description"]] == "Steps"

    @pytest.mark.asyncio
    async def test_default_priority_is_medium(self, fake_client, project):
        await services.create_issue(fake_client, "HULY", "Untriaged")
        assert _issue(fake_client, "HULY-1")["priority"] == 3

    @pytest.mark.asyncio
    async def test_ranks_after_existing_issues(self, fake_client, project):
        fake_client.add_issue(project, 1, rank="0|hzzzzz:")
        fake_client.docs[project["_id"]]["sequence"] = 1

        await services.create_issue(fake_client, "HULY", "Next")

        assert _issue(fake_client, "HULY-2")["rank"] > "0|hzzzzz:"

    @pytest.mark.asyncio
    async def test_concurrent_creates_get_distinct_numbers(self, fake_client, project):
        results = await asyncio.gather(
            *(services.create_issue(fake_client, "HULY", f"Issue {n}") for n in range(5))
        )

        identifiers = {r["issue"]["identifier"] for r in results}
        assert identifiers == {f"HULY-{n}" for n in range(1, 6)}
        assert len(fake_client.of_class(refs.ISSUE)) == 5

    @pytest.mark.asyncio
    async def test_unknown_project(self, fake_client, project):
        with pytest.raises(NotFoundError, match='Project "NOPE" not found'):
            await services.create_issue(fake_client, "NOPE", "Lost")
        assert fake_client.docs[project["_id"]]["sequence"] == 0


class TestReadAndUpdateIssues:
    """Tests for list/get/update/delete of issues."""

    @pytest.mark.asyncio
    async def test_get_issue_returns_description_markdown(self, fake_client, project):
        await services.create_issue(fake_client, "HULY", "Crash", description="## Steps\n\n- open app")

        result = await services.get_issue(fake_client, "HULY", "HULY-1")

        assert result["issue"]["description"] == "## Steps\n\n- open app"
        assert result["issue"]["priority"] == "medium"
        assert "Assignee: unassigned" in result["summary"]

    @pytest.mark.asyncio
    async def test_get_issue_not_found(self, fake_client, project):
        with pytest.raises(NotFoundError) as exc_info:
            await services.get_issue(fake_client, "HULY", "HULY-5")
        assert exc_info.value.key == "HULY-5"

    @pytest.mark.asyncio
    async def test_list_issues_filters_and_limits(self, fake_client, project):
        for n in range(1, 4):
            fake_client.add_issue(project, n)
        fake_client.docs[_issue(fake_client, "HULY-2")["_id"]]["status"] = "tracker:status:Done"

        assert len((await services.list_issues(fake_client, "HULY"))["issues"]) == 3
        assert len((await services.list_issues(fake_client, "HULY", limit=2))["issues"]) == 2

        done = await services.list_issues(fake_client, "HULY", status="tracker:status:Done")
        assert [i["identifier"] for i in done["issues"]] == ["HULY-2"]
        assert done["summary"].startswith("Found 1 issue(s):")

    @pytest.mark.asyncio
    async def test_update_issue(self, fake_client, project):
        await services.create_issue(fake_client, "HULY", "Old title")

        await services.update_issue(
            fake_client, "HULY", "HULY-1", title="New title", priority="high", description="Fixed"
        )

        issue = _issue(fake_client, "HULY-1")
        assert issue["title"] == "New title"
        assert issue["priority"] == 2
        assert fake_client.markups[issue["description"]] == "Fixed"

    @pytest.mark.asyncio
    async def test_set_assignee_and_clear(self, fake_client, project):
        fake_client.add_issue(project, 1)

        await services.set_assignee(fake_client, "HULY", "HULY-1", "person-7")
        assert _issue(fake_client, "HULY-1")["assignee"] == "person-7"

        result = await services.set_assignee(fake_client, "HULY", "HULY-1", None)
        assert _issue(fake_client, "HULY-1")["assignee"] is None
        assert "unassigned" in result["summary"]

    @pytest.mark.asyncio
    async def test_delete_issue(self, fake_client, project):
        fake_client.add_issue(project, 1)

        await services.delete_issue(fake_client, "HULY", "HULY-1")

        assert fake_client.of_class(refs.ISSUE) == []


class TestLinkServices:
    """Tests for the relation service wrappers."""

    @pytest.mark.asyncio
    async def test_repeat_relation_reports_no_change(self, fake_client, project):
        fake_client.add_issue(project, 1)
        fake_client.add_issue(project, 2)

        first = await services.add_relation(fake_client, "HULY-1", "HULY-2")
        second = await services.add_relation(fake_client, "HULY-1", "HULY-2")

        assert first["summary"] == "Added relation: HULY-1 -> HULY-2"
        assert second["summary"] == "Issues already related"

    @pytest.mark.asyncio
    async def test_set_parent_shows_in_get_issue(self, fake_client, project):
        fake_client.add_issue(project, 1)
        fake_client.add_issue(project, 2)

        await services.set_parent(fake_client, "HULY-2", "HULY-1")

        parent = await services.get_issue(fake_client, "HULY", "HULY-1")
        child = await services.get_issue(fake_client, "HULY", "HULY-2")
        assert parent["issue"]["subIssues"] == 1
        assert child["issue"]["parents"] == ["HULY-1"]


class TestMilestones:
    """Tests for milestone operations."""

    @pytest.mark.asyncio
    async def test_create_list_and_count(self, fake_client, project):
        await services.create_milestone(fake_client, "HULY", "v1.0", target_date="2025-01-31")
        fake_client.add_issue(project, 1)
        fake_client.add_issue(project, 2)
        await services.set_milestone(fake_client, "HULY", "HULY-1", "v1.0")

        listed = await services.list_milestones(fake_client, "HULY")
        assert listed["milestones"][0]["label"] == "v1.0"
        assert listed["milestones"][0]["status"] == "Planned"
        assert listed["milestones"][0]["targetDate"] == "2025-01-31T00:00:00.000Z"

        detail = await services.get_milestone(fake_client, "HULY", "v1.0")
        assert detail["milestone"]["issueCount"] == 1

    @pytest.mark.asyncio
    async def test_create_is_idempotent_by_label(self, fake_client, project):
        first = await services.create_milestone(fake_client, "HULY", "v1.0", status="in_progress")
        second = await services.create_milestone(fake_client, "HULY", "v1.0")

        assert second["milestone"]["id"] == first["milestone"]["id"]
        assert second["summary"] == 'Milestone "v1.0" already exists'
        milestones = fake_client.of_class(refs.MILESTONE)
        assert len(milestones) == 1
        assert milestones[0]["status"] == 1

    @pytest.mark.asyncio
    async def test_invalid_target_date(self, fake_client, project):
        with pytest.raises(ValidationError):
            await services.create_milestone(fake_client, "HULY", "v2", target_date="next week")
        assert fake_client.of_class(refs.MILESTONE) == []

    @pytest.mark.asyncio
    async def test_set_milestone_by_id(self, fake_client, project):
        created = await services.create_milestone(fake_client, "HULY", "v1.0")
        fake_client.add_issue(project, 1)

        await services.set_milestone(fake_client, "HULY", "HULY-1", created["milestone"]["id"])

        assert _issue(fake_client, "HULY-1")["milestone"] == created["milestone"]["id"]

    @pytest.mark.asyncio
    async def test_missing_milestone(self, fake_client, project):
        fake_client.add_issue(project, 1)
        with pytest.raises(NotFoundError):
            await services.set_milestone(fake_client, "HULY", "HULY-1", "v9")
        with pytest.raises(NotFoundError):
            await services.delete_milestone(fake_client, "HULY", "v9")

    @pytest.mark.asyncio
    async def test_delete_milestone(self, fake_client, project):
        await services.create_milestone(fake_client, "HULY", "v1.0")
        await services.delete_milestone(fake_client, "HULY", "v1.0")
        assert fake_client.of_class(refs.MILESTONE) == []


class TestLabelServices:
    """Tests for label operations."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, fake_client, project):
        await services.create_label(fake_client, "bug")
        again = await services.create_label(fake_client, "bug", color=0xFF0000)

        assert again["summary"] == 'Label "bug" already exists'
        listed = await services.list_labels(fake_client)
        assert listed["labels"] == [
            {"id": listed["labels"][0]["id"], "name": "bug", "color": "#4ecdc4"}
        ]

    @pytest.mark.asyncio
    async def test_add_and_remove_on_issue(self, fake_client, project):
        fake_client.add_issue(project, 1)

        added = await services.add_label(fake_client, "HULY", "HULY-1", "bug")
        repeated = await services.add_label(fake_client, "HULY", "HULY-1", "bug")
        removed = await services.remove_label(fake_client, "HULY", "HULY-1", "bug")
        absent = await services.remove_label(fake_client, "HULY", "HULY-1", "bug")

        assert added["summary"] == 'Added label "bug" to HULY-1'
        assert repeated["summary"] == 'Label "bug" already exists on issue'
        assert removed["summary"] == 'Removed label "bug" from HULY-1'
        assert absent["summary"] == 'Label "bug" is not on HULY-1'

    @pytest.mark.asyncio
    async def test_delete_label(self, fake_client, project):
        await services.create_label(fake_client, "bug")
        await services.delete_label(fake_client, "bug")

        assert fake_client.of_class(refs.TAG_ELEMENT) == []
        with pytest.raises(NotFoundError):
            await services.delete_label(fake_client, "bug")


class TestDirectory:
    """Tests for projects, persons, task types and statuses."""

    @pytest.mark.asyncio
    async def test_projects(self, fake_client, project):
        listed = await services.list_projects(fake_client)
        assert [p["identifier"] for p in listed["projects"]] == ["HULY"]

        detail = await services.get_project(fake_client, "HULY")
        assert detail["project"]["name"] == "HULY project"

        with pytest.raises(NotFoundError):
            await services.get_project(fake_client, "NOPE")

    @pytest.mark.asyncio
    async def test_persons(self, fake_client):
        alice = fake_client.insert(refs.PERSON, refs.SPACE_WORKSPACE, name="Smith,Alice", city="Oslo")
        fake_client.insert(refs.PERSON, refs.SPACE_WORKSPACE, name="Jones,Bob")
        fake_client.insert(
            refs.CHANNEL,
            refs.SPACE_WORKSPACE,
            attachedTo=alice["_id"],
            attachedToClass=refs.PERSON,
            provider="contact:channelProvider:Email",
            value="alice@example.com",
        )

        everyone = await services.list_persons(fake_client)
        assert len(everyone["persons"]) == 2

        filtered = await services.list_persons(fake_client, name="alice")
        assert [p["name"] for p in filtered["persons"]] == ["Smith,Alice"]

        detail = await services.get_person(fake_client, "alice")
        assert detail["person"]["city"] == "Oslo"
        assert detail["person"]["channels"] == [
            {"type": "contact:channelProvider:Email", "value": "alice@example.com"}
        ]

        with pytest.raises(NotFoundError):
            await services.get_person(fake_client, "carol")

    @pytest.mark.asyncio
    async def test_task_types(self, fake_client, project):
        fake_client.insert(refs.TASK_TYPE, name="Issue", ofClass=refs.ISSUE, descriptor="tracker:descriptors:Issue")
        fake_client.insert(refs.TASK_TYPE, name="Lead", ofClass="lead:class:Lead", descriptor="lead:descriptors:Lead")

        result = await services.list_task_types(fake_client, "HULY")

        assert [t["name"] for t in result["taskTypes"]] == ["Issue"]

    @pytest.mark.asyncio
    async def test_statuses_filtered_by_project_workflow(self, fake_client):
        backlog = fake_client.insert(refs.ISSUE_STATUS, name="Backlog", category="task:statusCategory:UnStarted")
        done = fake_client.insert(refs.ISSUE_STATUS, name="Done", category="task:statusCategory:Won")
        fake_client.insert(refs.ISSUE_STATUS, name="Other workflow")
        project_type = fake_client.insert(
            refs.PROJECT_TYPE, statuses=[{"_id": backlog["_id"]}, {"_id": done["_id"]}]
        )
        fake_client.add_project("OPS", type=project_type["_id"])

        everything = await services.list_statuses(fake_client)
        assert len(everything["statuses"]) == 3

        scoped = await services.list_statuses(fake_client, "OPS")
        assert [s["name"] for s in scoped["statuses"]] == ["Backlog", "Done"]
