# tests/test_mutations.py

from __future__ import annotations

import pytest

from todo_tree.core.channel import InvalidationChannel
from todo_tree.core.errors import GatewayUnavailableError
from todo_tree.core.models import Importance, TaskList, TaskStatus, TodoTask
from todo_tree.core.mutations import (
    MutationCoordinator,
    MutationKind,
    MutationReport,
    TaskUpdate,
    parse_due_date,
    toggled_fields,
)
from todo_tree.core.nodes import CreateListNode, ListNode, TaskNode, node_key

from .fakes import FakeClientFactory, FakeGateway, RecordingListener


def _coordinator(gateway: FakeGateway | None) -> tuple[MutationCoordinator, RecordingListener]:
    channel = InvalidationChannel()
    rec = RecordingListener()
    channel.subscribe(rec)
    return MutationCoordinator(FakeClientFactory(gateway), channel), rec


def _batch_data() -> dict:
    return {
        "lists": [{"id": "A", "displayName": "A"}, {"id": "B", "displayName": "B"}],
        "tasks": {
            "A": [{"id": "a1", "title": "a1", "status": "notStarted"}, {"id": "a2", "title": "a2"}],
            "B": [{"id": "b1", "title": "b1", "status": "completed"}],
        },
    }


async def _tasks(gateway: FakeGateway, list_id: str) -> list[TaskNode]:
    parent = ListNode(TaskList(id=list_id, display_name=list_id))
    raw = await gateway.backend.fetch_all(f"/lists/{list_id}/tasks")
    return [TaskNode(TodoTask.from_api(t), parent) for t in raw]


def test_toggled_fields_negate_current_value() -> None:
    open_task = TodoTask(id="x", title="x", status=TaskStatus.NOT_STARTED, importance=Importance.NORMAL)
    done_task = TodoTask(id="y", title="y", status=TaskStatus.COMPLETED, importance=Importance.HIGH)
    waiting = TodoTask(id="z", title="z", status=TaskStatus.WAITING_ON_OTHERS, importance=Importance.LOW)

    assert toggled_fields(MutationKind.TOGGLE_COMPLETION, open_task) == {"status": "completed"}
    assert toggled_fields(MutationKind.TOGGLE_COMPLETION, done_task) == {"status": "notStarted"}
    assert toggled_fields(MutationKind.TOGGLE_COMPLETION, waiting) == {"status": "completed"}
    assert toggled_fields(MutationKind.TOGGLE_IMPORTANCE, open_task) == {"importance": "high"}
    assert toggled_fields(MutationKind.TOGGLE_IMPORTANCE, done_task) == {"importance": "normal"}
    assert toggled_fields(MutationKind.TOGGLE_IMPORTANCE, waiting) == {"importance": "high"}


def test_mutation_kind_formats_as_plain_string() -> None:
    report = MutationReport(kind=MutationKind.TOGGLE_IMPORTANCE)

    assert f"{MutationKind.TOGGLE_COMPLETION}" == "toggle_completion"
    assert report.summary() == "toggle_importance: 0 ok, 0 failed"


@pytest.mark.asyncio
async def test_toggle_importance_patches_task_and_invalidates_its_list(provider, gateway, listener) -> None:
    lst = (await provider.get_root_children())[0]
    in_progress, _ = await provider.get_children(lst)
    (t1,) = await provider.get_children(in_progress)

    report = await provider.star(t1)

    assert report.ok
    assert [(p.path, p.fields) for p in gateway.patches] == [("/lists/L1/tasks/T1", {"importance": "high"})]
    assert listener.events == [lst]
    assert node_key(listener.events[0]) == ("list", "L1")


@pytest.mark.asyncio
async def test_toggle_completion_twice_restores_original_status(provider, gateway) -> None:
    lst = (await provider.get_root_children())[0]
    in_progress, completed = await provider.get_children(lst)

    (t1,) = await provider.get_children(in_progress)
    assert t1.entity.status == TaskStatus.NOT_STARTED
    await provider.complete(t1)

    fresh = {t.entity.id: t for t in await provider.get_children(completed)}
    assert fresh["T1"].entity.status == TaskStatus.COMPLETED
    await provider.uncomplete(fresh["T1"])

    (again,) = await provider.get_children(in_progress)
    assert again.entity.id == "T1"
    assert again.entity.status == TaskStatus.NOT_STARTED


@pytest.mark.asyncio
async def test_batch_failure_does_not_stop_siblings() -> None:
    gateway = FakeGateway(_batch_data())
    coordinator, rec = _coordinator(gateway)
    a1, a2 = await _tasks(gateway, "A")
    (b1,) = await _tasks(gateway, "B")
    gateway.fail_paths.add("/lists/A/tasks/a2")

    report = await coordinator.toggle_completion([a1, a2, b1])

    assert not report.ok
    assert [o.node.entity.id for o in report.succeeded] == ["a1", "b1"]
    assert [o.node.entity.id for o in report.failed] == ["a2"]
    assert "boom" in str(report.failed[0].error)
    assert [node_key(n) for n in rec.events] == [("list", "A"), ("list", "B")]

    # The failed task kept its server-side value; the others flipped.
    states = {t["id"]: t.get("status") for lst in gateway.backend.tasks.values() for t in lst}
    assert states == {"a1": "completed", "a2": None, "b1": "notStarted"}


@pytest.mark.asyncio
async def test_batch_requests_are_in_flight_together() -> None:
    gateway = FakeGateway(_batch_data())
    coordinator, _ = _coordinator(gateway)
    targets = await _tasks(gateway, "A") + await _tasks(gateway, "B")

    await coordinator.toggle_importance(targets)

    assert len(gateway.patches) == 3
    assert gateway.max_in_flight == 3


@pytest.mark.asyncio
async def test_empty_batch_is_a_no_op() -> None:
    gateway = FakeGateway(_batch_data())
    coordinator, rec = _coordinator(gateway)

    report = await coordinator.toggle_completion([])

    assert report.ok and report.succeeded == []
    assert gateway.patches == []
    assert rec.events == []


@pytest.mark.asyncio
async def test_batch_without_client_reports_every_target_failed() -> None:
    gateway = FakeGateway(_batch_data())
    targets = await _tasks(gateway, "A")
    coordinator, rec = _coordinator(None)

    report = await coordinator.toggle_completion(targets)

    assert len(report.failed) == 2
    assert all(isinstance(o.error, GatewayUnavailableError) for o in report.failed)
    assert rec.events == []


@pytest.mark.asyncio
async def test_multi_selection_wins_over_clicked_node(provider, gateway) -> None:
    lst = (await provider.get_root_children())[0]
    in_progress, completed = await provider.get_children(lst)
    (t1,) = await provider.get_children(in_progress)
    (t2,) = await provider.get_children(completed)

    await provider.star(t1, [t1, t2])

    assert sorted(p.path for p in gateway.patches) == ["/lists/L1/tasks/T1", "/lists/L1/tasks/T2"]


@pytest.mark.asyncio
async def test_update_task_sends_fields_and_invalidates_parent() -> None:
    gateway = FakeGateway(_batch_data())
    coordinator, rec = _coordinator(gateway)

    entity = await coordinator.update_task(
        TaskUpdate(list_id="A", task_id="a1", title="New", note="Details", due_date="2024-05-01")
    )

    assert gateway.patches[0].path == "/lists/A/tasks/a1"
    assert gateway.patches[0].fields == {
        "title": "New",
        "body": {"content": "Details", "contentType": "text"},
        "dueDateTime": {"dateTime": "2024-05-01T00:00:00", "timeZone": "UTC"},
    }
    assert entity["title"] == "New"
    assert [node_key(n) for n in rec.events] == [("list", "A")]


@pytest.mark.asyncio
async def test_update_task_errors_propagate() -> None:
    gateway = FakeGateway(_batch_data())
    gateway.fail_paths.add("/lists/A/tasks/a1")
    coordinator, rec = _coordinator(gateway)

    with pytest.raises(Exception, match="boom"):
        await coordinator.update_task(TaskUpdate(list_id="A", task_id="a1", title="x"))
    assert rec.events == []


def test_task_update_blank_due_date_leaves_it_alone() -> None:
    fields = TaskUpdate(list_id="A", task_id="a1", title="t", note="", due_date="").to_fields()
    assert "dueDateTime" not in fields
    assert fields["body"] == {"content": "", "contentType": "text"}


def test_parse_due_date_formats() -> None:
    assert parse_due_date("2024-05-01").day == 1
    assert parse_due_date("5/7/2024").day == 7
    assert parse_due_date("soon") is None
    assert parse_due_date(None) is None


@pytest.mark.asyncio
async def test_create_list_posts_and_invalidates_root(provider, gateway, listener) -> None:
    created = await provider.create_list("  Errands ")

    assert created.display_name == "Errands"
    assert gateway.posts[0].path == "/lists"
    assert gateway.posts[0].fields == {"displayName": "Errands"}
    assert listener.events == [None]

    root = await provider.get_root_children()
    assert [n.entity.display_name for n in root[:-1]] == ["Groceries", "Errands"]
    assert isinstance(root[-1], CreateListNode)


@pytest.mark.asyncio
async def test_create_list_rejects_blank_name(provider, gateway) -> None:
    with pytest.raises(ValueError):
        await provider.create_list("   ")
    assert gateway.posts == []
