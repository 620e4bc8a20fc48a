# src/todo_tree/core/nodes.py

from __future__ import annotations

"""
Tree node kinds.

Node is a closed union: ListNode | CreateListNode | StatusNode | TaskNode.
Every consumer matches on it exhaustively and ends with assert_never(), so a new
kind cannot silently fall through.

Nodes compare and hash by structural position (node_key), not by the entity
snapshot they carry: two fetches of the same list or task are the same node.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal, assert_never
from urllib.parse import quote

from .models import TaskList, TodoTask

LISTS_PATH = "/lists"


class StatusType(StrEnum):
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


NodeKey = tuple[str, ...]


class _Keyed:
    __slots__ = ()

    @property
    def key(self) -> NodeKey:
        return node_key(self)  # type: ignore[arg-type]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _Keyed):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)


@dataclass(frozen=True, slots=True, eq=False)
class ListNode(_Keyed):
    entity: TaskList
    node_type: Literal["list"] = "list"


@dataclass(frozen=True, slots=True, eq=False)
class CreateListNode(_Keyed):
    node_type: Literal["create-list"] = "create-list"


@dataclass(frozen=True, slots=True, eq=False)
class StatusNode(_Keyed):
    parent: ListNode
    status_type: StatusType
    node_type: Literal["status"] = "status"


@dataclass(frozen=True, slots=True, eq=False)
class TaskNode(_Keyed):
    entity: TodoTask
    parent: ListNode
    node_type: Literal["task"] = "task"


Node = ListNode | CreateListNode | StatusNode | TaskNode


def node_key(node: Node) -> NodeKey:
    match node:
        case ListNode():
            return ("list", node.entity.id)
        case CreateListNode():
            return ("create-list",)
        case StatusNode():
            return ("status", node.parent.entity.id, node.status_type.value)
        case TaskNode():
            return ("task", node.parent.entity.id, node.entity.id)
        case _:
            assert_never(node)


def list_node_for(list_id: str, display_name: str = "") -> ListNode:
    """A ListNode addressed only by id (equal by key to the one in the tree)."""
    return ListNode(TaskList(id=list_id, display_name=display_name))


# ---- Resource paths ----


def _seg(value: str) -> str:
    return quote(value, safe="")


def status_filter(status_type: StatusType) -> str:
    """OData comparison selecting the tasks of a status group."""
    match status_type:
        case StatusType.COMPLETED:
            op = "eq"
        case StatusType.IN_PROGRESS:
            op = "ne"
        case _:
            assert_never(status_type)
    return f"status {op} 'completed'"


def tasks_path(node: StatusNode) -> str:
    """Realize a status group into the query that produces its children."""
    return f"{LISTS_PATH}/{_seg(node.parent.entity.id)}/tasks?$filter={status_filter(node.status_type)}"


def task_path(list_id: str, task_id: str) -> str:
    return f"{LISTS_PATH}/{_seg(list_id)}/tasks/{_seg(task_id)}"


def status_groups(list_node: ListNode) -> list[StatusNode]:
    """The fixed pair of groups under every list: In Progress, then Completed."""
    return [
        StatusNode(parent=list_node, status_type=StatusType.IN_PROGRESS),
        StatusNode(parent=list_node, status_type=StatusType.COMPLETED),
    ]
