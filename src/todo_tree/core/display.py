# src/todo_tree/core/display.py

from __future__ import annotations

"""
How a node should be shown. Pure functions of a node: no I/O, no state.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import assert_never

from .models import TodoTask
from .nodes import CreateListNode, ListNode, Node, StatusNode, StatusType, TaskNode

CREATE_LIST_LABEL = "Create a new list..."
CREATE_LIST_COMMAND = "create-list"

Highlight = tuple[int, int]


class Collapsible(StrEnum):
    NONE = "none"
    COLLAPSED = "collapsed"
    EXPANDED = "expanded"


@dataclass(frozen=True, slots=True)
class DisplayDescriptor:
    label: str
    collapsible: Collapsible = Collapsible.NONE
    highlights: tuple[Highlight, ...] = ()
    tooltip: str | None = None
    context_value: str | None = None
    command: str | None = None

    def spans(self) -> list[str]:
        """Highlighted substrings of the label, in order."""
        return [self.label[a:b] for a, b in self.highlights]


def format_due(due: datetime) -> str:
    # M/D/YYYY, independent of the process locale.
    return f"{due.month}/{due.day}/{due.year}"


def task_context_value(task: TodoTask) -> str:
    status = "completed" if task.is_completed else "notcompleted"
    importance = "starred" if task.is_starred else "notstarred"
    return f"task-{status} task-{importance}"


def _describe_task(node: TaskNode) -> DisplayDescriptor:
    task = node.entity
    label = task.title
    tooltip = f"*{label}*"
    highlights: list[Highlight] = []

    if task.due is not None:
        due_str = f" DUE {format_due(task.due)} "
        label += "  "
        highlights.append((len(label), len(label) + len(due_str)))
        label += due_str

    if task.body:
        tooltip += f"\n\n{task.body}"

    return DisplayDescriptor(
        label=label,
        collapsible=Collapsible.NONE,
        highlights=tuple(highlights),
        tooltip=tooltip,
        context_value=task_context_value(task),
    )


def describe(node: Node) -> DisplayDescriptor:
    match node:
        case CreateListNode():
            return DisplayDescriptor(label=CREATE_LIST_LABEL, command=CREATE_LIST_COMMAND)
        case ListNode():
            return DisplayDescriptor(
                label=node.entity.display_name or "",
                collapsible=Collapsible.COLLAPSED,
                context_value=node.node_type,
            )
        case TaskNode():
            return _describe_task(node)
        case StatusNode():
            collapse = Collapsible.COLLAPSED if node.status_type == StatusType.COMPLETED else Collapsible.EXPANDED
            label = f" {node.status_type.value} "
            return DisplayDescriptor(
                label=label,
                collapsible=collapse,
                highlights=((0, len(label)),),
            )
        case _:
            assert_never(node)
