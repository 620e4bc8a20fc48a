# src/todo_tree/panel/details.py

from __future__ import annotations

"""
Details panel message protocol.

The panel itself (an embedded document in the host) is not part of this
package. It talks to us with plain JSON messages:

    panel -> core   {"command": "ready"}
                    {"command": "update", "body": {title, note, id, listId, dueDate}}
    core  -> panel  a full task-node snapshot (initial state and live updates)
"""

import copy
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, assert_never

from ..core.mutations import MutationCoordinator, TaskUpdate
from ..core.nodes import TaskNode

logger = logging.getLogger(__name__)

PostMessage = Callable[[dict[str, Any]], Awaitable[None] | None]


class PanelProtocolError(ValueError):
    """A message from the panel does not match the protocol."""


@dataclass(slots=True, frozen=True)
class ReadyMessage:
    pass


@dataclass(slots=True, frozen=True)
class UpdateMessage:
    update: TaskUpdate


PanelMessage = ReadyMessage | UpdateMessage


def task_snapshot(node: TaskNode) -> dict[str, Any]:
    """JSON-compatible snapshot of a task node, as the panel expects it."""
    entity = copy.deepcopy(node.entity.raw) or {"id": node.entity.id, "title": node.entity.title}
    # The panel reads entity.body.content unconditionally.
    body = entity.get("body")
    if not isinstance(body, dict):
        body = {}
    entity["body"] = {"contentType": "text", **body, "content": body.get("content") or ""}

    parent = copy.deepcopy(node.parent.entity.raw) or {
        "id": node.parent.entity.id,
        "displayName": node.parent.entity.display_name,
    }
    return {
        "nodeType": node.node_type,
        "entity": entity,
        "parent": {"nodeType": node.parent.node_type, "entity": parent},
    }


def _opt_str(body: dict[str, Any], key: str) -> str | None:
    v = body.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        raise PanelProtocolError(f"update.body.{key} must be a string")
    return v


def parse_message(message: Any) -> PanelMessage:
    if not isinstance(message, dict):
        raise PanelProtocolError("message must be an object")

    command = message.get("command")
    if command == "ready":
        return ReadyMessage()

    if command == "update":
        body = message.get("body")
        if not isinstance(body, dict):
            raise PanelProtocolError("update message without body")

        task_id = _opt_str(body, "id")
        list_id = _opt_str(body, "listId")
        if not task_id or not list_id:
            raise PanelProtocolError("update.body needs id and listId")

        return UpdateMessage(
            TaskUpdate(
                list_id=list_id,
                task_id=task_id,
                title=_opt_str(body, "title"),
                note=_opt_str(body, "note"),
                due_date=_opt_str(body, "dueDate"),
            )
        )

    raise PanelProtocolError(f"unknown command: {command!r}")


class DetailsPanelController:
    """Feeds one panel with the selected task and commits its edits."""

    def __init__(self, coordinator: MutationCoordinator, post_message: PostMessage) -> None:
        self._coordinator = coordinator
        self._post_message = post_message
        self.current: TaskNode | None = None

    async def _post(self, payload: dict[str, Any]) -> None:
        result = self._post_message(payload)
        if result is not None:
            await result

    async def show(self, node: TaskNode) -> None:
        self.current = node
        await self._post(task_snapshot(node))

    async def handle_message(self, message: Any) -> None:
        parsed = parse_message(message)

        match parsed:
            case ReadyMessage():
                if self.current is None:
                    logger.debug("Panel ready, nothing selected yet")
                    return
                await self._post(task_snapshot(self.current))
            case UpdateMessage(update=update):
                await self._coordinator.update_task(update)
            case _:
                assert_never(parsed)
