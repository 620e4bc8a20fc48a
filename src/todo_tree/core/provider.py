# src/todo_tree/core/provider.py

from __future__ import annotations

"""
Host-facing tree provider.

Owns one InvalidationChannel for its lifetime and hands it to the mutation
coordinator. Exposes:
- the display contract (get_root_children / get_children / get_display_descriptor)
- subscribe / unsubscribe for invalidation
- the command surface bound to user actions (refresh, complete, star, ...)
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from .channel import ChannelListener, InvalidationChannel
from .display import DisplayDescriptor, describe
from .materializer import TreeMaterializer
from .models import TaskList
from .mutations import MutationCoordinator, MutationKind, MutationReport, TaskUpdate
from .nodes import Node, TaskNode, node_key
from .ports import ClientFactory, Entity

logger = logging.getLogger(__name__)

Command = Callable[..., Awaitable[Any]]


def _selection(node: TaskNode | None, nodes: Sequence[TaskNode] | None) -> list[TaskNode]:
    """Multi-selection wins; otherwise the clicked node alone."""
    if nodes:
        return list(nodes)
    if node is None:
        return []
    return [node]


class TodoTreeProvider:
    def __init__(self, client_factory: ClientFactory, channel: InvalidationChannel | None = None) -> None:
        self.channel = channel or InvalidationChannel()
        self.materializer = TreeMaterializer(client_factory)
        self.coordinator = MutationCoordinator(client_factory, self.channel)
        self._disposed = False

        self.commands: dict[str, Command] = {
            "refresh": self.refresh,
            "complete": self.complete,
            "uncomplete": self.uncomplete,
            "star": self.star,
            "unstar": self.unstar,
            "create-list": self.create_list,
            "update-task": self.update_task,
        }

    async def __aenter__(self) -> TodoTreeProvider:
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.dispose()

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self.channel.close()
        logger.debug("Tree provider disposed")

    # ---- display contract ----

    async def get_root_children(self) -> list[Node] | None:
        return await self.get_children(None)

    async def get_children(self, node: Node | None) -> list[Node] | None:
        """
        Expand one node for display.

        A failure here empties only this node's subtree; the error is logged.
        """
        try:
            return await self.materializer.expand(node)
        except Exception:
            logger.exception("Failed to expand %s", "root" if node is None else node_key(node))
            return []

    def get_display_descriptor(self, node: Node) -> DisplayDescriptor:
        return describe(node)

    def subscribe(self, listener: ChannelListener) -> Callable[[], None]:
        return self.channel.subscribe(listener)

    def unsubscribe(self, listener: ChannelListener) -> None:
        self.channel.unsubscribe(listener)

    # ---- commands ----

    async def refresh(self, node: Node | None = None) -> None:
        self.channel.fire(node)

    async def complete(self, node: TaskNode | None = None, nodes: Sequence[TaskNode] | None = None) -> MutationReport:
        return await self.coordinator.apply_mutation(MutationKind.TOGGLE_COMPLETION, _selection(node, nodes))

    async def star(self, node: TaskNode | None = None, nodes: Sequence[TaskNode] | None = None) -> MutationReport:
        return await self.coordinator.apply_mutation(MutationKind.TOGGLE_IMPORTANCE, _selection(node, nodes))

    # Both directions are the same toggle; the host shows whichever fits the node.
    uncomplete = complete
    unstar = star

    async def create_list(self, display_name: str) -> TaskList:
        return await self.coordinator.create_list(display_name)

    async def update_task(self, update: TaskUpdate) -> Entity | None:
        return await self.coordinator.update_task(update)
