# src/todo_tree/core/materializer.py

from __future__ import annotations

"""
Tree materializer.

Turns the service's flat collections into a four-level tree on demand:

    root -> lists (+ "create list" sentinel) -> status groups -> tasks

Nothing is cached between calls. Each expand() produces fresh nodes from a fresh
fetch; the host decides what to keep on screen and asks again after an
invalidation.
"""

import logging
from typing import assert_never

from .models import TaskList, TodoTask, parse_many
from .nodes import (
    LISTS_PATH,
    CreateListNode,
    ListNode,
    Node,
    StatusNode,
    TaskNode,
    node_key,
    status_groups,
    tasks_path,
)
from .ports import ClientFactory, TaskGateway

logger = logging.getLogger(__name__)


class TreeMaterializer:
    def __init__(self, client_factory: ClientFactory) -> None:
        self._client_factory = client_factory

    async def expand(self, node: Node | None) -> list[Node] | None:
        """
        Children of `node` (None = root).

        Returns None for the root when no authenticated client exists, so the
        host can show an empty tree. Gateway errors propagate.
        """
        if node is None:
            return await self.expand_root()

        match node:
            case ListNode():
                # Free: the network hit happens when a group is expanded.
                return list(status_groups(node))
            case StatusNode():
                client = await self._client_factory.get_client()
                if client is None:
                    logger.warning("No client available; cannot expand %s", node_key(node))
                    return None
                return list(await self.realize(client, node))
            case TaskNode() | CreateListNode():
                return []
            case _:
                assert_never(node)

    async def expand_root(self) -> list[Node] | None:
        client = await self._client_factory.get_client()
        if client is None:
            logger.warning("Not signed in; root has no children yet")
            return None

        raw = await client.fetch_all(LISTS_PATH)
        lists: list[TaskList] = parse_many(TaskList, raw)
        logger.debug("Fetched %d task lists", len(lists))

        nodes: list[Node] = [ListNode(entity) for entity in lists]
        nodes.append(CreateListNode())
        return nodes

    async def realize(self, client: TaskGateway, group: StatusNode) -> list[TaskNode]:
        """Run the query a status group stands for."""
        path = tasks_path(group)
        raw = await client.fetch_all(path)
        tasks: list[TodoTask] = parse_many(TodoTask, raw)
        logger.debug("Fetched %d tasks for %s", len(tasks), node_key(group))
        return [TaskNode(entity=t, parent=group.parent) for t in tasks]
