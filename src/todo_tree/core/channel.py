# src/todo_tree/core/channel.py

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .nodes import Node, node_key

logger = logging.getLogger(__name__)

ChannelListener = Callable[[Node | None], Any]


class InvalidationChannel:
    """
    Broadcast "this node's children are stale" to the display host.

    fire() with no node means the whole tree is stale. The channel never carries
    data, only invalidation: hosts re-expand the node on next display.
    Listener errors are logged and do not reach the caller of fire().
    """

    def __init__(self) -> None:
        self._listeners: list[ChannelListener] = []
        self._pending: set[asyncio.Task[Any]] = set()
        self._closed = False
        self.fired = 0

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: ChannelListener) -> Callable[[], None]:
        if self._closed:
            raise RuntimeError("InvalidationChannel is closed")
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: ChannelListener) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    def fire(self, node: Node | None = None) -> None:
        if self._closed:
            logger.debug("fire() on closed channel ignored (node=%s)", node and node_key(node))
            return

        self.fired += 1
        logger.debug("Invalidate %s", "all" if node is None else node_key(node))

        for listener in list(self._listeners):
            try:
                result = listener(node)
            except Exception:
                logger.exception("Invalidation listener %r failed", listener)
                continue
            if inspect.isawaitable(result):
                self._schedule(result)

    def close(self) -> None:
        self._closed = True
        self._listeners.clear()
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()

    def _schedule(self, awaitable: Awaitable[Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Async invalidation listener called without a running loop; dropped")
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = loop.create_task(_guard(awaitable))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


async def _guard(awaitable: Awaitable[Any]) -> None:
    try:
        await awaitable
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception("Async invalidation listener failed")
