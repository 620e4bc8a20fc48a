# src/todo_tree/connectors/console_host.py

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime

from ..core.display import Collapsible, DisplayDescriptor
from ..core.nodes import Node, NodeKey, TaskNode
from ..core.provider import TodoTreeProvider
from ..panel.details import DetailsPanelController

logger = logging.getLogger(__name__)

ROOT: NodeKey = ("root",)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _key(node: Node | None) -> NodeKey:
    return ROOT if node is None else node.key


def _badges(desc: DisplayDescriptor) -> str:
    ctx = (desc.context_value or "").split()
    if "task-completed" in ctx:
        box = "[x]"
    elif "task-notcompleted" in ctx:
        box = "[ ]"
    else:
        return ""
    star = "*" if "task-starred" in ctx else " "
    return f"{box}{star} "


class ConsoleTreeHost:
    """
    A plain-text rendering host.

    Caches each node's children by structural key and throws a subtree away when
    the provider's channel fires for it; the next render re-expands it.
    """

    def __init__(self, provider: TodoTreeProvider) -> None:
        self.provider = provider
        self._children: dict[NodeKey, list[Node] | None] = {}
        self._expanded: dict[NodeKey, bool] = {}
        self.visible: list[Node] = []
        self.snapshots: list[dict] = []

        self.panel = DetailsPanelController(provider.coordinator, self.snapshots.append)
        self._unsubscribe = provider.subscribe(self.invalidate)

    def close(self) -> None:
        self._unsubscribe()

    # ---- cache ----

    def invalidate(self, node: Node | None) -> None:
        if node is None:
            self._children.clear()
            return
        self._drop(node.key)

    def _drop(self, key: NodeKey) -> None:
        children = self._children.pop(key, None)
        for child in children or []:
            self._drop(child.key)

    def is_cached(self, node: Node | None) -> bool:
        return _key(node) in self._children

    async def children(self, node: Node | None) -> list[Node] | None:
        key = _key(node)
        if key not in self._children:
            self._children[key] = await self.provider.get_children(node)
        return self._children[key]

    # ---- expansion state ----

    def is_expanded(self, node: Node, desc: DisplayDescriptor) -> bool:
        if desc.collapsible == Collapsible.NONE:
            return False
        return self._expanded.get(node.key, desc.collapsible == Collapsible.EXPANDED)

    def set_expanded(self, node: Node, expanded: bool) -> None:
        self._expanded[node.key] = expanded

    # ---- rendering ----

    async def render(self) -> list[str]:
        """Render visible nodes; numbers in the output index into self.visible."""
        self.visible = []
        roots = await self.children(None)
        if roots is None:
            return ["(not signed in: set TODO_TREE_ACCESS_TOKEN or TODO_TREE_OFFLINE=1)"]

        lines: list[str] = []
        await self._render_level(roots, 0, lines)
        return lines

    async def _render_level(self, nodes: list[Node], depth: int, lines: list[str]) -> None:
        for node in nodes:
            desc = self.provider.get_display_descriptor(node)
            self.visible.append(node)
            n = len(self.visible)

            expanded = self.is_expanded(node, desc)
            if desc.collapsible == Collapsible.NONE:
                marker = " "
            else:
                marker = "v" if expanded else ">"

            lines.append(f"{'  ' * depth}{n:>3} {marker} {_badges(desc)}{desc.label}")

            if expanded:
                kids = await self.children(node) or []
                await self._render_level(kids, depth + 1, lines)

    def node_at(self, number: int) -> Node:
        if number < 1 or number > len(self.visible):
            raise IndexError(f"No node #{number}. Use /tree to see numbers.")
        return self.visible[number - 1]

    def task_at(self, number: int) -> TaskNode:
        node = self.node_at(number)
        if not isinstance(node, TaskNode):
            raise IndexError(f"#{number} is not a task.")
        return node


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def run_console_loop(host: ConsoleTreeHost, runner: asyncio.Runner) -> None:
    """
    Read commands on the main thread and run each one on the runner's loop.

    Ctrl+C while waiting at the prompt arrives as KeyboardInterrupt from input().
    Ctrl+C during a command cancels it and ends the session the same way.
    """
    from ..cli.commands import registry as command_registry

    logger.info("Console host started.")
    _print_ts("[CONSOLE] Use /tree to show lists, /help for commands, /exit to quit.\n")

    try:
        for line in runner.run(host.render()):
            print(line)

        while True:
            try:
                user_input = input("todo> ").strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            try:
                response = runner.run(command_registry.handle(host, user_input))
            except KeyboardInterrupt:
                logger.info("Command interrupted, exiting.")
                print()
                break
            except Exception:
                logger.exception("Command handler crashed.")
                response = "Internal error while handling a command."

            if response is None:
                response = "Commands start with '/'. Use /help."
            print(response, file=sys.stdout, flush=True)
    finally:
        host.close()
        logger.info("Console host finished.")
