"""Structural edits on command trees.

Every operation here is pure: it returns a new list and leaves the
input tree untouched.  Unknown ids are silently ignored, as are
attempts to add children to leaf blocks.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Iterator
from typing import Any

from pydantic import ValidationError

from .commands import (
    CONTAINER_KINDS,
    MAX_LOOP_TIMES,
    MIN_LOOP_TIMES,
    CallCommand,
    Command,
    FunctionDefinition,
    IfCommand,
    LoopCommand,
    MoveCommand,
    Program,
    TurnCommand,
)
from .level import CommandKind


_COMMAND_CLASSES: dict[CommandKind, type] = {
    CommandKind.MOVE: MoveCommand,
    CommandKind.TURN: TurnCommand,
    CommandKind.IF: IfCommand,
    CommandKind.LOOP: LoopCommand,
    CommandKind.CALL: CallCommand,
}

# Keys a partial update may never overwrite.
_FROZEN_KEYS = frozenset({"id", "kind"})

_KNOWN_KINDS = frozenset(k.value for k in CommandKind)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

def new_id(prefix: str = "cmd") -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


def new_command(kind: CommandKind | str, **params: Any) -> Command:
    """Build a fresh block of *kind* with a newly generated id.

    >>> new_command("loop", times=3).times
    3
    """
    cls = _COMMAND_CLASSES[CommandKind(kind)]
    return cls(id=new_id("cmd"), **params)


def new_function(index: int = 1, name: str | None = None) -> FunctionDefinition:
    """Build an empty function; *index* drives the placeholder name."""
    return FunctionDefinition(
        id=new_id("fn"),
        name=name if name is not None else f"Function {index}",
    )


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------

def _children(node: Command) -> list[Command] | None:
    return node.children if node.kind in CONTAINER_KINDS else None


def iter_nodes(tree: Iterable[Command]) -> Iterator[Command]:
    """Yield every node depth-first, in program order."""
    stack = list(reversed(list(tree)))
    while stack:
        node = stack.pop()
        yield node
        children = _children(node)
        if children:
            stack.extend(reversed(children))


def find_node(tree: Iterable[Command], target_id: str) -> Command | None:
    for node in iter_nodes(tree):
        if node.id == target_id:
            return node
    return None


def collect_ids(tree: Iterable[Command]) -> list[str]:
    return [node.id for node in iter_nodes(tree)]


def disallowed_commands(
    tree: Iterable[Command], allowed: Iterable[CommandKind | str],
) -> list[str]:
    """Ids of blocks whose kind is not in *allowed*.

    Unknown kinds are skipped; the engine treats them as no-ops.
    """
    allowed_kinds = {CommandKind(k).value for k in allowed}
    return [
        node.id for node in iter_nodes(tree)
        if node.kind in _KNOWN_KINDS and node.kind not in allowed_kinds
    ]


def _with_children(node: Command, children: list[Command]) -> Command:
    return node.model_copy(update={"children": children})


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def update_node(
    tree: list[Command], target_id: str, partial_update: dict[str, Any],
) -> list[Command]:
    """Merge *partial_update* into the node with *target_id*.

    Keys the node's kind does not define are dropped, and ``id`` and
    ``kind`` are never overwritten.  An update that does not validate
    for the node's kind leaves the node unchanged.
    """
    result: list[Command] = []
    for node in tree:
        if node.id == target_id:
            fields = type(node).model_fields
            update = {
                k: v for k, v in partial_update.items()
                if k in fields and k not in _FROZEN_KEYS
            }
            try:
                node = type(node).model_validate({**dict(node), **update})
            except ValidationError:
                pass
        elif _children(node) is not None:
            node = _with_children(
                node, update_node(node.children, target_id, partial_update),
            )
        result.append(node)
    return result


def remove_node(tree: list[Command], target_id: str) -> list[Command]:
    result: list[Command] = []
    for node in tree:
        if node.id == target_id:
            continue
        if _children(node) is not None:
            node = _with_children(node, remove_node(node.children, target_id))
        result.append(node)
    return result


def add_child(
    tree: list[Command], parent_id: str, new_node: Command,
) -> list[Command]:
    """Append *new_node* to the children of the container *parent_id*."""
    result: list[Command] = []
    for node in tree:
        children = _children(node)
        if children is not None:
            if node.id == parent_id:
                node = _with_children(node, [*children, new_node])
            else:
                node = _with_children(
                    node, add_child(children, parent_id, new_node),
                )
        result.append(node)
    return result


def remove_function_references(
    tree: list[Command], function_id: str,
) -> list[Command]:
    """Drop every call to *function_id*, at any depth."""
    result: list[Command] = []
    for node in tree:
        if node.kind == "call" and node.function_id == function_id:
            continue
        if _children(node) is not None:
            node = _with_children(
                node, remove_function_references(node.children, function_id),
            )
        result.append(node)
    return result


def move_node(
    tree: list[Command], node_id: str, new_parent_id: str | None = None,
) -> list[Command]:
    """Reparent *node_id* under *new_parent_id* (or the top level if None).

    No-op when the node is missing, the new parent is missing or is not
    a container, or the new parent lies inside the node being moved.
    """
    node = find_node(tree, node_id)
    if node is None:
        return list(tree)
    if new_parent_id is None:
        return [*remove_node(tree, node_id), node]

    if new_parent_id in collect_ids([node]):
        return list(tree)
    parent = find_node(tree, new_parent_id)
    if parent is None or _children(parent) is None:
        return list(tree)
    return add_child(remove_node(tree, node_id), new_parent_id, node)


def set_loop_times(tree: list[Command], loop_id: str, times: int) -> list[Command]:
    """Set a loop's count, clamped to the editor's allowed range."""
    node = find_node(tree, loop_id)
    if node is None or node.kind != "loop":
        return list(tree)
    clamped = max(MIN_LOOP_TIMES, min(MAX_LOOP_TIMES, times))
    return update_node(tree, loop_id, {"times": clamped})


# ---------------------------------------------------------------------------
# Function library
# ---------------------------------------------------------------------------

def delete_function(program: Program, function_id: str) -> Program:
    """Remove a function and every call to it, in one step."""
    functions = [
        fn.model_copy(
            update={"body": remove_function_references(fn.body, function_id)},
        )
        for fn in program.functions
        if fn.id != function_id
    ]
    return Program(
        commands=remove_function_references(program.commands, function_id),
        functions=functions,
    )


def rename_function(
    functions: list[FunctionDefinition], function_id: str, name: str,
) -> list[FunctionDefinition]:
    return [
        fn.model_copy(update={"name": name}) if fn.id == function_id else fn
        for fn in functions
    ]


def update_function_body(
    functions: list[FunctionDefinition], function_id: str, body: list[Command],
) -> list[FunctionDefinition]:
    return [
        fn.model_copy(update={"body": body}) if fn.id == function_id else fn
        for fn in functions
    ]
