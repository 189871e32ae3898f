"""Command tree nodes for block programs.

Each block kind is its own model, discriminated on ``kind``.  Only the
container kinds (``if`` and ``loop``) carry a ``children`` list; leaf
kinds have no such field at all.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from .level import CommandKind


# Editing-surface bounds for loop counts.  The engine accepts any
# non-negative count.
MIN_LOOP_TIMES = 1
MAX_LOOP_TIMES = 10

# Palette labels, used as the default ``label`` of a new block.
LABELS: dict[CommandKind, str] = {
    CommandKind.MOVE: "Move",
    CommandKind.TURN: "Turn",
    CommandKind.IF: "If obstacle ahead",
    CommandKind.LOOP: "Repeat",
    CommandKind.CALL: "Call function",
}


class Rotation(str, Enum):
    CLOCKWISE = "clockwise"
    COUNTER_CLOCKWISE = "counter_clockwise"


class MoveCommand(BaseModel):
    """Step one cell forward in the current direction."""

    kind: Literal["move"] = "move"
    id: str
    label: str = LABELS[CommandKind.MOVE]


class TurnCommand(BaseModel):
    """Rotate 90 degrees in place."""

    kind: Literal["turn"] = "turn"
    id: str
    label: str = LABELS[CommandKind.TURN]
    rotation: Rotation = Rotation.CLOCKWISE


class IfCommand(BaseModel):
    """Run *children* only when the cell ahead cannot be entered.

    There is no else branch.
    """

    kind: Literal["if"] = "if"
    id: str
    label: str = LABELS[CommandKind.IF]
    children: list[Command] = []


class LoopCommand(BaseModel):
    """Run *children* as a sequence, *times* times over."""

    kind: Literal["loop"] = "loop"
    id: str
    label: str = LABELS[CommandKind.LOOP]
    times: int = Field(default=1, ge=0)
    children: list[Command] = []


class CallCommand(BaseModel):
    """Invoke a user-defined function by id."""

    kind: Literal["call"] = "call"
    id: str
    label: str = LABELS[CommandKind.CALL]
    function_id: str


Command = Annotated[
    Union[
        MoveCommand,
        TurnCommand,
        IfCommand,
        LoopCommand,
        CallCommand,
    ],
    Field(discriminator="kind"),
]

CONTAINER_KINDS = frozenset({"if", "loop"})


class FunctionDefinition(BaseModel):
    """A named, reusable command sequence."""

    id: str
    name: str
    body: list[Command] = []


class Program(BaseModel):
    """A snapshot of the top-level sequence plus its function library."""

    commands: list[Command] = []
    functions: list[FunctionDefinition] = []

    def function(self, function_id: str) -> FunctionDefinition | None:
        for fn in self.functions:
            if fn.id == function_id:
                return fn
        return None


# Rebuild models with recursive Command references.
IfCommand.model_rebuild()
LoopCommand.model_rebuild()
FunctionDefinition.model_rebuild()
Program.model_rebuild()
