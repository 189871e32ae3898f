"""Runtime values for the simulator.

Robot state, run results, the event trace, and the error types the
engine and session raise.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from enum import Enum

from pydantic import BaseModel, ConfigDict

from codecrafter.model.level import CLOCKWISE, OFFSETS, Direction, Level


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ErrorKind(str, Enum):
    COLLISION_OR_BOUNDS = "collision_or_bounds"
    UNRESOLVED_FUNCTION = "unresolved_function"
    CALL_DEPTH_EXCEEDED = "call_depth_exceeded"
    STEP_LIMIT = "step_limit"
    DISALLOWED_COMMAND = "disallowed_command"
    # Outcome, not an engine error.
    GOAL_NOT_REACHED = "goal_not_reached"


class CodeCrafterError(Exception):
    """Base class for all codecrafter errors."""


class SimulationError(CodeCrafterError):
    """Runtime error during simulation."""


class CommandError(SimulationError):
    """A block failed; the run stops here.

    *state* is the last good state before the failing block.
    """

    def __init__(
        self, kind: ErrorKind, message: str, command_id: str, state: RobotState,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.command_id = command_id
        self.state = state


class SessionBusyError(CodeCrafterError):
    """``run`` was called while a run is already in flight."""


class UnknownLevelError(CodeCrafterError, KeyError):
    """No level with the requested id exists in the catalogue."""


# ---------------------------------------------------------------------------
# Robot state
# ---------------------------------------------------------------------------

class RobotState(BaseModel):
    """Position and orientation of the robot.  Immutable."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    direction: Direction = Direction.RIGHT
    reached_goal: bool = False

    @classmethod
    def at_start(cls, level: Level) -> RobotState:
        return cls(x=level.start_x, y=level.start_y, direction=level.start_direction)

    def ahead(self) -> tuple[int, int]:
        """Coordinates of the cell directly in front of the robot."""
        dx, dy = OFFSETS[self.direction]
        return self.x + dx, self.y + dy

    def moved_to(self, x: int, y: int) -> RobotState:
        return self.model_copy(update={"x": x, "y": y})

    def turned(self, clockwise: bool = True) -> RobotState:
        idx = CLOCKWISE.index(self.direction)
        idx = (idx + (1 if clockwise else -1)) % len(CLOCKWISE)
        return self.model_copy(update={"direction": CLOCKWISE[idx]})


# ---------------------------------------------------------------------------
# Results and trace
# ---------------------------------------------------------------------------

class ExecutionResult(BaseModel):
    """Outcome of one run.

    *error_block_id* is the innermost block that failed (for
    highlighting); *failed_step_id* is the top-level block it was
    nested under.  Both are None on success and on GOAL_NOT_REACHED.
    """

    success: bool
    steps: int
    message: str
    error: ErrorKind | None = None
    error_block_id: str | None = None
    failed_step_id: str | None = None


class ExecutionTrace:
    """Append-only log of human-readable events for one run."""

    def __init__(self, listener: Callable[[str], None] | None = None) -> None:
        self._events: list[str] = []
        self._listener = listener

    def append(self, event: str) -> None:
        self._events.append(event)
        if self._listener is not None:
            self._listener(event)

    def clear(self) -> None:
        self._events.clear()

    @property
    def events(self) -> tuple[str, ...]:
        return tuple(self._events)

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._events))

    def __len__(self) -> int:
        return len(self._events)

    def __repr__(self) -> str:
        return f"ExecutionTrace({self._events!r})"
