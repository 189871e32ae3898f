"""Execution engine: tree-walking interpreter for block programs.

The ``ExecutionEngine`` folds an immutable ``RobotState`` through a
command sequence.  Each handler takes a block and the incoming state
and returns the outgoing state; failures raise ``CommandError`` with
the last good state attached.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from codecrafter.model.commands import (
    CallCommand,
    Command,
    FunctionDefinition,
    IfCommand,
    LoopCommand,
    MoveCommand,
    Rotation,
    TurnCommand,
)
from codecrafter.model.level import Level

from ._config import EngineConfig
from ._values import (
    CommandError,
    ErrorKind,
    ExecutionResult,
    ExecutionTrace,
    RobotState,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ExecutionEngine
# ---------------------------------------------------------------------------

class ExecutionEngine:
    """Interpreter for a single run against one level.

    Parameters
    ----------
    level : Level
        The grid the robot moves on.  Read only.
    functions : sequence of FunctionDefinition
        Library that ``call`` blocks resolve against.
    config : EngineConfig
        Pacing, call-depth and action limits.
    trace : ExecutionTrace
        Receives one event per observable step.  Not cleared here.
    sleep : callable
        Pacing hook, called with ``config.pacing_seconds`` after every
        executed block.
    """

    def __init__(
        self,
        level: Level,
        functions: Sequence[FunctionDefinition] = (),
        config: EngineConfig | None = None,
        trace: ExecutionTrace | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.level = level
        self.functions = {fn.id: fn for fn in functions}
        self.config = config or EngineConfig()
        self.trace = trace if trace is not None else ExecutionTrace()
        self._sleep = sleep
        self._call_depth = 0
        self._actions = 0

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def run(
        self, program: Sequence[Command], initial_state: RobotState,
    ) -> tuple[ExecutionResult, RobotState]:
        """Execute *program* from *initial_state*.

        One step is counted per top-level block, whatever it contains.
        Returns the result and the final state.
        """
        self._call_depth = 0
        self._actions = 0
        state = initial_state
        steps = 0

        for command in program:
            try:
                state = self.execute(command, state)
            except CommandError as exc:
                logger.info(
                    "run failed at step %d: %s (block %s)",
                    steps, exc.kind.value, exc.command_id,
                )
                return ExecutionResult(
                    success=False,
                    steps=steps,
                    message=exc.message,
                    error=exc.kind,
                    error_block_id=exc.command_id,
                    failed_step_id=command.id,
                ), exc.state
            steps += 1

        if self.level.is_goal(state.x, state.y):
            state = state.model_copy(update={"reached_goal": True})
            logger.info("run succeeded in %d steps", steps)
            return ExecutionResult(
                success=True,
                steps=steps,
                message=f"Success! You reached the goal in {steps} steps!",
            ), state

        logger.info("run finished at (%d, %d) without reaching the goal",
                    state.x, state.y)
        return ExecutionResult(
            success=False,
            steps=steps,
            message="You did not reach the goal. Try again!",
            error=ErrorKind.GOAL_NOT_REACHED,
        ), state

    def execute(self, command: Command, state: RobotState) -> RobotState:
        """Execute one block and return the resulting state."""
        kind = getattr(command, "kind", None)
        handler = self._CMD_DISPATCH.get(kind)
        if handler is None:
            logger.debug("ignoring unknown block kind %r", kind)
        else:
            logger.debug("executing %s block %s at (%d, %d)",
                         kind, command.id, state.x, state.y)
            state = handler(self, command, state)
        self._pace()
        return state

    # -----------------------------------------------------------------------
    # Block handlers
    # -----------------------------------------------------------------------

    def _exec_move(self, cmd: MoveCommand, state: RobotState) -> RobotState:
        self._count_action(cmd, state)
        x, y = state.ahead()
        if not self.level.is_enterable(x, y):
            raise CommandError(
                ErrorKind.COLLISION_OR_BOUNDS,
                "You tried to move into an obstacle or off the map!",
                cmd.id,
                state,
            )
        self.trace.append(f"Moved to ({x}, {y})")
        return state.moved_to(x, y)

    def _exec_turn(self, cmd: TurnCommand, state: RobotState) -> RobotState:
        self._count_action(cmd, state)
        state = state.turned(clockwise=cmd.rotation != Rotation.COUNTER_CLOCKWISE)
        self.trace.append(f"Turned to {state.direction.value}")
        return state

    def _exec_if(self, cmd: IfCommand, state: RobotState) -> RobotState:
        blocked = not self.level.is_enterable(*state.ahead())
        self.trace.append(f"Obstacle ahead: {'yes' if blocked else 'no'}")
        if not blocked:
            return state
        return self._exec_body(cmd.children, state)

    def _exec_loop(self, cmd: LoopCommand, state: RobotState) -> RobotState:
        for i in range(cmd.times):
            self.trace.append(f"Loop iteration {i + 1}/{cmd.times}")
            state = self._exec_body(cmd.children, state)
        return state

    def _exec_call(self, cmd: CallCommand, state: RobotState) -> RobotState:
        fn = self.functions.get(cmd.function_id)
        if fn is None:
            raise CommandError(
                ErrorKind.UNRESOLVED_FUNCTION,
                f"Function '{cmd.function_id}' no longer exists",
                cmd.id,
                state,
            )
        if self._call_depth >= self.config.max_call_depth:
            raise CommandError(
                ErrorKind.CALL_DEPTH_EXCEEDED,
                f"Function calls nested deeper than "
                f"{self.config.max_call_depth} levels",
                cmd.id,
                state,
            )

        self.trace.append(f"Calling function '{fn.name}'")
        self._call_depth += 1
        try:
            return self._exec_body(fn.body, state)
        finally:
            self._call_depth -= 1

    _CMD_DISPATCH: dict[str, Callable[[ExecutionEngine, Command, RobotState], RobotState]] = {
        "move": _exec_move,
        "turn": _exec_turn,
        "if": _exec_if,
        "loop": _exec_loop,
        "call": _exec_call,
    }

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def _exec_body(self, body: Sequence[Command], state: RobotState) -> RobotState:
        for child in body:
            state = self.execute(child, state)
        return state

    def _count_action(self, cmd: Command, state: RobotState) -> None:
        self._actions += 1
        limit = self.config.max_actions
        if limit is not None and self._actions > limit:
            raise CommandError(
                ErrorKind.STEP_LIMIT,
                f"Exceeded the limit of {limit} actions",
                cmd.id,
                state,
            )

    def _pace(self) -> None:
        if self.config.pacing_seconds > 0:
            self._sleep(self.config.pacing_seconds)
