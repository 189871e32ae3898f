"""Session controller: the user-facing object for one level attempt.

Holds the program being edited and its function library, runs it
against the level, and keeps the robot state, trace and last result
for the presentation layer to read.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from codecrafter.model import tree
from codecrafter.model.commands import (
    CONTAINER_KINDS,
    Command,
    FunctionDefinition,
    Program,
)
from codecrafter.model.level import CommandKind, Level

from ._config import DEFAULT_PACING_SECONDS, EngineConfig
from ._executor import ExecutionEngine
from ._values import (
    ErrorKind,
    ExecutionResult,
    ExecutionTrace,
    RobotState,
    SessionBusyError,
)

logger = logging.getLogger(__name__)

EMPTY_PROGRAM_MESSAGE = "Add at least one command!"
DISALLOWED_MESSAGE = "This level does not offer one of the blocks you used."


class SessionController:
    """One attempt at one level.

    Parameters
    ----------
    level : Level
        The level being played.
    config : EngineConfig, optional
        Defaults to interactive pacing (``DEFAULT_PACING_SECONDS``).
    sleep : callable
        Pacing hook passed to the engine.
    on_event : callable, optional
        Called with each trace event as it is produced.
    """

    def __init__(
        self,
        level: Level,
        config: EngineConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
        on_event: Callable[[str], None] | None = None,
    ) -> None:
        self.level = level
        self.config = config or EngineConfig(pacing_seconds=DEFAULT_PACING_SECONDS)
        self._sleep = sleep
        self._trace = ExecutionTrace(listener=on_event)
        self._state = RobotState.at_start(level)
        self._program = Program()
        self._executing = False
        self._last_result: ExecutionResult | None = None

    # -----------------------------------------------------------------------
    # Observable state
    # -----------------------------------------------------------------------

    @property
    def state(self) -> RobotState:
        return self._state

    @property
    def trace(self) -> ExecutionTrace:
        return self._trace

    @property
    def is_executing(self) -> bool:
        return self._executing

    @property
    def last_result(self) -> ExecutionResult | None:
        return self._last_result

    @property
    def level_complete(self) -> bool:
        return self._last_result is not None and self._last_result.success

    @property
    def program(self) -> Program:
        return self._program

    @property
    def commands(self) -> list[Command]:
        return list(self._program.commands)

    @property
    def functions(self) -> list[FunctionDefinition]:
        return list(self._program.functions)

    # -----------------------------------------------------------------------
    # Run / reset
    # -----------------------------------------------------------------------

    def run(self, program: Program | list[Command] | None = None) -> ExecutionResult:
        """Run a program snapshot (the session's own program by default).

        Starts from the current robot state.  Raises ``SessionBusyError``
        if a run is already in flight.
        """
        if self._executing:
            raise SessionBusyError("a run is already in progress")

        if program is None:
            program = self._program
        elif not isinstance(program, Program):
            program = Program(commands=program, functions=self._program.functions)

        if not program.commands:
            self._trace.clear()
            self._last_result = ExecutionResult(
                success=False, steps=0, message=EMPTY_PROGRAM_MESSAGE,
            )
            return self._last_result

        bodies = [*program.commands, *(c for fn in program.functions for c in fn.body)]
        disallowed = tree.disallowed_commands(bodies, self.level.allowed_commands)
        if disallowed:
            self._trace.clear()
            self._last_result = ExecutionResult(
                success=False,
                steps=0,
                message=DISALLOWED_MESSAGE,
                error=ErrorKind.DISALLOWED_COMMAND,
                error_block_id=disallowed[0],
            )
            return self._last_result

        logger.info(
            "level %s: running %d top-level blocks", self.level.id,
            len(program.commands),
        )
        self._executing = True
        self._trace.clear()
        try:
            engine = ExecutionEngine(
                level=self.level,
                functions=program.functions,
                config=self.config,
                trace=self._trace,
                sleep=self._sleep,
            )
            result, self._state = engine.run(program.commands, self._state)
        finally:
            self._executing = False

        self._last_result = result
        return result

    def reset(self) -> None:
        """Put the robot back on the start cell and clear the trace."""
        self._state = RobotState.at_start(self.level)
        self._trace.clear()
        self._last_result = None

    def clear_program(self) -> None:
        """Reset the robot and discard the program and function library."""
        self.reset()
        self._program = Program()

    # -----------------------------------------------------------------------
    # Editing
    # -----------------------------------------------------------------------

    def add_command(self, kind: CommandKind | str, /, **params: Any) -> Command | None:
        """Append a new top-level block.

        Returns None, adding nothing, if the level does not offer *kind*.
        """
        if not self.level.allows(kind):
            return None
        node = tree.new_command(kind, **params)
        self._set(commands=[*self._program.commands, node])
        return node

    def add_child(
        self, parent_id: str, kind: CommandKind | str, /, **params: Any,
    ) -> Command | None:
        parent = tree.find_node(self._program.commands, parent_id)
        if parent is None or parent.kind not in CONTAINER_KINDS:
            return None
        if not self.level.allows(kind):
            return None
        node = tree.new_command(kind, **params)
        self._set(commands=tree.add_child(self._program.commands, parent_id, node))
        return node

    def remove_command(self, command_id: str) -> None:
        self._set(commands=tree.remove_node(self._program.commands, command_id))

    def update_command(self, command_id: str, /, **changes: Any) -> None:
        self._set(commands=tree.update_node(self._program.commands, command_id, changes))

    def set_loop_times(self, loop_id: str, times: int) -> None:
        self._set(commands=tree.set_loop_times(self._program.commands, loop_id, times))

    def move_command(self, command_id: str, new_parent_id: str | None = None) -> None:
        self._set(commands=tree.move_node(self._program.commands, command_id, new_parent_id))

    def create_function(self, name: str | None = None) -> FunctionDefinition:
        fn = tree.new_function(index=len(self._program.functions) + 1, name=name)
        self._set(functions=[*self._program.functions, fn])
        return fn

    def rename_function(self, function_id: str, name: str) -> None:
        self._set(functions=tree.rename_function(self._program.functions, function_id, name))

    def add_to_function(
        self, function_id: str, kind: CommandKind | str, /, **params: Any,
    ) -> Command | None:
        fn = self._program.function(function_id)
        if fn is None or not self.level.allows(kind):
            return None
        node = tree.new_command(kind, **params)
        self._set(functions=tree.update_function_body(
            self._program.functions, function_id, [*fn.body, node],
        ))
        return node

    def delete_function(self, function_id: str) -> None:
        self._program = tree.delete_function(self._program, function_id)

    def _set(self, **changes: Any) -> None:
        self._program = self._program.model_copy(update=changes)
