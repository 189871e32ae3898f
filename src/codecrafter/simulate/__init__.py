"""codecrafter simulator: run block programs against a grid level.

Entry point::

    from codecrafter.simulate import run

    result, trace, final = run(commands, functions, level)
    assert result.success
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence

from codecrafter.model.commands import Command, FunctionDefinition
from codecrafter.model.level import Level

from ._campaign import Campaign
from ._config import DEFAULT_PACING_SECONDS, EngineConfig
from ._context import SessionController
from ._executor import ExecutionEngine
from ._values import (
    CodeCrafterError,
    CommandError,
    ErrorKind,
    ExecutionResult,
    ExecutionTrace,
    RobotState,
    SessionBusyError,
    SimulationError,
    UnknownLevelError,
)


def run(
    program: Sequence[Command],
    functions: Sequence[FunctionDefinition],
    level: Level,
    initial_state: RobotState | None = None,
    *,
    config: EngineConfig | None = None,
    trace: ExecutionTrace | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[ExecutionResult, ExecutionTrace, RobotState]:
    """Run *program* once against *level*.

    Parameters
    ----------
    program
        Top-level block sequence.
    functions
        Function library for ``call`` blocks.
    level
        The level to play.
    initial_state
        Defaults to the level's start cell and direction.
    config
        Defaults to ``EngineConfig()`` (no pacing).
    trace
        Trace to record into; cleared first.  A fresh one by default.

    Returns
    -------
    tuple
        ``(result, trace, final_state)``.
    """
    if initial_state is None:
        initial_state = RobotState.at_start(level)
    if trace is None:
        trace = ExecutionTrace()
    trace.clear()
    engine = ExecutionEngine(
        level=level, functions=functions, config=config, trace=trace, sleep=sleep,
    )
    result, final_state = engine.run(program, initial_state)
    return result, trace, final_state


def session(
    level: Level,
    *,
    config: EngineConfig | None = None,
    sleep: Callable[[float], None] = time.sleep,
    on_event: Callable[[str], None] | None = None,
) -> SessionController:
    """Open a session controller for *level*."""
    return SessionController(level, config=config, sleep=sleep, on_event=on_event)


__all__ = [
    "run",
    "session",
    "Campaign",
    "CodeCrafterError",
    "CommandError",
    "DEFAULT_PACING_SECONDS",
    "EngineConfig",
    "ErrorKind",
    "ExecutionEngine",
    "ExecutionResult",
    "ExecutionTrace",
    "RobotState",
    "SessionBusyError",
    "SessionController",
    "SimulationError",
    "UnknownLevelError",
]
