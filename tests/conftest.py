"""Shared test helpers for the codecrafter test suite."""

from codecrafter.model.commands import (
    CallCommand,
    FunctionDefinition,
    IfCommand,
    LoopCommand,
    MoveCommand,
    Rotation,
    TurnCommand,
)
from codecrafter.model.level import CellType, Direction, Level, MapCell, ObstacleType
from codecrafter.simulate import EngineConfig, run


def make_level(
    width=5,
    height=5,
    start=(0, 0),
    goal=None,
    obstacles=(),
    direction=Direction.RIGHT,
    **kwargs,
):
    """Build a Level; *obstacles* is an iterable of (x, y) wall cells."""
    if goal is None:
        goal = (width - 1, height - 1)
    cells = [
        MapCell(x=x, y=y, type=CellType.OBSTACLE, obstacle=ObstacleType.WALL)
        for x, y in obstacles
    ]
    return Level(
        id=kwargs.pop("id", "test-level"),
        grid_width=width,
        grid_height=height,
        start_x=start[0],
        start_y=start[1],
        start_direction=direction,
        goal_x=goal[0],
        goal_y=goal[1],
        cells=cells,
        **kwargs,
    )


def run_program(commands, level, functions=(), initial_state=None, **config):
    """Run with zero pacing; returns (result, trace, final_state)."""
    return run(
        commands, functions, level, initial_state,
        config=EngineConfig(**config),
    )


# Block shorthands with readable fixed ids.

def mv(id="m"):
    return MoveCommand(id=id)


def turn(id="t", ccw=False):
    rotation = Rotation.COUNTER_CLOCKWISE if ccw else Rotation.CLOCKWISE
    return TurnCommand(id=id, rotation=rotation)


def loop(times, children, id="loop"):
    return LoopCommand(id=id, times=times, children=children)


def if_blocked(children, id="if"):
    return IfCommand(id=id, children=children)


def call(function_id, id="call"):
    return CallCommand(id=id, function_id=function_id)


def func(id, body, name=None):
    return FunctionDefinition(id=id, name=name or id, body=body)
