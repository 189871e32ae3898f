"""Level definitions: grid geometry, obstacles, start and goal.

A ``Level`` is immutable once loaded.  Its cell list is sparse: any
in-bounds coordinate not listed is an empty cell.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Direction(str, Enum):
    """Robot orientation on the grid."""

    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


# Clockwise order, starting from RIGHT.
CLOCKWISE: tuple[Direction, ...] = (
    Direction.RIGHT,
    Direction.DOWN,
    Direction.LEFT,
    Direction.UP,
)

OFFSETS: dict[Direction, tuple[int, int]] = {
    Direction.RIGHT: (1, 0),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
    Direction.UP: (0, -1),
}


class CellType(str, Enum):
    EMPTY = "empty"
    OBSTACLE = "obstacle"
    GOAL = "goal"


class ObstacleType(str, Enum):
    """Display sub-type of an obstacle.  All sub-types block movement."""

    WALL = "wall"
    WATER = "water"
    GAP = "gap"
    BATTERY = "battery"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class CommandKind(str, Enum):
    """Block kinds a level may offer in its palette."""

    MOVE = "move"
    TURN = "turn"
    IF = "if"
    LOOP = "loop"
    CALL = "call"


# ---------------------------------------------------------------------------
# Cells and levels
# ---------------------------------------------------------------------------

class MapCell(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    type: CellType = CellType.EMPTY
    obstacle: ObstacleType | None = None

    @model_validator(mode="after")
    def _obstacle_only_on_obstacles(self) -> Self:
        if self.obstacle is not None and self.type != CellType.OBSTACLE:
            raise ValueError(
                f"cell ({self.x}, {self.y}) has obstacle sub-type "
                f"'{self.obstacle.value}' but is of type '{self.type.value}'"
            )
        return self


class Level(BaseModel):
    """Static puzzle definition.

    *cells* lists only the cells that differ from an empty floor tile;
    duplicate coordinates are rejected.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    description: str = ""
    difficulty: Difficulty = Difficulty.EASY
    grid_width: int = Field(gt=0)
    grid_height: int = Field(gt=0)
    start_x: int
    start_y: int
    start_direction: Direction = Direction.RIGHT
    goal_x: int
    goal_y: int
    cells: tuple[MapCell, ...] = ()
    allowed_commands: tuple[CommandKind, ...] = tuple(CommandKind)
    tutorial: str | None = None
    hints: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _check_geometry(self) -> Self:
        seen: set[tuple[int, int]] = set()
        for cell in self.cells:
            key = (cell.x, cell.y)
            if key in seen:
                raise ValueError(f"duplicate cell at ({cell.x}, {cell.y})")
            seen.add(key)

        if not self.in_bounds(self.start_x, self.start_y):
            raise ValueError(
                f"start ({self.start_x}, {self.start_y}) is outside the "
                f"{self.grid_width}x{self.grid_height} grid"
            )
        if not self.in_bounds(self.goal_x, self.goal_y):
            raise ValueError(
                f"goal ({self.goal_x}, {self.goal_y}) is outside the "
                f"{self.grid_width}x{self.grid_height} grid"
            )
        if not self.is_enterable(self.start_x, self.start_y):
            raise ValueError(
                f"start ({self.start_x}, {self.start_y}) is an obstacle"
            )
        return self

    # -----------------------------------------------------------------------
    # Geometry queries
    # -----------------------------------------------------------------------

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.grid_width and 0 <= y < self.grid_height

    def cell_at(self, x: int, y: int) -> MapCell | None:
        """Return the listed cell at (x, y), or None for unlisted cells."""
        for cell in self.cells:
            if cell.x == x and cell.y == y:
                return cell
        return None

    def is_enterable(self, x: int, y: int) -> bool:
        """True iff (x, y) is inside the grid and not an obstacle."""
        if not self.in_bounds(x, y):
            return False
        cell = self.cell_at(x, y)
        return cell is None or cell.type != CellType.OBSTACLE

    def is_goal(self, x: int, y: int) -> bool:
        return x == self.goal_x and y == self.goal_y

    def allows(self, kind: CommandKind | str) -> bool:
        return CommandKind(kind) in self.allowed_commands


# ---------------------------------------------------------------------------
# JSON loading
# ---------------------------------------------------------------------------

_LEVEL_LIST = TypeAdapter(list[Level])


def load_level(path: str | Path) -> Level:
    """Load a single level from a JSON file."""
    return Level.model_validate_json(Path(path).read_text(encoding="utf-8"))


def load_levels(path: str | Path) -> list[Level]:
    """Load an ordered level catalogue (a JSON array) from a file."""
    levels = _LEVEL_LIST.validate_json(Path(path).read_text(encoding="utf-8"))
    ids = [lvl.id for lvl in levels]
    dupes = sorted({i for i in ids if ids.count(i) > 1})
    if dupes:
        raise ValueError(f"duplicate level ids in catalogue: {dupes}")
    return levels


def dump_level(level: Level) -> str:
    """Serialize a level to JSON; ``load_level`` reads it back losslessly."""
    return level.model_dump_json(indent=2)
