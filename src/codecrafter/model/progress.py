"""Player progress across a level catalogue."""

from __future__ import annotations

from pydantic import BaseModel


class PlayerProgress(BaseModel):
    """Completed levels and best (fewest) step counts per level id."""

    current_level: str | None = None
    completed_levels: list[str] = []
    total_steps: int = 0
    best_steps: dict[str, int] = {}

    def record_success(self, level_id: str, steps: int) -> bool:
        """Record a win; returns True if *steps* is a new best."""
        if level_id not in self.completed_levels:
            self.completed_levels.append(level_id)
        self.total_steps += steps
        best = self.best_steps.get(level_id)
        if best is None or steps < best:
            self.best_steps[level_id] = steps
            return True
        return False

    def is_completed(self, level_id: str) -> bool:
        return level_id in self.completed_levels
