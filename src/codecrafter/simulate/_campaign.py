"""Campaign: play through an ordered level catalogue, tracking progress."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from codecrafter.model.level import Level
from codecrafter.model.progress import PlayerProgress

from ._config import EngineConfig
from ._context import SessionController
from ._values import ExecutionResult, UnknownLevelError

logger = logging.getLogger(__name__)


class Campaign:
    """Ordered levels plus the player's progress through them.

    A level is unlocked once every level before it is completed.
    Selecting a level always opens a fresh session with an empty
    program and function library.
    """

    def __init__(
        self,
        levels: Sequence[Level],
        config: EngineConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
        progress: PlayerProgress | None = None,
    ) -> None:
        if not levels:
            raise ValueError("a campaign needs at least one level")
        self.levels = list(levels)
        self.config = config
        self.progress = progress or PlayerProgress()
        self._sleep = sleep
        self.session: SessionController | None = None

    def _index(self, level_id: str) -> int:
        for i, level in enumerate(self.levels):
            if level.id == level_id:
                return i
        raise UnknownLevelError(level_id)

    def level(self, level_id: str) -> Level:
        return self.levels[self._index(level_id)]

    def is_unlocked(self, level_id: str) -> bool:
        idx = self._index(level_id)
        return all(
            self.progress.is_completed(lvl.id) for lvl in self.levels[:idx]
        )

    def select_level(self, level_id: str) -> SessionController:
        level = self.level(level_id)
        logger.info("selecting level %s", level_id)
        self.progress.current_level = level_id
        self.session = SessionController(level, config=self.config, sleep=self._sleep)
        return self.session

    def run(self) -> ExecutionResult:
        """Run the current session's program and record a win."""
        if self.session is None:
            raise RuntimeError("no level selected")
        result = self.session.run()
        if result.success:
            level_id = self.session.level.id
            if self.progress.record_success(level_id, result.steps):
                logger.info("level %s: new best of %d steps", level_id, result.steps)
        return result

    def next_level(self) -> SessionController | None:
        """Advance to the level after the current one.

        Returns None (and clears the session) after the last level.
        """
        if self.session is None:
            return self.select_level(self.levels[0].id)
        idx = self._index(self.session.level.id)
        if idx + 1 >= len(self.levels):
            logger.info("campaign finished")
            self.session = None
            self.progress.current_level = None
            return None
        return self.select_level(self.levels[idx + 1].id)
