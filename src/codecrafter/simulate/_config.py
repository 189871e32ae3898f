"""Engine configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# Animation pacing used by interactive sessions, in seconds per block.
DEFAULT_PACING_SECONDS = 0.3


class EngineConfig(BaseModel):
    """Knobs for one engine run.

    *pacing_seconds*
        Pause after every executed block.  Affects timing only, never
        the outcome.  Zero for tests and batch runs.
    *max_call_depth*
        Deepest chain of nested function calls allowed before the run
        fails with CALL_DEPTH_EXCEEDED.
    *max_actions*
        Optional ceiling on Move and Turn actions per run.  None means
        unbounded; large loop counts then simply run long.
    """

    model_config = ConfigDict(frozen=True)

    pacing_seconds: float = Field(default=0.0, ge=0)
    max_call_depth: int = Field(default=64, ge=1)
    max_actions: int | None = Field(default=None, ge=1)
