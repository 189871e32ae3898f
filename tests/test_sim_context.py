"""Tests for the session controller."""

import pytest

from conftest import make_level, mv, turn

from codecrafter.model.commands import FunctionDefinition, Program
from codecrafter.model.level import Direction
from codecrafter.simulate import EngineConfig, ErrorKind, SessionBusyError, session
from codecrafter.simulate._config import DEFAULT_PACING_SECONDS
from codecrafter.simulate._context import EMPTY_PROGRAM_MESSAGE, SessionController


def _session(level=None, **kwargs):
    level = level or make_level(width=3, height=1, goal=(2, 0))
    return SessionController(level, config=EngineConfig(), **kwargs)


# ---------------------------------------------------------------------------
# Initial state
# ---------------------------------------------------------------------------

class TestInitialState:
    def test_starts_on_start_cell(self):
        level = make_level(start=(1, 2), direction=Direction.LEFT)
        ctx = _session(level)
        assert (ctx.state.x, ctx.state.y) == (1, 2)
        assert ctx.state.direction == Direction.LEFT
        assert not ctx.is_executing
        assert ctx.last_result is None
        assert len(ctx.trace) == 0

    def test_default_config_paces(self):
        ctx = SessionController(make_level())
        assert ctx.config.pacing_seconds == DEFAULT_PACING_SECONDS


# ---------------------------------------------------------------------------
# Running
# ---------------------------------------------------------------------------

class TestRun:
    def test_empty_program(self):
        ctx = _session()
        result = ctx.run()
        assert not result.success
        assert result.steps == 0
        assert result.message == EMPTY_PROGRAM_MESSAGE
        assert ctx.last_result is result

    def test_success(self):
        ctx = _session()
        ctx.add_command("move")
        ctx.add_command("move")
        result = ctx.run()
        assert result.success
        assert ctx.level_complete
        assert (ctx.state.x, ctx.state.y) == (2, 0)
        assert ctx.state.reached_goal
        assert list(ctx.trace) == ["Moved to (1, 0)", "Moved to (2, 0)"]

    def test_collision_keeps_prior_state(self):
        level = make_level(width=3, height=1, goal=(2, 0), obstacles=[(1, 0)])
        ctx = _session(level)
        node = ctx.add_command("move")
        result = ctx.run()
        assert result.error == ErrorKind.COLLISION_OR_BOUNDS
        assert result.error_block_id == node.id
        assert (ctx.state.x, ctx.state.y) == (0, 0)
        assert not ctx.level_complete

    def test_run_snapshot_list(self):
        ctx = _session()
        result = ctx.run([mv("a"), mv("b")])
        assert result.success
        # the session's own program is unchanged
        assert ctx.commands == []

    def test_run_snapshot_program(self):
        ctx = _session()
        result = ctx.run(Program(commands=[mv("a")]))
        assert not result.success
        assert result.error == ErrorKind.GOAL_NOT_REACHED

    def test_runs_continue_from_current_state(self):
        ctx = _session()
        ctx.run([mv("a")])
        result = ctx.run([mv("b")])
        assert result.success
        assert ctx.state.x == 2

    def test_trace_cleared_per_run(self):
        ctx = _session(make_level(width=5, height=1, goal=(4, 0)))
        ctx.run([mv("a")])
        ctx.run([mv("b")])
        assert list(ctx.trace) == ["Moved to (2, 0)"]

    def test_on_event_listener(self):
        events = []
        ctx = _session(on_event=events.append)
        ctx.run([mv("a"), mv("b")])
        assert events == ["Moved to (1, 0)", "Moved to (2, 0)"]

    def test_reentrant_run_rejected(self):
        ctx = None
        errors = []

        def listener(event):
            try:
                ctx.run([mv("again")])
            except SessionBusyError as exc:
                errors.append(exc)

        ctx = _session(on_event=listener)
        result = ctx.run([mv("a"), mv("b")])
        assert result.success
        assert len(errors) == 2
        assert not ctx.is_executing

    def test_is_executing_during_run(self):
        seen = []
        ctx = None
        ctx = _session(on_event=lambda e: seen.append(ctx.is_executing))
        ctx.run([mv("a")])
        assert seen == [True]
        assert not ctx.is_executing

    def test_sleep_hook(self):
        pauses = []
        ctx = SessionController(
            make_level(width=3, height=1, goal=(2, 0)),
            config=EngineConfig(pacing_seconds=0.25),
            sleep=pauses.append,
        )
        ctx.run([mv("a"), mv("b")])
        assert pauses == [0.25, 0.25]


# ---------------------------------------------------------------------------
# Reset
# ---------------------------------------------------------------------------

class TestReset:
    def test_reset_restores_start(self):
        ctx = _session()
        ctx.run([mv("a")])
        ctx.reset()
        assert (ctx.state.x, ctx.state.y) == (0, 0)
        assert len(ctx.trace) == 0
        assert ctx.last_result is None

    def test_reset_keeps_program(self):
        ctx = _session()
        ctx.add_command("move")
        ctx.reset()
        assert len(ctx.commands) == 1

    def test_clear_program(self):
        ctx = _session()
        ctx.add_command("move")
        ctx.create_function()
        ctx.clear_program()
        assert ctx.commands == []
        assert ctx.functions == []


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------

class TestEditing:
    def test_add_child_and_remove(self):
        ctx = _session()
        loop = ctx.add_command("loop", times=2)
        child = ctx.add_child(loop.id, "move")
        assert ctx.commands[0].children[0].id == child.id
        ctx.remove_command(child.id)
        assert ctx.commands[0].children == []

    def test_update_and_set_loop_times(self):
        ctx = _session()
        loop = ctx.add_command("loop")
        ctx.update_command(loop.id, label="Again")
        ctx.set_loop_times(loop.id, 99)
        assert ctx.commands[0].label == "Again"
        assert ctx.commands[0].times == 10

    def test_move_command(self):
        ctx = _session()
        loop = ctx.add_command("loop")
        move = ctx.add_command("move")
        ctx.move_command(move.id, loop.id)
        assert [c.id for c in ctx.commands] == [loop.id]
        assert ctx.commands[0].children[0].id == move.id

    def test_functions(self):
        ctx = _session()
        first = ctx.create_function()
        second = ctx.create_function()
        assert [fn.name for fn in ctx.functions] == ["Function 1", "Function 2"]
        ctx.rename_function(second.id, "walk")
        ctx.add_to_function(second.id, "move")
        ctx.add_to_function(second.id, "move")
        ctx.add_command("call", function_id=second.id)
        result = ctx.run()
        assert result.success
        assert ctx.functions[1].name == "walk"
        assert first.id != second.id

    def test_delete_function_cascades(self):
        ctx = _session()
        target = ctx.create_function()
        other = ctx.create_function()
        ctx.add_to_function(other.id, "call", function_id=target.id)
        loop = ctx.add_command("loop")
        ctx.add_child(loop.id, "call", function_id=target.id)
        ctx.add_command("call", function_id=target.id)
        ctx.delete_function(target.id)
        assert [fn.id for fn in ctx.functions] == [other.id]
        assert ctx.functions[0].body == []
        assert [c.id for c in ctx.commands] == [loop.id]
        assert ctx.commands[0].children == []

    def test_call_to_deleted_function_snapshot_fails(self):
        ctx = _session()
        fn = ctx.create_function()
        ctx.add_to_function(fn.id, "move")
        call = ctx.add_command("call", function_id=fn.id)
        stale = ctx.program
        ctx.delete_function(fn.id)
        result = ctx.run(stale.model_copy(update={"functions": []}))
        assert result.error == ErrorKind.UNRESOLVED_FUNCTION
        assert result.error_block_id == call.id


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

class TestSessionEntryPoint:
    def test_session_factory(self):
        ctx = session(make_level(), config=EngineConfig())
        assert isinstance(ctx, SessionController)


# ---------------------------------------------------------------------------
# Palette restrictions and editing no-ops
# ---------------------------------------------------------------------------

class TestPalette:
    def _restricted(self):
        level = make_level(
            width=3, height=1, goal=(2, 0), allowed_commands=["move", "loop"],
        )
        return _session(level)

    def test_add_disallowed_kind_ignored(self):
        ctx = self._restricted()
        assert ctx.add_command("turn") is None
        assert ctx.commands == []

    def test_add_child_disallowed_kind_ignored(self):
        ctx = self._restricted()
        loop = ctx.add_command("loop")
        assert ctx.add_child(loop.id, "if") is None
        assert ctx.commands[0].children == []

    def test_add_to_function_disallowed_kind_ignored(self):
        ctx = self._restricted()
        fn = ctx.create_function()
        assert ctx.add_to_function(fn.id, "turn") is None
        assert ctx.functions[0].body == []

    def test_run_rejects_disallowed_snapshot(self):
        ctx = self._restricted()
        result = ctx.run([mv("a"), turn("t")])
        assert not result.success
        assert result.error == ErrorKind.DISALLOWED_COMMAND
        assert result.error_block_id == "t"
        assert result.steps == 0
        assert (ctx.state.x, ctx.state.y) == (0, 0)

    def test_run_rejects_disallowed_block_in_function(self):
        ctx = self._restricted()
        program = Program(
            commands=[mv("a")],
            functions=[FunctionDefinition(id="f", name="f", body=[turn("inner")])],
        )
        result = ctx.run(program)
        assert result.error == ErrorKind.DISALLOWED_COMMAND
        assert result.error_block_id == "inner"


class TestEditingNoOps:
    def test_add_to_unknown_function(self):
        ctx = _session()
        assert ctx.add_to_function("missing", "move") is None
        assert ctx.functions == []

    def test_add_child_to_leaf(self):
        ctx = _session()
        move = ctx.add_command("move")
        assert ctx.add_child(move.id, "move") is None
        assert [c.id for c in ctx.commands] == [move.id]

    def test_add_child_to_unknown_parent(self):
        ctx = _session()
        assert ctx.add_child("missing", "move") is None

    def test_call_inside_function_body(self):
        ctx = _session()
        walk = ctx.create_function("walk")
        ctx.add_to_function(walk.id, "move")
        outer = ctx.create_function("outer")
        inner_call = ctx.add_to_function(outer.id, "call", function_id=walk.id)
        ctx.add_to_function(outer.id, "call", function_id=walk.id)
        ctx.add_command("call", function_id=outer.id)
        assert inner_call.function_id == walk.id
        assert ctx.run().success

    def test_loop_child_with_params(self):
        ctx = _session()
        loop = ctx.add_command("loop", times=2)
        ctx.add_child(loop.id, "turn", rotation="counter_clockwise")
        assert ctx.commands[0].children[0].rotation.value == "counter_clockwise"

    def test_update_coerces_numeric_string(self):
        ctx = _session(make_level(width=4, height=1, goal=(3, 0)))
        loop = ctx.add_command("loop")
        ctx.add_child(loop.id, "move")
        ctx.update_command(loop.id, times="3")
        assert ctx.commands[0].times == 3
        assert ctx.run().success

    def test_update_with_invalid_value_ignored(self):
        ctx = _session()
        loop = ctx.add_command("loop", times=2)
        turn_block = ctx.add_command("turn")
        ctx.update_command(loop.id, times="many")
        ctx.update_command(turn_block.id, rotation="left")
        assert ctx.commands[0].times == 2
        assert ctx.commands[1].rotation.value == "clockwise"
        assert ctx.run().error == ErrorKind.GOAL_NOT_REACHED


class TestTraceClearing:
    def test_empty_run_clears_previous_trace(self):
        ctx = _session()
        ctx.run([mv("a")])
        assert len(ctx.trace) == 1
        ctx.run([])
        assert len(ctx.trace) == 0
