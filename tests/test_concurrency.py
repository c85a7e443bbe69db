from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from adventureruntime import (
    AdventureEngine,
    EngineSettings,
    GameBusy,
    GameLocks,
    LogicalClock,
    NotFound,
    ScriptContext,
)

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from tests.conftest import RecordingScriptRuntime, StartCaveWorld


def test_hold_rejects_second_holder_immediately() -> None:
    locks = GameLocks()

    with locks.hold(1):
        assert locks.is_busy(1)
        with pytest.raises(GameBusy) as excinfo:
            with locks.hold(1):
                pass
        assert excinfo.value.game_id == 1
        with locks.hold(2):
            assert locks.is_busy(2)

    assert not locks.is_busy(1)


def test_hold_waits_up_to_busy_timeout() -> None:
    locks = GameLocks(busy_timeout=5.0)
    entered = threading.Event()
    release = threading.Event()

    def holder() -> None:
        with locks.hold(1):
            entered.set()
            release.wait(timeout=5.0)

    thread = threading.Thread(target=holder)
    thread.start()
    entered.wait(timeout=5.0)
    release.set()

    with locks.hold(1):
        assert locks.is_busy(1)
    thread.join()


def test_negative_busy_timeout_is_rejected() -> None:
    with pytest.raises(ValueError):
        GameLocks(busy_timeout=-1)


def test_logical_clock_never_repeats_or_goes_backwards() -> None:
    readings = iter([100, 100, 50, 200])
    clock = LogicalClock(source=lambda: next(readings))

    assert [clock.tick() for _ in range(4)] == [100, 101, 102, 200]


def test_concurrent_operation_on_same_game_is_rejected(
    recording_world: StartCaveWorld, recording_runtime: RecordingScriptRuntime
) -> None:
    engine = recording_world.engine
    game = engine.start_game(recording_world.adventure.id).game
    observed: list[Exception] = []

    def behaviour(context: ScriptContext) -> None:
        try:
            engine.take_route(game.id, recording_world.go_north.id)
        except GameBusy as exc:
            observed.append(exc)

    recording_runtime.queue(behaviour)
    engine.execute_script(game.id, recording_world.walk_script.id)

    assert len(observed) == 1
    assert engine.get_game(game.id).location_id == recording_world.start.id


def test_different_games_do_not_block_each_other(
    recording_world: StartCaveWorld, recording_runtime: RecordingScriptRuntime
) -> None:
    engine = recording_world.engine
    first = engine.start_game(recording_world.adventure.id).game
    second = engine.start_game(recording_world.adventure.id).game

    def behaviour(context: ScriptContext) -> None:
        engine.take_route(second.id, recording_world.go_north.id)

    recording_runtime.queue(behaviour)
    engine.execute_script(first.id, recording_world.walk_script.id)

    assert engine.get_game(second.id).location_id == recording_world.cave.id


def test_engine_uses_configured_busy_timeout() -> None:
    engine = AdventureEngine.in_memory(EngineSettings(busy_timeout=0.25))
    assert engine.locks.busy_timeout == 0.25


def test_lock_entries_are_dropped_once_released() -> None:
    locks = GameLocks()

    with locks.hold(1):
        with pytest.raises(GameBusy):
            with locks.hold(1):
                pass
        assert len(locks) == 1

    assert len(locks) == 0
    assert not locks.is_busy(1)


def test_requests_for_unknown_games_leave_no_locks(world: StartCaveWorld) -> None:
    engine = world.engine

    for game_id in range(1000, 1050):
        with pytest.raises(NotFound):
            engine.take_route(game_id, world.go_north.id)
        with pytest.raises(NotFound):
            engine.execute_script(game_id, world.walk_script.id)
        with pytest.raises(NotFound):
            engine.end_game(game_id)
        with pytest.raises(NotFound):
            engine.recover_game(game_id)

    assert len(engine.locks) == 0


def test_ended_games_release_their_lock(world: StartCaveWorld) -> None:
    engine = world.engine
    game = engine.start_game(world.adventure.id).game
    engine.take_route(game.id, world.go_north.id)
    engine.end_game(game.id)

    assert len(engine.locks) == 0
