"""Test configuration for the adventure runtime project."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from collections.abc import Callable, Sequence

import pytest

from adventureruntime import (
    Adventure,
    AdventureEngine,
    EngineSettings,
    Language,
    Location,
    Route,
    Script,
    ScriptContext,
    ScriptRuntime,
    ScriptRuntimeFailure,
    ScriptType,
)


class RecordingScriptRuntime(ScriptRuntime):
    """Deterministic runtime used in tests to avoid embedding an interpreter.

    Each queued behaviour is a callable receiving the script context. When no
    behaviour is queued the script is treated as a no-op.
    """

    def __init__(
        self, behaviours: Sequence[Callable[[ScriptContext], str | None]] = ()
    ) -> None:
        self.sources: list[str] = []
        self._behaviours: list[Callable[[ScriptContext], str | None]] = list(
            behaviours
        )

    def queue(self, behaviour: Callable[[ScriptContext], str | None]) -> None:
        self._behaviours.append(behaviour)

    def queue_failure(self, message: str, *, timed_out: bool = False) -> None:
        def fail(context: ScriptContext) -> None:
            raise ScriptRuntimeFailure(message, timed_out=timed_out)

        self.queue(fail)

    def run(self, source: str, context: ScriptContext) -> str | None:
        self.sources.append(source)
        if not self._behaviours:
            return None
        return self._behaviours.pop(0)(context)


@dataclass
class StartCaveWorld:
    """Identifiers of the two-location world shared by the engine tests."""

    engine: AdventureEngine
    adventure: Adventure
    start: Location
    cave: Location
    go_north: Route
    welcome_script: Script
    walk_script: Script
    dark_script: Script


def lua(body: str) -> str:
    return f"function run()\n{body}\nend"


def build_start_cave_world(engine: AdventureEngine) -> StartCaveWorld:
    data = engine.data
    adventure = data.adventures.add(Adventure(name="Caves"))
    welcome = data.scripts.add(
        Script(
            adventure_id=adventure.id,
            name="welcome",
            content=lua("game:emit('Welcome')"),
        )
    )
    walk = data.scripts.add(
        Script(
            adventure_id=adventure.id,
            name="walk",
            content=lua("game:emit('You walk north')"),
        )
    )
    dark = data.scripts.add(
        Script(
            adventure_id=adventure.id,
            name="dark",
            content=lua("game:emit('It is dark')"),
        )
    )
    start = data.locations.add(
        Location(
            adventure_id=adventure.id,
            name="Start",
            initial=True,
            enter_script_id=welcome.id,
        )
    )
    cave = data.locations.add(
        Location(
            adventure_id=adventure.id,
            name="Cave",
            final=True,
            enter_script_id=dark.id,
        )
    )
    go_north = data.routes.add(
        Route(
            location_id=start.id,
            destination_location_id=cave.id,
            name="go-north",
            route_taken_script_id=walk.id,
        )
    )
    return StartCaveWorld(
        engine=engine,
        adventure=adventure,
        start=start,
        cave=cave,
        go_north=go_north,
        welcome_script=welcome,
        walk_script=walk,
        dark_script=dark,
    )


@pytest.fixture()
def settings() -> EngineSettings:
    return EngineSettings(max_instructions=100_000)


@pytest.fixture()
def engine(settings: EngineSettings) -> AdventureEngine:
    """Return an in-memory engine with English and Spanish registered."""

    return AdventureEngine.in_memory(
        settings,
        languages=(
            Language(name="English", code="en"),
            Language(name="Spanish", code="es"),
        ),
    )


@pytest.fixture()
def world(engine: AdventureEngine) -> StartCaveWorld:
    return build_start_cave_world(engine)


@pytest.fixture()
def recording_runtime() -> RecordingScriptRuntime:
    return RecordingScriptRuntime()


@pytest.fixture()
def recording_engine(recording_runtime: RecordingScriptRuntime) -> AdventureEngine:
    """Return an in-memory engine whose scripts run through ``recording_runtime``."""

    return AdventureEngine.in_memory(
        languages=(Language(name="English", code="en"),),
        runtimes={ScriptType.LUA: recording_runtime},
    )


@pytest.fixture()
def recording_world(recording_engine: AdventureEngine) -> StartCaveWorld:
    return build_start_cave_world(recording_engine)
