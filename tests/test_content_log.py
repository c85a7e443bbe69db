from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from adventureruntime import EMPTY_COPY_KEY, Copy, Game, NotFound

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from tests.conftest import StartCaveWorld


@pytest.fixture
def game(world: StartCaveWorld) -> Game:
    return world.engine.start_game(world.adventure.id).game


def test_positions_start_at_zero_and_have_no_gaps(
    world: StartCaveWorld, game: Game
) -> None:
    log = world.engine.content_log
    log.append(game, text="one")
    log.append(game, copy_key="intro")
    log.append(game, text="three")

    positions = [entry.position for entry in log.entries(game.id)]
    assert positions == [0, 1, 2, 3]
    assert log.next_position(game.id) == 4


def test_text_for_position_resolves_copy_in_game_language(
    world: StartCaveWorld,
) -> None:
    engine = world.engine
    engine.data.copy.add(Copy(key="intro", language="en", text="Hello there"))
    engine.data.copy.add(Copy(key="intro", language="es", text="Hola"))
    english = engine.start_game(world.adventure.id, "en").game
    spanish = engine.start_game(world.adventure.id, "es").game

    entry = engine.content_log.append(english, copy_key="intro")
    engine.content_log.append(spanish, copy_key="intro")

    assert engine.text_for_position(english.id, entry.position) == "Hello there"
    assert engine.text_for_position(spanish.id, entry.position) == "Hola"
    assert engine.text_for_position(english.id, 0) == "Welcome"


def test_text_for_position_reflects_copy_edits(
    world: StartCaveWorld, game: Game
) -> None:
    engine = world.engine
    engine.data.copy.add(Copy(key="sign", language="en", text="Keep out"))
    entry = engine.content_log.append(game, copy_key="sign")

    engine.authoring.update_copy("sign", "en", "Welcome in")
    assert engine.text_for_position(game.id, entry.position) == "Welcome in"


def test_unknown_copy_key_resolves_to_placeholder(
    world: StartCaveWorld, game: Game
) -> None:
    engine = world.engine
    entry = engine.content_log.append(game, copy_key="nowhere")
    placeholder = engine.data.copy.get(EMPTY_COPY_KEY, "en")

    assert placeholder is not None
    assert engine.text_for_position(game.id, entry.position) == placeholder.text


def test_missing_position_or_game_raises_not_found(
    world: StartCaveWorld, game: Game
) -> None:
    with pytest.raises(NotFound) as excinfo:
        world.engine.text_for_position(game.id, 42)
    assert excinfo.value.kind == "content"

    with pytest.raises(NotFound) as excinfo:
        world.engine.text_for_position(999, 0)
    assert excinfo.value.kind == "game"


def test_entries_can_be_paged(world: StartCaveWorld, game: Game) -> None:
    log = world.engine.content_log
    for index in range(5):
        log.append(game, text=f"line {index}")

    page = log.entries(game.id, start=2, limit=2)
    assert [entry.text for entry in page] == ["line 1", "line 2"]
    assert [entry.position for entry in page] == [2, 3]


def test_transcript_lists_every_text_in_order(
    world: StartCaveWorld, game: Game
) -> None:
    world.engine.take_route(game.id, world.go_north.id)
    assert world.engine.transcript(game.id) == [
        "Welcome",
        "You walk north",
        "It is dark",
    ]
