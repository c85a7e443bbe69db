import json

import pytest

from adventureruntime import (
    EMPTY_COPY_KEY,
    Adventure,
    Content,
    Copy,
    Game,
    Language,
    Script,
    ScriptType,
)


def test_adventure_name_is_stripped_and_required() -> None:
    adventure = Adventure(name="  Caves  ")
    assert adventure.name == "Caves"

    with pytest.raises(ValueError):
        Adventure(name="   ")
    with pytest.raises(TypeError):
        Adventure(name=42)  # type: ignore[arg-type]


def test_blank_copy_key_becomes_placeholder_key() -> None:
    copy = Copy(key="  ", language="EN", text="hello")
    assert copy.key == EMPTY_COPY_KEY
    assert copy.language == "en"


def test_script_type_accepts_string_values() -> None:
    script = Script(adventure_id=1, name="intro", type="lua")  # type: ignore[arg-type]
    assert script.type is ScriptType.LUA

    with pytest.raises(ValueError):
        Script(adventure_id=1, name="intro", type="python")  # type: ignore[arg-type]


def test_game_state_round_trips_through_json() -> None:
    game = Game(adventure_id=1, location_id=2, language="ES")
    game.state.update({"torch": True, "coins": 3, "name": "Ada"})

    payload = game.serialize_state()
    assert json.loads(payload) == {"torch": True, "coins": 3, "name": "Ada"}
    assert " " not in payload

    restored = Game(adventure_id=1, location_id=2, language="es")
    restored.load_state(payload)
    assert restored.state == game.state
    assert game.language == "es"


def test_game_load_state_rejects_non_objects() -> None:
    game = Game(adventure_id=1, location_id=2, language="en")
    with pytest.raises(ValueError):
        game.load_state("[1, 2]")

    game.state["stale"] = 1
    game.load_state(None)
    assert game.state == {}


def test_content_requires_exactly_one_source() -> None:
    Content(game_id=1, position=0, text="Welcome")
    Content(game_id=1, position=1, copy_key="intro")

    with pytest.raises(ValueError):
        Content(game_id=1, position=0)
    with pytest.raises(ValueError):
        Content(game_id=1, position=0, text="a", copy_key="b")
    with pytest.raises(ValueError):
        Content(game_id=1, position=-1, text="a")


def test_language_code_is_lowercased() -> None:
    assert Language(name="English", code=" EN ").code == "en"
