"""Entities describing adventures, live games and their localized copy."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping

EMPTY_COPY_KEY = "00000000-0000-0000-0000-000000000000"
"""Reserved key of the per-language placeholder copy."""

StateValue = str | int | float | bool


def _validate_text(value: str, *, field_name: str) -> str:
    """Strip and validate string values used for names and codes."""

    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string, got {type(value)!r}")

    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{field_name} must be a non-empty string")
    return stripped


def _validate_optional_key(value: str | None, *, field_name: str) -> str | None:
    if value is None:
        return None
    return _validate_text(value, field_name=field_name)


class ScriptType(str, Enum):
    """Supported script dialects."""

    LUA = "lua"


@dataclass
class Adventure:
    """A complete text-adventure definition."""

    name: str
    initial_copy_key: str | None = None
    description_copy_key: str | None = None
    initialization_script_id: int | None = None
    termination_script_id: int | None = None
    id: int | None = None

    def __post_init__(self) -> None:
        self.name = _validate_text(self.name, field_name="adventure name")
        self.initial_copy_key = _validate_optional_key(
            self.initial_copy_key, field_name="initial_copy_key"
        )
        self.description_copy_key = _validate_optional_key(
            self.description_copy_key, field_name="description_copy_key"
        )


@dataclass
class Location:
    """A place within an adventure that games can occupy."""

    adventure_id: int
    name: str
    initial: bool = False
    final: bool = False
    copy_key: str | None = None
    enter_script_id: int | None = None
    exit_script_id: int | None = None
    id: int | None = None

    def __post_init__(self) -> None:
        self.name = _validate_text(self.name, field_name="location name")
        self.copy_key = _validate_optional_key(self.copy_key, field_name="copy_key")


@dataclass
class Route:
    """A directed connection between two locations."""

    location_id: int
    destination_location_id: int
    name: str = "route"
    copy_key: str | None = None
    route_taken_copy_key: str | None = None
    route_taken_script_id: int | None = None
    id: int | None = None

    def __post_init__(self) -> None:
        self.name = _validate_text(self.name, field_name="route name")
        self.copy_key = _validate_optional_key(self.copy_key, field_name="copy_key")
        self.route_taken_copy_key = _validate_optional_key(
            self.route_taken_copy_key, field_name="route_taken_copy_key"
        )


@dataclass
class Script:
    """Author-supplied source code executed at adventure triggers."""

    adventure_id: int
    name: str
    content: str = ""
    type: ScriptType = ScriptType.LUA
    id: int | None = None

    def __post_init__(self) -> None:
        self.name = _validate_text(self.name, field_name="script name")
        if not isinstance(self.content, str):
            raise TypeError(
                f"script content must be a string, got {type(self.content)!r}"
            )
        self.type = ScriptType(self.type)


@dataclass(frozen=True)
class ScriptInclude:
    """Edge stating that ``included_in_id`` is prefixed by ``includes_id``."""

    included_in_id: int
    includes_id: int
    order: int = 0


@dataclass
class Game:
    """One player's live session against an adventure."""

    adventure_id: int
    location_id: int
    language: str
    location_update_timestamp: int = 0
    state: Dict[str, StateValue] = field(default_factory=dict)
    completed: bool = False
    needs_recovery: bool = False
    id: int | None = None

    def __post_init__(self) -> None:
        self.language = _validate_text(self.language, field_name="language").lower()

    def serialize_state(self) -> str:
        """Return the state store as a compact JSON document."""

        return json.dumps(self.state, separators=(",", ":"))

    def load_state(self, payload: str | None) -> None:
        """Replace the state store with the decoded ``payload``."""

        if not payload:
            self.state = {}
            return
        decoded = json.loads(payload)
        if not isinstance(decoded, Mapping):
            raise ValueError("game state must decode to a JSON object")
        self.state = dict(decoded)


@dataclass(frozen=True)
class Content:
    """A single entry of a game's content log.

    Entries either reference localized copy through ``copy_key`` or carry the
    literal ``text`` a script emitted. Exactly one of the two is set.
    """

    game_id: int
    position: int
    copy_key: str | None = None
    text: str | None = None
    id: int | None = None

    def __post_init__(self) -> None:
        if self.position < 0:
            raise ValueError("content position must be zero or positive")
        if (self.copy_key is None) == (self.text is None):
            raise ValueError("content requires exactly one of copy_key or text")


@dataclass
class Copy:
    """Localized narrative text addressed by an opaque key."""

    key: str
    language: str
    text: str = ""
    name: str = ""
    adventure_id: int | None = None
    script_id: int | None = None
    id: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.key, str):
            raise TypeError(f"copy key must be a string, got {type(self.key)!r}")
        self.key = self.key.strip() or EMPTY_COPY_KEY
        self.language = _validate_text(self.language, field_name="language").lower()
        if not isinstance(self.text, str):
            raise TypeError(f"copy text must be a string, got {type(self.text)!r}")


@dataclass
class Language:
    """A language copy can be written in."""

    name: str
    code: str
    id: int | None = None

    def __post_init__(self) -> None:
        self.name = _validate_text(self.name, field_name="language name")
        self.code = _validate_text(self.code, field_name="language code").lower()


__all__ = [
    "EMPTY_COPY_KEY",
    "StateValue",
    "ScriptType",
    "Adventure",
    "Location",
    "Route",
    "Script",
    "ScriptInclude",
    "Game",
    "Content",
    "Copy",
    "Language",
]
