"""Storage collaborators consumed by the adventure runtime engine.

The engine never talks to a database directly. Every entity is reached through
one of the store interfaces below, which keeps the persistence technology
pluggable. In-memory implementations are provided for tests and embedding, and
:class:`FileGameStore` persists live games as JSON documents on disk.
"""

from __future__ import annotations

import itertools
import json
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

from .models import (
    Adventure,
    Content,
    Copy,
    Game,
    Language,
    Location,
    Route,
    Script,
    ScriptInclude,
)


class _IdSequence:
    """Thread-safe generator of increasing integer identities."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            return next(self._counter)

    def advance_past(self, value: int) -> None:
        with self._lock:
            current = next(self._counter)
            self._counter = itertools.count(max(current, value + 1))


class AdventureStore(ABC):
    """Persistence interface for adventures."""

    @abstractmethod
    def get(self, adventure_id: int) -> Adventure | None:
        """Return the adventure or ``None`` when it does not exist."""

    @abstractmethod
    def list(self) -> List[Adventure]:
        """Return every stored adventure."""

    @abstractmethod
    def add(self, adventure: Adventure) -> Adventure:
        """Store ``adventure`` and return it with its identity assigned."""

    @abstractmethod
    def remove(self, adventure_id: int) -> None:
        """Remove the adventure if it exists."""

    def save(self) -> None:
        """Commit pending changes. The default implementation is a no-op."""


class LocationStore(ABC):
    """Persistence interface for locations."""

    @abstractmethod
    def get(self, location_id: int) -> Location | None:
        """Return the location or ``None`` when it does not exist."""

    @abstractmethod
    def for_adventure(self, adventure_id: int) -> List[Location]:
        """Return the locations owned by ``adventure_id``."""

    @abstractmethod
    def add(self, location: Location) -> Location:
        """Store ``location`` and return it with its identity assigned."""

    @abstractmethod
    def remove(self, location_id: int) -> None:
        """Remove the location if it exists."""

    def save(self) -> None:
        """Commit pending changes. The default implementation is a no-op."""


class RouteStore(ABC):
    """Persistence interface for routes."""

    @abstractmethod
    def get(self, route_id: int) -> Route | None:
        """Return the route or ``None`` when it does not exist."""

    @abstractmethod
    def for_location(self, location_id: int) -> List[Route]:
        """Return the routes leaving ``location_id``."""

    @abstractmethod
    def into_location(self, location_id: int) -> List[Route]:
        """Return the routes arriving at ``location_id``."""

    @abstractmethod
    def add(self, route: Route) -> Route:
        """Store ``route`` and return it with its identity assigned."""

    @abstractmethod
    def remove(self, route_id: int) -> None:
        """Remove the route if it exists."""

    def save(self) -> None:
        """Commit pending changes. The default implementation is a no-op."""


class ScriptStore(ABC):
    """Persistence interface for scripts."""

    @abstractmethod
    def get(self, script_id: int) -> Script | None:
        """Return the script or ``None`` when it does not exist."""

    @abstractmethod
    def for_adventure(self, adventure_id: int) -> List[Script]:
        """Return the scripts owned by ``adventure_id``."""

    @abstractmethod
    def add(self, script: Script) -> Script:
        """Store ``script`` and return it with its identity assigned."""

    @abstractmethod
    def remove(self, script_id: int) -> None:
        """Remove the script if it exists."""

    def save(self) -> None:
        """Commit pending changes. The default implementation is a no-op."""


class ScriptIncludeStore(ABC):
    """Persistence interface for script include edges."""

    @abstractmethod
    def includes_of(self, script_id: int) -> List[ScriptInclude]:
        """Return the edges of scripts included by ``script_id`` sorted by order."""

    @abstractmethod
    def included_in(self, script_id: int) -> List[ScriptInclude]:
        """Return the edges of scripts that include ``script_id``."""

    @abstractmethod
    def add(self, include: ScriptInclude) -> ScriptInclude:
        """Store the edge, replacing an existing edge between the same scripts."""

    @abstractmethod
    def remove(self, included_in_id: int, includes_id: int) -> None:
        """Remove a single edge if it exists."""

    @abstractmethod
    def remove_for_script(self, script_id: int) -> None:
        """Remove every edge touching ``script_id`` in either direction."""

    def save(self) -> None:
        """Commit pending changes. The default implementation is a no-op."""


class GameStore(ABC):
    """Persistence interface for live games."""

    @abstractmethod
    def get(self, game_id: int) -> Game | None:
        """Return the game or ``None`` when it does not exist."""

    @abstractmethod
    def for_adventure(self, adventure_id: int) -> List[Game]:
        """Return the games played against ``adventure_id``."""

    @abstractmethod
    def for_location(self, location_id: int) -> List[Game]:
        """Return the games currently at ``location_id``."""

    @abstractmethod
    def add(self, game: Game) -> Game:
        """Store ``game`` and return it with its identity assigned."""

    @abstractmethod
    def update(self, game: Game) -> None:
        """Persist the current field values of an existing game.

        Raises:
            KeyError: If the game has not been added to the store.
        """

    @abstractmethod
    def remove(self, game_id: int) -> None:
        """Remove the game if it exists."""

    def save(self) -> None:
        """Commit pending changes. The default implementation is a no-op."""


class ContentStore(ABC):
    """Persistence interface for content log entries."""

    @abstractmethod
    def for_game(
        self, game_id: int, *, start: int = 0, limit: int | None = None
    ) -> List[Content]:
        """Return entries of ``game_id`` with ``position >= start`` in order."""

    @abstractmethod
    def get(self, game_id: int, position: int) -> Content | None:
        """Return the entry logged at ``position`` or ``None``."""

    @abstractmethod
    def last_position(self, game_id: int) -> int | None:
        """Return the highest position logged for the game, if any."""

    @abstractmethod
    def add(self, content: Content) -> Content:
        """Store ``content`` and return it with its identity assigned."""

    @abstractmethod
    def remove_for_game(self, game_id: int) -> None:
        """Remove every entry owned by ``game_id``."""

    def save(self) -> None:
        """Commit pending changes. The default implementation is a no-op."""


class CopyStore(ABC):
    """Persistence interface for localized copy."""

    @abstractmethod
    def get(self, key: str, language: str) -> Copy | None:
        """Return the copy for ``(key, language)`` or ``None``."""

    @abstractmethod
    def for_key(self, key: str) -> List[Copy]:
        """Return the copy registered for ``key`` in every language."""

    @abstractmethod
    def for_language(self, language: str) -> List[Copy]:
        """Return all copy written in ``language``."""

    @abstractmethod
    def for_script(self, script_id: int) -> List[Copy]:
        """Return the copy bound to ``script_id``."""

    @abstractmethod
    def add(self, copy: Copy) -> Copy:
        """Store ``copy`` and return it with its identity assigned."""

    @abstractmethod
    def remove(self, copy_id: int) -> None:
        """Remove the copy if it exists."""

    def save(self) -> None:
        """Commit pending changes. The default implementation is a no-op."""


class LanguageStore(ABC):
    """Persistence interface for languages."""

    @abstractmethod
    def get_by_code(self, code: str) -> Language | None:
        """Return the language identified by ``code`` or ``None``."""

    @abstractmethod
    def list(self) -> List[Language]:
        """Return every known language."""

    @abstractmethod
    def add(self, language: Language) -> Language:
        """Store ``language`` and return it with its identity assigned."""

    def save(self) -> None:
        """Commit pending changes. The default implementation is a no-op."""


class InMemoryAdventureStore(AdventureStore):
    """Keep adventures in local process memory."""

    def __init__(self) -> None:
        self._adventures: Dict[int, Adventure] = {}
        self._ids = _IdSequence()

    def get(self, adventure_id: int) -> Adventure | None:
        return self._adventures.get(adventure_id)

    def list(self) -> List[Adventure]:
        return [self._adventures[key] for key in sorted(self._adventures)]

    def add(self, adventure: Adventure) -> Adventure:
        adventure.id = _assign_id(adventure.id, self._ids)
        self._adventures[adventure.id] = adventure
        return adventure

    def remove(self, adventure_id: int) -> None:
        self._adventures.pop(adventure_id, None)


class InMemoryLocationStore(LocationStore):
    """Keep locations in local process memory."""

    def __init__(self) -> None:
        self._locations: Dict[int, Location] = {}
        self._ids = _IdSequence()

    def get(self, location_id: int) -> Location | None:
        return self._locations.get(location_id)

    def for_adventure(self, adventure_id: int) -> List[Location]:
        return [
            location
            for _, location in sorted(self._locations.items())
            if location.adventure_id == adventure_id
        ]

    def add(self, location: Location) -> Location:
        location.id = _assign_id(location.id, self._ids)
        self._locations[location.id] = location
        return location

    def remove(self, location_id: int) -> None:
        self._locations.pop(location_id, None)


class InMemoryRouteStore(RouteStore):
    """Keep routes in local process memory."""

    def __init__(self) -> None:
        self._routes: Dict[int, Route] = {}
        self._ids = _IdSequence()

    def get(self, route_id: int) -> Route | None:
        return self._routes.get(route_id)

    def for_location(self, location_id: int) -> List[Route]:
        return [
            route
            for _, route in sorted(self._routes.items())
            if route.location_id == location_id
        ]

    def into_location(self, location_id: int) -> List[Route]:
        return [
            route
            for _, route in sorted(self._routes.items())
            if route.destination_location_id == location_id
        ]

    def add(self, route: Route) -> Route:
        route.id = _assign_id(route.id, self._ids)
        self._routes[route.id] = route
        return route

    def remove(self, route_id: int) -> None:
        self._routes.pop(route_id, None)


class InMemoryScriptStore(ScriptStore):
    """Keep scripts in local process memory."""

    def __init__(self) -> None:
        self._scripts: Dict[int, Script] = {}
        self._ids = _IdSequence()

    def get(self, script_id: int) -> Script | None:
        return self._scripts.get(script_id)

    def for_adventure(self, adventure_id: int) -> List[Script]:
        return [
            script
            for _, script in sorted(self._scripts.items())
            if script.adventure_id == adventure_id
        ]

    def add(self, script: Script) -> Script:
        script.id = _assign_id(script.id, self._ids)
        self._scripts[script.id] = script
        return script

    def remove(self, script_id: int) -> None:
        self._scripts.pop(script_id, None)


class InMemoryScriptIncludeStore(ScriptIncludeStore):
    """Keep include edges in local process memory."""

    def __init__(self) -> None:
        self._edges: Dict[tuple[int, int], ScriptInclude] = {}

    def includes_of(self, script_id: int) -> List[ScriptInclude]:
        edges = [
            edge for edge in self._edges.values() if edge.included_in_id == script_id
        ]
        return sorted(edges, key=lambda edge: (edge.order, edge.includes_id))

    def included_in(self, script_id: int) -> List[ScriptInclude]:
        edges = [
            edge for edge in self._edges.values() if edge.includes_id == script_id
        ]
        return sorted(edges, key=lambda edge: edge.included_in_id)

    def add(self, include: ScriptInclude) -> ScriptInclude:
        self._edges[(include.included_in_id, include.includes_id)] = include
        return include

    def remove(self, included_in_id: int, includes_id: int) -> None:
        self._edges.pop((included_in_id, includes_id), None)

    def remove_for_script(self, script_id: int) -> None:
        for edge_key in [key for key in self._edges if script_id in key]:
            del self._edges[edge_key]


class InMemoryGameStore(GameStore):
    """Keep live games in local process memory."""

    def __init__(self) -> None:
        self._games: Dict[int, Game] = {}
        self._ids = _IdSequence()

    def get(self, game_id: int) -> Game | None:
        return self._games.get(game_id)

    def for_adventure(self, adventure_id: int) -> List[Game]:
        return [
            game
            for _, game in sorted(self._games.items())
            if game.adventure_id == adventure_id
        ]

    def for_location(self, location_id: int) -> List[Game]:
        return [
            game
            for _, game in sorted(self._games.items())
            if game.location_id == location_id
        ]

    def add(self, game: Game) -> Game:
        game.id = _assign_id(game.id, self._ids)
        self._games[game.id] = game
        return game

    def update(self, game: Game) -> None:
        if game.id not in self._games:
            raise KeyError(f"Game '{game.id}' does not exist")
        self._games[game.id] = game

    def remove(self, game_id: int) -> None:
        self._games.pop(game_id, None)


class InMemoryContentStore(ContentStore):
    """Keep content log entries in local process memory."""

    def __init__(self) -> None:
        self._entries: Dict[int, List[Content]] = {}
        self._ids = _IdSequence()
        self._lock = threading.Lock()

    def for_game(
        self, game_id: int, *, start: int = 0, limit: int | None = None
    ) -> List[Content]:
        if limit is not None and limit < 0:
            raise ValueError("limit must be non-negative when provided")

        with self._lock:
            entries = [
                entry
                for entry in self._entries.get(game_id, ())
                if entry.position >= start
            ]
        if limit is None:
            return entries
        return entries[:limit]

    def get(self, game_id: int, position: int) -> Content | None:
        with self._lock:
            for entry in self._entries.get(game_id, ()):
                if entry.position == position:
                    return entry
        return None

    def last_position(self, game_id: int) -> int | None:
        with self._lock:
            entries = self._entries.get(game_id)
            if not entries:
                return None
            return entries[-1].position

    def add(self, content: Content) -> Content:
        stored = replace(content, id=_assign_id(content.id, self._ids))
        with self._lock:
            entries = self._entries.setdefault(stored.game_id, [])
            if entries and entries[-1].position >= stored.position:
                raise ValueError(
                    f"content position {stored.position} does not follow "
                    f"{entries[-1].position} for game {stored.game_id}"
                )
            entries.append(stored)
        return stored

    def remove_for_game(self, game_id: int) -> None:
        with self._lock:
            self._entries.pop(game_id, None)


class InMemoryCopyStore(CopyStore):
    """Keep localized copy in local process memory."""

    def __init__(self) -> None:
        self._copy: Dict[int, Copy] = {}
        self._ids = _IdSequence()

    def get(self, key: str, language: str) -> Copy | None:
        code = language.lower()
        for _, copy in sorted(self._copy.items()):
            if copy.key == key and copy.language == code:
                return copy
        return None

    def for_key(self, key: str) -> List[Copy]:
        return [copy for _, copy in sorted(self._copy.items()) if copy.key == key]

    def for_language(self, language: str) -> List[Copy]:
        code = language.lower()
        return [
            copy for _, copy in sorted(self._copy.items()) if copy.language == code
        ]

    def for_script(self, script_id: int) -> List[Copy]:
        return [
            copy
            for _, copy in sorted(self._copy.items())
            if copy.script_id == script_id
        ]

    def add(self, copy: Copy) -> Copy:
        copy.id = _assign_id(copy.id, self._ids)
        self._copy[copy.id] = copy
        return copy

    def remove(self, copy_id: int) -> None:
        self._copy.pop(copy_id, None)


class InMemoryLanguageStore(LanguageStore):
    """Keep languages in local process memory."""

    def __init__(self, languages: Iterable[Language] = ()) -> None:
        self._languages: Dict[str, Language] = {}
        self._ids = _IdSequence()
        for language in languages:
            self.add(language)

    def get_by_code(self, code: str) -> Language | None:
        return self._languages.get(code.strip().lower())

    def list(self) -> List[Language]:
        return sorted(self._languages.values(), key=lambda language: language.id or 0)

    def add(self, language: Language) -> Language:
        if language.code in self._languages:
            raise ValueError(f"language code '{language.code}' is already registered")
        language.id = _assign_id(language.id, self._ids)
        self._languages[language.code] = language
        return language


class FileGameStore(GameStore):
    """Persist live games as JSON files on disk.

    Each game is written to ``<storage_dir>/<game_id>.json``. Loaded games are
    detached copies, so callers must :meth:`update` a game after mutating it.
    """

    def __init__(self, storage_dir: Path) -> None:
        self.storage_dir = storage_dir
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self._ids = _IdSequence()
        existing = [int(path.stem) for path in self._game_files()]
        if existing:
            self._ids.advance_past(max(existing))

    def get(self, game_id: int) -> Game | None:
        game_file = self._game_path(game_id)
        if not game_file.exists():
            return None
        payload = json.loads(game_file.read_text(encoding="utf-8"))
        return _game_from_payload(payload)

    def for_adventure(self, adventure_id: int) -> List[Game]:
        return [game for game in self._load_all() if game.adventure_id == adventure_id]

    def for_location(self, location_id: int) -> List[Game]:
        return [game for game in self._load_all() if game.location_id == location_id]

    def add(self, game: Game) -> Game:
        game.id = _assign_id(game.id, self._ids)
        self._write(game)
        return game

    def update(self, game: Game) -> None:
        if game.id is None or not self._game_path(game.id).exists():
            raise KeyError(f"Game '{game.id}' does not exist")
        self._write(game)

    def remove(self, game_id: int) -> None:
        game_file = self._game_path(game_id)
        if game_file.exists():
            game_file.unlink()

    def _load_all(self) -> List[Game]:
        games: List[Game] = []
        for game_file in sorted(self._game_files(), key=lambda path: int(path.stem)):
            payload = json.loads(game_file.read_text(encoding="utf-8"))
            games.append(_game_from_payload(payload))
        return games

    def _game_files(self) -> List[Path]:
        return [
            path
            for path in self.storage_dir.glob("*.json")
            if path.is_file() and path.stem.isdigit()
        ]

    def _write(self, game: Game) -> None:
        self._game_path(game.id).write_text(
            json.dumps(_game_to_payload(game), indent=2), encoding="utf-8"
        )

    def _game_path(self, game_id: int | None) -> Path:
        if not isinstance(game_id, int):
            raise TypeError("game_id must be an integer")
        return self.storage_dir / f"{game_id}.json"


@dataclass
class DataServices:
    """Bundle of every store the engine depends on."""

    adventures: AdventureStore
    locations: LocationStore
    routes: RouteStore
    scripts: ScriptStore
    includes: ScriptIncludeStore
    games: GameStore
    contents: ContentStore
    copy: CopyStore
    languages: LanguageStore

    @classmethod
    def in_memory(
        cls,
        *,
        languages: Sequence[Language] = (),
        games: GameStore | None = None,
    ) -> "DataServices":
        """Return a bundle backed entirely by in-memory stores."""

        return cls(
            adventures=InMemoryAdventureStore(),
            locations=InMemoryLocationStore(),
            routes=InMemoryRouteStore(),
            scripts=InMemoryScriptStore(),
            includes=InMemoryScriptIncludeStore(),
            games=games if games is not None else InMemoryGameStore(),
            contents=InMemoryContentStore(),
            copy=InMemoryCopyStore(),
            languages=InMemoryLanguageStore(languages),
        )

    def save_all(self) -> None:
        """Commit every store."""

        for store in (
            self.adventures,
            self.locations,
            self.routes,
            self.scripts,
            self.includes,
            self.games,
            self.contents,
            self.copy,
            self.languages,
        ):
            store.save()


def _assign_id(current: int | None, ids: _IdSequence) -> int:
    if current is None:
        return ids.next()
    if not isinstance(current, int):
        raise TypeError("entity identities must be integers")
    ids.advance_past(current)
    return current


def _game_to_payload(game: Game) -> Dict[str, object]:
    return {
        "id": game.id,
        "adventure_id": game.adventure_id,
        "location_id": game.location_id,
        "language": game.language,
        "location_update_timestamp": game.location_update_timestamp,
        "state": game.serialize_state(),
        "completed": game.completed,
        "needs_recovery": game.needs_recovery,
    }


def _game_from_payload(payload: object) -> Game:
    if not isinstance(payload, dict):
        raise ValueError("Invalid game payload: expected an object")

    try:
        game = Game(
            id=int(payload["id"]),
            adventure_id=int(payload["adventure_id"]),
            location_id=int(payload["location_id"]),
            language=str(payload["language"]),
            location_update_timestamp=int(payload.get("location_update_timestamp", 0)),
            completed=bool(payload.get("completed", False)),
            needs_recovery=bool(payload.get("needs_recovery", False)),
        )
    except KeyError as exc:
        raise ValueError(f"Invalid game payload: missing {exc.args[0]}") from exc

    state = payload.get("state")
    if state is not None and not isinstance(state, str):
        raise ValueError("Invalid game payload: state must be a JSON string")
    game.load_state(state)
    return game


__all__ = [
    "AdventureStore",
    "LocationStore",
    "RouteStore",
    "ScriptStore",
    "ScriptIncludeStore",
    "GameStore",
    "ContentStore",
    "CopyStore",
    "LanguageStore",
    "InMemoryAdventureStore",
    "InMemoryLocationStore",
    "InMemoryRouteStore",
    "InMemoryScriptStore",
    "InMemoryScriptIncludeStore",
    "InMemoryGameStore",
    "InMemoryContentStore",
    "InMemoryCopyStore",
    "InMemoryLanguageStore",
    "FileGameStore",
    "DataServices",
]
