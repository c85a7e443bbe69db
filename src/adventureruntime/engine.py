"""Facade wiring the runtime components around a set of data services."""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Sequence

from .authoring import AdventureAuthoring
from .concurrency import GameLocks, LogicalClock
from .content_log import ContentLog, Transcript
from .copy_resolver import CopyResolver
from .errors import NotFound
from .lifecycle import GameLifecycle
from .models import Content, Game, Language, Route, Script, ScriptType
from .navigation import Navigator
from .persistence import DataServices, FileGameStore
from .script_executor import ScriptExecutor, ScriptRun
from .script_includes import IncludeResolution, ScriptIncludeResolver
from .scripting import LuaScriptRuntime, ScriptRuntime
from .settings import EngineSettings

logger = logging.getLogger(__name__)


class AdventureEngine:
    """Run games of stored adventures.

    Every collaborator is built from the supplied data services and settings,
    so several engines can live in one process without sharing state. Games
    are serialised individually; operations on different games never wait on
    each other.
    """

    def __init__(
        self,
        data: DataServices,
        settings: EngineSettings | None = None,
        *,
        runtimes: Mapping[ScriptType, ScriptRuntime] | None = None,
        clock: LogicalClock | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.settings.apply_log_level()
        self.data = data

        if runtimes is None:
            runtimes = {
                ScriptType.LUA: LuaScriptRuntime(
                    max_instructions=self.settings.max_instructions
                )
            }

        self.locks = GameLocks(busy_timeout=self.settings.busy_timeout)
        self.clock = clock or LogicalClock()
        self.copy_resolver = CopyResolver(
            data.copy,
            default_language=self.settings.default_language,
            empty_copy_text=self.settings.empty_copy_text,
        )
        self.include_resolver = ScriptIncludeResolver(data.scripts, data.includes)
        self.content_log = ContentLog(data.contents, data.games, self.copy_resolver)
        self.executor = ScriptExecutor(
            scripts=data.scripts,
            games=data.games,
            include_resolver=self.include_resolver,
            content_log=self.content_log,
            copy_resolver=self.copy_resolver,
            runtimes=runtimes,
        )
        self.navigator = Navigator(
            adventures=data.adventures,
            games=data.games,
            locations=data.locations,
            routes=data.routes,
            executor=self.executor,
            content_log=self.content_log,
            locks=self.locks,
            clock=self.clock,
        )
        self.lifecycle = GameLifecycle(
            adventures=data.adventures,
            locations=data.locations,
            games=data.games,
            languages=data.languages,
            executor=self.executor,
            content_log=self.content_log,
            locks=self.locks,
            clock=self.clock,
            default_language=self.settings.default_language,
        )
        self.authoring = AdventureAuthoring(
            data,
            locks=self.locks,
            empty_copy_text=self.settings.empty_copy_text,
        )
        logger.debug(
            "Engine ready with script runtimes: %s",
            ", ".join(sorted(script_type.value for script_type in runtimes)),
        )

    @classmethod
    def in_memory(
        cls,
        settings: EngineSettings | None = None,
        *,
        languages: Sequence[Language] | None = None,
        runtimes: Mapping[ScriptType, ScriptRuntime] | None = None,
    ) -> "AdventureEngine":
        """Return an engine backed by in-memory stores.

        Games are written to ``settings.game_store_dir`` when it is set. The
        placeholder copy is seeded for every supplied language. Without
        languages, only the default language is registered.
        """

        resolved = settings or EngineSettings()
        if languages is None:
            code = resolved.default_language
            languages = (Language(name=code, code=code),)
        games = None
        if resolved.game_store_dir is not None:
            games = FileGameStore(resolved.game_store_dir)
        data = DataServices.in_memory(languages=languages, games=games)
        engine = cls(data, resolved, runtimes=runtimes)
        engine.authoring.seed_empty_copy()
        return engine

    def start_game(self, adventure_id: int, language: str | None = None) -> Transcript:
        return self.lifecycle.start_game(adventure_id, language)

    def end_game(self, game_id: int) -> Transcript:
        return self.lifecycle.end_game(game_id)

    def recover_game(self, game_id: int) -> Game:
        return self.lifecycle.recover_game(game_id)

    def take_route(self, game_id: int, route_id: int) -> Transcript:
        return self.navigator.take_route(game_id, route_id)

    def available_routes(self, game_id: int) -> List[Route]:
        return self.navigator.available_routes(game_id)

    def execute_script(self, game_id: int, script_id: int) -> ScriptRun:
        """Run ``script_id`` against the game outside of any transition."""

        with self.locks.hold(game_id):
            return self.executor.execute(
                self.get_game(game_id), self.executor.require_script(script_id)
            )

    def get_game(self, game_id: int) -> Game:
        game = self.data.games.get(game_id)
        if game is None:
            raise NotFound("game", game_id)
        return game

    def contents(
        self, game_id: int, *, start: int = 0, limit: int | None = None
    ) -> List[Content]:
        return self.content_log.entries(game_id, start=start, limit=limit)

    def text_for_position(self, game_id: int, position: int) -> str:
        return self.content_log.text_for_position(game_id, position)

    def transcript(self, game_id: int) -> List[str]:
        return self.content_log.transcript(game_id)

    def resolve_copy(self, key: str, language: str | None = None) -> str:
        return self.copy_resolver.resolve(key, language)

    def resolve_copies(
        self, keys: Sequence[str], language: str | None = None
    ) -> Dict[str, str]:
        return self.copy_resolver.resolve_for_key_set(keys, language)

    def flatten_includes(self, script_id: int) -> List[Script]:
        return self.include_resolver.flatten(script_id)

    def resolve_includes(self, script_id: int) -> IncludeResolution:
        return self.include_resolver.resolve(script_id)


__all__ = ["AdventureEngine"]
