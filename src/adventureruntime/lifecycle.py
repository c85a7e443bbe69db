"""Starting, ending and recovering games."""

from __future__ import annotations

import logging
from typing import List

from .concurrency import GameLocks, LogicalClock
from .content_log import ContentLog, Transcript
from .errors import AmbiguousInitialLocation, NoInitialLocation, NotFound
from .models import Adventure, Content, Game, Location
from .persistence import AdventureStore, GameStore, LanguageStore, LocationStore
from .script_executor import ScriptExecutor, ScriptRun

logger = logging.getLogger(__name__)


class GameLifecycle:
    """Create games at an adventure's initial location and tear them down."""

    def __init__(
        self,
        *,
        adventures: AdventureStore,
        locations: LocationStore,
        games: GameStore,
        languages: LanguageStore,
        executor: ScriptExecutor,
        content_log: ContentLog,
        locks: GameLocks,
        clock: LogicalClock,
        default_language: str = "en",
    ) -> None:
        self._adventures = adventures
        self._locations = locations
        self._games = games
        self._languages = languages
        self._executor = executor
        self._log = content_log
        self._locks = locks
        self._clock = clock
        self.default_language = default_language

    def start_game(self, adventure_id: int, language: str | None = None) -> Transcript:
        """Start a game and return it with its opening transcript.

        The opening runs the adventure's initialization script, logs the
        adventure's initial copy and the initial location's copy, then runs the
        location's enter script. An initial location that is also final runs
        the termination script last. Any of these steps is skipped when unset.

        Raises:
            NotFound: If the adventure or the language does not exist.
            NoInitialLocation: If the adventure has no initial location.
            AmbiguousInitialLocation: If more than one location is initial.
        """

        adventure = self._adventures.get(adventure_id)
        if adventure is None:
            raise NotFound("adventure", adventure_id)

        code = (language or self.default_language).strip().lower()
        if self._languages.get_by_code(code) is None:
            raise NotFound("language", code)

        location = self._initial_location(adventure)
        game = self._games.add(
            Game(
                adventure_id=adventure.id,
                location_id=location.id,
                language=code,
                location_update_timestamp=self._clock.tick(),
                completed=location.final,
            )
        )
        logger.info(
            "Started game %s for adventure %s at location %s",
            game.id,
            adventure.id,
            location.id,
        )

        with self._locks.hold(game.id):
            entries: List[Content] = []
            initialized = self._executor.execute_reference(
                game, adventure.initialization_script_id
            )
            self._collect(entries, initialized)
            if adventure.initial_copy_key is not None:
                entries.append(
                    self._log.append(game, copy_key=adventure.initial_copy_key)
                )
            if location.copy_key is not None:
                entries.append(self._log.append(game, copy_key=location.copy_key))
            entered = self._executor.execute_reference(game, location.enter_script_id)
            self._collect(entries, entered)
            if location.final:
                terminated = self._executor.execute_reference(
                    game, adventure.termination_script_id
                )
                self._collect(entries, terminated)
            return Transcript(
                game=game,
                entries=tuple(entries),
                texts=tuple(self._log.texts_for(entries, game.language)),
            )

    def end_game(self, game_id: int) -> Transcript:
        """Run the termination script, then remove the game and its content.

        A failing termination script propagates and leaves the game in place.
        Completed games already ran it on arrival, and games flagged for
        recovery are removed without running it.
        """

        with self._locks.hold(game_id):
            game = self._require_game(game_id)
            adventure = self._adventures.get(game.adventure_id)

            entries: tuple[Content, ...] = ()
            texts: tuple[str, ...] = ()
            if adventure is not None and adventure.termination_script_id is not None:
                if game.needs_recovery:
                    logger.warning(
                        "Skipping termination script of game %s pending recovery",
                        game_id,
                    )
                elif not game.completed:
                    run = self._executor.execute_reference(
                        game, adventure.termination_script_id
                    )
                    entries, texts = run.entries, run.texts

            self._log.clear(game_id)
            self._games.remove(game_id)
        logger.info("Ended game %s", game_id)
        return Transcript(game=game, entries=entries, texts=texts)

    def recover_game(self, game_id: int) -> Game:
        """Clear the recovery flag left behind by an aborted script."""

        with self._locks.hold(game_id):
            game = self._require_game(game_id)
            if game.needs_recovery:
                game.needs_recovery = False
                self._games.update(game)
                logger.info("Recovered game %s", game_id)
            return game

    def _initial_location(self, adventure: Adventure) -> Location:
        initial = [
            location
            for location in self._locations.for_adventure(adventure.id)
            if location.initial
        ]
        if not initial:
            raise NoInitialLocation(adventure.id)
        if len(initial) > 1:
            raise AmbiguousInitialLocation(
                adventure.id, tuple(location.id for location in initial)
            )
        return initial[0]

    @staticmethod
    def _collect(entries: List[Content], run: ScriptRun | None) -> None:
        if run is not None:
            entries.extend(run.entries)

    def _require_game(self, game_id: int) -> Game:
        game = self._games.get(game_id)
        if game is None:
            raise NotFound("game", game_id)
        return game


__all__ = ["GameLifecycle"]
