"""Location-to-location transitions of a game."""

from __future__ import annotations

import logging
from typing import List

from .concurrency import GameLocks, LogicalClock
from .content_log import ContentLog, Transcript
from .errors import GameRecoveryRequired, InvalidTransition, NotFound
from .models import Content, Game, Location, Route
from .persistence import AdventureStore, GameStore, LocationStore, RouteStore
from .script_executor import ScriptExecutor, ScriptRun

logger = logging.getLogger(__name__)


class Navigator:
    """Move games between locations by taking routes.

    A game is always at exactly one location. Taking a route runs, in order:
    the route-taken hook, the exit hook of the current location, the move
    itself, and the enter hook of the destination. Arriving at a final
    location also runs the adventure's termination script. The first failing
    script stops the transition. Content logged by the steps that already ran
    is kept, as is the game's new location if the move had happened.
    """

    def __init__(
        self,
        *,
        adventures: AdventureStore,
        games: GameStore,
        locations: LocationStore,
        routes: RouteStore,
        executor: ScriptExecutor,
        content_log: ContentLog,
        locks: GameLocks,
        clock: LogicalClock,
    ) -> None:
        self._adventures = adventures
        self._games = games
        self._locations = locations
        self._routes = routes
        self._executor = executor
        self._log = content_log
        self._locks = locks
        self._clock = clock

    def take_route(self, game_id: int, route_id: int) -> Transcript:
        """Move the game along ``route_id`` and return what was shown."""

        with self._locks.hold(game_id):
            game = self._require_game(game_id)
            if game.needs_recovery:
                raise GameRecoveryRequired(game_id)

            route = self._routes.get(route_id)
            if route is None:
                raise NotFound("route", route_id)
            if route.location_id != game.location_id:
                raise InvalidTransition(game_id, route_id, game.location_id)

            origin = self._require_location(route.location_id)
            destination = self._require_location(route.destination_location_id)

            entries: List[Content] = []
            if route.route_taken_copy_key is not None:
                entries.append(
                    self._log.append(game, copy_key=route.route_taken_copy_key)
                )
            taken = self._executor.execute_reference(game, route.route_taken_script_id)
            self._collect(entries, taken)
            exited = self._executor.execute_reference(game, origin.exit_script_id)
            self._collect(entries, exited)

            self._move(game, destination)
            logger.info(
                "Game %s took route %s from location %s to %s",
                game_id,
                route_id,
                origin.id,
                destination.id,
            )

            if destination.copy_key is not None:
                entries.append(self._log.append(game, copy_key=destination.copy_key))
            entered = self._executor.execute_reference(
                game, destination.enter_script_id
            )
            self._collect(entries, entered)
            if destination.final:
                self._collect(entries, self._terminate(game))

            return Transcript(
                game=game,
                entries=tuple(entries),
                texts=tuple(self._log.texts_for(entries, game.language)),
            )

    def available_routes(self, game_id: int) -> List[Route]:
        """Return the routes leaving the game's current location."""

        game = self._require_game(game_id)
        return self._routes.for_location(game.location_id)

    def _move(self, game: Game, destination: Location) -> None:
        game.location_id = destination.id
        game.location_update_timestamp = self._clock.tick()
        if destination.final:
            game.completed = True
        self._games.update(game)

    def _terminate(self, game: Game) -> ScriptRun | None:
        adventure = self._adventures.get(game.adventure_id)
        if adventure is None:
            return None
        logger.info("Game %s reached a final location", game.id)
        return self._executor.execute_reference(game, adventure.termination_script_id)

    @staticmethod
    def _collect(entries: List[Content], run: ScriptRun | None) -> None:
        if run is not None:
            entries.extend(run.entries)

    def _require_game(self, game_id: int) -> Game:
        game = self._games.get(game_id)
        if game is None:
            raise NotFound("game", game_id)
        return game

    def _require_location(self, location_id: int) -> Location:
        location = self._locations.get(location_id)
        if location is None:
            raise NotFound("location", location_id)
        return location


__all__ = ["Navigator"]
