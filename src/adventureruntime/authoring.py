"""Authoring operations the engine relies on to keep references consistent.

Creating and editing adventures is the job of external tooling. The helpers in
this module cover the few writes the runtime itself cannot leave to others:
placeholder copy seeding, include edges that must not loop, and removals that
would otherwise leave games or scripts pointing at deleted rows.
"""

from __future__ import annotations

import logging
import uuid
from typing import Iterable, List, Sequence

from .concurrency import GameLocks
from .errors import InvalidInclude, NotFound, ResourceInUse
from .models import EMPTY_COPY_KEY, Copy, Language, ScriptInclude
from .persistence import DataServices

logger = logging.getLogger(__name__)

EMPTY_COPY_NAME = "empty"


class AdventureAuthoring:
    """Guarded create/update/remove operations over the data services."""

    def __init__(
        self,
        data: DataServices,
        *,
        locks: GameLocks | None = None,
        empty_copy_text: str = "empty copy",
    ) -> None:
        self._data = data
        self._locks = locks or GameLocks()
        self.empty_copy_text = empty_copy_text

    def seed_empty_copy(
        self, languages: Iterable[Language] | None = None
    ) -> List[Copy]:
        """Create the placeholder copy for every language that lacks one."""

        created: List[Copy] = []
        if languages is None:
            targets = self._data.languages.list()
        else:
            targets = list(languages)
        for language in targets:
            if self._data.copy.get(EMPTY_COPY_KEY, language.code) is not None:
                continue
            created.append(
                self._data.copy.add(
                    Copy(
                        key=EMPTY_COPY_KEY,
                        language=language.code,
                        name=EMPTY_COPY_NAME,
                        text=self.empty_copy_text,
                    )
                )
            )
        self._data.copy.save()
        return created

    def create_copy(
        self, copy: Copy, *, languages: Sequence[Language] | None = None
    ) -> Copy:
        """Store ``copy`` and return the entry written in its own language.

        A copy without a key receives a freshly generated one. When
        ``languages`` is given an entry is created for each of them; only the
        copy's own language keeps the text, the others start out blank.
        """

        if copy.key == EMPTY_COPY_KEY:
            copy.key = str(uuid.uuid4())

        if languages is None:
            stored = self._data.copy.add(copy)
            self._data.copy.save()
            return stored

        own_entry = copy
        for language in languages:
            entry = Copy(
                key=copy.key,
                language=language.code,
                name=copy.name,
                text=copy.text if language.code == copy.language else "",
                adventure_id=copy.adventure_id,
                script_id=copy.script_id,
            )
            self._data.copy.add(entry)
            if language.code == copy.language:
                own_entry = entry
        self._data.copy.save()
        return own_entry

    def update_copy(self, key: str, language: str, text: str) -> Copy:
        entry = self._data.copy.get(key, language)
        if entry is None:
            raise NotFound("copy", f"{key}:{language}")
        entry.text = text
        self._data.copy.save()
        return entry

    def add_include(
        self, included_in_id: int, includes_id: int, *, order: int = 0
    ) -> ScriptInclude:
        """Make ``included_in_id`` include ``includes_id``.

        Raises:
            NotFound: If either script does not exist.
            InvalidInclude: For self-includes, includes across adventures, or
                edges that would create a cycle.
        """

        including = self._data.scripts.get(included_in_id)
        if including is None:
            raise NotFound("script", included_in_id)
        included = self._data.scripts.get(includes_id)
        if included is None:
            raise NotFound("script", includes_id)

        if included_in_id == includes_id:
            raise InvalidInclude(f"script {included_in_id} cannot include itself")
        if including.adventure_id != included.adventure_id:
            raise InvalidInclude(
                f"scripts {included_in_id} and {includes_id} belong to "
                "different adventures"
            )
        if self._reaches(includes_id, included_in_id):
            raise InvalidInclude(
                f"including script {includes_id} in {included_in_id} creates a cycle"
            )

        edge = self._data.includes.add(
            ScriptInclude(
                included_in_id=included_in_id, includes_id=includes_id, order=order
            )
        )
        self._data.includes.save()
        return edge

    def remove_script(self, script_id: int) -> None:
        """Remove a script and null every reference to it."""

        script = self._data.scripts.get(script_id)
        if script is None:
            raise NotFound("script", script_id)

        for adventure in self._data.adventures.list():
            if adventure.initialization_script_id == script_id:
                adventure.initialization_script_id = None
            if adventure.termination_script_id == script_id:
                adventure.termination_script_id = None

        for location in self._data.locations.for_adventure(script.adventure_id):
            if location.enter_script_id == script_id:
                location.enter_script_id = None
            if location.exit_script_id == script_id:
                location.exit_script_id = None
            for route in self._data.routes.for_location(location.id):
                if route.route_taken_script_id == script_id:
                    route.route_taken_script_id = None

        for copy in self._data.copy.for_script(script_id):
            copy.script_id = None

        self._data.includes.remove_for_script(script_id)
        self._data.scripts.remove(script_id)
        self._data.save_all()
        logger.info("Removed script %s", script_id)

    def remove_location(self, location_id: int, *, force: bool = False) -> None:
        """Remove a location together with its routes.

        Routes arriving at the location are removed too. Games at the location
        block removal unless ``force`` is set, in which case they are removed
        along with their content.
        """

        location = self._data.locations.get(location_id)
        if location is None:
            raise NotFound("location", location_id)

        games = self._data.games.for_location(location_id)
        if games and not force:
            raise ResourceInUse(
                "location", location_id, tuple(game.id for game in games)
            )
        for game in games:
            self._remove_game(game.id)

        for route in self._data.routes.for_location(location_id):
            self._data.routes.remove(route.id)
        for route in self._data.routes.into_location(location_id):
            self._data.routes.remove(route.id)
        self._data.locations.remove(location_id)
        self._data.save_all()
        logger.info("Removed location %s", location_id)

    def remove_adventure(self, adventure_id: int, *, force: bool = False) -> None:
        """Remove an adventure and everything it owns."""

        adventure = self._data.adventures.get(adventure_id)
        if adventure is None:
            raise NotFound("adventure", adventure_id)

        games = self._data.games.for_adventure(adventure_id)
        if games and not force:
            raise ResourceInUse(
                "adventure", adventure_id, tuple(game.id for game in games)
            )
        for game in games:
            self._remove_game(game.id)

        for location in self._data.locations.for_adventure(adventure_id):
            for route in self._data.routes.for_location(location.id):
                self._data.routes.remove(route.id)
            self._data.locations.remove(location.id)
        for script in self._data.scripts.for_adventure(adventure_id):
            self._data.includes.remove_for_script(script.id)
            for copy in self._data.copy.for_script(script.id):
                copy.script_id = None
            self._data.scripts.remove(script.id)
        self._data.adventures.remove(adventure_id)
        self._data.save_all()
        logger.info("Removed adventure %s", adventure_id)

    def _remove_game(self, game_id: int) -> None:
        with self._locks.hold(game_id):
            self._data.contents.remove_for_game(game_id)
            self._data.games.remove(game_id)

    def _reaches(self, start_id: int, target_id: int) -> bool:
        """Return ``True`` when ``target_id`` is reachable from ``start_id``."""

        pending = [start_id]
        seen = {start_id}
        while pending:
            current = pending.pop()
            if current == target_id:
                return True
            for edge in self._data.includes.includes_of(current):
                if edge.includes_id not in seen:
                    seen.add(edge.includes_id)
                    pending.append(edge.includes_id)
        return False


__all__ = ["AdventureAuthoring", "EMPTY_COPY_NAME"]
