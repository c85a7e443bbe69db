"""Append-only transcript of everything shown to a game."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .copy_resolver import CopyResolver
from .errors import NotFound
from .models import Content, Game
from .persistence import ContentStore, GameStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transcript:
    """Entries appended by one engine operation, with their resolved texts."""

    game: Game
    entries: Tuple[Content, ...] = ()
    texts: Tuple[str, ...] = ()

    @property
    def positions(self) -> Tuple[int, ...]:
        return tuple(entry.position for entry in self.entries)


class ContentLog:
    """Ordered record of the content displayed to each game.

    Positions start at ``0`` and increase by one for every appended entry, so
    reading a game's entries in position order replays its full transcript.
    Only the engine components acting for a game append to its log, and they
    do so while holding that game's lock.
    """

    def __init__(
        self,
        contents: ContentStore,
        games: GameStore,
        copy_resolver: CopyResolver,
    ) -> None:
        self._contents = contents
        self._games = games
        self._copy = copy_resolver

    def append(
        self,
        game: Game,
        *,
        text: str | None = None,
        copy_key: str | None = None,
    ) -> Content:
        """Log ``text`` or ``copy_key`` at the game's next position."""

        if game.id is None:
            raise ValueError("cannot log content for a game without an identity")

        entry = Content(
            game_id=game.id,
            position=self.next_position(game.id),
            copy_key=copy_key,
            text=text,
        )
        stored = self._contents.add(entry)
        logger.debug("Logged content %s for game %s", stored.position, game.id)
        return stored

    def next_position(self, game_id: int) -> int:
        last = self._contents.last_position(game_id)
        return 0 if last is None else last + 1

    def entries(
        self, game_id: int, *, start: int = 0, limit: int | None = None
    ) -> List[Content]:
        """Return logged entries in ascending position order."""

        self._require_game(game_id)
        return self._contents.for_game(game_id, start=start, limit=limit)

    def text_for_position(self, game_id: int, position: int) -> str:
        """Return the text displayed at ``position`` in the game's language."""

        game = self._require_game(game_id)
        entry = self._contents.get(game_id, position)
        if entry is None:
            raise NotFound("content", f"{game_id}:{position}")
        return self.text_for(entry, game.language)

    def text_for(self, entry: Content, language: str) -> str:
        if entry.text is not None:
            return entry.text
        return self._copy.resolve(entry.copy_key, language)

    def texts_for(self, entries: Sequence[Content], language: str) -> List[str]:
        return [self.text_for(entry, language) for entry in entries]

    def transcript(self, game_id: int) -> List[str]:
        """Return every text shown to the game so far."""

        game = self._require_game(game_id)
        return self.texts_for(self._contents.for_game(game_id), game.language)

    def clear(self, game_id: int) -> None:
        self._contents.remove_for_game(game_id)

    def _require_game(self, game_id: int) -> Game:
        game = self._games.get(game_id)
        if game is None:
            raise NotFound("game", game_id)
        return game


__all__ = ["ContentLog", "Transcript"]
