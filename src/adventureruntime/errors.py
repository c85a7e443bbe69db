"""Typed failures raised by the adventure runtime engine."""

from __future__ import annotations


class AdventureRuntimeError(RuntimeError):
    """Base class for every error surfaced by the engine."""


class NotFound(AdventureRuntimeError, LookupError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, kind: str, identifier: object) -> None:
        super().__init__(f"{kind} '{identifier}' does not exist")
        self.kind = kind
        self.identifier = identifier


class ScriptExecutionError(AdventureRuntimeError):
    """Raised when a script fails while it is being executed."""

    def __init__(self, script_id: int | None, message: str) -> None:
        super().__init__(f"script {script_id} failed: {message}")
        self.script_id = script_id
        self.message = message


class ScriptTimeoutError(ScriptExecutionError):
    """Raised when a script is aborted for exceeding its instruction budget."""


class InvalidTransition(AdventureRuntimeError):
    """Raised when a route does not start at the game's current location."""

    def __init__(self, game_id: int, route_id: int, location_id: int) -> None:
        super().__init__(
            f"route {route_id} does not leave location {location_id} of game {game_id}"
        )
        self.game_id = game_id
        self.route_id = route_id
        self.location_id = location_id


class GamePreconditionError(AdventureRuntimeError):
    """Raised when a game cannot be started for the requested adventure."""

    def __init__(self, adventure_id: int, message: str) -> None:
        super().__init__(message)
        self.adventure_id = adventure_id


class NoInitialLocation(GamePreconditionError):
    def __init__(self, adventure_id: int) -> None:
        super().__init__(
            adventure_id, f"adventure {adventure_id} has no initial location"
        )


class AmbiguousInitialLocation(GamePreconditionError):
    def __init__(self, adventure_id: int, location_ids: tuple[int, ...]) -> None:
        super().__init__(
            adventure_id,
            f"adventure {adventure_id} has {len(location_ids)} initial locations",
        )
        self.location_ids = location_ids


class GameBusy(AdventureRuntimeError):
    """Raised when another operation is already mutating the same game."""

    def __init__(self, game_id: int) -> None:
        super().__init__(f"game {game_id} is busy")
        self.game_id = game_id


class GameRecoveryRequired(AdventureRuntimeError):
    """Raised when a game was left inconsistent by an aborted script."""

    def __init__(self, game_id: int) -> None:
        super().__init__(f"game {game_id} needs recovery before it can continue")
        self.game_id = game_id


class ResourceInUse(AdventureRuntimeError):
    """Raised when removing an entity that active games still depend on."""

    def __init__(
        self, kind: str, identifier: object, game_ids: tuple[int, ...]
    ) -> None:
        super().__init__(
            f"{kind} '{identifier}' is used by {len(game_ids)} active game(s)"
        )
        self.kind = kind
        self.identifier = identifier
        self.game_ids = game_ids


class InvalidInclude(AdventureRuntimeError):
    """Raised when an include edge would break the include graph."""


__all__ = [
    "AdventureRuntimeError",
    "NotFound",
    "ScriptExecutionError",
    "ScriptTimeoutError",
    "InvalidTransition",
    "GamePreconditionError",
    "NoInitialLocation",
    "AmbiguousInitialLocation",
    "GameBusy",
    "GameRecoveryRequired",
    "ResourceInUse",
    "InvalidInclude",
]
