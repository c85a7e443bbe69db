"""FastAPI application exposing game play endpoints."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field, field_validator

from ..content_log import Transcript
from ..engine import AdventureEngine
from ..errors import (
    AdventureRuntimeError,
    GameBusy,
    GamePreconditionError,
    GameRecoveryRequired,
    InvalidInclude,
    InvalidTransition,
    NotFound,
    ResourceInUse,
    ScriptExecutionError,
)
from ..models import Content, Game, Route
from ..settings import EngineSettings

logger = logging.getLogger(__name__)

_MAX_PAGE_SIZE = 500


class GameResource(BaseModel):
    """Serialised view of a live game."""

    id: int
    adventure_id: int
    location_id: int
    language: str
    location_update_timestamp: int
    completed: bool
    needs_recovery: bool
    state: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_game(cls, game: Game) -> "GameResource":
        return cls(
            id=game.id,
            adventure_id=game.adventure_id,
            location_id=game.location_id,
            language=game.language,
            location_update_timestamp=game.location_update_timestamp,
            completed=game.completed,
            needs_recovery=game.needs_recovery,
            state=dict(game.state),
        )


class ContentResource(BaseModel):
    """One content log entry with the text it displays."""

    position: int = Field(..., ge=0)
    text: str
    copy_key: str | None = None

    @classmethod
    def from_entry(cls, entry: Content, text: str) -> "ContentResource":
        return cls(position=entry.position, text=text, copy_key=entry.copy_key)


class TranscriptResponse(BaseModel):
    """Game snapshot together with the content an operation appended."""

    game: GameResource
    contents: list[ContentResource] = Field(default_factory=list)

    @classmethod
    def from_transcript(cls, transcript: Transcript) -> "TranscriptResponse":
        return cls(
            game=GameResource.from_game(transcript.game),
            contents=_content_resources(transcript.entries, transcript.texts),
        )


class ContentPageResponse(BaseModel):
    """Slice of a game's content log in position order."""

    game_id: int
    start: int = Field(..., ge=0)
    limit: int | None = None
    data: list[ContentResource] = Field(default_factory=list)


class RouteResource(BaseModel):
    """Route leaving the game's current location."""

    id: int
    name: str
    location_id: int
    destination_location_id: int
    copy_key: str | None = None

    @classmethod
    def from_route(cls, route: Route) -> "RouteResource":
        return cls(
            id=route.id,
            name=route.name,
            location_id=route.location_id,
            destination_location_id=route.destination_location_id,
            copy_key=route.copy_key,
        )


class RouteListResponse(BaseModel):
    """Routes available to a game."""

    game_id: int
    data: list[RouteResource] = Field(default_factory=list)


class GameStartRequest(BaseModel):
    """Request payload for starting a game."""

    language: str | None = Field(
        default=None,
        description="Language code for the game. Defaults to the engine setting.",
    )

    @field_validator("language")
    @classmethod
    def _normalise_language(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip().lower()
        return trimmed or None


def _content_resources(
    entries: Sequence[Content], texts: Sequence[str]
) -> list[ContentResource]:
    return [
        ContentResource.from_entry(entry, text) for entry, text in zip(entries, texts)
    ]


def _http_error(exc: AdventureRuntimeError) -> HTTPException:
    """Translate an engine failure into the matching HTTP error."""

    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, GameRecoveryRequired):
        return HTTPException(status_code=423, detail=str(exc))
    if isinstance(exc, ScriptExecutionError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(
        exc,
        (
            InvalidTransition,
            GamePreconditionError,
            GameBusy,
            ResourceInUse,
            InvalidInclude,
        ),
    ):
        return HTTPException(status_code=409, detail=str(exc))
    logger.error("Unexpected engine failure: %s", exc)
    return HTTPException(status_code=500, detail=str(exc))


def create_app(
    engine: AdventureEngine | None = None,
    *,
    settings: EngineSettings | None = None,
) -> FastAPI:
    """Create a FastAPI app serving games of ``engine``."""

    resolved_settings = settings or (
        engine.settings if engine is not None else EngineSettings.from_env()
    )
    resolved_settings.apply_log_level()
    runtime = engine or AdventureEngine.in_memory(resolved_settings)

    tags_metadata = [
        {
            "name": "Games",
            "description": "Start, inspect, recover and end games.",
        },
        {
            "name": "Navigation",
            "description": "List and take the routes leaving a game's location.",
        },
        {
            "name": "Contents",
            "description": "Read the content log displayed to a game.",
        },
    ]

    app = FastAPI(
        title="Adventure Runtime API",
        version="0.1.0",
        description=(
            "HTTP API running stored text adventures. Games move between "
            "locations by taking routes and accumulate a localized transcript."
        ),
        openapi_tags=tags_metadata,
    )

    @app.post(
        "/api/adventures/{adventure_id}/games",
        response_model=TranscriptResponse,
        status_code=201,
        tags=["Games"],
    )
    def start_game(
        adventure_id: int, payload: GameStartRequest | None = None
    ) -> TranscriptResponse:
        language = payload.language if payload is not None else None
        try:
            transcript = runtime.start_game(adventure_id, language)
        except AdventureRuntimeError as exc:
            raise _http_error(exc) from exc
        return TranscriptResponse.from_transcript(transcript)

    @app.get(
        "/api/games/{game_id}",
        response_model=GameResource,
        tags=["Games"],
    )
    def get_game(game_id: int) -> GameResource:
        try:
            return GameResource.from_game(runtime.get_game(game_id))
        except AdventureRuntimeError as exc:
            raise _http_error(exc) from exc

    @app.delete(
        "/api/games/{game_id}",
        response_model=TranscriptResponse,
        tags=["Games"],
    )
    def end_game(game_id: int) -> TranscriptResponse:
        try:
            transcript = runtime.end_game(game_id)
        except AdventureRuntimeError as exc:
            raise _http_error(exc) from exc
        return TranscriptResponse.from_transcript(transcript)

    @app.post(
        "/api/games/{game_id}/recover",
        response_model=GameResource,
        tags=["Games"],
    )
    def recover_game(game_id: int) -> GameResource:
        try:
            return GameResource.from_game(runtime.recover_game(game_id))
        except AdventureRuntimeError as exc:
            raise _http_error(exc) from exc

    @app.get(
        "/api/games/{game_id}/routes",
        response_model=RouteListResponse,
        tags=["Navigation"],
    )
    def list_routes(game_id: int) -> RouteListResponse:
        try:
            routes = runtime.available_routes(game_id)
        except AdventureRuntimeError as exc:
            raise _http_error(exc) from exc
        return RouteListResponse(
            game_id=game_id, data=[RouteResource.from_route(route) for route in routes]
        )

    @app.post(
        "/api/games/{game_id}/routes/{route_id}",
        response_model=TranscriptResponse,
        tags=["Navigation"],
    )
    def take_route(game_id: int, route_id: int) -> TranscriptResponse:
        try:
            transcript = runtime.take_route(game_id, route_id)
        except AdventureRuntimeError as exc:
            raise _http_error(exc) from exc
        return TranscriptResponse.from_transcript(transcript)

    @app.get(
        "/api/games/{game_id}/contents",
        response_model=ContentPageResponse,
        tags=["Contents"],
    )
    def list_contents(
        game_id: int,
        *,
        start: int = Query(0, ge=0, description="First position to return."),
        limit: int | None = Query(
            None,
            ge=1,
            le=_MAX_PAGE_SIZE,
            description=f"Number of entries to return (max {_MAX_PAGE_SIZE}).",
        ),
    ) -> ContentPageResponse:
        try:
            game = runtime.get_game(game_id)
            entries = runtime.contents(game_id, start=start, limit=limit)
        except AdventureRuntimeError as exc:
            raise _http_error(exc) from exc
        texts = runtime.content_log.texts_for(entries, game.language)
        return ContentPageResponse(
            game_id=game_id,
            start=start,
            limit=limit,
            data=_content_resources(entries, texts),
        )

    @app.get(
        "/api/games/{game_id}/contents/{position}",
        response_model=ContentResource,
        tags=["Contents"],
    )
    def get_content(game_id: int, position: int) -> ContentResource:
        try:
            text = runtime.text_for_position(game_id, position)
        except AdventureRuntimeError as exc:
            raise _http_error(exc) from exc
        entry = runtime.data.contents.get(game_id, position)
        return ContentResource(
            position=position,
            text=text,
            copy_key=entry.copy_key if entry is not None else None,
        )

    return app


__all__ = [
    "ContentPageResponse",
    "ContentResource",
    "GameResource",
    "GameStartRequest",
    "RouteListResponse",
    "RouteResource",
    "TranscriptResponse",
    "create_app",
]
