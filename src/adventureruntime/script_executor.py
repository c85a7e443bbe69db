"""Execution of adventure scripts against live game state."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence, Tuple

from .content_log import ContentLog
from .copy_resolver import CopyResolver
from .errors import (
    GameRecoveryRequired,
    NotFound,
    ScriptExecutionError,
    ScriptTimeoutError,
)
from .models import Content, Game, Script, ScriptType
from .persistence import GameStore, ScriptStore
from .script_includes import ScriptIncludeResolver
from .scripting import ScriptContext, ScriptRuntime, ScriptRuntimeFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScriptRun:
    """Outcome of one script execution."""

    script_id: int
    result: str | None
    entries: Tuple[Content, ...] = ()
    texts: Tuple[str, ...] = ()
    included_script_ids: Tuple[int, ...] = ()

    @property
    def text(self) -> str:
        """Return the emitted texts joined with newlines."""

        return "\n".join(self.texts)


def build_script_body(includes: Sequence[Script], script: Script) -> str:
    """Concatenate included sources ahead of the script's own content."""

    sections = [included.content for included in includes]
    sections.append(script.content)
    return "\n".join(sections)


class ScriptExecutor:
    """Run scripts with their flattened includes inside a scripting runtime.

    Output emitted by a script is appended to the content log as it happens.
    When a script fails, whatever it emitted before the failure stays in the
    log and the failure is raised as :class:`ScriptExecutionError`. Changes to
    the game are saved in both cases.
    """

    def __init__(
        self,
        *,
        scripts: ScriptStore,
        games: GameStore,
        include_resolver: ScriptIncludeResolver,
        content_log: ContentLog,
        copy_resolver: CopyResolver,
        runtimes: Mapping[ScriptType, ScriptRuntime],
    ) -> None:
        self._scripts = scripts
        self._games = games
        self._includes = include_resolver
        self._log = content_log
        self._copy = copy_resolver
        self._runtimes = dict(runtimes)

    def execute(self, game: Game, script: Script) -> ScriptRun:
        """Execute ``script`` bound to ``game``."""

        if game.needs_recovery:
            raise GameRecoveryRequired(game.id)
        if script.id is None:
            raise ValueError("cannot execute a script without an identity")
        if script.adventure_id != game.adventure_id:
            raise ScriptExecutionError(
                script.id,
                f"script belongs to adventure {script.adventure_id}, "
                f"not {game.adventure_id}",
            )

        runtime = self._runtimes.get(script.type)
        if runtime is None:
            raise ScriptExecutionError(
                script.id,
                f"no runtime registered for script type '{script.type.value}'",
            )

        resolution = self._includes.resolve(script.id)
        body = build_script_body(resolution.scripts, script)
        context = ScriptContext(
            game,
            emit=lambda text: self._log.append(game, text=text),
            emit_copy=lambda key: self._log.append(game, copy_key=key),
            lookup_copy=lambda key: self._copy.resolve(key, game.language),
        )

        logger.debug(
            "Executing script %s for game %s with includes %s",
            script.id,
            game.id,
            resolution.script_ids,
        )
        try:
            result = runtime.run(body, context)
        except ScriptRuntimeFailure as exc:
            if exc.timed_out:
                game.needs_recovery = True
                logger.warning(
                    "Script %s exceeded its instruction limit; game %s needs recovery",
                    script.id,
                    game.id,
                )
                raise ScriptTimeoutError(script.id, exc.message) from exc
            raise ScriptExecutionError(script.id, exc.message) from exc
        finally:
            if game.id is not None:
                self._games.update(game)

        entries = tuple(context.emitted)
        return ScriptRun(
            script_id=script.id,
            result=result,
            entries=entries,
            texts=tuple(self._log.texts_for(entries, game.language)),
            included_script_ids=resolution.script_ids,
        )

    def execute_reference(self, game: Game, script_id: int | None) -> ScriptRun | None:
        """Execute the script referenced by an optional foreign key."""

        if script_id is None:
            return None
        return self.execute(game, self.require_script(script_id))

    def require_script(self, script_id: int) -> Script:
        script = self._scripts.get(script_id)
        if script is None:
            raise NotFound("script", script_id)
        return script


__all__ = ["ScriptRun", "ScriptExecutor", "build_script_body"]
