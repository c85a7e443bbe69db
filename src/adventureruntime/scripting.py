"""Embedded scripting runtimes and the capability object scripts receive."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, List

import lupa
from lupa import LuaError, LuaRuntime

from .models import Content, Game, StateValue

logger = logging.getLogger(__name__)

_TIMEOUT_MARKER = "adventureruntime: instruction limit exceeded"

_SANDBOX_REMOVALS = (
    "os",
    "io",
    "require",
    "dofile",
    "loadfile",
    "load",
    "package",
    "debug",
    "collectgarbage",
    "python",
)

_INSTALL_INSTRUCTION_LIMIT = """
local limit, marker = ...
local sethook = debug.sethook
local function abort()
    sethook(abort, "", 1)
    error(marker, 0)
end
sethook(abort, "", limit)
"""

_BUILD_GAME_TABLE = """
function(emit, emit_copy, get_state, set_state, lookup_copy,
         game_id, location_id, adventure_id, language)
    local game = {
        gameId = game_id,
        locationId = location_id,
        adventureId = adventure_id,
        language = language,
    }
    function game:emit(text) emit(tostring(text)) end
    function game:emitCopy(key) emit_copy(tostring(key)) end
    function game:getState(key) return get_state(tostring(key)) end
    function game:setState(key, value) set_state(tostring(key), value) end
    function game:lookupCopy(key) return lookup_copy(tostring(key)) end
    return game
end
"""


class ScriptRuntimeFailure(Exception):
    """Raised by a runtime when the script itself fails."""

    def __init__(self, message: str, *, timed_out: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.timed_out = timed_out


class ScriptContext:
    """Capabilities a running script has over the game it is bound to.

    Scripts can emit narrative text (directly or by copy key), read and write
    the game's key/value state and look up copy in the game's language.
    Nothing else about the engine is reachable from script code.
    """

    def __init__(
        self,
        game: Game,
        *,
        emit: Callable[[str], Content],
        emit_copy: Callable[[str], Content],
        lookup_copy: Callable[[str], str],
    ) -> None:
        self._game = game
        self._emit = emit
        self._emit_copy = emit_copy
        self._lookup_copy = lookup_copy
        self.emitted: List[Content] = []

    @property
    def game_id(self) -> int | None:
        return self._game.id

    @property
    def location_id(self) -> int:
        return self._game.location_id

    @property
    def adventure_id(self) -> int:
        return self._game.adventure_id

    @property
    def language(self) -> str:
        return self._game.language

    def emit(self, text: str) -> None:
        if not isinstance(text, str):
            raise TypeError(f"emitted text must be a string, got {type(text)!r}")
        self.emitted.append(self._emit(text))

    def emit_copy(self, key: str) -> None:
        if not isinstance(key, str) or not key.strip():
            raise ValueError("copy key must be a non-empty string")
        self.emitted.append(self._emit_copy(key.strip()))

    def get_state(self, key: str) -> StateValue | None:
        return self._game.state.get(key)

    def set_state(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``; ``None`` removes the key."""

        if not isinstance(key, str) or not key:
            raise ValueError("state keys must be non-empty strings")
        if value is None:
            self._game.state.pop(key, None)
            return
        if not isinstance(value, (str, int, float, bool)):
            raise TypeError(
                f"state value for '{key}' must be a string, number or boolean"
            )
        self._game.state[key] = value

    def lookup_copy(self, key: str) -> str:
        return self._lookup_copy(key)


class ScriptRuntime(ABC):
    """Interpreter capable of running one script dialect."""

    @abstractmethod
    def run(self, source: str, context: ScriptContext) -> str | None:
        """Execute ``source`` bound to ``context`` and return its result.

        Raises:
            ScriptRuntimeFailure: If the script fails to compile or run.
        """


class LuaScriptRuntime(ScriptRuntime):
    """Run Lua scripts through :mod:`lupa` in a sandboxed interpreter.

    Each call gets a fresh interpreter. The source is loaded, then its global
    ``run()`` function is called. The script's result is the global
    ``result`` when set, otherwise whatever ``run()`` returned. The bound
    :class:`ScriptContext` is exposed as the global ``game`` table with the
    methods ``game:emit``, ``game:emitCopy``, ``game:getState``,
    ``game:setState`` and ``game:lookupCopy``.
    """

    def __init__(self, *, max_instructions: int | None = None) -> None:
        if max_instructions is not None and max_instructions < 1:
            raise ValueError("max_instructions must be greater than zero")
        self.max_instructions = max_instructions

    def run(self, source: str, context: ScriptContext) -> str | None:
        lua = self._create_runtime()
        build_game = lua.eval(_BUILD_GAME_TABLE)
        lua.globals().game = build_game(
            context.emit,
            context.emit_copy,
            context.get_state,
            context.set_state,
            context.lookup_copy,
            context.game_id,
            context.location_id,
            context.adventure_id,
            context.language,
        )

        try:
            lua.execute(source)
            run_function = lua.globals().run
            if run_function is None or lupa.lua_type(run_function) != "function":
                raise ScriptRuntimeFailure("script does not define a run() function")
            returned = run_function()
            result = lua.globals().result
            return _stringify(returned if result is None else result)
        except LuaError as exc:
            message = str(exc)
            if _TIMEOUT_MARKER in message:
                raise ScriptRuntimeFailure(
                    "script exceeded its instruction limit", timed_out=True
                ) from exc
            raise ScriptRuntimeFailure(message) from exc
        except (TypeError, ValueError) as exc:
            raise ScriptRuntimeFailure(str(exc)) from exc

    def _create_runtime(self) -> LuaRuntime:
        lua = LuaRuntime(
            unpack_returned_tuples=True,
            register_eval=False,
            register_builtins=False,
            attribute_filter=_deny_attribute_access,
        )
        if self.max_instructions is not None:
            lua.execute(
                _INSTALL_INSTRUCTION_LIMIT, self.max_instructions, _TIMEOUT_MARKER
            )

        lua_globals = lua.globals()
        for name in _SANDBOX_REMOVALS:
            lua_globals[name] = None
        return lua


def _deny_attribute_access(obj: object, attr_name: str, is_setting: bool) -> str:
    raise AttributeError(f"access to '{attr_name}' is not allowed from scripts")


def _stringify(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, tuple):
        return ";".join(item for item in (_stringify(entry) for entry in value) if item)
    return str(value)


__all__ = [
    "ScriptContext",
    "ScriptRuntime",
    "ScriptRuntimeFailure",
    "LuaScriptRuntime",
]
