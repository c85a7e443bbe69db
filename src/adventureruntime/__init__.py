"""Runtime engine for playing scripted, localized text adventures."""

from .authoring import AdventureAuthoring
from .concurrency import GameLocks, LogicalClock
from .content_log import ContentLog, Transcript
from .copy_resolver import CopyResolver
from .engine import AdventureEngine
from .errors import (
    AdventureRuntimeError,
    AmbiguousInitialLocation,
    GameBusy,
    GamePreconditionError,
    GameRecoveryRequired,
    InvalidInclude,
    InvalidTransition,
    NoInitialLocation,
    NotFound,
    ResourceInUse,
    ScriptExecutionError,
    ScriptTimeoutError,
)
from .lifecycle import GameLifecycle
from .models import (
    EMPTY_COPY_KEY,
    Adventure,
    Content,
    Copy,
    Game,
    Language,
    Location,
    Route,
    Script,
    ScriptInclude,
    ScriptType,
)
from .navigation import Navigator
from .persistence import DataServices, FileGameStore
from .script_executor import ScriptExecutor, ScriptRun
from .script_includes import IncludeResolution, ScriptIncludeResolver
from .scripting import (
    LuaScriptRuntime,
    ScriptContext,
    ScriptRuntime,
    ScriptRuntimeFailure,
)
from .settings import EngineSettings

__all__ = [
    "AdventureAuthoring",
    "AdventureEngine",
    "AdventureRuntimeError",
    "Adventure",
    "AmbiguousInitialLocation",
    "Content",
    "ContentLog",
    "Copy",
    "CopyResolver",
    "DataServices",
    "EMPTY_COPY_KEY",
    "EngineSettings",
    "FileGameStore",
    "Game",
    "GameBusy",
    "GameLifecycle",
    "GameLocks",
    "GamePreconditionError",
    "GameRecoveryRequired",
    "IncludeResolution",
    "InvalidInclude",
    "InvalidTransition",
    "Language",
    "Location",
    "LogicalClock",
    "LuaScriptRuntime",
    "Navigator",
    "NoInitialLocation",
    "NotFound",
    "ResourceInUse",
    "Route",
    "Script",
    "ScriptContext",
    "ScriptExecutionError",
    "ScriptExecutor",
    "ScriptInclude",
    "ScriptIncludeResolver",
    "ScriptRun",
    "ScriptRuntime",
    "ScriptRuntimeFailure",
    "ScriptTimeoutError",
    "ScriptType",
    "Transcript",
]
