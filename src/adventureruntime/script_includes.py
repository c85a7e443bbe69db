"""Flattening of script include graphs into an execution order."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, List, Tuple

from .models import Script, ScriptInclude
from .persistence import ScriptIncludeStore, ScriptStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncludeResolution:
    """Outcome of flattening the includes of a single script."""

    script_id: int
    scripts: Tuple[Script, ...]
    missing: Tuple[int, ...] = ()

    @property
    def script_ids(self) -> Tuple[int, ...]:
        return tuple(script.id for script in self.scripts if script.id is not None)


class ScriptIncludeResolver:
    """Compute the ordered list of scripts a script transitively includes.

    Includes are visited depth first following each edge's ``order``. A
    script's own includes are placed before the script itself so the list can
    be concatenated top-down ahead of the including script. Every script is
    visited at most once, which keeps cyclic graphs finite. The root script is
    never part of its own include list.
    """

    def __init__(self, scripts: ScriptStore, includes: ScriptIncludeStore) -> None:
        self._scripts = scripts
        self._includes = includes

    def flatten(self, script_id: int) -> List[Script]:
        """Return the scripts included by ``script_id`` in execution order."""

        return list(self.resolve(script_id).scripts)

    def resolve(self, script_id: int) -> IncludeResolution:
        """Flatten the includes and report any dangling references."""

        ordered: List[Script] = []
        missing: List[int] = []
        visited = {script_id}

        stack: List[Tuple[Script | None, Iterator[ScriptInclude]]] = [
            (None, iter(self._includes.includes_of(script_id)))
        ]
        while stack:
            current, edges = stack[-1]
            for edge in edges:
                target_id = edge.includes_id
                if target_id in visited:
                    continue
                visited.add(target_id)

                target = self._scripts.get(target_id)
                if target is None:
                    logger.warning(
                        "Script %s includes missing script %s; skipping it",
                        edge.included_in_id,
                        target_id,
                    )
                    missing.append(target_id)
                    continue

                stack.append((target, iter(self._includes.includes_of(target_id))))
                break
            else:
                stack.pop()
                if current is not None:
                    ordered.append(current)

        return IncludeResolution(
            script_id=script_id, scripts=tuple(ordered), missing=tuple(missing)
        )


__all__ = ["IncludeResolution", "ScriptIncludeResolver"]
