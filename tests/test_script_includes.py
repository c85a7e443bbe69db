import logging

import pytest

from adventureruntime import Script, ScriptInclude, ScriptIncludeResolver
from adventureruntime.persistence import InMemoryScriptIncludeStore, InMemoryScriptStore


@pytest.fixture
def scripts() -> InMemoryScriptStore:
    store = InMemoryScriptStore()
    for identifier, name in enumerate(["root", "a", "b", "c", "d"], start=1):
        store.add(
            Script(adventure_id=1, name=name, content=f"-- {name}", id=identifier)
        )
    return store


@pytest.fixture
def includes() -> InMemoryScriptIncludeStore:
    return InMemoryScriptIncludeStore()


def _names(scripts: list[Script]) -> list[str]:
    return [script.name for script in scripts]


def test_includes_follow_edge_order_and_come_before_their_includer(
    scripts: InMemoryScriptStore, includes: InMemoryScriptIncludeStore
) -> None:
    includes.add(ScriptInclude(included_in_id=1, includes_id=3, order=2))
    includes.add(ScriptInclude(included_in_id=1, includes_id=2, order=1))
    includes.add(ScriptInclude(included_in_id=2, includes_id=4, order=0))

    resolver = ScriptIncludeResolver(scripts, includes)
    assert _names(resolver.flatten(1)) == ["c", "a", "b"]


def test_shared_includes_appear_once(
    scripts: InMemoryScriptStore, includes: InMemoryScriptIncludeStore
) -> None:
    includes.add(ScriptInclude(included_in_id=1, includes_id=2, order=0))
    includes.add(ScriptInclude(included_in_id=1, includes_id=3, order=1))
    includes.add(ScriptInclude(included_in_id=2, includes_id=5, order=0))
    includes.add(ScriptInclude(included_in_id=3, includes_id=5, order=0))

    flattened = ScriptIncludeResolver(scripts, includes).flatten(1)
    identities = [script.id for script in flattened]
    assert identities == [5, 2, 3]
    assert len(identities) == len(set(identities))


def test_cyclic_graph_terminates_deterministically(
    scripts: InMemoryScriptStore, includes: InMemoryScriptIncludeStore
) -> None:
    includes.add(ScriptInclude(included_in_id=1, includes_id=2))
    includes.add(ScriptInclude(included_in_id=2, includes_id=1))

    resolver = ScriptIncludeResolver(scripts, includes)
    assert _names(resolver.flatten(1)) == ["a"]
    assert _names(resolver.flatten(2)) == ["root"]
    assert _names(resolver.flatten(1)) == ["a"]


def test_script_without_includes_flattens_to_nothing(
    scripts: InMemoryScriptStore, includes: InMemoryScriptIncludeStore
) -> None:
    assert ScriptIncludeResolver(scripts, includes).flatten(4) == []


def test_dangling_include_is_skipped_with_warning(
    scripts: InMemoryScriptStore,
    includes: InMemoryScriptIncludeStore,
    caplog: pytest.LogCaptureFixture,
) -> None:
    includes.add(ScriptInclude(included_in_id=1, includes_id=99, order=0))
    includes.add(ScriptInclude(included_in_id=1, includes_id=2, order=1))

    with caplog.at_level(logging.WARNING, logger="adventureruntime.script_includes"):
        resolution = ScriptIncludeResolver(scripts, includes).resolve(1)

    assert resolution.script_ids == (2,)
    assert resolution.missing == (99,)
    assert "99" in caplog.text
