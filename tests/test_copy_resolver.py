import logging

import pytest

from adventureruntime import EMPTY_COPY_KEY, Copy, CopyResolver
from adventureruntime.persistence import InMemoryCopyStore


@pytest.fixture
def copy_store() -> InMemoryCopyStore:
    store = InMemoryCopyStore()
    store.add(Copy(key=EMPTY_COPY_KEY, language="en", text="empty copy"))
    store.add(Copy(key=EMPTY_COPY_KEY, language="es", text="copia vacia"))
    store.add(Copy(key="greeting", language="en", text="Hello"))
    store.add(Copy(key="greeting", language="es", text="Hola"))
    store.add(Copy(key="farewell", language="en", text="Goodbye"))
    return store


def test_resolve_returns_text_in_requested_language(
    copy_store: InMemoryCopyStore,
) -> None:
    resolver = CopyResolver(copy_store)
    assert resolver.resolve("greeting", "en") == "Hello"
    assert resolver.resolve("greeting", "ES") == "Hola"


def test_resolve_uses_default_language_when_unspecified(
    copy_store: InMemoryCopyStore,
) -> None:
    resolver = CopyResolver(copy_store, default_language="es")
    assert resolver.resolve("greeting") == "Hola"


def test_unknown_key_resolves_to_placeholder(copy_store: InMemoryCopyStore) -> None:
    resolver = CopyResolver(copy_store)
    assert resolver.resolve("missing", "en") == "empty copy"
    assert resolver.resolve("missing", "es") == "copia vacia"


def test_no_fallback_to_other_languages(copy_store: InMemoryCopyStore) -> None:
    resolver = CopyResolver(copy_store)
    assert resolver.resolve("farewell", "es") == "copia vacia"


def test_missing_placeholder_falls_back_to_configured_text(
    caplog: pytest.LogCaptureFixture,
) -> None:
    resolver = CopyResolver(InMemoryCopyStore(), empty_copy_text="(nothing)")

    with caplog.at_level(logging.WARNING, logger="adventureruntime.copy_resolver"):
        assert resolver.resolve("anything", "fr") == "(nothing)"

    assert "fr" in caplog.text


def test_resolve_for_key_set_deduplicates_keys(
    copy_store: InMemoryCopyStore,
) -> None:
    resolver = CopyResolver(copy_store)
    resolved = resolver.resolve_for_key_set(
        ["greeting", "missing", "greeting", "farewell"], "en"
    )
    assert resolved == {
        "greeting": "Hello",
        "missing": "empty copy",
        "farewell": "Goodbye",
    }
