"""Resolution of localized copy keys into display text."""

from __future__ import annotations

import logging
from typing import Dict, Iterable

from .models import EMPTY_COPY_KEY
from .persistence import CopyStore

logger = logging.getLogger(__name__)


class CopyResolver:
    """Look up copy text for a key in a single language.

    Missing keys never raise. They resolve to the language's placeholder copy
    stored under :data:`EMPTY_COPY_KEY`. There is no fallback to another
    language: an entry that only exists in English resolves to the Spanish
    placeholder when Spanish is requested.
    """

    def __init__(
        self,
        copy_store: CopyStore,
        *,
        default_language: str = "en",
        empty_copy_text: str = "empty copy",
    ) -> None:
        self._copy = copy_store
        self.default_language = default_language.strip().lower()
        self.empty_copy_text = empty_copy_text

    def resolve(self, key: str, language: str | None = None) -> str:
        """Return the text stored for ``key`` in ``language``."""

        code = self._language_code(language)
        entry = self._copy.get(key, code)
        if entry is not None:
            return entry.text
        return self.placeholder(code)

    def resolve_for_key_set(
        self, keys: Iterable[str], language: str | None = None
    ) -> Dict[str, str]:
        """Resolve several keys at once, keeping the first occurrence of each."""

        code = self._language_code(language)
        resolved: Dict[str, str] = {}
        placeholder: str | None = None
        for key in keys:
            if key in resolved:
                continue
            entry = self._copy.get(key, code)
            if entry is not None:
                resolved[key] = entry.text
                continue
            if placeholder is None:
                placeholder = self.placeholder(code)
            resolved[key] = placeholder
        return resolved

    def placeholder(self, language: str | None = None) -> str:
        """Return the empty placeholder text for ``language``."""

        code = self._language_code(language)
        entry = self._copy.get(EMPTY_COPY_KEY, code)
        if entry is None:
            logger.warning("No placeholder copy is registered for language '%s'", code)
            return self.empty_copy_text
        return entry.text

    def _language_code(self, language: str | None) -> str:
        if language is None:
            return self.default_language
        trimmed = language.strip().lower()
        return trimmed or self.default_language


__all__ = ["CopyResolver"]
