"""Localised user-facing strings declared by plugins."""

from __future__ import annotations

from collections.abc import Mapping


DEFAULT_LOCALE = "en"


def locale_chain(locale: str | None) -> list[str]:
    """Return the lookup order for ``locale``: ``de-DE`` -> ``de`` -> default."""
    chain: list[str] = []
    if locale:
        normalised = locale.replace("_", "-").strip()
        parts = normalised.split("-")
        while parts:
            candidate = "-".join(parts).lower()
            if candidate not in chain:
                chain.append(candidate)
            parts.pop()
    if DEFAULT_LOCALE not in chain:
        chain.append(DEFAULT_LOCALE)
    return chain


class PluginTexts:
    """Per-locale strings with fallback to the default locale."""

    def __init__(self, defaults: Mapping[str, str]) -> None:
        self._locales: dict[str, dict[str, str]] = {DEFAULT_LOCALE: dict(defaults)}

    def add_locale(self, locale: str, texts: Mapping[str, str]) -> None:
        """Register translations; unknown keys are rejected."""
        unknown = set(texts) - set(self._locales[DEFAULT_LOCALE])
        if unknown:
            names = ", ".join(sorted(unknown))
            raise KeyError(f"Unknown text keys for locale '{locale}': {names}")
        key = locale.replace("_", "-").lower()
        self._locales.setdefault(key, {}).update(texts)

    @property
    def locales(self) -> list[str]:
        return sorted(self._locales)

    def get(self, key: str, locale: str | None = None) -> str:
        for candidate in locale_chain(locale):
            texts = self._locales.get(candidate)
            if texts is not None and key in texts:
                return texts[key]
        raise KeyError(f"Unknown text key '{key}'")

    def for_locale(self, locale: str | None) -> dict[str, str]:
        """Return every string resolved for ``locale``."""
        return {key: self.get(key, locale) for key in self._locales[DEFAULT_LOCALE]}


__all__ = ["DEFAULT_LOCALE", "PluginTexts", "locale_chain"]
