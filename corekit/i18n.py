"""Translation tables per locale, with fallback lookup and named formatting."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any

from corekit.applog import get_logger

__all__ = ["DEFAULT_FALLBACK_LOCALE", "I18nLoadError", "I18nManager"]

DEFAULT_FALLBACK_LOCALE = "en-US"


class I18nLoadError(Exception):
    """Raised when a translation table cannot be read or parsed."""


def _to_text(value: Any) -> tuple[str, str | None]:
    """Convert a JSON value to its translation text, with a note when converted."""
    if isinstance(value, str):
        return value, None
    if value is None:
        return "", "has null value {origin}, set to empty string"
    if isinstance(value, bool):
        return ("true" if value else "false"), "has boolean value {origin}, converted to string"
    if isinstance(value, (int, float)):
        return f"{float(value):f}", "has numeric value {origin}, converted to string"
    text = json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    return text, "has complex value {origin}, converted to JSON string"


class I18nManager:
    """Holds translations for several locales and looks keys up in them."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._current = ""
        self._fallback = ""
        self._translations: dict[str, dict[str, str]] = {}

    def init(self, locale: str, fallback_locale: str = "") -> bool:
        """Set the current and fallback locales and drop every loaded table."""
        with self._lock:
            self._current = locale
            self._fallback = fallback_locale or DEFAULT_FALLBACK_LOCALE
            self._translations.clear()
        return True

    def shutdown(self) -> None:
        """Reset both locales and drop every loaded table."""
        with self._lock:
            self._current = ""
            self._fallback = ""
            self._translations.clear()

    @property
    def locale(self) -> str:
        """The locale looked up first."""
        with self._lock:
            return self._current

    @locale.setter
    def locale(self, value: str) -> None:
        with self._lock:
            self._current = value

    @property
    def fallback_locale(self) -> str:
        """The locale looked up when the current one lacks a key."""
        with self._lock:
            return self._fallback

    def load_from_file(self, path: str | Path, locale: str) -> None:
        """Merge the JSON object stored at ``path`` into the table for ``locale``."""
        logger = get_logger()
        try:
            with open(path, encoding="utf-8") as handle:
                text = handle.read()
        except OSError as exc:
            logger.error("[I18n Manager]: Could not open file '%s'", path)
            raise I18nLoadError(f"could not open file '{path}'") from exc
        except UnicodeDecodeError as exc:
            logger.error("[I18n Manager]: Error reading file '%s': %s", path, exc)
            raise I18nLoadError(f"error reading file '{path}': {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.error("[I18n Manager]: JSON parsing error in file '%s': %s", path, exc)
            raise I18nLoadError(f"JSON parsing error in file '{path}': {exc}") from exc
        if not isinstance(data, dict):
            logger.error(
                "[I18n Manager]: JSON format error in file '%s': expected an object at the root",
                path,
            )
            raise I18nLoadError(f"expected a JSON object at the root of '{path}'")
        self._merge(data, locale, f"in file '{path}'")

    def load_from_string(self, data: str, locale: str) -> None:
        """Merge the JSON object in ``data`` into the table for ``locale``."""
        logger = get_logger()
        try:
            parsed = json.loads(data)
        except json.JSONDecodeError as exc:
            logger.error(
                "[I18n Manager]: JSON parsing error in provided string for locale '%s': %s",
                locale,
                exc,
            )
            raise I18nLoadError(f"JSON parsing error for locale '{locale}': {exc}") from exc
        if not isinstance(parsed, dict):
            logger.error(
                "[I18n Manager]: JSON format error in provided string for locale '%s': "
                "expected an object at the root",
                locale,
            )
            raise I18nLoadError(f"expected a JSON object at the root for locale '{locale}'")
        self._merge(parsed, locale, f"in provided string for locale '{locale}'")

    def _merge(self, data: dict[str, Any], locale: str, origin: str) -> None:
        logger = get_logger()
        with self._lock:
            table = self._translations.setdefault(locale, {})
            for key, value in data.items():
                text, note = _to_text(value)
                table[key] = text
                if note is not None:
                    logger.warning("[I18n Manager]: Key '%s' %s", key, note.format(origin=origin))

    def _raw(self, key: str) -> str:
        with self._lock:
            current = self._translations.get(self._current)
            if current is not None and key in current:
                return current[key]
            if self._current != self._fallback:
                fallback = self._translations.get(self._fallback)
                if fallback is not None and key in fallback:
                    return fallback[key]
        return key

    def t(self, key: str, **kwargs: Any) -> str:
        """Translate ``key`` and fill in its ``{name}`` fields from ``kwargs``.

        Falls back to the fallback locale, then to the key itself. Text that
        cannot be formatted is returned unformatted.
        """
        raw = self._raw(key)
        if not kwargs:
            return raw
        try:
            return raw.format(**kwargs)
        except (KeyError, IndexError, ValueError, AttributeError) as exc:
            get_logger().error("[I18n Manager]: Format error for key '%s': %s", key, exc)
            return raw

    def tc(self, base_key: str, count: int, **kwargs: Any) -> str:
        """Translate the plural form of ``base_key`` chosen by ``count``.

        Looks for ``base_key_one`` when ``count`` is 1 and ``base_key_other``
        otherwise, then ``base_key_other``, then ``base_key`` itself.
        """
        suffix = "_one" if count == 1 else "_other"
        full_key = base_key + suffix
        if not self.has_key(full_key):
            full_key = base_key + "_other"
            if not self.has_key(full_key):
                full_key = base_key
        return self.t(full_key, **kwargs)

    def has_key(self, key: str, locale: str = "") -> bool:
        """Whether ``locale`` (the current one when empty) defines ``key``."""
        with self._lock:
            table = self._translations.get(locale or self._current)
            return table is not None and key in table

    def clear(self) -> None:
        """Drop every loaded table, keeping the locales."""
        with self._lock:
            self._translations.clear()

    def remove_locale(self, locale: str) -> None:
        """Drop the table for ``locale``; switch to the fallback if it was current."""
        logger = get_logger()
        with self._lock:
            if self._translations.pop(locale, None) is None:
                return
            logger.info("[I18n Manager]: Removed locale '%s'", locale)
            if locale == self._current and self._translations:
                self._current = self._fallback
                logger.info(
                    "[I18n Manager]: Current locale '%s' removed, switched to fallback locale '%s'",
                    locale,
                    self._fallback,
                )