from __future__ import annotations

import logging
import math
from typing import Callable, Iterable, List, Mapping, Optional, Union

from ..data import settings_repository

logger = logging.getLogger(__name__)

Provider = Union[Mapping[str, object], Callable[[str], Optional[object]]]


class ConfigResolver:
    """Look a key up in an ordered list of providers and return the first defined value.

    A provider is either a mapping or a callable taking the key. ``None`` and blank
    strings count as undefined, so the lookup falls through to the next provider.
    """

    def __init__(self, providers: Iterable[Optional[Provider]]) -> None:
        self._providers: List[Provider] = [provider for provider in providers if provider is not None]

    def resolve(self, key: str) -> Optional[str]:
        for provider in self._providers:
            if callable(provider):
                value = provider(key)
            else:
                value = provider.get(key)
            if value is None:
                continue
            text = str(value).strip()
            if text:
                return text
        return None

    def resolve_float(self, key: str, default: float) -> float:
        """Return the first value that parses as a finite, non-negative number."""
        for provider in self._providers:
            value = ConfigResolver([provider]).resolve(key)
            if value is None:
                continue
            try:
                number = float(value)
            except ValueError:
                logger.warning("Ignoring non-numeric value %r for %s", value, key)
                continue
            if not math.isfinite(number) or number < 0:
                logger.warning("Ignoring out-of-range value %r for %s", value, key)
                continue
            return number
        return float(default)


def settings_resolver(overrides: Optional[Mapping[str, object]] = None) -> ConfigResolver:
    """Overrides first, then the settings store, then the built-in defaults."""
    return ConfigResolver([overrides, settings_repository.get_setting, settings_repository.get_default])
