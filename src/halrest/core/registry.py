from __future__ import annotations

import logging
from typing import Any, Dict, Generic, Iterator, Optional, TypeVar

log = logging.getLogger("halrest.core.registry")

V = TypeVar("V")

TYPE_TAG_ATTRIBUTE = "__hal_type__"


def type_key(target: Any) -> str:
    """
    Return the stable, case-insensitive registry key used at registration.

    - A string is used verbatim (a caller-supplied tag).
    - A class exposing ``__hal_type__`` uses that tag.
    - Otherwise the class's ``module.qualname`` is used.
    """
    if isinstance(target, str):
        return target.lower()
    return object_type_key(target)


def object_type_key(obj: Any) -> str:
    """Registry key for a runtime object (or class); strings are not tags here."""
    tag = getattr(obj, TYPE_TAG_ATTRIBUTE, None)
    if isinstance(tag, str) and tag:
        return tag.lower()

    cls = obj if isinstance(obj, type) else type(obj)
    return f"{cls.__module__}.{cls.__qualname__}".lower()


class TypeRegistry(Generic[V]):
    """
    Exact-match mapping of type key -> value.

    Populated once at startup; lookups never walk the class hierarchy, so a
    subclass must be registered on its own.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, V] = {}

    def register(self, target: Any, value: V) -> None:
        key = type_key(target)
        if key in self._entries:
            log.debug("Replacing registry entry for %s", key)
        self._entries[key] = value

    def has(self, obj: Any) -> bool:
        return object_type_key(obj) in self._entries

    def get(self, obj: Any) -> Optional[V]:
        return self._entries.get(object_type_key(obj))

    def keys(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __contains__(self, obj: object) -> bool:
        return self.has(obj)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["TypeRegistry", "type_key", "object_type_key", "TYPE_TAG_ATTRIBUTE"]
