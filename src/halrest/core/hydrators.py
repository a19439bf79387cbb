"""
Hydrators: strategies turning domain objects into plain field maps.

Only extraction is needed for rendering; hydrating objects back from
request payloads is the application's concern.
"""

from __future__ import annotations

import dataclasses
import inspect
import re
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from pydantic import BaseModel

from .errors import HalRuntimeError, InvalidArgumentError

_ACCESSOR = re.compile(r"^(get|is|has)_(?P<name>[a-z0-9_]+)$")


@runtime_checkable
class Hydrator(Protocol):
    def extract(self, obj: Any) -> Dict[str, Any]: ...


def public_fields(obj: Any) -> Dict[str, Any]:
    """Public instance attributes of an object (its ``__dict__`` minus ``_x``)."""
    try:
        attrs = vars(obj)
    except TypeError:
        slots = getattr(type(obj), "__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        attrs = {name: getattr(obj, name) for name in slots if hasattr(obj, name)}
    return {k: v for k, v in attrs.items() if not k.startswith("_")}


class ObjectPropertyHydrator:
    """Extracts public instance attributes."""

    def extract(self, obj: Any) -> Dict[str, Any]:
        return public_fields(obj)


class ClassMethodsHydrator:
    """
    Extracts values from zero-argument accessors: ``get_name()`` -> ``name``,
    ``is_active()`` -> ``active``, ``has_children()`` -> ``children``.
    """

    def extract(self, obj: Any) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for attr in dir(obj):
            match = _ACCESSOR.match(attr)
            if not match:
                continue
            method = getattr(obj, attr)
            if not callable(method):
                continue
            try:
                sig = inspect.signature(method)
            except (TypeError, ValueError):
                continue
            required = [
                p
                for p in sig.parameters.values()
                if p.default is inspect.Parameter.empty
                and p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
            ]
            if required:
                continue
            data[match.group("name")] = method()
        return data


class ArraySerializableHydrator:
    """Delegates to the object's own ``to_dict()``."""

    def extract(self, obj: Any) -> Dict[str, Any]:
        to_dict = getattr(obj, "to_dict", None)
        if not callable(to_dict):
            raise HalRuntimeError(
                f"{type(obj).__name__} does not implement to_dict(); cannot extract"
            )
        return dict(to_dict())


class PydanticHydrator:
    """Dumps pydantic models, optionally by alias."""

    def __init__(self, *, by_alias: bool = False, exclude_none: bool = False):
        self.by_alias = by_alias
        self.exclude_none = exclude_none

    def extract(self, obj: Any) -> Dict[str, Any]:
        if not isinstance(obj, BaseModel):
            raise HalRuntimeError(
                f"{type(obj).__name__} is not a pydantic model; cannot extract"
            )
        return obj.model_dump(by_alias=self.by_alias, exclude_none=self.exclude_none)


class DataclassHydrator:
    """
    Shallow field map of a dataclass instance; nested objects are left intact
    so they can still be embedded.
    """

    def extract(self, obj: Any) -> Dict[str, Any]:
        if not dataclasses.is_dataclass(obj) or isinstance(obj, type):
            raise HalRuntimeError(
                f"{type(obj).__name__} is not a dataclass instance; cannot extract"
            )
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}


class HydratorManager:
    """Named hydrator instances, looked up case-insensitively."""

    def __init__(self, hydrators: Optional[Dict[str, Hydrator]] = None):
        self._hydrators: Dict[str, Hydrator] = {
            "objectproperty": ObjectPropertyHydrator(),
            "classmethods": ClassMethodsHydrator(),
            "arrayserializable": ArraySerializableHydrator(),
            "pydantic": PydanticHydrator(),
            "dataclass": DataclassHydrator(),
        }
        for name, hydrator in (hydrators or {}).items():
            self.register(name, hydrator)

    @staticmethod
    def _normalize(name: str) -> str:
        return name.replace("_", "").replace("-", "").lower()

    def register(self, name: str, hydrator: Hydrator) -> None:
        if not isinstance(hydrator, Hydrator):
            raise InvalidArgumentError(
                f"Hydrator {name!r} must implement extract(obj); "
                f"received {type(hydrator).__name__}"
            )
        self._hydrators[self._normalize(name)] = hydrator

    def has(self, name: str) -> bool:
        return isinstance(name, str) and self._normalize(name) in self._hydrators

    def get(self, name: str) -> Hydrator:
        if not self.has(name):
            raise InvalidArgumentError(f"Unknown hydrator {name!r}")
        return self._hydrators[self._normalize(name)]

    def resolve(self, hydrator: Any) -> Hydrator:
        """Accept a hydrator instance or a registered name."""
        if isinstance(hydrator, Hydrator):
            return hydrator
        if isinstance(hydrator, str):
            return self.get(hydrator)
        raise InvalidArgumentError(
            "Invalid hydrator instance or name provided; "
            f"received {type(hydrator).__name__}"
        )


__all__ = [
    "Hydrator",
    "HydratorManager",
    "ObjectPropertyHydrator",
    "ClassMethodsHydrator",
    "ArraySerializableHydrator",
    "PydanticHydrator",
    "DataclassHydrator",
    "public_fields",
]
