from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

from .errors import InvalidArgumentError
from .link import Link, LinkCollection
from .paginator import Paginator

_SCALARS = (str, bytes, bytearray, int, float, bool)


def missing_identifier(value: Any) -> bool:
    """None, False and "" mean "no identifier"; 0 is a valid one."""
    return value is None or value is False or value == ""


def _mapping(value: Any, label: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidArgumentError(
            f"{label} expects a mapping; received {type(value).__name__}"
        )
    return dict(value)


class HalResource:
    """
    A single item to render as HAL: raw data (mapping or object), its
    identifier and the links attached to it.
    """

    def __init__(
        self,
        resource: Any,
        identifier: Any,
        route: Optional[str] = None,
        route_params: Optional[Mapping[str, Any]] = None,
        route_options: Optional[Mapping[str, Any]] = None,
        identifier_name: str = "id",
    ):
        if resource is None or isinstance(resource, _SCALARS):
            raise InvalidArgumentError(
                "HalResource expects a mapping or object resource; "
                f"received {type(resource).__name__}"
            )
        self.resource = resource
        self.id = identifier
        self.identifier_name = identifier_name
        self.route = route
        self.route_params = _mapping(route_params, "Route params")
        self.route_options = _mapping(route_options, "Route options")
        self.links = LinkCollection()

        if route and not missing_identifier(identifier):
            # Unresolved placeholder; render-time injection overwrites it.
            params = dict(self.route_params)
            params[identifier_name] = identifier
            self.links.add(Link("self").set_route(route, params, self.route_options))

    def __repr__(self) -> str:
        return f"HalResource(id={self.id!r}, route={self.route!r})"


class HalCollection:
    """A set of items (plain iterable or Paginator) to render as a HAL collection."""

    def __init__(
        self,
        collection: Any,
        collection_route: Optional[str] = None,
        resource_route: Optional[str] = None,
    ):
        if not isinstance(collection, Paginator) and (
            isinstance(collection, (str, bytes, bytearray, Mapping))
            or not isinstance(collection, Iterable)
        ):
            raise InvalidArgumentError(
                "HalCollection expects an iterable or Paginator; "
                f"received {type(collection).__name__}"
            )
        self.collection = collection
        self.links = LinkCollection()

        self._attributes: Dict[str, Any] = {}
        self._collection_name = "items"
        self._collection_route: Optional[str] = None
        self._collection_route_options: Dict[str, Any] = {}
        self._collection_route_params: Dict[str, Any] = {}
        self._identifier_name = "id"
        self._page = 1
        self._page_size = 30
        self._resource_route: Optional[str] = None
        self._resource_route_options: Dict[str, Any] = {}
        self._resource_route_params: Dict[str, Any] = {}

        if collection_route is not None:
            self.collection_route = collection_route
        if resource_route is not None:
            self.resource_route = resource_route

    @property
    def attributes(self) -> Dict[str, Any]:
        return self._attributes

    @attributes.setter
    def attributes(self, value: Mapping[str, Any]) -> None:
        self._attributes = _mapping(value, "Collection attributes")

    @property
    def collection_name(self) -> str:
        return self._collection_name

    @collection_name.setter
    def collection_name(self, value: str) -> None:
        if not isinstance(value, str) or not value:
            raise InvalidArgumentError("Collection name must be a non-empty string")
        self._collection_name = value

    @property
    def collection_route(self) -> Optional[str]:
        return self._collection_route

    @collection_route.setter
    def collection_route(self, value: Optional[str]) -> None:
        self._collection_route = value

    @property
    def collection_route_options(self) -> Dict[str, Any]:
        return self._collection_route_options

    @collection_route_options.setter
    def collection_route_options(self, value: Mapping[str, Any]) -> None:
        self._collection_route_options = _mapping(value, "Collection route options")

    @property
    def collection_route_params(self) -> Dict[str, Any]:
        return self._collection_route_params

    @collection_route_params.setter
    def collection_route_params(self, value: Mapping[str, Any]) -> None:
        self._collection_route_params = _mapping(value, "Collection route params")

    @property
    def identifier_name(self) -> str:
        return self._identifier_name

    @identifier_name.setter
    def identifier_name(self, value: str) -> None:
        self._identifier_name = value

    @property
    def page(self) -> int:
        return self._page

    @page.setter
    def page(self, value: Any) -> None:
        # Range is checked against the page count at render time
        self._page = self._integer(value, "Page")

    @property
    def page_size(self) -> int:
        return self._page_size

    @page_size.setter
    def page_size(self, value: Any) -> None:
        self._page_size = self._positive_int(value, "Page size")

    @property
    def resource_route(self) -> Optional[str]:
        return self._resource_route or self._collection_route

    @resource_route.setter
    def resource_route(self, value: Optional[str]) -> None:
        self._resource_route = value

    @property
    def resource_route_options(self) -> Dict[str, Any]:
        return self._resource_route_options

    @resource_route_options.setter
    def resource_route_options(self, value: Mapping[str, Any]) -> None:
        self._resource_route_options = _mapping(value, "Resource route options")

    @property
    def resource_route_params(self) -> Dict[str, Any]:
        return self._resource_route_params

    @resource_route_params.setter
    def resource_route_params(self, value: Mapping[str, Any]) -> None:
        self._resource_route_params = _mapping(value, "Resource route params")

    @property
    def is_paginated(self) -> bool:
        return isinstance(self.collection, Paginator)

    @staticmethod
    def _integer(value: Any, label: str) -> int:
        if isinstance(value, bool):
            raise InvalidArgumentError(f"{label} must be an integer")
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise InvalidArgumentError(
                f"{label} must be an integer; received {value!r}"
            ) from exc

    @classmethod
    def _positive_int(cls, value: Any, label: str) -> int:
        number = cls._integer(value, label)
        if number < 1:
            raise InvalidArgumentError(f"{label} must be at least 1; received {number}")
        return number

    def __repr__(self) -> str:
        return (
            f"HalCollection(route={self._collection_route!r}, page={self._page}, "
            f"page_size={self._page_size})"
        )


__all__ = ["HalResource", "HalCollection", "missing_identifier"]
