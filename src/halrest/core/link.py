from __future__ import annotations

import re
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import DomainError, InvalidArgumentError

# Whitespace, control characters and the characters RFC 3986 never allows raw.
_INVALID_URL_CHARS = re.compile(r"[\s\x00-\x1f\x7f<>\"{}|\\^`]")


def _validate_url(url: Any) -> str:
    if not isinstance(url, str):
        raise InvalidArgumentError(
            f"Received invalid URL; expected a string, got {type(url).__name__}"
        )
    if not url:
        raise InvalidArgumentError("Received invalid URL: empty string")
    if _INVALID_URL_CHARS.search(url):
        raise InvalidArgumentError(f"Received invalid URL: {url!r}")
    try:
        parts = urlsplit(url)
        # Accessing .port validates it
        parts.port
    except ValueError as exc:
        raise InvalidArgumentError(f"Received invalid URL: {exc}") from exc
    if parts.scheme.lower() in {"http", "https"} and not parts.hostname:
        raise InvalidArgumentError(f"Received invalid URL: {url!r} has no host")
    return url


def _as_dict(value: Any, label: str) -> Dict[str, Any]:
    if not isinstance(value, Mapping):
        raise InvalidArgumentError(
            f"{label} expects a mapping; received {type(value).__name__}"
        )
    return dict(value)


class Link:
    """A single link relation: either an explicit URL or a route to assemble."""

    def __init__(self, relation: str):
        if not isinstance(relation, str) or not relation:
            raise InvalidArgumentError("Link relation must be a non-empty string")
        self._relation = relation
        self._route: Optional[str] = None
        self._route_params: Dict[str, Any] = {}
        self._route_options: Dict[str, Any] = {}
        self._url: Optional[str] = None

    @classmethod
    def factory(cls, spec: Mapping[str, Any]) -> "Link":
        """Build a link from a declarative spec.

        The spec requires ``rel`` (or ``relation``) and either ``url`` or
        ``route``; ``route`` is a route name or a mapping with ``name``,
        ``params`` and ``options``.
        """
        if not isinstance(spec, Mapping):
            raise InvalidArgumentError(
                f"Link spec must be a mapping; received {type(spec).__name__}"
            )
        try:
            parsed = LinkSpec.model_validate(dict(spec))
        except ValidationError as exc:
            raise InvalidArgumentError(f"Invalid link specification: {exc}") from exc

        link = cls(parsed.rel)
        if parsed.url is not None:
            link.set_url(parsed.url)
            return link

        if parsed.route is None:
            raise InvalidArgumentError(
                f'Link spec for "{parsed.rel}" requires a "url" or "route" element'
            )
        if isinstance(parsed.route, str):
            link.set_route(parsed.route)
            return link
        link.set_route(parsed.route.name, parsed.route.params, parsed.route.options)
        return link

    @property
    def relation(self) -> str:
        return self._relation

    @property
    def route(self) -> Optional[str]:
        return self._route

    @property
    def route_params(self) -> Dict[str, Any]:
        return self._route_params

    @property
    def route_options(self) -> Dict[str, Any]:
        return self._route_options

    @property
    def url(self) -> Optional[str]:
        return self._url

    def set_route(
        self,
        route: str,
        params: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> "Link":
        if self.has_url():
            raise DomainError("Link already has a URL set; cannot set route")
        if not isinstance(route, str) or not route:
            raise InvalidArgumentError("Route name must be a non-empty string")
        new_params = _as_dict(params, "Route params") if params else None
        new_options = _as_dict(options, "Route options") if options else None

        self._route = route
        if new_params is not None:
            self._route_params = new_params
        if new_options is not None:
            self._route_options = new_options
        return self

    def set_route_params(self, params: Mapping[str, Any]) -> "Link":
        self._route_params = _as_dict(params, "Route params")
        return self

    def set_route_options(self, options: Mapping[str, Any]) -> "Link":
        self._route_options = _as_dict(options, "Route options")
        return self

    def set_url(self, url: str) -> "Link":
        if self.has_route():
            raise DomainError("Link already has a route set; cannot set URL")
        self._url = _validate_url(url)
        return self

    def is_complete(self) -> bool:
        return self.has_url() or self.has_route()

    def has_route(self) -> bool:
        return bool(self._route)

    def has_url(self) -> bool:
        return bool(self._url)

    def __repr__(self) -> str:
        target = f"url={self._url!r}" if self._url else f"route={self._route!r}"
        return f"Link({self._relation!r}, {target})"


class RouteSpec(BaseModel):
    name: str
    params: Dict[str, Any] = Field(default_factory=dict)
    options: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class LinkSpec(BaseModel):
    rel: str = Field(alias="relation", min_length=1)
    url: Optional[str] = None
    route: Optional[Union[str, RouteSpec]] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


LinkValue = Union[Link, List[Link]]


class LinkCollection:
    """Ordered multimap of relation name -> Link (or list of Links)."""

    def __init__(self) -> None:
        self._links: Dict[str, LinkValue] = {}

    def add(self, link: Link, overwrite: bool = False) -> "LinkCollection":
        if not isinstance(link, Link):
            raise InvalidArgumentError(
                f"LinkCollection only accepts Link instances; received {type(link).__name__}"  # noqa: E501
            )
        relation = link.relation
        existing = self._links.get(relation)
        if overwrite or existing is None:
            self._links[relation] = link
        elif isinstance(existing, list):
            existing.append(link)
        else:
            self._links[relation] = [existing, link]
        return self

    def get(self, relation: str) -> Optional[LinkValue]:
        return self._links.get(relation)

    def has(self, relation: str) -> bool:
        return relation in self._links

    def remove(self, relation: str) -> "LinkCollection":
        self._links.pop(relation, None)
        return self

    def items(self) -> Iterator[Tuple[str, LinkValue]]:
        return iter(list(self._links.items()))

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._links))

    def __len__(self) -> int:
        return len(self._links)

    def __contains__(self, relation: object) -> bool:
        return relation in self._links

    def __repr__(self) -> str:
        return f"LinkCollection({list(self._links)!r})"


__all__ = ["Link", "LinkCollection", "LinkSpec", "RouteSpec", "LinkValue"]
