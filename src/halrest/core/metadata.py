from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidArgumentError
from .hydrators import Hydrator, HydratorManager
from .link import Link, _validate_url
from .registry import TypeRegistry, type_key

log = logging.getLogger("halrest.core.metadata")


class Metadata(BaseModel):
    """
    Declarative rendering hints for one domain type.

    ``identifier_name=None`` means the type has no identifier; its self link
    is then built from route params alone.
    """

    type_key: str
    is_collection: bool = False
    hydrator: Optional[Any] = None
    identifier_name: Optional[str] = "id"
    route: Optional[str] = None
    route_params: Dict[str, Any] = Field(default_factory=dict)
    route_options: Dict[str, Any] = Field(default_factory=dict)
    url: Optional[str] = None
    links: List[Dict[str, Any]] = Field(default_factory=list)
    resource_route: Optional[str] = None
    collection_name: str = "items"

    model_config = ConfigDict(
        frozen=True, extra="forbid", arbitrary_types_allowed=True
    )

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            return _validate_url(value)
        except InvalidArgumentError as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("links")
    @classmethod
    def _check_links(cls, value: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        for spec in value:
            # Fail at registration rather than at first render
            try:
                Link.factory(spec)
            except InvalidArgumentError as exc:
                raise ValueError(str(exc)) from exc
        return value

    def has_hydrator(self) -> bool:
        return isinstance(self.hydrator, Hydrator)

    def has_route(self) -> bool:
        return bool(self.route)

    def has_url(self) -> bool:
        return bool(self.url)

    def get_resource_route(self) -> Optional[str]:
        return self.resource_route or self.route


class MetadataMap:
    """
    Registry of Metadata keyed by stable type key.

    Populated once at application startup and read concurrently afterwards.
    """

    def __init__(
        self,
        config: Optional[Mapping[Any, Mapping[str, Any]]] = None,
        hydrators: Optional[HydratorManager] = None,
    ):
        self.hydrators = hydrators or HydratorManager()
        self._map: TypeRegistry[Metadata] = TypeRegistry()
        for target, entry in (config or {}).items():
            self.register(target, entry)

    @classmethod
    def from_config(
        cls,
        config: Mapping[Any, Mapping[str, Any]],
        hydrators: Optional[HydratorManager] = None,
    ) -> "MetadataMap":
        return cls(config, hydrators)

    def register(self, target: Any, entry: Mapping[str, Any] | Metadata) -> Metadata:
        key = type_key(target)
        if isinstance(entry, Metadata):
            data = entry.model_dump()
        elif isinstance(entry, Mapping):
            data = dict(entry)
        else:
            raise InvalidArgumentError(
                f"Metadata for {key!r} must be a mapping or Metadata; "
                f"received {type(entry).__name__}"
            )
        data["type_key"] = key
        hydrator = data.get("hydrator")
        if hydrator is not None:
            data["hydrator"] = self.hydrators.resolve(hydrator)

        try:
            metadata = Metadata.model_validate(data)
        except ValidationError as exc:
            raise InvalidArgumentError(f"Invalid metadata for {key!r}: {exc}") from exc

        self._map.register(key, metadata)
        log.debug("Registered metadata for %s", key)
        return metadata

    def has(self, obj: Any) -> bool:
        return self._map.has(obj)

    def get(self, obj: Any) -> Optional[Metadata]:
        return self._map.get(obj)

    def __len__(self) -> int:
        return len(self._map)


__all__ = ["Metadata", "MetadataMap"]
