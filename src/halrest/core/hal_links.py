"""
HAL link assembly and rendering engine.

HalLinks turns HalResource / HalCollection values (and, recursively, any
nested resources found in their data) into plain dicts carrying ``_links``
and ``_embedded`` sections. Route names are resolved through an injected
route resolver and made absolute through a server-URL composer, so the engine
itself knows nothing about the web framework in use.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union
from urllib.parse import urlsplit

from .config import parse_bool
from .errors import DomainError, HalRuntimeError, InvalidArgumentError
from .hooks import (
    CREATE_LINK,
    GET_ID_FROM_RESOURCE,
    RENDER_COLLECTION,
    RENDER_COLLECTION_RESOURCE,
    RENDER_RESOURCE,
    HookBus,
    HookEvent,
)
from .hydrators import Hydrator, HydratorManager, public_fields
from .link import Link, LinkCollection
from .metadata import Metadata, MetadataMap
from .observability import log_event
from .paginator import Paginator
from .problem import ApiProblem
from .registry import TypeRegistry
from .resources import HalCollection, HalResource, missing_identifier

log = logging.getLogger("halrest.core.hal_links")

REUSE_MATCHED_PARAMS = "reuse_matched_params"

_PLAIN_TYPES = (str, bytes, bytearray, int, float, bool, list, tuple, set, frozenset)


class RouteResolver(Protocol):
    def resolve(
        self,
        route: str,
        params: Mapping[str, Any],
        options: Mapping[str, Any],
        reuse_matched_params: bool = True,
    ) -> str: ...


class ServerUrlComposer(Protocol):
    def compose(self, path: str) -> str: ...


def is_absolute_url(path: str) -> bool:
    parts = urlsplit(path)
    return bool(parts.scheme) and bool(parts.netloc)


def _is_domain_object(value: Any) -> bool:
    return value is not None and not isinstance(value, (Mapping,) + _PLAIN_TYPES)


def _merge_page_query(options: Mapping[str, Any], page: int) -> Dict[str, Any]:
    merged = dict(options)
    query = dict(merged.get("query") or {})
    query["page"] = page
    merged["query"] = query
    return merged


def default_identifier_listener(event: HookEvent) -> Any:
    """
    Default ``getIdFromResource`` listener.

    Order: mapping key, public attribute, ``get_<name>()`` accessor. Returns
    None when nothing is found so lower-priority listeners may still answer.
    """
    resource = event.get_param("resource")
    identifier_name = event.get_param("identifier_name") or "id"

    if isinstance(resource, Mapping):
        return resource.get(identifier_name)

    if not _is_domain_object(resource):
        return None

    value = getattr(resource, identifier_name, None)
    if value is not None and not callable(value):
        return value

    accessor = getattr(resource, f"get_{identifier_name}", None)
    if callable(accessor):
        return accessor()

    return None


class HalLinks:
    """Generate HAL links and render HAL payloads."""

    def __init__(
        self,
        url_helper: RouteResolver,
        server_url_helper: ServerUrlComposer,
        *,
        metadata_map: Optional[MetadataMap] = None,
        hydrators: Optional[HydratorManager] = None,
        default_hydrator: Optional[Hydrator] = None,
        hooks: Optional[HookBus] = None,
    ):
        self.url_helper = url_helper
        self.server_url_helper = server_url_helper
        self.hydrators = hydrators or (
            metadata_map.hydrators if metadata_map is not None else HydratorManager()
        )
        self.metadata_map = metadata_map or MetadataMap(hydrators=self.hydrators)
        self.default_hydrator = default_hydrator
        self._hydrator_map: TypeRegistry[Hydrator] = TypeRegistry()

        self.hooks = hooks if hooks is not None else HookBus()
        if default_identifier_listener not in self.hooks.listeners(
            GET_ID_FROM_RESOURCE
        ):
            self.hooks.attach(GET_ID_FROM_RESOURCE, default_identifier_listener)

    # --- Hydrators --------------------------------------------------------- #

    def add_hydrator(self, target: Any, hydrator: Union[Hydrator, str]) -> "HalLinks":
        """Map a type (class or type tag) to a hydrator instance or name."""
        self._hydrator_map.register(target, self.hydrators.resolve(hydrator))
        return self

    def set_default_hydrator(self, hydrator: Hydrator) -> "HalLinks":
        if not isinstance(hydrator, Hydrator):
            raise InvalidArgumentError("Default hydrator must implement extract(obj)")
        self.default_hydrator = hydrator
        return self

    def get_hydrator_for_resource(self, resource: Any) -> Optional[Hydrator]:
        metadata = self.metadata_map.get(resource)
        if metadata is not None and metadata.has_hydrator():
            return metadata.hydrator

        hydrator = self._hydrator_map.get(resource)
        if hydrator is not None:
            return hydrator

        return self.default_hydrator

    # --- Rendering --------------------------------------------------------- #

    def render_collection(
        self, hal_collection: HalCollection
    ) -> Union[Dict[str, Any], ApiProblem]:
        """
        Render a HalCollection.

        Paginated collections get pagination links first; an out-of-range
        page yields an ApiProblem instead of a payload.
        """
        self.hooks.trigger(RENDER_COLLECTION, self, {"collection": hal_collection})

        if isinstance(hal_collection.collection, Paginator):
            status = self._inject_pagination_links(hal_collection)
            if isinstance(status, ApiProblem):
                return status

        if not hal_collection.links.has("self") and hal_collection.collection_route:
            self.inject_self_link(hal_collection, hal_collection.collection_route)

        payload = dict(hal_collection.attributes)
        payload["_links"] = self.from_resource(hal_collection)
        payload["_embedded"] = {
            hal_collection.collection_name: self._extract_collection(hal_collection),
        }
        return payload

    def render_resource(self, hal_resource: HalResource) -> Dict[str, Any]:
        """
        Render a HalResource.

        The data is converted to a dict, nested resources and collections are
        moved to ``_embedded``, and the resource's links become ``_links``.
        """
        self.hooks.trigger(RENDER_RESOURCE, self, {"resource": hal_resource})

        if not hal_resource.links.has("self") and hal_resource.route:
            self.inject_self_link(
                hal_resource, hal_resource.route, hal_resource.identifier_name
            )
        links = self.from_resource(hal_resource)

        resource = hal_resource.resource
        if isinstance(resource, Mapping):
            data = dict(resource)
        else:
            data = self._convert_resource_to_dict(resource)

        self._embed_values(data)
        data["_links"] = links
        return data

    # --- Links ------------------------------------------------------------- #

    def create_link(
        self, route: str, identifier: Any = None, resource: Any = None
    ) -> str:
        """
        Create a fully qualified URI for a route.

        Triggers ``createLink``; listeners may rewrite ``route`` and mutate
        ``params`` before assembly. ``identifier=False`` disables reuse of the
        currently matched route params.
        """
        params: Dict[str, Any] = {}
        reuse_matched_params = True
        if identifier is False:
            reuse_matched_params = False
        elif identifier is not None:
            params["id"] = identifier

        event_params = {
            "route": route,
            "id": identifier,
            "resource": resource,
            "params": params,
        }
        self.hooks.trigger(CREATE_LINK, self, event_params)

        path = self.url_helper.resolve(
            event_params["route"], event_params["params"], {}, reuse_matched_params
        )
        return self._absolute(path)

    def from_link(self, link: Link) -> Dict[str, str]:
        if not link.is_complete():
            raise DomainError(
                f'Link "{link.relation}" is incomplete; must contain a URL or a route'
            )

        if link.has_url():
            return {"href": link.url}

        options = dict(link.route_options)
        raw_reuse = options.pop(REUSE_MATCHED_PARAMS, True)
        reuse_matched_params = parse_bool(raw_reuse)
        if reuse_matched_params is None:
            raise InvalidArgumentError(
                f'Route option "{REUSE_MATCHED_PARAMS}" must be a boolean; '
                f"received {raw_reuse!r}"
            )
        path = self.url_helper.resolve(
            link.route, link.route_params, options, reuse_matched_params
        )
        return {"href": self._absolute(path)}

    def from_link_collection(
        self, collection: LinkCollection
    ) -> Dict[str, Union[Dict[str, str], List[Dict[str, str]]]]:
        links: Dict[str, Union[Dict[str, str], List[Dict[str, str]]]] = {}
        for relation, definition in collection.items():
            if isinstance(definition, Link):
                links[relation] = self.from_link(definition)
                continue
            if not isinstance(definition, list):
                raise DomainError(
                    f'Link object for relation "{relation}" was malformed; '
                    "cannot generate link"
                )
            aggregate = []
            for sub_link in definition:
                if not isinstance(sub_link, Link):
                    raise DomainError(
                        f'Link object aggregated for relation "{relation}" was '
                        "malformed; cannot generate link"
                    )
                aggregate.append(self.from_link(sub_link))
            links[relation] = aggregate
        return links

    def from_resource(self, resource: Union[HalResource, HalCollection]) -> Dict[str, Any]:
        return self.from_link_collection(resource.links)

    def _absolute(self, path: str) -> str:
        if is_absolute_url(path):
            return path
        return self.server_url_helper.compose(path)

    # --- Factories --------------------------------------------------------- #

    def create_resource_from_metadata(
        self, obj: Any, metadata: Metadata
    ) -> Union[HalResource, HalCollection]:
        if metadata.is_collection:
            return self.create_collection_from_metadata(obj, metadata)

        hydrator = (
            metadata.hydrator
            if metadata.has_hydrator()
            else self.get_hydrator_for_resource(obj)
        )
        if hydrator is None:
            raise HalRuntimeError(
                f"Unable to extract {type(obj).__name__}; no hydrator registered"
            )
        data = hydrator.extract(obj)

        identifier_name = metadata.identifier_name
        if identifier_name is not None and data.get(identifier_name) is None:
            raise HalRuntimeError(
                f'Unable to determine identifier for object of type "{type(obj).__name__}"; '  # noqa: E501
                f'no fields matching "{identifier_name}"'
            )
        identifier = None if identifier_name is None else data[identifier_name]

        resource = HalResource(data, identifier)
        self._marshal_metadata_links(metadata, resource.links)
        if not resource.links.has("self"):
            resource.links.add(
                self._marshal_self_link_from_metadata(
                    metadata, obj, identifier, identifier_name
                )
            )
        return resource

    def create_resource(
        self, resource: Any, route: str, identifier_name: str = "id"
    ) -> Union[HalResource, ApiProblem]:
        """Wrap raw data in a HalResource carrying a self link."""
        if _is_domain_object(resource) and not isinstance(
            resource, (HalResource, HalCollection)
        ):
            metadata = self.metadata_map.get(resource)
            if metadata is not None:
                resource = self.create_resource_from_metadata(resource, metadata)

        if not isinstance(resource, HalResource):
            identifier = self.get_id_from_resource(resource, identifier_name)
            if missing_identifier(identifier):
                return ApiProblem(
                    422, "No resource identifier present following resource creation."
                )
            resource = HalResource(resource, identifier, identifier_name=identifier_name)

        self.inject_self_link(resource, route, identifier_name)
        return resource

    def create_collection(self, collection: Any, route: str) -> HalCollection:
        if _is_domain_object(collection) and not isinstance(
            collection, (HalCollection, Paginator)
        ):
            metadata = self.metadata_map.get(collection)
            if metadata is not None:
                collection = self.create_collection_from_metadata(collection, metadata)

        if not isinstance(collection, HalCollection):
            collection = HalCollection(collection)

        self.inject_self_link(collection, route)
        return collection

    def create_collection_from_metadata(self, obj: Any, metadata: Metadata) -> HalCollection:
        collection = HalCollection(obj)
        collection.collection_route = metadata.route
        collection.collection_route_params = metadata.route_params
        collection.collection_route_options = metadata.route_options
        collection.resource_route = metadata.get_resource_route()
        collection.collection_name = metadata.collection_name
        if metadata.identifier_name is not None:
            collection.identifier_name = metadata.identifier_name
        self._marshal_metadata_links(metadata, collection.links)
        return collection

    def inject_self_link(
        self,
        resource: Union[HalResource, HalCollection],
        route: str,
        identifier: str = "id",
    ) -> None:
        """Add (overwriting) a route-based self link.

        A resource without an identifier is not addressable and keeps the
        links it already has.
        """
        self_link = Link("self")
        if isinstance(resource, HalResource):
            if missing_identifier(resource.id):
                return
            params = dict(resource.route_params)
            params[identifier] = resource.id
            self_link.set_route(route, params, resource.route_options)
        else:
            self_link.set_route(
                route,
                resource.collection_route_params,
                resource.collection_route_options,
            )
        resource.links.add(self_link, overwrite=True)

    # --- Identifier -------------------------------------------------------- #

    def get_id_from_resource(self, resource: Any, identifier_name: Optional[str] = None) -> Any:
        """
        Resolve the identifier of a raw item via ``getIdFromResource``.

        Higher-priority listeners override the default lookup; the first
        listener returning something other than None/False wins.
        """
        params: Dict[str, Any] = {"resource": resource}
        if identifier_name:
            params["identifier_name"] = identifier_name

        results = self.hooks.trigger_until(
            GET_ID_FROM_RESOURCE,
            self,
            params,
            until=lambda r: r is not None and r is not False,
        )
        if results.stopped:
            return results.last()
        return None

    # --- Internals --------------------------------------------------------- #

    def _inject_pagination_links(
        self, hal_collection: HalCollection
    ) -> Union[bool, ApiProblem]:
        paginator: Paginator = hal_collection.collection
        page = hal_collection.page
        route = hal_collection.collection_route
        params = hal_collection.collection_route_params
        options = hal_collection.collection_route_options

        paginator.set_item_count_per_page(hal_collection.page_size)
        paginator.set_current_page_number(page)

        count = paginator.page_count
        if not count:
            return True

        if page < 1 or page > count:
            log_event(
                "pagination_problem",
                logger=log,
                route=route,
                page=page,
                page_count=count,
            )
            return ApiProblem(409, "Invalid page provided")

        if not route:
            raise HalRuntimeError(
                "Paginated collection has no collection route; cannot build links"
            )

        links = hal_collection.links
        links.add(
            Link("self").set_route(route, params, _merge_page_query(options, page)),
            overwrite=True,
        )
        links.add(Link("first").set_route(route, params, options), overwrite=True)
        links.add(
            Link("last").set_route(route, params, _merge_page_query(options, count)),
            overwrite=True,
        )
        if page > 1:
            links.add(
                Link("prev").set_route(
                    route, params, _merge_page_query(options, page - 1)
                ),
                overwrite=True,
            )
        if page < count:
            links.add(
                Link("next").set_route(
                    route, params, _merge_page_query(options, page + 1)
                ),
                overwrite=True,
            )
        return True

    def _embed_values(self, data: Dict[str, Any]) -> None:
        """Move nested resources/collections of ``data`` into ``_embedded``."""
        for key, value in list(data.items()):
            if _is_domain_object(value) and not isinstance(
                value, (HalResource, HalCollection)
            ):
                metadata = self.metadata_map.get(value)
                if metadata is not None:
                    value = self.create_resource_from_metadata(value, metadata)

            if isinstance(value, HalResource):
                rendered: Any = self.render_resource(value)
            elif isinstance(value, HalCollection):
                rendered = self._extract_collection(value)
            else:
                continue

            data.setdefault("_embedded", {})[key] = rendered
            del data[key]

    def _extract_collection(self, hal_collection: HalCollection) -> List[Any]:
        items: List[Any] = []
        identifier_name = hal_collection.identifier_name

        for item in hal_collection.collection:
            event_params: Dict[str, Any] = {
                "collection": hal_collection,
                "resource": item,
                "route": hal_collection.resource_route,
                "routeParams": dict(hal_collection.resource_route_params),
                "routeOptions": dict(hal_collection.resource_route_options),
            }
            self.hooks.trigger(RENDER_COLLECTION_RESOURCE, self, event_params)
            original = event_params["resource"]
            resource = original

            if _is_domain_object(resource) and not isinstance(
                resource, (HalResource, HalCollection)
            ):
                metadata = self.metadata_map.get(resource)
                if metadata is not None:
                    resource = self.create_resource_from_metadata(resource, metadata)

            if isinstance(resource, HalResource):
                items.append(self.render_resource(resource))
                continue
            if isinstance(resource, HalCollection):
                items.append(self._extract_collection(resource))
                continue
            if not _is_domain_object(resource) and not isinstance(resource, Mapping):
                items.append(resource)
                continue

            if isinstance(resource, Mapping):
                data = dict(resource)
            else:
                data = self._convert_resource_to_dict(resource)

            self._embed_values(data)

            identifier = self.get_id_from_resource(data, identifier_name)
            if missing_identifier(identifier):
                # Not addressable; emit as-is without a self link
                items.append(data)
                continue

            links = getattr(original, "links", None)
            if not isinstance(links, LinkCollection):
                links = LinkCollection()

            if not links.has("self"):
                route_params = dict(event_params["routeParams"])
                route_params[identifier_name] = identifier
                links.add(
                    Link("self").set_route(
                        event_params["route"], route_params, event_params["routeOptions"]
                    )
                )

            data["_links"] = self.from_link_collection(links)
            items.append(data)

        return items

    def _convert_resource_to_dict(self, resource: Any) -> Dict[str, Any]:
        hydrator = self.get_hydrator_for_resource(resource)
        if hydrator is None:
            return public_fields(resource)
        return dict(hydrator.extract(resource))

    def _marshal_self_link_from_metadata(
        self,
        metadata: Metadata,
        obj: Any,
        identifier: Any,
        identifier_name: Optional[str],
    ) -> Link:
        link = Link("self")
        if metadata.has_url():
            return link.set_url(metadata.url)

        if not metadata.has_route():
            raise HalRuntimeError(
                f'Unable to create a self link for resource of type "{type(obj).__name__}"; '  # noqa: E501
                "metadata does not contain a route or a url"
            )

        params = dict(metadata.route_params)
        if identifier_name is not None:
            params[identifier_name] = identifier
        return link.set_route(metadata.route, params, metadata.route_options)

    @staticmethod
    def _marshal_metadata_links(metadata: Metadata, links: LinkCollection) -> None:
        for spec in metadata.links:
            links.add(Link.factory(spec))


__all__ = [
    "HalLinks",
    "RouteResolver",
    "ServerUrlComposer",
    "default_identifier_listener",
    "is_absolute_url",
    "REUSE_MATCHED_PARAMS",
]
