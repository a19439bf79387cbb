"""
RESTful controller glue: one ASGI endpoint serving a collection route and its
item route, delegating to an async ResourceHandler.

Handler results flow through HalLinks.create_resource / create_collection so
every response is either a HAL payload or an API-Problem.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Optional, Tuple

from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from halrest.core.hal_links import HalLinks
from halrest.core.observability import log_event
from halrest.core.problem import ApiProblem
from halrest.core.resources import HalCollection
from halrest.transports.http.plugin import HalPlugin
from halrest.transports.http.request_id_middleware import request_id_of
from halrest.transports.http.responses import problem_response, render_response

log = logging.getLogger("halrest.transports.http.endpoint")

JSON_CONTENT_TYPES = ("application/json", "application/hal+json")


class ResourceHandler:
    """
    Backend for a ResourceEndpoint. Override the operations the resource
    supports; the rest answer with a 405 problem.

    Returning None from ``fetch`` means "not found"; returning a falsy value
    from ``delete``/``delete_list`` means the deletion failed. Any method may
    return an ApiProblem or raise; exceptions become problems whose status is
    taken from the exception's ``status_code`` when present.
    """

    async def fetch(self, identifier: Any, request: Request) -> Any:
        return self._not_defined("fetch")

    async def fetch_all(self, request: Request) -> Any:
        return self._not_defined("fetch_all")

    async def create(self, data: Any, request: Request) -> Any:
        return self._not_defined("create")

    async def update(self, identifier: Any, data: Any, request: Request) -> Any:
        return self._not_defined("update")

    async def replace_list(self, data: Any, request: Request) -> Any:
        return self._not_defined("replace_list")

    async def patch(self, identifier: Any, data: Any, request: Request) -> Any:
        return self._not_defined("patch")

    async def patch_list(self, data: Any, request: Request) -> Any:
        return self._not_defined("patch_list")

    async def delete(self, identifier: Any, request: Request) -> Any:
        return self._not_defined("delete")

    async def delete_list(self, request: Request) -> Any:
        return self._not_defined("delete_list")

    def _not_defined(self, operation: str) -> ApiProblem:
        return ApiProblem(405, f"The {operation} method has not been defined")


class _BadRequest(Exception):
    def __init__(self, detail: str, status: int = 400):
        super().__init__(detail)
        self.detail = detail
        self.status = status


class ResourceEndpoint:
    """
    ASGI app mounted on both the collection and the item route, e.g.::

        endpoint = ResourceEndpoint(UsersHandler(), route="users")
        routes = [
            Route("/users", endpoint, name="users"),
            Route("/users/{id}", endpoint, name="users"),
        ]
    """

    def __init__(
        self,
        handler: ResourceHandler,
        route: str,
        *,
        identifier_name: str = "id",
        collection_methods: Iterable[str] = ("GET", "POST"),
        resource_methods: Iterable[str] = ("DELETE", "GET", "PATCH", "PUT"),
        collection_name: Optional[str] = None,
        page_size: Optional[int] = None,
    ):
        if not route:
            raise ValueError("ResourceEndpoint requires a route name")
        self.handler = handler
        self.route = route
        self.identifier_name = identifier_name
        self.collection_methods = tuple(m.upper() for m in collection_methods)
        self.resource_methods = tuple(m.upper() for m in resource_methods)
        self.collection_name = collection_name
        self.page_size = page_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        response = await self.dispatch(request)
        await response(scope, receive, send)

    # --- Dispatch ---------------------------------------------------------- #

    async def dispatch(self, request: Request) -> Response:
        plugin = HalPlugin.from_request(request)
        method = request.method.upper()
        identifier = self.get_identifier(request)
        options = self.resource_methods if identifier is not None else self.collection_methods

        if method == "OPTIONS":
            return Response(status_code=204, headers={"Allow": ", ".join(options)})

        if method not in options + ("HEAD",) or (
            method == "HEAD" and "GET" not in options
        ):
            return problem_response(
                ApiProblem(405, f"Method {method} is not allowed for this resource"),
                headers={"Allow": ", ".join(options)},
            )

        try:
            if method in ("GET", "HEAD"):
                if identifier is not None:
                    return await self._fetch(request, identifier)
                return await self._fetch_all(request, plugin)
            if method == "POST":
                return await self._create(request)
            if method == "PUT":
                if identifier is not None:
                    return await self._update(request, identifier)
                return await self._replace_list(request, plugin)
            if method == "PATCH":
                if identifier is not None:
                    return await self._patch(request, identifier)
                return await self._patch_list(request, plugin)
            if method == "DELETE":
                if identifier is not None:
                    return await self._delete(request, identifier)
                return await self._delete_list(request)
        except _BadRequest as exc:
            return self._problem(request, ApiProblem(exc.status, exc.detail))

        return problem_response(
            ApiProblem(405, f"Method {method} is not allowed for this resource"),
            headers={"Allow": ", ".join(options)},
        )

    def get_identifier(self, request: Request) -> Any:
        """Identifier from the route match, else from the query string."""
        identifier = request.path_params.get(self.identifier_name)
        if identifier is None:
            identifier = request.query_params.get(self.identifier_name)
        if identifier == "":
            return None
        return identifier

    # --- Operations -------------------------------------------------------- #

    async def _fetch(self, request: Request, identifier: Any) -> Response:
        result = await self._call(request, self.handler.fetch, identifier, request)
        if result is None or result is False:
            result = ApiProblem(404, "Resource not found.")
        return self._resource_response(request, result)

    async def _fetch_all(self, request: Request, plugin: HalPlugin) -> Response:
        result = await self._call(request, self.handler.fetch_all, request)
        return self._collection_response(request, plugin, result)

    async def _create(self, request: Request) -> Response:
        data = await self._parse_body(request)
        result = await self._call(request, self.handler.create, data, request)
        if isinstance(result, ApiProblem):
            return self._problem(request, result)

        links = self._links(request)
        resource = links.create_resource(result, self.route, self.identifier_name)
        if isinstance(resource, ApiProblem):
            return self._problem(request, resource)

        location = links.from_link(resource.links.get("self"))["href"]
        return render_response(
            request, resource, status_code=201, headers={"Location": location}
        )

    async def _update(self, request: Request, identifier: Any) -> Response:
        data = await self._parse_body(request)
        result = await self._call(request, self.handler.update, identifier, data, request)
        return self._resource_response(request, result)

    async def _replace_list(self, request: Request, plugin: HalPlugin) -> Response:
        data = await self._parse_body(request)
        result = await self._call(request, self.handler.replace_list, data, request)
        return self._collection_response(request, plugin, result)

    async def _patch(self, request: Request, identifier: Any) -> Response:
        data = await self._parse_body(request)
        result = await self._call(request, self.handler.patch, identifier, data, request)
        return self._resource_response(request, result)

    async def _patch_list(self, request: Request, plugin: HalPlugin) -> Response:
        data = await self._parse_body(request)
        result = await self._call(request, self.handler.patch_list, data, request)
        return self._collection_response(request, plugin, result)

    async def _delete(self, request: Request, identifier: Any) -> Response:
        result = await self._call(request, self.handler.delete, identifier, request)
        if not result:
            result = ApiProblem(422, "Unable to delete resource.")
        if isinstance(result, ApiProblem):
            return self._problem(request, result)
        return Response(status_code=204)

    async def _delete_list(self, request: Request) -> Response:
        result = await self._call(request, self.handler.delete_list, request)
        if not result:
            result = ApiProblem(422, "Unable to delete collection.")
        if isinstance(result, ApiProblem):
            return self._problem(request, result)
        return Response(status_code=204)

    # --- Helpers ----------------------------------------------------------- #

    def _links(self, request: Request) -> HalLinks:
        return HalPlugin.from_request(request).links_for(request)

    async def _call(self, request: Request, operation, *args: Any) -> Any:
        try:
            return await operation(*args)
        except Exception as exc:
            problem = ApiProblem.from_exception(exc)
            log_event(
                "http_problem",
                logger=log,
                level=logging.WARNING,
                request_id=request_id_of(request),
                method=request.method.upper(),
                path=request.url.path,
                status=problem.status_code,
                error_type=type(exc).__name__,
            )
            return problem

    def _problem(self, request: Request, problem: ApiProblem) -> Response:
        return render_response(request, problem)

    def _resource_response(self, request: Request, result: Any) -> Response:
        if isinstance(result, ApiProblem):
            return self._problem(request, result)
        resource = self._links(request).create_resource(
            result, self.route, self.identifier_name
        )
        return render_response(request, resource)

    def _collection_response(
        self, request: Request, plugin: HalPlugin, result: Any
    ) -> Response:
        if isinstance(result, ApiProblem):
            return self._problem(request, result)

        page, page_size = self._pagination(request, plugin)
        collection = self._links(request).create_collection(result, self.route)
        self._configure_collection(collection, plugin, page, page_size)
        return render_response(request, collection)

    def _configure_collection(
        self,
        collection: HalCollection,
        plugin: HalPlugin,
        page: int,
        page_size: int,
    ) -> None:
        collection.collection_route = self.route
        collection.identifier_name = self.identifier_name
        collection.resource_route = self.route
        collection.page = page
        collection.page_size = page_size
        collection.collection_name = (
            self.collection_name or plugin.config.collection_name
        )

    def _pagination(self, request: Request, plugin: HalPlugin) -> Tuple[int, int]:
        cfg = plugin.http_config
        # Out-of-range pages, 0 included, render as a 409 problem
        page = self._query_int(request, cfg.page_param, 1)
        page_size = self.page_size or plugin.config.page_size
        if cfg.page_size_param:
            page_size = self._query_int(
                request, cfg.page_size_param, page_size, minimum=1
            )
        return page, page_size

    @staticmethod
    def _query_int(
        request: Request, name: str, default: int, minimum: Optional[int] = None
    ) -> int:
        raw = request.query_params.get(name)
        if raw is None or raw.strip() == "":
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            raise _BadRequest(f'Invalid "{name}" parameter provided') from exc
        if minimum is not None and value < minimum:
            raise _BadRequest(f'Invalid "{name}" parameter provided')
        return value

    @staticmethod
    async def _parse_body(request: Request) -> Any:
        body = await request.body()
        if not body.strip():
            return {}
        content_type = request.headers.get("content-type", "").split(";", 1)[0].strip()
        if content_type and content_type.lower() not in JSON_CONTENT_TYPES:
            raise _BadRequest(f"Unsupported content type {content_type!r}", 415)
        try:
            return json.loads(body)
        except ValueError as exc:
            raise _BadRequest("Unable to parse request body as JSON") from exc


__all__ = ["ResourceEndpoint", "ResourceHandler", "JSON_CONTENT_TYPES"]
