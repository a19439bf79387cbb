"""
Starlette adapters for the engine's route resolver and server-URL composer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple
from urllib.parse import urlencode

from starlette.requests import Request
from starlette.routing import BaseRoute, Mount, NoMatchFound, Router

from halrest.core.errors import HalRuntimeError
from halrest.transports.http.config import HttpConfig
from halrest.transports.http.trusted_proxy import forwarded_host, forwarded_scheme


def _named_routes(
    routes: Iterable[BaseRoute],
    prefix: str = "",
    inherited: FrozenSet[str] = frozenset(),
) -> Iterator[Tuple[str, FrozenSet[str]]]:
    """Yield (full route name, path param names), descending into mounts."""
    for route in routes:
        params = inherited | frozenset(getattr(route, "param_convertors", {}) or {})
        if isinstance(route, Mount):
            # Mount compiles its path with a trailing {path:path} catch-all
            params = params - {"path"}
            child_prefix = f"{prefix}{route.name}:" if route.name else prefix
            yield from _named_routes(route.routes, child_prefix, params)
            continue
        name = getattr(route, "name", None)
        if name:
            yield f"{prefix}{name}", params


class StarletteRouteResolver:
    """
    Resolve route names registered on a Starlette router into paths.

    Several routes may share a name (``/users`` and ``/users/{id}``); the
    most specific one whose path params are all available wins. Params of
    the currently matched route are reused as defaults unless disabled.
    """

    def __init__(self, router: Router, matched_params: Optional[Mapping[str, Any]] = None):
        self.router = router
        self.matched_params: Dict[str, Any] = dict(matched_params or {})

    @classmethod
    def from_request(cls, request: Request) -> "StarletteRouteResolver":
        router = request.scope.get("router") or request.app.router
        return cls(router, request.path_params)

    def candidates(self, route: str) -> List[FrozenSet[str]]:
        return [params for name, params in _named_routes(self.router.routes) if name == route]

    def resolve(
        self,
        route: str,
        params: Mapping[str, Any],
        options: Mapping[str, Any],
        reuse_matched_params: bool = True,
    ) -> str:
        merged: Dict[str, Any] = dict(self.matched_params) if reuse_matched_params else {}
        merged.update(params)
        available = {key for key, value in merged.items() if value is not None}
        cleared = {key for key, value in params.items() if value is None}

        candidates = self.candidates(route)
        if candidates and cleared and all(p & cleared for p in candidates):
            raise HalRuntimeError(
                f'Unable to resolve route "{route}"; '
                f"required params {sorted(cleared)} were given as None"
            )
        usable = [p for p in candidates if p <= available]
        if not usable:
            raise HalRuntimeError(
                f'Unable to resolve route "{route}" with params {sorted(available)}'
            )
        chosen = max(usable, key=len)

        try:
            path = str(self.router.url_path_for(route, **{k: merged[k] for k in chosen}))
        except (NoMatchFound, AssertionError) as exc:
            raise HalRuntimeError(f'Unable to resolve route "{route}": {exc}') from exc

        query = options.get("query")
        if query:
            path += "?" + urlencode(query, doseq=True)
        fragment = options.get("fragment")
        if fragment:
            path += f"#{fragment}"
        return path


@dataclass(frozen=True)
class ServerUrl:
    """Scheme and authority prefixed to every generated path."""

    scheme: str
    host: str

    def compose(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.scheme}://{self.host}{path}"

    @classmethod
    def from_request(cls, request: Request, cfg: Optional[HttpConfig] = None) -> "ServerUrl":
        cfg = cfg or HttpConfig()
        scheme = cfg.server_scheme or forwarded_scheme(request, cfg)
        host = cfg.server_host or forwarded_host(request, cfg)
        return cls(scheme=scheme, host=host)


__all__ = ["StarletteRouteResolver", "ServerUrl"]
