from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple, Union

from starlette.applications import Starlette
from starlette.requests import Request

from halrest.core.config import RenderConfig
from halrest.core.errors import HalRuntimeError
from halrest.core.hal_links import HalLinks
from halrest.core.hooks import HookBus, HookCallback
from halrest.core.hydrators import Hydrator, HydratorManager
from halrest.core.metadata import MetadataMap
from halrest.core.renderer import HalJsonRenderer
from halrest.transports.http.config import HttpConfig
from halrest.transports.http.urls import ServerUrl, StarletteRouteResolver

log = logging.getLogger("halrest.transports.http.plugin")

STATE_KEY = "hal_plugin"
_LINKS_ATTR = "hal_links"


class HalPlugin:
    """
    Process-wide HAL state for a Starlette application.

    Metadata, hydrators and hook listeners are registered once at startup;
    every request then gets its own HalLinks (and HookBus) bound to that
    request's router match and server URL.
    """

    def __init__(
        self,
        metadata_map: Optional[MetadataMap] = None,
        hydrators: Optional[HydratorManager] = None,
        config: Optional[RenderConfig] = None,
        http_config: Optional[HttpConfig] = None,
    ):
        self.hydrators = hydrators or (
            metadata_map.hydrators if metadata_map is not None else HydratorManager()
        )
        self.metadata_map = metadata_map or MetadataMap(hydrators=self.hydrators)
        self.config = config or RenderConfig()
        self.http_config = http_config or HttpConfig()
        self._listeners: List[Tuple[str, HookCallback, int]] = []
        self._type_hydrators: List[Tuple[Any, Union[Hydrator, str]]] = []
        self.default_hydrator: Optional[Hydrator] = (
            self.hydrators.get(self.config.default_hydrator)
            if self.config.default_hydrator
            else None
        )

    # --- Startup registration ---------------------------------------------- #

    def attach(self, name: str, callback: HookCallback, priority: int = 1) -> HookCallback:
        """Register a listener attached to every request's HookBus."""
        self._listeners.append((name, callback, priority))
        return callback

    def listen(self, name: str, priority: int = 1):
        """Decorator form of ``attach``."""

        def decorator(callback: HookCallback) -> HookCallback:
            return self.attach(name, callback, priority)

        return decorator

    def add_hydrator(self, target: Any, hydrator: Union[Hydrator, str]) -> "HalPlugin":
        # Resolve now so unknown names fail at startup
        self.hydrators.resolve(hydrator)
        self._type_hydrators.append((target, hydrator))
        return self

    def install(self, app: Starlette) -> "HalPlugin":
        setattr(app.state, STATE_KEY, self)
        log.debug("HAL plugin installed (%d metadata entries)", len(self.metadata_map))
        return self

    @classmethod
    def from_request(cls, request: Request) -> "HalPlugin":
        plugin = getattr(request.app.state, STATE_KEY, None)
        if not isinstance(plugin, cls):
            raise HalRuntimeError("No HalPlugin installed on this application")
        return plugin

    # --- Per request ------------------------------------------------------- #

    def build_hooks(self) -> HookBus:
        hooks = HookBus()
        for name, callback, priority in self._listeners:
            hooks.attach(name, callback, priority)
        return hooks

    def links_for(self, request: Request) -> HalLinks:
        """Request-scoped HalLinks, built once and cached on ``request.state``."""
        links = getattr(request.state, _LINKS_ATTR, None)
        if isinstance(links, HalLinks):
            return links

        links = HalLinks(
            StarletteRouteResolver.from_request(request),
            ServerUrl.from_request(request, self.http_config),
            metadata_map=self.metadata_map,
            hydrators=self.hydrators,
            default_hydrator=self.default_hydrator,
            hooks=self.build_hooks(),
        )
        for target, hydrator in self._type_hydrators:
            links.add_hydrator(target, hydrator)
        setattr(request.state, _LINKS_ATTR, links)
        return links

    def renderer_for(self, request: Request) -> HalJsonRenderer:
        return HalJsonRenderer(
            self.links_for(request), display_exceptions=self.config.display_exceptions
        )


__all__ = ["HalPlugin", "STATE_KEY"]
