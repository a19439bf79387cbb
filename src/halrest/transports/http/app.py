from __future__ import annotations

import logging
from typing import Optional, Sequence

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.routing import BaseRoute

from halrest.core.config import RenderConfig
from halrest.core.logging import setup_logging
from halrest.transports.http.config import HttpConfig
from halrest.transports.http.plugin import HalPlugin
from halrest.transports.http.problem_middleware import ProblemMiddleware
from halrest.transports.http.request_id_middleware import RequestIdMiddleware

log = logging.getLogger(__name__)


def build_http_app(
    routes: Sequence[BaseRoute],
    plugin: Optional[HalPlugin] = None,
    cfg: Optional[HttpConfig] = None,
    *,
    debug: bool = False,
    configure_logging: bool = False,
) -> Starlette:
    """Starlette app with the HAL plugin installed and problem handling wired.

    ``configure_logging`` initializes root logging at the plugin's
    ``log_level``; leave it off when the host application owns logging.
    """
    if plugin is None:
        plugin = HalPlugin(
            config=RenderConfig.from_env(),
            http_config=cfg or HttpConfig.from_env(),
        )
    elif cfg is not None and cfg is not plugin.http_config:
        log.warning("HttpConfig passed alongside a HalPlugin; the plugin's config wins")

    if configure_logging:
        setup_logging(plugin.config.log_level)

    # Execution order: RequestId -> Problem -> router
    middleware = [
        Middleware(RequestIdMiddleware),
        Middleware(
            ProblemMiddleware, display_exceptions=plugin.config.display_exceptions
        ),
    ]
    app = Starlette(debug=debug, routes=list(routes), middleware=middleware)
    plugin.install(app)

    log.info(
        "Built HAL app (routes=%d, display_exceptions=%s, page_size=%s)",
        len(routes),
        plugin.config.display_exceptions,
        plugin.config.page_size,
    )
    return app


__all__ = ["build_http_app"]
