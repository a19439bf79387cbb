from .app import build_http_app
from .config import HttpConfig
from .endpoint import ResourceEndpoint, ResourceHandler
from .plugin import HalPlugin
from .responses import HalJSONResponse, render_response
from .urls import ServerUrl, StarletteRouteResolver

__all__ = [
    "HttpConfig",
    "HalPlugin",
    "HalJSONResponse",
    "ResourceEndpoint",
    "ResourceHandler",
    "ServerUrl",
    "StarletteRouteResolver",
    "build_http_app",
    "render_response",
]
