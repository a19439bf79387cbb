import pytest
from halrest.core.errors import HalRuntimeError
from halrest.transports.http.urls import ServerUrl, StarletteRouteResolver
from starlette.responses import PlainTextResponse
from starlette.routing import Mount, Route, Router


async def _noop(request):
    return PlainTextResponse("")


def _resolver(matched=None):
    router = Router(
        routes=[
            Route("/users", _noop, name="users"),
            Route("/users/{id:int}", _noop, name="users"),
            Mount(
                "/projects/{project}",
                routes=[
                    Route("/tasks", _noop, name="tasks"),
                    Route("/tasks/{id}", _noop, name="tasks"),
                ],
                name="projects",
            ),
        ]
    )
    return StarletteRouteResolver(router, matched)


def test_most_specific_route_wins():
    resolver = _resolver()
    assert resolver.resolve("users", {}, {}) == "/users"
    assert resolver.resolve("users", {"id": 3}, {}) == "/users/3"
    assert resolver.resolve("users", {"id": None}, {}) == "/users"


def test_matched_params_reused_as_defaults():
    resolver = _resolver({"project": "alpha", "id": "9"})
    assert resolver.resolve("projects:tasks", {}, {}) == "/projects/alpha/tasks/9"
    assert resolver.resolve("projects:tasks", {"id": "1"}, {}) == (
        "/projects/alpha/tasks/1"
    )
    with pytest.raises(HalRuntimeError):
        resolver.resolve("projects:tasks", {}, {}, reuse_matched_params=False)


def test_query_and_fragment_options():
    resolver = _resolver()
    path = resolver.resolve(
        "users", {}, {"query": {"page": 2, "tag": ["a", "b"]}, "fragment": "top"}
    )
    assert path == "/users?page=2&tag=a&tag=b#top"


def test_unknown_route_or_bad_value():
    resolver = _resolver()
    with pytest.raises(HalRuntimeError):
        resolver.resolve("nope", {}, {})
    with pytest.raises(HalRuntimeError):
        resolver.resolve("projects:tasks", {"project": "a/b"}, {})


def test_server_url_compose():
    server = ServerUrl("https", "api.example.com")
    assert server.compose("/users/1") == "https://api.example.com/users/1"
    assert server.compose("users") == "https://api.example.com/users"


def test_param_given_as_none_required_by_every_route_raises():
    resolver = _resolver({"project": "alpha"})
    with pytest.raises(HalRuntimeError, match="given as None"):
        resolver.resolve("projects:tasks", {"project": None}, {})
    # The item route is optional for "users", so None selects the collection
    assert resolver.resolve("users", {"id": None}, {}) == "/users"
