import pytest
from halrest.core.errors import DomainError, HalRuntimeError, InvalidArgumentError
from halrest.core.hal_links import HalLinks, is_absolute_url
from halrest.core.hooks import (
    CREATE_LINK,
    GET_ID_FROM_RESOURCE,
    RENDER_COLLECTION_RESOURCE,
    RENDER_RESOURCE,
    HookBus,
)
from halrest.core.link import Link
from halrest.core.metadata import MetadataMap
from halrest.core.paginator import Paginator
from halrest.core.problem import ApiProblem
from halrest.core.resources import HalCollection, HalResource
from halrest.transports.http.urls import ServerUrl, StarletteRouteResolver
from starlette.responses import PlainTextResponse
from starlette.routing import Route, Router

HOST = "http://localhost.localdomain"


async def _noop(request):
    return PlainTextResponse("")


def _router():
    return Router(
        routes=[
            Route("/resource", _noop, name="resource"),
            Route("/resource/{id}", _noop, name="resource"),
            Route("/users/{id}", _noop, name="users"),
            Route("/contacts/{id}", _noop, name="contacts"),
            Route("/embedded/{id}", _noop, name="embedded"),
        ]
    )


def _links(matched=None, **kwargs):
    return HalLinks(
        StarletteRouteResolver(_router(), matched),
        ServerUrl("http", "localhost.localdomain"),
        **kwargs,
    )


class User:
    def __init__(self, id, name, contact=None):
        self.id = id
        self.name = name
        if contact is not None:
            self.contact = contact


class Accessors:
    def __init__(self, id):
        self._id = id

    def get_id(self):
        return self._id

    def get_label(self):
        return f"label-{self._id}"


def _paginated_collection(page, page_size=5, total=100):
    items = [{"id": i, "name": f"item {i}"} for i in range(1, total + 1)]
    collection = HalCollection(Paginator.from_sequence(items), "resource")
    collection.page = page
    collection.page_size = page_size
    return collection


# --- Resources ---------------------------------------------------------------


def test_resource_renders_self_link():
    links = _links()
    resource = HalResource({"id": "identifier", "foo": "bar"}, "identifier", "resource")

    payload = links.render_resource(resource)

    assert payload["foo"] == "bar"
    assert payload["_links"] == {"self": {"href": f"{HOST}/resource/identifier"}}


@pytest.mark.parametrize("identifier", [None, False, ""])
def test_resource_without_identifier_gets_no_self_link(identifier):
    links = _links()
    resource = HalResource({"foo": "bar"}, identifier, "resource")

    payload = links.render_resource(resource)

    assert payload == {"foo": "bar", "_links": {}}


def test_injecting_self_link_skips_resource_without_identifier():
    links = _links()
    resource = HalResource({"foo": "bar"}, None)
    resource.links.add(Link("self").set_url("http://example.com/singleton"))

    links.inject_self_link(resource, "resource")

    assert links.render_resource(resource)["_links"] == {
        "self": {"href": "http://example.com/singleton"}
    }


def test_resource_links_include_urls_and_aggregates():
    links = _links()
    resource = HalResource({"id": 1}, 1, "resource")
    resource.links.add(Link("describedby").set_url("http://example.com/schema"))
    resource.links.add(Link("friend").set_route("users", {"id": 2}))
    resource.links.add(Link("friend").set_route("users", {"id": 3}))

    payload = links.render_resource(resource)

    assert payload["_links"]["describedby"] == {"href": "http://example.com/schema"}
    assert payload["_links"]["friend"] == [
        {"href": f"{HOST}/users/2"},
        {"href": f"{HOST}/users/3"},
    ]


def test_nested_resource_moves_to_embedded():
    links = _links()
    contact = HalResource({"id": "c1", "email": "a@example.com"}, "c1", "contacts")
    resource = HalResource({"id": "user", "contact": contact}, "user", "users")

    payload = links.render_resource(resource)

    assert "contact" not in payload
    embedded = payload["_embedded"]["contact"]
    assert embedded["email"] == "a@example.com"
    assert embedded["_links"]["self"]["href"] == f"{HOST}/contacts/c1"


def test_nested_collection_moves_to_embedded_as_list():
    links = _links()
    friends = HalCollection([{"id": 2}, {"id": 3}], resource_route="users")
    resource = HalResource({"id": 1, "friends": friends}, 1, "users")

    payload = links.render_resource(resource)

    assert [f["_links"]["self"]["href"] for f in payload["_embedded"]["friends"]] == [
        f"{HOST}/users/2",
        f"{HOST}/users/3",
    ]


def test_object_resource_without_hydrator_uses_public_fields():
    links = _links()
    payload = links.render_resource(HalResource(User(1, "matthew"), 1, "users"))
    assert payload["name"] == "matthew"
    assert payload["_links"]["self"]["href"] == f"{HOST}/users/1"


def test_type_hydrator_used_for_object_resource():
    links = _links().add_hydrator(Accessors, "ClassMethods")
    payload = links.render_resource(HalResource(Accessors(4), 4, "users"))
    assert payload["label"] == "label-4"


def test_render_resource_hook_may_add_links():
    hooks = HookBus()

    def add_docs(event):
        event.get_param("resource").links.add(
            Link("describedby").set_url("http://example.com/docs")
        )

    hooks.attach(RENDER_RESOURCE, add_docs)
    payload = _links(hooks=hooks).render_resource(HalResource({"id": 1}, 1, "users"))
    assert payload["_links"]["describedby"]["href"] == "http://example.com/docs"


# --- Collections -------------------------------------------------------------


def test_paginated_collection_links_and_items():
    links = _links()
    payload = links.render_collection(_paginated_collection(page=3))

    assert payload["_links"] == {
        "self": {"href": f"{HOST}/resource?page=3"},
        "first": {"href": f"{HOST}/resource"},
        "last": {"href": f"{HOST}/resource?page=20"},
        "prev": {"href": f"{HOST}/resource?page=2"},
        "next": {"href": f"{HOST}/resource?page=4"},
    }
    items = payload["_embedded"]["items"]
    assert [item["id"] for item in items] == [11, 12, 13, 14, 15]
    for item in items:
        assert item["_links"]["self"]["href"] == f"{HOST}/resource/{item['id']}"


def test_first_and_last_pages_omit_prev_and_next():
    links = _links()
    first = links.render_collection(_paginated_collection(page=1))
    assert "prev" not in first["_links"]
    assert first["_links"]["next"]["href"] == f"{HOST}/resource?page=2"

    last = _links().render_collection(_paginated_collection(page=20))
    assert "next" not in last["_links"]
    assert last["_links"]["prev"]["href"] == f"{HOST}/resource?page=19"


def test_pagination_keeps_existing_query_options():
    collection = _paginated_collection(page=2)
    collection.collection_route_options = {"query": {"sort": "name"}}

    payload = _links().render_collection(collection)

    assert payload["_links"]["self"]["href"] == f"{HOST}/resource?sort=name&page=2"
    assert payload["_links"]["first"]["href"] == f"{HOST}/resource?sort=name"


@pytest.mark.parametrize("page", [-1, 0, 21, 1000])
def test_invalid_page_renders_problem(page):
    collection = _paginated_collection(page=1)
    collection.page = page

    result = _links().render_collection(collection)

    assert isinstance(result, ApiProblem)
    assert result.http_status == 409
    assert result.get_detail() == "Invalid page provided"


def test_empty_paginated_collection_has_only_self_link():
    collection = HalCollection(Paginator.from_sequence([]), "resource")
    payload = _links().render_collection(collection)
    assert payload["_links"] == {"self": {"href": f"{HOST}/resource"}}
    assert payload["_embedded"] == {"items": []}


def test_paginated_collection_without_route_fails():
    collection = HalCollection(Paginator.from_sequence([{"id": 1}]))
    with pytest.raises(HalRuntimeError):
        _links().render_collection(collection)


def test_collection_attributes_and_name():
    collection = HalCollection([{"id": 1}], "resource")
    collection.attributes = {"count": 1, "type": "list"}
    collection.collection_name = "users"

    payload = _links().render_collection(collection)

    assert payload["count"] == 1
    assert payload["type"] == "list"
    assert payload["_embedded"]["users"][0]["id"] == 1


def test_collection_items_without_identifier_have_no_links():
    payload = _links().render_collection(
        HalCollection([{"name": "anonymous"}, "plain", 5], "resource")
    )
    assert payload["_embedded"]["items"] == [{"name": "anonymous"}, "plain", 5]


def test_zero_is_a_valid_identifier():
    payload = _links().render_collection(HalCollection([{"id": 0}], "resource"))
    assert payload["_embedded"]["items"][0]["_links"]["self"]["href"] == (
        f"{HOST}/resource/0"
    )


def test_custom_identifier_listener_overrides_default():
    hooks = HookBus()

    def by_name(event):
        resource = event.get_param("resource")
        if isinstance(resource, dict):
            return resource.get("name")
        return None

    hooks.attach(GET_ID_FROM_RESOURCE, by_name, priority=10)
    links = _links(hooks=hooks)

    payload = links.render_collection(
        HalCollection([{"id": 1, "name": "matthew"}], "resource")
    )

    item = payload["_embedded"]["items"][0]
    assert item["_links"]["self"]["href"] == f"{HOST}/resource/matthew"


def test_render_collection_resource_hook_can_change_route():
    hooks = HookBus()

    def use_users(event):
        event.params["route"] = "users"

    hooks.attach(RENDER_COLLECTION_RESOURCE, use_users)
    payload = _links(hooks=hooks).render_collection(
        HalCollection([{"id": 7}], "resource")
    )
    assert payload["_embedded"]["items"][0]["_links"]["self"]["href"] == (
        f"{HOST}/users/7"
    )


def test_collection_of_hal_resources_keeps_their_links():
    resource = HalResource({"id": 3}, 3, "users")
    resource.links.add(Link("extra").set_url("http://example.com/extra"))

    payload = _links().render_collection(HalCollection([resource], "resource"))

    item = payload["_embedded"]["items"][0]
    assert item["_links"]["self"]["href"] == f"{HOST}/users/3"
    assert item["_links"]["extra"]["href"] == "http://example.com/extra"


def test_embedded_values_inside_collection_items():
    contact = HalResource({"id": "c9"}, "c9", "contacts")
    payload = _links().render_collection(
        HalCollection([{"id": 1, "contact": contact}], "resource")
    )
    item = payload["_embedded"]["items"][0]
    assert "contact" not in item
    assert item["_embedded"]["contact"]["_links"]["self"]["href"] == f"{HOST}/contacts/c9"


# --- Metadata ----------------------------------------------------------------


def _metadata_map():
    return MetadataMap(
        {
            User: {
                "hydrator": "ObjectProperty",
                "route": "users",
                "links": [{"rel": "docs", "url": "http://example.com/docs"}],
            },
        }
    )


def test_collection_items_converted_through_metadata():
    links = _links(metadata_map=_metadata_map())
    payload = links.render_collection(
        HalCollection([User(1, "matthew"), User(2, "mark")], "resource")
    )
    items = payload["_embedded"]["items"]
    assert [i["_links"]["self"]["href"] for i in items] == [
        f"{HOST}/users/1",
        f"{HOST}/users/2",
    ]
    assert items[0]["_links"]["docs"]["href"] == "http://example.com/docs"
    assert items[0]["name"] == "matthew"


def test_nested_object_embedded_through_metadata():
    metadata_map = _metadata_map()
    metadata_map.register("contact", {"url": "http://example.com/contacts/me"})

    class Contact:
        __hal_type__ = "contact"

        def __init__(self):
            self.id = "me"
            self.email = "me@example.com"

    links = _links(metadata_map=metadata_map, hydrators=metadata_map.hydrators)
    links.set_default_hydrator(metadata_map.hydrators.get("ObjectProperty"))

    payload = links.render_resource(
        HalResource(User(1, "matthew", contact=Contact()), 1, "users")
    )

    contact = payload["_embedded"]["contact"]
    assert contact["email"] == "me@example.com"
    assert contact["_links"]["self"]["href"] == "http://example.com/contacts/me"


def test_metadata_without_identifier_value_fails():
    links = _links(metadata_map=_metadata_map())
    with pytest.raises(HalRuntimeError):
        links.render_collection(HalCollection([User(None, "ghost")], "resource"))


def test_metadata_without_route_or_url_fails():
    metadata_map = MetadataMap({User: {"hydrator": "ObjectProperty"}})
    with pytest.raises(HalRuntimeError):
        _links(metadata_map=metadata_map).create_resource_from_metadata(
            User(1, "x"), metadata_map.get(User(1, "x"))
        )


def test_metadata_without_hydrator_fails():
    metadata_map = MetadataMap({User: {"route": "users"}})
    with pytest.raises(HalRuntimeError):
        _links(metadata_map=metadata_map).create_resource_from_metadata(
            User(1, "x"), metadata_map.get(User(1, "x"))
        )


def test_collection_metadata_builds_collection():
    class Team:
        __hal_type__ = "team"

        def __init__(self, members):
            self.members = members

        def __iter__(self):
            return iter(self.members)

    metadata_map = MetadataMap(
        {
            "team": {
                "is_collection": True,
                "route": "resource",
                "resource_route": "users",
                "collection_name": "members",
            }
        }
    )
    links = _links(metadata_map=metadata_map)
    collection = links.create_collection(Team([{"id": 5}]), "resource")

    payload = links.render_collection(collection)

    assert payload["_links"]["self"]["href"] == f"{HOST}/resource"
    assert payload["_embedded"]["members"][0]["_links"]["self"]["href"] == (
        f"{HOST}/users/5"
    )


# --- Factories and links -----------------------------------------------------


def test_create_resource_wraps_raw_data():
    links = _links()
    resource = links.create_resource({"id": 8, "name": "x"}, "users")
    assert isinstance(resource, HalResource)
    assert resource.id == 8
    assert links.from_link(resource.links.get("self")) == {"href": f"{HOST}/users/8"}


def test_create_resource_without_identifier_is_a_problem():
    result = _links().create_resource({"name": "x"}, "users")
    assert isinstance(result, ApiProblem)
    assert result.http_status == 422
    assert result.get_detail() == (
        "No resource identifier present following resource creation."
    )


def test_create_collection_injects_self_link():
    links = _links()
    collection = links.create_collection([{"id": 1}], "resource")
    assert isinstance(collection, HalCollection)
    assert links.from_link(collection.links.get("self"))["href"] == f"{HOST}/resource"


def test_create_link_and_listener_rewrites():
    hooks = HookBus()

    def rewrite(event):
        if event.get_param("route") == "legacy":
            event.params["route"] = "users"

    hooks.attach(CREATE_LINK, rewrite)
    links = _links(hooks=hooks)

    assert links.create_link("resource", 5) == f"{HOST}/resource/5"
    assert links.create_link("legacy", 6) == f"{HOST}/users/6"


def test_create_link_reuses_matched_params_unless_disabled():
    links = _links(matched={"id": "7"})
    assert links.create_link("resource") == f"{HOST}/resource/7"
    assert links.create_link("resource", False) == f"{HOST}/resource"


def test_from_link_reuse_option():
    links = _links(matched={"id": "7"})
    parent = Link("parent").set_route("resource")
    assert links.from_link(parent)["href"] == f"{HOST}/resource/7"

    detached = Link("up").set_route("resource", options={"reuse_matched_params": False})
    assert links.from_link(detached)["href"] == f"{HOST}/resource"


def test_from_link_with_fragment():
    link = Link("section").set_route("users", {"id": 1}, {"fragment": "profile"})
    assert _links().from_link(link)["href"] == f"{HOST}/users/1#profile"


def test_from_link_returns_url_verbatim():
    link = Link("docs").set_url("/relative/docs")
    assert _links().from_link(link) == {"href": "/relative/docs"}


def test_from_link_keeps_mixed_case_url_verbatim():
    url = "HTTP://Example.com/a?"
    link = Link("describedby").set_url(url)
    assert _links().from_link(link) == {"href": url}


@pytest.mark.parametrize("flag", ["false", "0", "off", False])
def test_from_link_reuse_option_accepts_string_flags(flag):
    links = _links(matched={"id": "7"})
    link = Link("up").set_route("resource", options={"reuse_matched_params": flag})
    assert links.from_link(link)["href"] == f"{HOST}/resource"


def test_from_link_reuse_option_rejects_unknown_values():
    link = Link("up").set_route("resource", options={"reuse_matched_params": "maybe"})
    with pytest.raises(InvalidArgumentError):
        _links().from_link(link)


def test_from_link_incomplete_raises():
    with pytest.raises(DomainError):
        _links().from_link(Link("self"))


def test_unknown_route_raises():
    with pytest.raises(HalRuntimeError):
        _links().from_link(Link("self").set_route("missing"))


def test_get_id_from_resource_default_lookup_order():
    links = _links()
    assert links.get_id_from_resource({"id": 3}) == 3
    assert links.get_id_from_resource(User(4, "x")) == 4
    assert links.get_id_from_resource(Accessors(5)) == 5
    assert links.get_id_from_resource({"slug": "s"}, "slug") == "s"
    assert links.get_id_from_resource({"name": "x"}) is None
    assert links.get_id_from_resource({"id": False}) is None


def test_is_absolute_url():
    assert is_absolute_url("http://example.com/x")
    assert not is_absolute_url("/x")
    assert not is_absolute_url("mailto:me@example.com")
