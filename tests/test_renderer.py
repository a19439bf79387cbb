import json
import logging

from halrest.core.hal_links import HalLinks
from halrest.core.paginator import Paginator
from halrest.core.problem import ApiProblem
from halrest.core.renderer import (
    HAL_JSON,
    PLAIN_JSON,
    PROBLEM_JSON,
    HalJsonRenderer,
    PayloadKind,
    classify,
    media_type_for,
    to_json,
)
from halrest.core.resources import HalCollection, HalResource


class FakeResolver:
    def resolve(self, route, params, options, reuse_matched_params=True):
        path = f"/{route}"
        if params.get("id") is not None:
            path += f"/{params['id']}"
        if options.get("query"):
            path += "?" + "&".join(f"{k}={v}" for k, v in options["query"].items())
        return path


class FakeServer:
    def compose(self, path):
        return f"http://host{path}"


def _renderer(display_exceptions=False):
    return HalJsonRenderer(HalLinks(FakeResolver(), FakeServer()), display_exceptions)


def test_classify_and_media_types():
    assert classify(ApiProblem(400, "bad")) is PayloadKind.PROBLEM
    assert classify(HalCollection([])) is PayloadKind.COLLECTION
    assert classify(HalResource({"id": 1}, 1)) is PayloadKind.RESOURCE
    assert classify({"plain": True}) is PayloadKind.PLAIN

    assert media_type_for(ApiProblem(400, "bad")) == PROBLEM_JSON
    assert media_type_for(HalResource({"id": 1}, 1)) == HAL_JSON
    assert media_type_for([1, 2]) == PLAIN_JSON


def test_render_resource():
    rendered = _renderer().render(HalResource({"id": 1}, 1, "users"))
    assert rendered.kind is PayloadKind.RESOURCE
    assert rendered.media_type == HAL_JSON
    assert rendered.status_code == 200
    assert rendered.body["_links"]["self"]["href"] == "http://host/users/1"


def test_render_collection():
    rendered = _renderer().render(HalCollection([{"id": 2}], "users"))
    assert rendered.kind is PayloadKind.COLLECTION
    assert rendered.body["_links"]["self"]["href"] == "http://host/users"
    assert rendered.body["_embedded"]["items"][0]["_links"]["self"]["href"] == (
        "http://host/users/2"
    )


def test_collection_with_invalid_page_renders_as_problem():
    collection = HalCollection(Paginator.from_sequence(list(range(10))), "users")
    collection.page_size = 5
    collection.page = 3

    rendered = _renderer().render(collection)

    assert rendered.kind is PayloadKind.PROBLEM
    assert rendered.media_type == PROBLEM_JSON
    assert rendered.status_code == 409
    assert rendered.body["detail"] == "Invalid page provided"
    assert rendered.body["title"] == "Conflict"


def test_problem_with_unusual_status():
    rendered = _renderer().render(ApiProblem(10081, "odd"))
    assert rendered.status_code == 500
    assert rendered.body["httpStatus"] == 10081


def test_display_exceptions_adds_stack_trace():
    try:
        raise ValueError("broken")
    except ValueError as exc:
        problem = ApiProblem.from_exception(exc)

    quiet = _renderer().render(problem)
    assert quiet.body["detail"] == "broken"

    problem = ApiProblem.from_exception(problem.detail)
    verbose = _renderer(display_exceptions=True).render(problem)
    assert verbose.body["detail"].startswith("broken\n")
    assert "test_display_exceptions_adds_stack_trace" in verbose.body["detail"]


def test_plain_payload_passes_through():
    rendered = _renderer().render({"status": "ok"})
    assert rendered.kind is PayloadKind.PLAIN
    assert rendered.body == {"status": "ok"}
    assert rendered.media_type == PLAIN_JSON


def test_render_logs_event(caplog):
    caplog.set_level(logging.INFO, logger="halrest.core.renderer")
    _renderer().render(ApiProblem(404, "missing"))
    record = next(r for r in caplog.records if r.getMessage() == "hal_render")
    assert record.kind == "problem"
    assert record.status == 404
    assert record.media_type == PROBLEM_JSON


def test_to_json_is_compact_and_unicode():
    assert json.loads(to_json({"name": "Zoë", "n": 1})) == {"name": "Zoë", "n": 1}
    assert to_json({"a": 1}) == '{"a":1}'
