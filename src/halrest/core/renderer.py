"""
Payload classification and media-type selection.

A payload handed to the renderer is one of: an ApiProblem, a HalCollection,
a HalResource, or anything else JSON-serializable. The kind is decided once,
up front, and drives both the body and the media type.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from typing import Any

from .hal_links import HalLinks
from .observability import log_event
from .problem import ApiProblem
from .resources import HalCollection, HalResource

log = logging.getLogger("halrest.core.renderer")

HAL_JSON = "application/hal+json"
PROBLEM_JSON = "application/api-problem+json"
PLAIN_JSON = "application/json"


class PayloadKind(str, enum.Enum):
    PROBLEM = "problem"
    COLLECTION = "collection"
    RESOURCE = "resource"
    PLAIN = "plain"


MEDIA_TYPES = {
    PayloadKind.PROBLEM: PROBLEM_JSON,
    PayloadKind.COLLECTION: HAL_JSON,
    PayloadKind.RESOURCE: HAL_JSON,
    PayloadKind.PLAIN: PLAIN_JSON,
}


def classify(payload: Any) -> PayloadKind:
    if isinstance(payload, ApiProblem):
        return PayloadKind.PROBLEM
    if isinstance(payload, HalCollection):
        return PayloadKind.COLLECTION
    if isinstance(payload, HalResource):
        return PayloadKind.RESOURCE
    return PayloadKind.PLAIN


def media_type_for(payload: Any) -> str:
    return MEDIA_TYPES[classify(payload)]


@dataclass(frozen=True)
class RenderedPayload:
    kind: PayloadKind
    body: Any
    media_type: str
    status_code: int = 200


def to_json(body: Any) -> str:
    return json.dumps(body, ensure_ascii=False, separators=(",", ":"))


def render_problem(problem: ApiProblem, display_exceptions: bool = False) -> RenderedPayload:
    """Problem body with its clamped transport status."""
    if display_exceptions and isinstance(problem.detail, BaseException):
        problem.set_detail_includes_stack_trace(True)
    rendered = RenderedPayload(
        PayloadKind.PROBLEM, problem.to_dict(), PROBLEM_JSON, problem.status_code
    )
    log_event(
        "hal_render",
        logger=log,
        kind=rendered.kind.value,
        media_type=rendered.media_type,
        status=rendered.status_code,
    )
    return rendered


class HalJsonRenderer:
    """Renders payloads through a request-scoped HalLinks."""

    def __init__(self, links: HalLinks, display_exceptions: bool = False):
        self.links = links
        self.display_exceptions = display_exceptions

    def render(self, payload: Any) -> RenderedPayload:
        kind = classify(payload)

        if kind is PayloadKind.COLLECTION:
            body = self.links.render_collection(payload)
            if isinstance(body, ApiProblem):
                # Pagination failure replaces the collection
                return self._render_problem(body)
            rendered = RenderedPayload(kind, body, HAL_JSON)
        elif kind is PayloadKind.RESOURCE:
            rendered = RenderedPayload(kind, self.links.render_resource(payload), HAL_JSON)
        elif kind is PayloadKind.PROBLEM:
            return self._render_problem(payload)
        else:
            rendered = RenderedPayload(kind, payload, PLAIN_JSON)

        log_event(
            "hal_render",
            logger=log,
            level=logging.DEBUG,
            kind=rendered.kind.value,
            media_type=rendered.media_type,
            status=rendered.status_code,
        )
        return rendered

    def _render_problem(self, problem: ApiProblem) -> RenderedPayload:
        return render_problem(problem, self.display_exceptions)


__all__ = [
    "HalJsonRenderer",
    "PayloadKind",
    "RenderedPayload",
    "classify",
    "render_problem",
    "media_type_for",
    "to_json",
    "HAL_JSON",
    "PROBLEM_JSON",
    "PLAIN_JSON",
    "MEDIA_TYPES",
]
