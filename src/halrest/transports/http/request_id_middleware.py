"""
Request correlation for the HAL transport.

Every request carries an id, taken from ``X-Request-Id`` or
``X-Correlation-Id`` or generated, which responses echo. Once the response is
known an ``http_request`` event records its status, duration and the kind of
payload that was rendered (resource, collection, problem or plain).
"""

from __future__ import annotations

import logging
import uuid
from typing import Dict, Mapping, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from halrest.core.observability import timed_event
from halrest.core.renderer import PROBLEM_JSON, PayloadKind

log = logging.getLogger("halrest.transports.http.request")

REQUEST_ID_HEADER = "X-Request-Id"
CORRELATION_ID_HEADER = "X-Correlation-Id"

# request.state attribute set by render_response
PAYLOAD_KIND_STATE = "hal_payload_kind"


def incoming_request_id(headers: Mapping[str, str]) -> str:
    rid = (
        headers.get(REQUEST_ID_HEADER) or headers.get(CORRELATION_ID_HEADER) or ""
    ).strip()
    return rid or uuid.uuid4().hex


def request_id_of(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None) or None


def request_id_headers(request: Request) -> Optional[Dict[str, str]]:
    rid = request_id_of(request)
    return {REQUEST_ID_HEADER: rid} if rid else None


def rendered_kind(request: Request, content_type: Optional[str]) -> Optional[str]:
    """
    Kind recorded while rendering; problems built outside the renderer
    (middleware, method checks) are recognized by their media type.
    """
    kind = getattr(request.state, PAYLOAD_KIND_STATE, None)
    if kind is None and content_type:
        if content_type.split(";", 1)[0].strip().lower() == PROBLEM_JSON:
            kind = PayloadKind.PROBLEM
    return kind.value if kind is not None else None


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        rid = incoming_request_id(request.headers)
        request.state.request_id = rid

        # Logged on exit, with error_type when downstream raised
        with timed_event(
            "http_request",
            log,
            request_id=rid,
            method=request.method.upper(),
            path=request.url.path,
            status="exception",
        ) as fields:
            response = await call_next(request)
            response.headers.setdefault(REQUEST_ID_HEADER, rid)
            content_type = response.headers.get("content-type")
            fields.update(
                status=response.status_code,
                media_type=content_type,
                kind=rendered_kind(request, content_type),
            )
            return response


__all__ = [
    "RequestIdMiddleware",
    "REQUEST_ID_HEADER",
    "CORRELATION_ID_HEADER",
    "incoming_request_id",
    "request_id_of",
    "request_id_headers",
    "rendered_kind",
]
