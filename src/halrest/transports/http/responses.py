from __future__ import annotations

from typing import Any, Mapping, Optional

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from halrest.core.problem import ApiProblem
from halrest.core.renderer import HAL_JSON, PayloadKind, RenderedPayload, render_problem, to_json
from halrest.transports.http.plugin import HalPlugin
from halrest.transports.http.request_id_middleware import PAYLOAD_KIND_STATE


class HalJSONResponse(JSONResponse):
    """JSON response whose media type follows the rendered payload kind."""

    media_type = HAL_JSON

    def render(self, content: Any) -> bytes:
        return to_json(content).encode("utf-8")


def rendered_response(
    rendered: RenderedPayload,
    status_code: Optional[int] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    # Problems always carry their own status
    if rendered.kind is PayloadKind.PROBLEM or status_code is None:
        status_code = rendered.status_code
    return HalJSONResponse(
        rendered.body,
        status_code=status_code,
        headers=dict(headers) if headers else None,
        media_type=rendered.media_type,
    )


def problem_response(
    problem: ApiProblem,
    display_exceptions: bool = False,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    return rendered_response(render_problem(problem, display_exceptions), headers=headers)


def render_response(
    request: Request,
    payload: Any,
    status_code: Optional[int] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """Render ``payload`` through the application's HalPlugin."""
    renderer = HalPlugin.from_request(request).renderer_for(request)
    rendered = renderer.render(payload)
    setattr(request.state, PAYLOAD_KIND_STATE, rendered.kind)
    return rendered_response(rendered, status_code, headers)


__all__ = ["HalJSONResponse", "render_response", "rendered_response", "problem_response"]
