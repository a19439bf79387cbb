from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.types import ASGIApp

from halrest.core.observability import log_event
from halrest.core.problem import ApiProblem
from halrest.transports.http.request_id_middleware import request_id_headers, request_id_of
from halrest.transports.http.responses import problem_response

log = logging.getLogger("halrest.transports.http.problem")


class ProblemMiddleware(BaseHTTPMiddleware):
    """
    Convert uncaught exceptions into ``application/api-problem+json``.
    Stack traces are only included when ``display_exceptions`` is set.
    """

    def __init__(self, app: ASGIApp, display_exceptions: bool = False):
        super().__init__(app)
        self.display_exceptions = display_exceptions

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            problem = ApiProblem.from_exception(exc)
            log_event(
                "http_problem",
                logger=log,
                level=logging.ERROR,
                request_id=request_id_of(request),
                method=request.method.upper(),
                path=request.url.path,
                status=problem.status_code,
                error_type=type(exc).__name__,
            )
            log.debug("Unhandled exception", exc_info=exc)
            return problem_response(
                problem,
                self.display_exceptions,
                headers=request_id_headers(request),
            )


__all__ = ["ProblemMiddleware"]
