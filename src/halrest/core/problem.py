from __future__ import annotations

import traceback
from http import HTTPStatus
from typing import Any, Dict, Optional, Union

DEFAULT_DESCRIBED_BY = "http://www.w3.org/Protocols/rfc2616/rfc2616-sec10.html"


def _reason_phrase(status: int) -> Optional[str]:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return None


class ApiProblem:
    """
    API-Problem payload: httpStatus, describedBy, title, detail.

    A problem is a normal return value, not an exception; it replaces the
    resource or collection a render would otherwise have produced.
    """

    def __init__(
        self,
        http_status: int,
        detail: Union[str, BaseException],
        described_by: Optional[str] = None,
        title: Optional[str] = None,
    ):
        self.http_status = int(http_status)
        self.detail = detail
        self.described_by = described_by or DEFAULT_DESCRIBED_BY
        self.title = title
        self.detail_includes_stack_trace = False

    @classmethod
    def from_exception(
        cls, exc: BaseException, status: Optional[int] = None
    ) -> "ApiProblem":
        """Build a problem from a caught failure; status comes from the
        exception's ``status_code``/``code`` when it carries an int one."""
        if status is None:
            for attr in ("status_code", "code"):
                value = getattr(exc, attr, None)
                if isinstance(value, int) and not isinstance(value, bool) and value:
                    status = value
                    break
        return cls(status or 500, exc)

    def set_detail_includes_stack_trace(self, flag: bool) -> "ApiProblem":
        self.detail_includes_stack_trace = bool(flag)
        return self

    @property
    def status_code(self) -> int:
        """Transport status; out-of-range values become 500."""
        if 100 <= self.http_status <= 599:
            return self.http_status
        return 500

    def get_title(self) -> str:
        if self.title is not None:
            return self.title
        if self.described_by == DEFAULT_DESCRIBED_BY:
            phrase = _reason_phrase(self.http_status)
            if phrase:
                return phrase
        if isinstance(self.detail, BaseException):
            return type(self.detail).__name__
        return "Unknown"

    def get_detail(self) -> str:
        if isinstance(self.detail, BaseException):
            return self._detail_from_exception(self.detail)
        return str(self.detail)

    def _detail_from_exception(self, exc: BaseException) -> str:
        message = str(exc)
        if not self.detail_includes_stack_trace:
            return message

        message += "\n" + "".join(traceback.format_tb(exc.__traceback__))
        seen = {id(exc)}
        previous = exc.__cause__ or exc.__context__
        while previous is not None and id(previous) not in seen:
            seen.add(id(previous))
            message += (
                f"\n{type(previous).__name__}: {previous}\n"
                + "".join(traceback.format_tb(previous.__traceback__))
            )
            previous = previous.__cause__ or previous.__context__
        return message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "httpStatus": self.http_status,
            "describedBy": self.described_by,
            "title": self.get_title(),
            "detail": self.get_detail(),
        }

    def __repr__(self) -> str:
        return f"ApiProblem({self.http_status}, {self.get_detail()!r})"


__all__ = ["ApiProblem", "DEFAULT_DESCRIBED_BY"]
