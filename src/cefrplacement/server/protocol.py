"""JSON-lines protocol messages exchanged with the assessment front end.

Every request is one JSON object per line with ``id``, ``method`` and
optional ``params``. Failures come back with an ``error`` message and a
stable ``code`` the front end can branch on.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional

from cefrplacement.engine.errors import (
    AssessmentError,
    InsufficientQuestionPool,
    InvalidAnswerSubmission,
    MalformedQuestionData,
    SessionNotActive,
)


class ProtocolError(ValueError):
    """A line that is not a well-formed request."""


# Most specific first; the first isinstance match wins.
ERROR_CODES: tuple[tuple[type, str], ...] = (
    (ProtocolError, "bad_request"),
    (InsufficientQuestionPool, "insufficient_pool"),
    (InvalidAnswerSubmission, "invalid_answer"),
    (SessionNotActive, "session_not_active"),
    (MalformedQuestionData, "malformed_question"),
    (AssessmentError, "assessment_error"),
    (ValueError, "invalid_params"),
    (KeyError, "invalid_params"),
)


def error_code(exc: BaseException) -> str:
    for exc_type, code in ERROR_CODES:
        if isinstance(exc, exc_type):
            return code
    return "internal_error"


@dataclass
class Request:
    """Incoming request from the front end."""
    id: Any
    method: str
    params: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> Request:
        if not isinstance(data, dict):
            raise ProtocolError("Request must be a JSON object")
        method = data.get("method")
        if not isinstance(method, str) or not method:
            raise ProtocolError("Request is missing 'method'")
        params = data.get("params") or {}
        if not isinstance(params, dict):
            raise ProtocolError("'params' must be an object")
        return cls(id=data.get("id", 0), method=method, params=params)

    @classmethod
    def parse_line(cls, line: str) -> Request:
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Invalid JSON: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> dict:
        return {"method": self.method, "params": self.params}


@dataclass
class Response:
    """Outgoing response; exactly one of ``result`` or ``error`` is sent."""
    id: Any
    result: Optional[dict] = None
    error: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def from_exception(cls, req_id: Any, exc: BaseException) -> Response:
        return cls(id=req_id, error=str(exc), code=error_code(exc))

    def to_json_line(self) -> str:
        d: dict = {"id": self.id}
        if self.error is not None:
            d["error"] = self.error
            d["code"] = self.code or "internal_error"
        else:
            d["result"] = self.result
        return json.dumps(d) + "\n"


@dataclass
class Notification:
    """Server-initiated message such as ``levelChanged``; never answered."""
    method: str
    params: dict = field(default_factory=dict)

    def to_json_line(self) -> str:
        return json.dumps({"method": self.method, "params": self.params}) + "\n"
