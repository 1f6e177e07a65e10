"""Tests for the JSON-lines protocol and the line-serving loop."""

from __future__ import annotations

import json

import pytest

from cefrplacement.banks.registry import BankRegistry
from cefrplacement.config.settings import Settings
from cefrplacement.engine.errors import (
    InsufficientQuestionPool,
    InvalidAnswerSubmission,
    SessionNotActive,
)
from cefrplacement.server.__main__ import handle_line, serve
from cefrplacement.server.handler import ServerHandler
from cefrplacement.server.protocol import (
    Notification,
    ProtocolError,
    Request,
    Response,
    error_code,
)


class TestRequest:
    def test_parse_line(self):
        req = Request.parse_line(
            '{"id": 1, "method": "submitAnswer", "params": {"sessionId": "abc", "answer": "went"}}'
        )
        assert req.id == 1
        assert req.method == "submitAnswer"
        assert req.params == {"sessionId": "abc", "answer": "went"}

    def test_missing_or_null_params(self):
        assert Request.from_dict({"id": 2, "method": "listBanks"}).params == {}
        assert Request.from_dict({"id": 3, "method": "listBanks", "params": None}).params == {}

    @pytest.mark.parametrize("line, message", [
        ("not json", "Invalid JSON"),
        ("[1, 2]", "JSON object"),
        ('{"id": 1}', "missing 'method'"),
        ('{"id": 1, "method": "advance", "params": [1]}', "must be an object"),
    ])
    def test_bad_lines(self, line, message):
        with pytest.raises(ProtocolError, match=message):
            Request.parse_line(line)


class TestResponse:
    def test_success_json_line(self):
        line = Response(id=1, result={"finished": False}).to_json_line()
        assert line.endswith("\n")
        assert json.loads(line) == {"id": 1, "result": {"finished": False}}

    def test_error_from_exception(self):
        resp = Response.from_exception(2, InvalidAnswerSubmission("Answer must not be empty"))
        assert json.loads(resp.to_json_line()) == {
            "id": 2,
            "error": "Answer must not be empty",
            "code": "invalid_answer",
        }

    def test_error_without_code_is_internal(self):
        parsed = json.loads(Response(id=4, error="boom").to_json_line())
        assert parsed == {"id": 4, "error": "boom", "code": "internal_error"}

    @pytest.mark.parametrize("exc, code", [
        (InsufficientQuestionPool(15, 4), "insufficient_pool"),
        (SessionNotActive("done"), "session_not_active"),
        (ValueError("Unknown session: x"), "invalid_params"),
        (KeyError("attemptId"), "invalid_params"),
        (RuntimeError("boom"), "internal_error"),
    ])
    def test_error_codes(self, exc, code):
        assert error_code(exc) == code


class TestNotification:
    def test_json_line(self):
        parsed = json.loads(Notification("levelChanged", {"from": "B1", "to": "B2"}).to_json_line())
        assert parsed == {"method": "levelChanged", "params": {"from": "B1", "to": "B2"}}


@pytest.fixture
def handler(sample_bank_dir, tmp_path):
    h = ServerHandler(settings=Settings(data_dir=tmp_path / "data"))
    h.registry = BankRegistry(banks_dir=sample_bank_dir.parent)
    return h


async def _lines(*lines):
    for line in lines:
        yield line


class TestServe:
    @pytest.mark.asyncio
    async def test_handle_line_success(self, handler):
        resp = await handle_line(handler, '{"id": 7, "method": "listBanks"}')
        assert resp.id == 7
        assert resp.result["banks"][0]["id"] == "test_bank"

    @pytest.mark.asyncio
    async def test_handle_line_bad_json(self, handler):
        resp = await handle_line(handler, "{oops")
        assert resp.id == 0
        assert resp.code == "bad_request"

    @pytest.mark.asyncio
    async def test_handle_line_unknown_method(self, handler):
        resp = await handle_line(handler, '{"id": 3, "method": "teleport"}')
        assert resp.id == 3
        assert resp.code == "invalid_params"
        assert "Unknown method" in resp.error

    @pytest.mark.asyncio
    async def test_serve_skips_blank_lines(self, handler):
        written = []
        handled = await serve(
            handler,
            _lines('{"id": 1, "method": "listBanks"}\n', "\n", '{"id": 2, "method": "nope"}\n'),
            written.append,
        )
        assert handled == 2
        replies = [json.loads(line) for line in written]
        assert replies[0]["id"] == 1 and "result" in replies[0]
        assert replies[1]["id"] == 2 and replies[1]["code"] == "invalid_params"
