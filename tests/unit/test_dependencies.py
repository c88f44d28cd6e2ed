"""Unit tests for dependencies.request_body (JSON and HTML form bodies)."""

import json
from urllib.parse import urlencode

import pytest
from fastapi.exceptions import RequestValidationError

from dependencies import request_body
from schemas.dto.requests.auth import LoginRequest
from schemas.dto.requests.users import EditUserRequest
from tests.fakes import make_request

JSON = {"content-type": "application/json"}
FORM = {"content-type": "application/x-www-form-urlencoded"}


class TestRequestBody:
    async def test_json_body(self):
        body = json.dumps({"email": "Ada@Example.com", "password": "secret123"}).encode()
        parsed = await request_body(LoginRequest)(make_request(headers=JSON, body=body))
        assert parsed.email == "ada@example.com"
        assert parsed.password == "secret123"

    async def test_form_body_with_csrf_field(self):
        body = urlencode(
            {"email": "ada@example.com", "password": "secret123", "csrf": "tok"}
        ).encode()
        parsed = await request_body(LoginRequest)(make_request(headers=FORM, body=body))
        assert parsed.email == "ada@example.com"
        assert not hasattr(parsed, "csrf")

    async def test_form_body_partial_edit(self):
        body = urlencode({"surname": "Murray"}).encode()
        parsed = await request_body(EditUserRequest)(make_request(headers=FORM, body=body))
        assert parsed.to_update() == {"surname": "Murray"}

    async def test_invalid_fields_raise_validation_error(self):
        body = urlencode({"email": "nope", "password": "secret123"}).encode()
        with pytest.raises(RequestValidationError) as exc:
            await request_body(LoginRequest)(make_request(headers=FORM, body=body))
        assert ("email",) in [tuple(e["loc"]) for e in exc.value.errors()]

    @pytest.mark.parametrize("body", [b"", b"{not json", b"[1, 2]"])
    async def test_malformed_json_raises_validation_error(self, body):
        with pytest.raises(RequestValidationError):
            await request_body(LoginRequest)(make_request(headers=JSON, body=body))
