"""Tests for content negotiation of operation return values."""

import json

import pytest

from quire.http.response import Redirect, Response
from quire.server.negotiation import negotiate


class TestNegotiate:
    def test_response_passes_through(self) -> None:
        response = Response("x", status=201)
        assert negotiate(response) is response

    def test_str(self) -> None:
        response = negotiate("<h1>About</h1>")
        assert response.status == 200
        assert response.body == "<h1>About</h1>"
        assert response.content_type.startswith("text/html")

    def test_none(self) -> None:
        assert negotiate(None).body == ""

    def test_bytes(self) -> None:
        assert negotiate(b"pdf").content_type == "application/octet-stream"

    def test_json(self) -> None:
        response = negotiate({"issues": [1, 2]})
        assert response.content_type.startswith("application/json")
        assert json.loads(response.text) == {"issues": [1, 2]}

    def test_redirect(self) -> None:
        response = negotiate(Redirect("/journal1/login"))
        assert response.status == 302
        assert response.location == "/journal1/login"

    def test_status_tuple(self) -> None:
        response = negotiate(("Gone", 410))
        assert response.status == 410
        assert response.body == "Gone"

    def test_unsupported(self) -> None:
        with pytest.raises(TypeError, match="Cannot convert"):
            negotiate(object())
