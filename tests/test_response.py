"""Tests for quire.http.response — Response chaining and Redirect."""

from quire.http.response import Redirect, Response


class TestResponse:
    def test_defaults(self) -> None:
        r = Response()
        assert r.body == ""
        assert r.status == 200
        assert r.content_type == "text/html; charset=utf-8"
        assert r.headers == ()
        assert r.cookies == ()

    def test_chaining_returns_new_objects(self) -> None:
        r1 = Response("hello")
        r2 = r1.with_status(404)
        r3 = r2.with_header("X-Foo", "bar")
        assert r1.status == 200
        assert r2.headers == ()
        assert r3.headers == (("X-Foo", "bar"),)

    def test_header_lookup(self) -> None:
        r = Response().with_headers({"Location": "/journal1/login"})
        assert r.header("location") == "/journal1/login"
        assert r.location == "/journal1/login"
        assert r.header("x-missing") is None

    def test_cookies(self) -> None:
        r = Response().with_cookie("currentLocale", "fr_FR", httponly=False).without_cookie("old")
        assert [c.name for c in r.cookies] == ["currentLocale", "old"]
        assert r.cookies[0].httponly is False
        assert r.cookies[1].max_age == 0

    def test_body_conversions(self) -> None:
        assert Response("héllo").body_bytes == "héllo".encode()
        assert Response(b"abc").text == "abc"
        assert Response().with_content_type("text/plain").content_type == "text/plain"


class TestRedirect:
    def test_defaults(self) -> None:
        r = Redirect("/journal1/index")
        assert r.status == 302
        assert r.headers == ()
