"""Tests for perch.http — Headers, QueryParams, Request, Response."""

import dataclasses

import pytest

from perch.http import Headers, QueryParams, Request, Response


def _h(*pairs: tuple[str, str]) -> Headers:
    """Shorthand: build Headers from string pairs."""
    return Headers(tuple((k.encode("latin-1"), v.encode("latin-1")) for k, v in pairs))


def _request(path: str = "/", body: bytes = b"", query: bytes = b"") -> Request:
    chunks = [body]

    async def receive() -> dict[str, object]:
        return {"type": "http.request", "body": chunks.pop() if chunks else b"", "more_body": False}

    scope = {"method": "GET", "path": path, "headers": [], "query_string": query}
    return Request.from_asgi(scope, receive)


class TestHeaders:
    def test_case_insensitive(self) -> None:
        h = _h(("Content-Type", "text/html"))
        assert h["content-type"] == "text/html"
        assert "CONTENT-TYPE" in h

    def test_get_list(self) -> None:
        h = _h(("Accept", "a"), ("Accept", "b"))
        assert h.get_list("accept") == ["a", "b"]
        assert h["accept"] == "a"

    def test_get_tokens_splits_commas(self) -> None:
        h = _h(("Accept-Encoding", "gzip, br"), ("Accept-Encoding", " deflate ,"))
        assert h.get_tokens("accept-encoding") == ["gzip", "br", "deflate"]

    def test_immutable(self) -> None:
        with pytest.raises(AttributeError):
            _h().foo = 1  # type: ignore[attr-defined]

    def test_get_default(self) -> None:
        assert _h().get("x-missing", "d") == "d"


class TestQueryParams:
    def test_values(self) -> None:
        q = QueryParams(b"a=1&a=2&b=")
        assert q["a"] == "1"
        assert q.get_list("a") == ["1", "2"]
        assert q["b"] == ""


class TestRequest:
    def test_url_includes_query(self) -> None:
        assert _request("/search", query=b"q=x").url == "/search?q=x"

    def test_with_path_copies(self) -> None:
        request = _request("/login")
        derived = request.with_path("index.html")
        assert derived.path == "index.html"
        assert request.path == "/login"
        assert derived.headers is request.headers

    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            _request().path = "/other"  # type: ignore[misc]

    async def test_body_shared_with_derived(self) -> None:
        request = _request(body=b'{"a": 1}')
        assert await request.json() == {"a": 1}
        assert await request.with_path("/x").body() == b'{"a": 1}'


class TestResponse:
    def test_chaining_is_immutable(self) -> None:
        base = Response("hi")
        changed = base.with_status(201).with_header("X-A", "1")
        assert base.status == 200
        assert base.headers == ()
        assert changed.status == 201

    def test_header_lookup_case_insensitive(self) -> None:
        response = Response().with_headers({"ETag": '"x"'})
        assert response.header("etag") == '"x"'
        assert response.header("missing") is None

    def test_with_body(self) -> None:
        assert Response("a").with_body(b"b").body_bytes == b"b"
