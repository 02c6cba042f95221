"""
Tests for middleware/ - request throttling keys and cache headers
"""

from types import SimpleNamespace

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from echo_audit.middleware.cache_control import CacheControlMiddleware
from echo_audit.middleware.rate_limit import get_user_id_or_ip


def _request(user=None) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/audits/analyze",
        "headers": [],
        "client": ("10.0.0.7", 5000),
        "state": {},
    }
    request = Request(scope)
    if user is not None:
        request.state.user = user
    return request


class TestRateLimitKey:

    def test_authenticated_user(self):
        assert get_user_id_or_ip(_request(SimpleNamespace(user_id="user_1"))) == "user:user_1"

    def test_falls_back_to_ip(self):
        assert get_user_id_or_ip(_request()) == "ip:10.0.0.7"


class TestCacheControl:

    def test_api_responses_are_not_cached(self):
        app = FastAPI()
        app.add_middleware(CacheControlMiddleware)

        @app.get("/api/projects")
        async def projects():
            return []

        @app.get("/api/health")
        async def health():
            return {"status": "healthy"}

        client = TestClient(app)

        assert client.get("/api/projects").headers["Cache-Control"].startswith("no-store")
        assert "Cache-Control" not in client.get("/api/health").headers
