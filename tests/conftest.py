"""Shared fixtures: a deterministic clock and an in-process stand-in for the target server."""

import functools
import json
import random

import httpx
import pytest
import pytest_asyncio

from traffic_anomaly.client import TargetClient
from traffic_anomaly.config import load_default_profile
from traffic_anomaly.features import extract_features, validate_input
from traffic_anomaly.scorer import RuleClassifier, RuleScorer

START_MS = 1_000_000


class FakeClock:
    """Clock that only moves when slept on or advanced explicitly."""

    def __init__(self, start_ms: int = START_MS) -> None:
        self.now = start_ms

    def now_ms(self) -> int:
        return self.now

    async def sleep(self, ms: float) -> None:
        self.now += int(ms)

    def advance(self, ms: int) -> None:
        self.now += ms


def _json(status: int, payload) -> httpx.Response:
    return httpx.Response(status, json=payload)


def target_app(request: httpx.Request, session_headers: bool = False) -> httpx.Response:
    """Route table modelled on the demo target application."""
    url = request.url
    if url.host != "testserver" or url.port == 99999:
        raise httpx.ConnectError("Name or service not known", request=request)

    method, path = request.method, url.path
    body = json.loads(request.content) if request.content else {}
    extra = {"X-Session-Id": "abc123"} if session_headers else {}

    if path == "/" and method == "GET":
        return httpx.Response(200, text="<html><title>Demo</title></html>")
    if path == "/api/config" and method == "GET":
        return _json(200, {"debug": True, "version": "1.0"})
    if path == "/api/search":
        if method != "GET":
            return _json(405, {"error": "Method not allowed"})
        q = url.params.get("q", "")
        if len(q) > 5000:
            return _json(500, {"error": "Internal error"})
        return httpx.Response(200, text=f"Results for {q}")
    if path == "/api/login":
        if method != "POST":
            return _json(405, {"error": "Method not allowed"})
        if "username" not in body or "password" not in body:
            return _json(400, {"error": "Missing credentials"})
        if body["username"] is None:
            return _json(500, {"error": "Internal error"})
        if body == {"username": "user1", "password": "password"}:
            return _json(200, {"success": True, "token": "t0k3n"})
        return _json(401, {"error": "Invalid credentials"})
    if path == "/api/register":
        if "email" in body and "@" not in body["email"]:
            return _json(422, {"error": "Invalid email"})
        return _json(400, {"error": "Missing fields"})
    if path == "/api/user" and method == "POST":
        return _json(400, {"error": "Bad request"})
    if path.startswith("/api/user/"):
        user_id = path.rsplit("/", 1)[1]
        if method == "PUT":
            return _json(422, {"error": "Validation failed"})
        if user_id == "null":
            return _json(500, {"error": "Internal error"})
        if user_id == "1":
            return httpx.Response(200, json={"id": 1, "username": "user1"}, headers=extra)
        return _json(404, {"error": "User not found"})
    if path in ("/api/admin", "/api/protected/resource"):
        return _json(401, {"error": "Unauthorized"})
    if path.startswith("/api/admin/"):
        return _json(403, {"error": "Forbidden"})
    if path == "/api/ml/predict":
        result = RuleScorer(rng=random.Random(0)).score(body.get("input", ""), body.get("threshold", 0.5))
        return _json(200, {
            "success": True,
            "score": result.score,
            "prediction": result.prediction,
            "confidence": result.confidence,
        })
    if path == "/api/ml/classify":
        result = RuleClassifier().classify(body.get("input", ""))
        return _json(200, {"success": True, "prediction": result.prediction, "confidence": result.confidence})
    if path == "/api/ml/validate-input":
        v = validate_input(body.get("input"))
        return _json(200, {
            "success": v.is_valid,
            "data": {
                "isValid": v.is_valid,
                "inputLength": v.input_length,
                "hasSpecialChars": v.has_special_chars,
                "encoding": "utf-8",
                "sanitized": v.sanitized,
            },
        })
    if path == "/api/ml/extract-features":
        f = extract_features(body.get("request"))
        return _json(200, {
            "success": True,
            "features": {
                "method": f.method,
                "endpoint": f.endpoint,
                "payloadSize": f.payload_size,
                "hasScript": f.has_script,
                "hasSqlKeywords": f.has_sql_keywords,
                "hasSpecialChars": f.has_special_chars,
            },
        })
    return _json(404, {"error": "Not found"})


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def make_client(clock):
    """Build TargetClients around arbitrary request handlers; all are closed on teardown."""
    clients = []

    def _make(handler=target_app) -> TargetClient:
        client = TargetClient("http://testserver", clock=clock, transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.aclose()


@pytest.fixture
def target(make_client):
    return make_client()


@pytest.fixture
def offline(make_client):
    """A client whose every request fails at the transport layer."""
    def refuse(request):
        raise httpx.ConnectError("Connection refused", request=request)

    return make_client(refuse)


@pytest.fixture
def quiet_profile():
    """Default profile with the jitter switched off."""
    profile = load_default_profile()
    profile.scoring.jitter = 0.0
    return profile


@pytest.fixture
def exact_scorer(quiet_profile):
    return RuleScorer(profile=quiet_profile)


@pytest.fixture
def session_target(make_client):
    """Target that also sets a session header on user lookups."""
    return make_client(functools.partial(target_app, session_headers=True))
