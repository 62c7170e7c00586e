from __future__ import annotations

import asyncio
import dataclasses
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient
from redis.exceptions import RedisError

import app.auth.deps as auth_deps
import app.auth.identity as identity
import app.middleware.rate_limit as rate_limit
from app.main import app
from app.models import TravelDirection
from app.store import get_store
from tests.factories import BASE_TIME, EVENT_ID, RecordingStore, add_user, attendance

JWT_SECRET = "test-secret-that-is-long-enough-for-hs256"


def _auth_headers(uid: str) -> dict[str, str]:
    return {"Authorization": f"Bearer dev_{uid}"}


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _put_attendance(client: TestClient, uid: str, event_id: str = EVENT_ID, **payload):
    return client.put(
        f"/v1/events/{event_id}/attendance",
        json=payload,
        headers=_auth_headers(uid),
    )


def _arrival(at: str, airport: str = "SFO", **extra) -> dict:
    return {"airport": airport, "date": "2026-11-02", "time": at, **extra}


def test_health_and_request_id(client: TestClient):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["X-Request-ID"]
    assert resp.headers["X-Content-Type-Options"] == "nosniff"

    echoed = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert echoed.headers["X-Request-ID"] == "req-123"


def test_missing_or_bad_token_is_unauthorized(client: TestClient, events):
    assert client.get("/v1/events").status_code == 401

    resp = client.get("/v1/events", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"] == "Bearer"


def test_me_creates_profile_on_first_sign_in(client: TestClient, store):
    resp = client.get("/v1/me", headers=_auth_headers("ada@example.com"))

    assert resp.status_code == 200
    assert resp.json()["user_id"] == "ada@example.com"
    assert resp.json()["email"] == "ada@example.com"
    assert store.get_profile("ada@example.com").last_login_at is not None


def test_events_list_and_detail(client: TestClient, events):
    resp = client.get("/v1/events", headers=_auth_headers("a"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 2
    assert [e["id"] for e in body["items"]] == ["devsummit-sf", "pycon-la"]

    detail = client.get(f"/v1/events/{EVENT_ID}", headers=_auth_headers("a"))
    assert detail.status_code == 200
    assert [a["code"] for a in detail.json()["airports"]] == ["SFO", "SJC"]

    missing = client.get("/v1/events/nope", headers=_auth_headers("a"))
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "EVENT_NOT_FOUND"


def test_attendance_round_trip(client: TestClient, events):
    assert client.get(
        f"/v1/events/{EVENT_ID}/attendance", headers=_auth_headers("a")
    ).status_code == 404

    resp = _put_attendance(
        client,
        "a",
        arrival=_arrival("06:30", timezone="America/Los_Angeles"),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["attending"] is True
    assert body["arrival_airport"] == "SFO"
    assert _ts(body["arrival_time"]) == datetime(2026, 11, 2, 14, 30, tzinfo=timezone.utc)
    assert body["departure_time"] is None

    fetched = client.get(f"/v1/events/{EVENT_ID}/attendance", headers=_auth_headers("a"))
    assert fetched.json()["arrival_airport"] == "SFO"


def test_revoking_attendance_clears_travel(client: TestClient, events):
    _put_attendance(client, "a", arrival=_arrival("14:00"))

    resp = _put_attendance(client, "a", attending=False)

    assert resp.status_code == 200
    assert resp.json()["attending"] is False
    assert resp.json()["arrival_airport"] is None
    assert resp.json()["arrival_time"] is None


def test_clear_one_leg_keeps_the_other(client: TestClient, events):
    _put_attendance(
        client,
        "a",
        arrival=_arrival("14:00"),
        departure={"airport": "SJC", "date": "2026-11-05", "time": "18:00"},
    )

    resp = _put_attendance(client, "a", departure={"action": "clear"})

    assert resp.json()["arrival_airport"] == "SFO"
    assert resp.json()["departure_airport"] is None


@pytest.mark.parametrize(
    "payload, code",
    [
        ({"arrival": {"airport": "SFO", "date": "2026-11-02"}}, "PARTIAL_TRAVEL_DETAILS"),
        ({"arrival": {"date": "2026-11-02", "time": "14:00"}}, "AIRPORT_REQUIRED"),
        ({"attending": False, "arrival": _arrival("14:00")}, "TRAVEL_WITHOUT_ATTENDANCE"),
        ({"arrival": _arrival("14:00", timezone="Nowhere/City")}, "INVALID_TIMEZONE"),
    ],
)
def test_invalid_travel_is_rejected(client: TestClient, events, payload, code):
    resp = _put_attendance(client, "a", **payload)

    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == code
    assert client.get(
        f"/v1/events/{EVENT_ID}/attendance", headers=_auth_headers("a")
    ).status_code == 404


def test_attendance_for_unknown_event(client: TestClient, events):
    resp = _put_attendance(client, "a", event_id="nope", attending=True)

    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "EVENT_NOT_FOUND"


def test_matches_end_to_end(client: TestClient, store, events):
    add_user(store, "b", name="Bea", photo_url="https://img.example/b.png")
    _put_attendance(client, "a", arrival=_arrival("14:00"))
    _put_attendance(client, "b", arrival=_arrival("14:25"))
    _put_attendance(client, "c", arrival=_arrival("14:45"))
    _put_attendance(client, "d", arrival=_arrival("14:10", airport="SJC"))

    resp = client.get(f"/v1/events/{EVENT_ID}/matches", headers=_auth_headers("a"))

    assert resp.status_code == 200
    body = resp.json()
    assert body["departure"] is None
    arrival = body["arrival"]
    assert arrival["airport"] == "SFO"
    assert _ts(arrival["window_start"]) == BASE_TIME - timedelta(minutes=30)
    assert _ts(arrival["window_end"]) == BASE_TIME + timedelta(minutes=30)
    assert arrival["error"] is None
    assert [m["user_id"] for m in arrival["matches"]] == ["b"]
    match = arrival["matches"][0]
    assert match["user_name"] == "Bea"
    assert match["profile"] == {
        "user_id": "b",
        "display_name": "Bea",
        "photo_url": "https://img.example/b.png",
    }


def test_matches_need_attendance(client: TestClient, events):
    missing = client.get(f"/v1/events/{EVENT_ID}/matches", headers=_auth_headers("a"))
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "ATTENDANCE_NOT_FOUND"

    _put_attendance(client, "a", attending=False)
    declined = client.get(f"/v1/events/{EVENT_ID}/matches", headers=_auth_headers("a"))
    assert declined.status_code == 409
    assert declined.json()["detail"]["code"] == "NOT_ATTENDING"


def test_matches_report_one_failed_direction(client: TestClient):
    me = attendance(
        "a",
        arrival=("SFO", BASE_TIME),
        departure=("SFO", BASE_TIME + timedelta(days=2)),
    )
    fake = RecordingStore(
        records=[me, attendance("b", arrival=("SFO", BASE_TIME))],
        failing_directions=[TravelDirection.DEPARTURE],
    )
    app.dependency_overrides[get_store] = lambda: fake

    resp = client.get(f"/v1/events/{EVENT_ID}/matches", headers=_auth_headers("a"))

    assert resp.status_code == 200
    body = resp.json()
    assert [m["user_id"] for m in body["arrival"]["matches"]] == ["b"]
    assert body["departure"]["matches"] == []
    assert body["departure"]["error"]["code"] == "MATCH_QUERY_FAILED"


def test_matches_unavailable_when_every_direction_fails(client: TestClient):
    fake = RecordingStore(
        records=[attendance("a", arrival=("SFO", BASE_TIME))],
        failing_directions=[TravelDirection.ARRIVAL],
    )
    app.dependency_overrides[get_store] = lambda: fake

    resp = client.get(f"/v1/events/{EVENT_ID}/matches", headers=_auth_headers("a"))

    assert resp.status_code == 503
    assert resp.json()["detail"]["code"] == "MATCH_QUERY_FAILED"


def test_send_and_receive_ride_request(client: TestClient, events):
    _put_attendance(client, "a", arrival=_arrival("14:00"))
    client.get("/v1/me", headers=_auth_headers("b"))
    heard = []
    app.state.ride_request_listeners = [heard.append]

    resp = client.post(
        f"/v1/events/{EVENT_ID}/ride-requests",
        json={"recipient_id": "b", "type": "arrival"},
        headers=_auth_headers("a"),
    )

    assert resp.status_code == 200
    sent = resp.json()
    assert sent["status"] == "pending"
    assert sent["read"] is False
    assert _ts(sent["sender_arrival_time"]) == BASE_TIME
    assert sent["sender_departure_time"] is None
    assert [r.id for r in heard] == [sent["id"]]

    inbox = client.get("/v1/ride-requests", headers=_auth_headers("b"))
    assert inbox.status_code == 200
    assert [r["id"] for r in inbox.json()["items"]] == [sent["id"]]

    filtered = client.get(
        "/v1/ride-requests", params={"event_id": "pycon-la"}, headers=_auth_headers("b")
    )
    assert filtered.json()["items"] == []

    assert client.get("/v1/ride-requests", headers=_auth_headers("a")).json()["items"] == []


def test_ride_request_errors(client: TestClient, events):
    client.get("/v1/me", headers=_auth_headers("a"))

    unknown = client.post(
        f"/v1/events/{EVENT_ID}/ride-requests",
        json={"recipient_id": "ghost", "type": "arrival"},
        headers=_auth_headers("a"),
    )
    assert unknown.status_code == 404
    assert unknown.json()["detail"]["code"] == "USER_NOT_FOUND"

    to_self = client.post(
        f"/v1/events/{EVENT_ID}/ride-requests",
        json={"recipient_id": "a", "type": "arrival"},
        headers=_auth_headers("a"),
    )
    assert to_self.status_code == 422
    assert to_self.json()["detail"]["code"] == "RIDE_REQUEST_TO_SELF"

    bad_type = client.post(
        f"/v1/events/{EVENT_ID}/ride-requests",
        json={"recipient_id": "a", "type": "layover"},
        headers=_auth_headers("a"),
    )
    assert bad_type.status_code == 422


def test_jwt_identity_tokens(client: TestClient, monkeypatch, store):
    jwt_settings = dataclasses.replace(
        auth_deps.settings, env="production", auth_mode="jwt", jwt_secret=JWT_SECRET
    )
    monkeypatch.setattr(auth_deps, "settings", jwt_settings)
    monkeypatch.setattr(identity, "settings", jwt_settings)

    token = jwt.encode(
        {
            "sub": "uid-42",
            "email": "grace@example.com",
            "name": "Grace",
            "picture": "https://img.example/g.png",
            "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
        },
        JWT_SECRET,
        algorithm="HS256",
    )
    resp = client.get("/v1/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.json() == {
        "user_id": "uid-42",
        "email": "grace@example.com",
        "display_name": "Grace",
        "photo_url": "https://img.example/g.png",
    }

    # dev tokens are refused outside local dev auth
    assert client.get("/v1/me", headers=_auth_headers("uid-42")).status_code == 401

    expired = jwt.encode(
        {"sub": "uid-42", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        JWT_SECRET,
        algorithm="HS256",
    )
    assert client.get("/v1/me", headers={"Authorization": f"Bearer {expired}"}).status_code == 401


class _CountingRedis:
    def __init__(self) -> None:
        self.counts: dict[str, int] = {}

    def incr(self, key: str) -> int:
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    def expire(self, key: str, seconds: int) -> bool:
        return True


class _DownRedis:
    def incr(self, key: str) -> int:
        raise RedisError("connection refused")


def _enable_rate_limit(monkeypatch, rate: str = "2/minute") -> None:
    limited = dataclasses.replace(
        rate_limit.settings, rate_limit_enabled=True, rate_limit_default=rate
    )
    monkeypatch.setattr(rate_limit, "settings", limited)


def test_rate_limit_blocks_after_limit(client: TestClient, monkeypatch):
    _enable_rate_limit(monkeypatch)
    fake_redis = _CountingRedis()
    monkeypatch.setattr(rate_limit, "get_redis", lambda: fake_redis)

    first = client.get("/v1/me", headers=_auth_headers("a"))
    assert first.headers["X-RateLimit-Limit"] == "2"
    assert first.headers["X-RateLimit-Remaining"] == "1"
    client.get("/v1/me", headers=_auth_headers("a"))
    blocked = client.get("/v1/me", headers=_auth_headers("a"))

    assert blocked.status_code == 429
    assert "Retry-After" in blocked.headers
    # exempt paths are never counted
    assert client.get("/health").status_code == 200


def test_rate_limit_fails_open_without_redis(client: TestClient, monkeypatch):
    _enable_rate_limit(monkeypatch, rate="1/minute")
    monkeypatch.setattr(rate_limit, "get_redis", lambda: _DownRedis())

    for _ in range(3):
        assert client.get("/v1/me", headers=_auth_headers("a")).status_code == 200


def test_parse_rate():
    assert rate_limit.parse_rate("60/minute") == (60, 60)
    assert rate_limit.parse_rate("10/second") == (10, 1)
    with pytest.raises(ValueError):
        rate_limit.parse_rate("often")


def test_overlong_airport_is_rejected_before_any_write(client: TestClient, events):
    resp = _put_attendance(client, "a", arrival=_arrival("14:00", airport="San Francisco International"))

    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "AIRPORT_TOO_LONG"
    assert client.get(
        f"/v1/events/{EVENT_ID}/attendance", headers=_auth_headers("a")
    ).status_code == 404


def test_airport_is_stored_without_surrounding_whitespace(client: TestClient, events):
    _put_attendance(client, "a", arrival=_arrival("14:00", airport=" SFO "))
    _put_attendance(client, "b", arrival=_arrival("14:10"))

    assert client.get(
        f"/v1/events/{EVENT_ID}/attendance", headers=_auth_headers("a")
    ).json()["arrival_airport"] == "SFO"
    resp = client.get(f"/v1/events/{EVENT_ID}/matches", headers=_auth_headers("b"))
    assert [m["user_id"] for m in resp.json()["arrival"]["matches"]] == ["a"]


class _LoopCheckingRedis(_CountingRedis):
    def __init__(self) -> None:
        super().__init__()
        self.called_on_loop: list[bool] = []

    def incr(self, key: str) -> int:
        try:
            asyncio.get_running_loop()
            self.called_on_loop.append(True)
        except RuntimeError:
            self.called_on_loop.append(False)
        return super().incr(key)


def test_rate_limit_counts_off_the_event_loop(client: TestClient, monkeypatch):
    _enable_rate_limit(monkeypatch)
    fake_redis = _LoopCheckingRedis()
    monkeypatch.setattr(rate_limit, "get_redis", lambda: fake_redis)

    assert client.get("/v1/me", headers=_auth_headers("a")).status_code == 200
    assert fake_redis.called_on_loop == [False]


def test_count_hit_sets_expiry_on_first_hit(monkeypatch):
    expiries = []

    class _Redis(_CountingRedis):
        def expire(self, key: str, seconds: int) -> bool:
            expiries.append((key, seconds))
            return True

    fake_redis = _Redis()
    monkeypatch.setattr(rate_limit, "get_redis", lambda: fake_redis)

    assert rate_limit.count_hit("k", 60) == 1
    assert rate_limit.count_hit("k", 60) == 2
    assert expiries == [("k", 60)]
