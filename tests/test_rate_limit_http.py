"""End-to-end admission control through the FastAPI app."""

from shelter_api.adapters.cache.base import Unavailable
from shelter_api.adapters.rate_limit import AdmissionCounter
from shelter_api.core.rate_limit import GLOBAL_POLICY, RateLimiter


def test_admitted_responses_carry_rate_limit_headers(make_client) -> None:
    client = make_client(max_requests=5, window_seconds=60)

    resp = client.get("/api/shelters")

    assert resp.status_code == 200
    assert resp.headers["X-RateLimit-Limit"] == "5"
    assert resp.headers["X-RateLimit-Remaining"] == "4"
    assert int(resp.headers["X-RateLimit-Reset"]) > 0


def test_rejects_with_429_once_window_is_exhausted(make_client) -> None:
    client = make_client(max_requests=2, window_seconds=60)

    assert client.get("/api/shelters").status_code == 200
    assert client.get("/api/animals").status_code == 200
    resp = client.get("/api/shelters")

    assert resp.status_code == 429
    body = resp.json()
    assert body["error"]["code"] == "too_many_requests"
    assert body["error"]["retry_after"] == int(resp.headers["Retry-After"])
    assert 0 < body["error"]["retry_after"] <= 60
    assert "request_id" in body["error"]
    assert resp.headers["X-RateLimit-Remaining"] == "0"


def test_rejected_request_does_not_reach_the_handler(make_client, database, api_headers) -> None:
    client = make_client(max_requests=1, window_seconds=60)
    client.get("/api/shelters")

    resp = client.post("/api/shelters", json={"name": "Blocked"}, headers=api_headers)

    assert resp.status_code == 429
    assert client.get("/health").status_code == 200
    assert database.shelters.table.select() == []


def test_auth_endpoints_use_the_stricter_policy(make_client, api_headers) -> None:
    client = make_client(max_requests=100, auth_max_requests=2, auth_window_seconds=300)
    headers = {**api_headers, "X-User-Id": "1"}

    assert client.get("/api/auth/session", headers=headers).status_code == 200
    assert client.get("/api/auth/session", headers=headers).status_code == 200
    resp = client.get("/api/auth/session", headers=headers)

    assert resp.status_code == 429
    assert 0 < int(resp.headers["Retry-After"]) <= 300
    assert client.get("/api/shelters").status_code == 200


def test_health_is_not_rate_limited(make_client) -> None:
    client = make_client(max_requests=1)

    statuses = {client.get("/health").status_code for _ in range(5)}

    assert statuses == {200}


def test_bypass_disables_limiting(make_client) -> None:
    client = make_client(max_requests=1, bypass=True)

    statuses = [client.get("/api/shelters").status_code for _ in range(3)]

    assert statuses == [200, 200, 200]
    assert "X-RateLimit-Limit" not in client.get("/api/shelters").headers


def test_disabled_limiting_admits_everything(make_client) -> None:
    client = make_client(enabled=False, max_requests=1)

    assert [client.get("/api/animals").status_code for _ in range(3)] == [200, 200, 200]


def test_headers_can_be_turned_off(make_client) -> None:
    client = make_client(include_headers=False, max_requests=1)

    first = client.get("/api/shelters")
    second = client.get("/api/shelters")

    assert "X-RateLimit-Limit" not in first.headers
    assert second.status_code == 429
    assert "Retry-After" in second.headers


def test_fails_open_when_counter_unavailable(make_client) -> None:
    class DownCounter(AdmissionCounter):
        async def consume(self, key, window_seconds):
            return Unavailable(operation="rate_limit.consume", reason="timeout")

    client = make_client(max_requests=1)
    limiters = client.app.state.rate_limiters
    limiters[GLOBAL_POLICY] = RateLimiter(limiters[GLOBAL_POLICY].policy, DownCounter())

    statuses = [client.get("/api/shelters").status_code for _ in range(3)]

    assert statuses == [200, 200, 200]


def test_delete_responses_carry_rate_limit_headers(make_client, api_headers) -> None:
    client = make_client(max_requests=10, window_seconds=60)
    shelter = client.post("/api/shelters", json={"name": "Paws"}, headers=api_headers).json()
    animal = client.post(
        "/api/animals",
        json={"name": "Rex", "age": 2, "type": "dog", "shelter_id": shelter["id"]},
        headers=api_headers,
    ).json()

    animal_resp = client.delete(f"/api/animals/{animal['id']}", headers=api_headers)
    shelter_resp = client.delete(f"/api/shelters/{shelter['id']}", headers=api_headers)

    assert animal_resp.status_code == 204
    assert animal_resp.content == b""
    assert animal_resp.headers["X-RateLimit-Remaining"] == "7"
    assert shelter_resp.status_code == 204
    assert shelter_resp.headers["X-RateLimit-Limit"] == "10"
    assert shelter_resp.headers["X-RateLimit-Remaining"] == "6"


def test_auth_endpoints_report_both_policies(make_client, api_headers) -> None:
    client = make_client(max_requests=100, auth_max_requests=5, auth_window_seconds=300)
    headers = {**api_headers, "X-User-Id": "1"}

    resp = client.get("/api/auth/session", headers=headers)

    assert resp.status_code == 200
    assert resp.headers["X-RateLimit-Limit"] == "100"
    assert resp.headers["X-RateLimit-Remaining"] == "99"
    assert resp.headers["X-RateLimit-Auth-Limit"] == "5"
    assert resp.headers["X-RateLimit-Auth-Remaining"] == "4"
