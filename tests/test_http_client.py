"""Tests for the HTTP client (APIClient) against the mock Groups server.

Covers the verbs the perf run uses, bearer auth, query parameters,
round-trip timing, and secret redaction.
"""

import pytest
import requests

from groups_perf.http_client import APIClient, redact_auth
from tests.mock_groups_server import MockGroupsServer


@pytest.fixture
def server():
    with MockGroupsServer(expected_token="test-token") as s:
        yield s


@pytest.fixture
def client(server):
    with APIClient(server.base_url, token="test-token") as c:
        yield c


def test_get_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"health": "ok"}


def test_post_patch_delete_group(client, server):
    resp = client.post("/groups", {"name": "TestGroup-x", "description": "d"})
    assert resp.status_code == 200
    gid = resp.json()["id"]

    resp2 = client.patch(f"/groups/{gid}", {"oldId": "abc"})
    assert resp2.status_code == 200
    assert resp2.json()["oldId"] == "abc"

    resp3 = client.delete(f"/groups/{gid}")
    assert resp3.status_code == 200
    assert server.deleted == [gid]


def test_query_params_are_sent(client, server):
    resp = client.get("/members", params={"page": 2, "perPage": 3, "fields": "userId"})
    assert resp.status_code == 200
    assert [r["userId"] for r in resp.json()] == [40000003, 40000004, 40000005]
    _, path, query, _ = server.requests_to("GET", "/members")[0]
    assert query == {"page": "2", "perPage": "3", "fields": "userId"}


def test_missing_token_is_rejected(server):
    with APIClient(server.base_url) as anonymous:
        resp = anonymous.get("/health")
    assert resp.status_code == 401


def test_wrong_token_is_rejected(server):
    with APIClient(server.base_url, token="other") as c:
        resp = c.get("/health")
    assert resp.status_code == 401


def test_elapsed_ms_is_measured():
    with MockGroupsServer(behaviours={"add_delay": 0.05}) as server:
        with APIClient(server.base_url) as c:
            gid = c.post("/groups", {"name": "g"}).json()["id"]
            c.patch(f"/groups/{gid}", {"oldId": "x"})
            resp = c.post(f"/groups/{gid}/members", {"members": []})
    assert resp.status_code == 200
    assert resp.elapsed_ms >= 50


def test_trailing_slash_in_base_url(server):
    with APIClient(server.base_url + "/", token="test-token") as c:
        assert c.get("/health").status_code == 200


def test_connection_error_propagates():
    with MockGroupsServer() as server:
        url = server.base_url
    with APIClient(url, timeout=2) as c:
        with pytest.raises(requests.ConnectionError):
            c.get("/health")


def test_redact_auth():
    headers = {
        "Authorization": "Bearer secret-token-123",
        "Content-Type": "application/json",
    }
    redacted = redact_auth(headers)
    assert redacted["Authorization"] == "***REDACTED***"
    assert redacted["Content-Type"] == "application/json"
    # Original should not be mutated
    assert headers["Authorization"] == "Bearer secret-token-123"
