"""Testes de ponta a ponta das rotas /api/v1/pos-link."""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

from fastapi.testclient import TestClient

from pos_handoff.api.app import create_app

BASE = "/api/v1/pos-link"
IPHONE = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile/15E148"


def _generate(client, **overrides) -> dict:
    body = {"user_id": "user-1", "loan_id": "loan-1", "loan_officer_id": "lo-1", **overrides}
    response = client.post(f"{BASE}/generate", json=body, headers={"User-Agent": IPHONE})
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_correlation_id_roundtrip(client) -> None:
    response = client.get("/health", headers={"X-Correlation-ID": "corr-abc"})
    assert response.headers["X-Correlation-ID"] == "corr-abc"


class TestGenerate:
    def test_generate_returns_descriptor_with_token(self, client) -> None:
        created = _generate(client, pos_system="encompass_consumer_connect")

        assert created["session_id"].startswith("pos_")
        assert len(created["session_token"]) == 64
        assert created["pos_system"] == "encompass_consumer_connect"
        assert created["redirect_url"].startswith("https://encompass.test/consumer?")
        assert created["callback_url"].endswith(f"/callback/{created['session_id']}")

    def test_co_branded(self, client) -> None:
        created = _generate(client, referral_source_id="ref-cobrand")
        assert created["branding"]["theme"] == "co_branded"
        assert created["branding"]["partner_name"] == "Acme Realty"

        query = parse_qs(urlsplit(created["redirect_url"]).query)
        assert query["session_id"] == [created["session_id"]]

    def test_unsupported_pos(self, client) -> None:
        response = client.post(f"{BASE}/generate", json={"user_id": "u", "pos_system": "unknown"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "UNSUPPORTED_POS_SYSTEM"
        assert set(body) == {"error", "message", "correlation_id"}

    def test_validation_error_body(self, client) -> None:
        response = client.post(f"{BASE}/generate", json={"user_id": ""})
        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"


class TestActivateTrackComplete:
    def test_full_flow(self, client) -> None:
        created = _generate(client)
        session_id = created["session_id"]

        activated = client.post(
            f"{BASE}/activate/{session_id}",
            json={"session_token": created["session_token"]},
            headers={"User-Agent": IPHONE, "X-Forwarded-For": "203.0.113.5, 10.0.0.1"},
        )
        assert activated.status_code == 200
        assert activated.json()["status"] == "active"
        assert "session_token" not in activated.json()

        for _ in range(3):
            tracked = client.post(
                f"{BASE}/track/{session_id}",
                json={"event_type": "document_upload", "details": {"file_name": "w2.pdf"}},
            )
            assert tracked.json() == {"success": True}

        service = client.app.state.handoff_service
        callback_token = service.issue_callback_token(session_id)
        completed = client.post(
            f"{BASE}/callback/{session_id}",
            json={"completion_data": {"application_id": "APP-1", "status": "submitted"}},
            headers={"Authorization": f"Bearer {callback_token}"},
        )
        assert completed.status_code == 200
        assert completed.json()["status"] == "completed"

        analytics = client.get(f"{BASE}/analytics/{session_id}").json()
        assert analytics["analytics"]["documents_uploaded"] == 3
        assert analytics["analytics"]["ip_address"] == "203.0.113.5"
        assert analytics["analytics"]["device_type"] == "mobile"
        assert analytics["analytics"]["platform"] == "ios"

        view = client.get(f"{BASE}/session/{session_id}").json()
        assert view["completion_data"]["application_id"] == "APP-1"
        assert "session_token" not in view
        assert created["session_token"] not in str(view)

    def test_wrong_token_is_401(self, client) -> None:
        created = _generate(client)
        response = client.post(
            f"{BASE}/activate/{created['session_id']}", json={"session_token": "nope"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"

    def test_unknown_session_activation_is_401(self, client) -> None:
        response = client.post(f"{BASE}/activate/pos_0_missing", json={"session_token": "x"})
        assert response.status_code == 401

    def test_expired_is_410(self, client, clock) -> None:
        created = _generate(client, expiration_minutes=1)
        clock.advance(minutes=2)
        response = client.post(
            f"{BASE}/activate/{created['session_id']}",
            json={"session_token": created["session_token"]},
        )
        assert response.status_code == 410
        assert response.json()["error"] == "EXPIRED"

    def test_invalid_callback_token_is_401(self, client) -> None:
        created = _generate(client)
        response = client.post(
            f"{BASE}/callback/{created['session_id']}",
            json={"callback_token": "garbage", "completion_data": {"application_id": "A"}},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_CALLBACK_TOKEN"

    def test_double_completion_is_409(self, client) -> None:
        created = _generate(client)
        url = f"{BASE}/callback/{created['session_id']}"
        assert client.post(url, json={"completion_data": {"application_id": "A"}}).status_code == 200

        response = client.post(url, json={"completion_data": {"application_id": "B"}})
        assert response.status_code == 409
        assert response.json()["error"] == "INVALID_STATE_TRANSITION"

    def test_unknown_session_is_404(self, client) -> None:
        response = client.get(f"{BASE}/session/pos_0_missing")
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"


class TestLifecycleEndpoints:
    def test_cancel_without_body(self, client) -> None:
        created = _generate(client)
        response = client.post(f"{BASE}/cancel/{created['session_id']}")
        assert response.json() == {"success": True}
        view = client.get(f"{BASE}/session/{created['session_id']}").json()
        assert view["status"] == "cancelled"

    def test_fail(self, client) -> None:
        created = _generate(client)
        response = client.post(
            f"{BASE}/fail/{created['session_id']}",
            json={"message": "POS outage", "code": "POS_DOWN"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "failed"

    def test_extend(self, client) -> None:
        created = _generate(client, expiration_minutes=10)
        response = client.post(
            f"{BASE}/extend/{created['session_id']}", json={"additional_minutes": 20}
        )
        assert response.status_code == 200
        assert response.json()["expires_at"] != created["expires_at"]

    def test_extend_terminal_is_409(self, client) -> None:
        created = _generate(client)
        client.post(f"{BASE}/cancel/{created['session_id']}", json={"reason": "x"})
        response = client.post(
            f"{BASE}/extend/{created['session_id']}", json={"additional_minutes": 20}
        )
        assert response.status_code == 409


class TestListing:
    def test_my_sessions(self, client) -> None:
        for _ in range(3):
            _generate(client)
        _generate(client, user_id="user-2")

        page = client.get(f"{BASE}/my-sessions", params={"user_id": "user-1", "limit": 2}).json()

        assert page["total"] == 3
        assert len(page["sessions"]) == 2
        assert page["has_more"] is True
        assert all("session_token" not in s for s in page["sessions"])

    def test_my_sessions_status_filter(self, client) -> None:
        created = _generate(client)
        _generate(client)
        client.post(f"{BASE}/cancel/{created['session_id']}")

        page = client.get(
            f"{BASE}/my-sessions", params={"user_id": "user-1", "status": "cancelled"}
        ).json()
        assert [s["session_id"] for s in page["sessions"]] == [created["session_id"]]

    def test_lo_sessions(self, client) -> None:
        _generate(client)
        _generate(client, loan_officer_id="lo-2")

        page = client.get(f"{BASE}/lo-sessions", params={"loan_officer_id": "lo-1"}).json()
        assert page["total"] == 1


class TestInternalSweep:
    def test_requires_token(self, client) -> None:
        response = client.post(f"{BASE}/internal/sweep")
        assert response.status_code == 401

    def test_sweeps_with_token(self, settings, store, clock) -> None:
        app = create_app(
            settings.model_copy(update={"internal_task_token": "sweep-token"}),
            store=store,
            clock=clock,
        )
        with TestClient(app) as client:
            created = _generate(client, expiration_minutes=1, loan_id=None)
            clock.advance(minutes=5)

            response = client.post(
                f"{BASE}/internal/sweep", headers={"X-Internal-Token": "sweep-token"}
            )

            assert response.status_code == 200
            assert response.json() == {"expired_count": 1, "failed_count": 0, "skipped": False}
            view = client.get(f"{BASE}/session/{created['session_id']}").json()
            assert view["status"] == "expired"
