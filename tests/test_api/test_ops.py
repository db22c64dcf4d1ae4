from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.config import Settings, get_settings
from src.db.connection import get_db
from src.db.heartbeat import SchedulerHeartbeat
from src.ops import events as ops_events
from src.security.web_auth import create_web_access_token


def _settings(*, enabled: bool = True, sweep_enabled: bool = True) -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        ops_console_enabled=enabled,
        admin_user_ids="admin-1",
        viability_sweep_enabled=sweep_enabled,
        viability_sweep_interval_minutes=15.0,
    )


def _mock_session(heartbeat: SchedulerHeartbeat | None = None) -> AsyncMock:
    session = AsyncMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = heartbeat
    session.execute.return_value = result
    return session


def _auth_headers(user_id: str = "admin-1") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_web_access_token(user_id=user_id)}"}


def _make_heartbeat(
    *,
    last_run_at: datetime | None = None,
    status: str = "ok",
    detail: str | None = "promoted=2",
) -> MagicMock:
    hb = MagicMock(spec=SchedulerHeartbeat)
    hb.last_run_at = last_run_at or datetime.now(UTC)
    hb.status = status
    hb.detail = detail
    return hb


@pytest.fixture
def ops_client(monkeypatch: pytest.MonkeyPatch):  # type: ignore[no-untyped-def]
    async def _db_ok() -> bool:
        return True

    monkeypatch.setattr("src.api.routes.ops.check_db_health", _db_ok)
    app.dependency_overrides[get_settings] = lambda: _settings()
    app.dependency_overrides[get_db] = lambda: _mock_session()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_settings, None)
        app.dependency_overrides.pop(get_db, None)


def _services(client: TestClient, heartbeat: SchedulerHeartbeat | None) -> dict[str, dict[str, str]]:
    app.dependency_overrides[get_db] = lambda: _mock_session(heartbeat)
    response = client.get("/ops/status", headers=_auth_headers())
    assert response.status_code == 200
    return {s["name"]: s for s in response.json()["services"]}


def test_ops_status_disabled_returns_404() -> None:
    app.dependency_overrides[get_settings] = lambda: _settings(enabled=False)
    try:
        client = TestClient(app)
        response = client.get("/ops/status", headers=_auth_headers())
        assert response.status_code == 404
        assert response.json()["detail"] == "ops_console_disabled"
    finally:
        app.dependency_overrides.pop(get_settings, None)


def test_ops_status_requires_admin(ops_client: TestClient) -> None:
    assert ops_client.get("/ops/status").status_code == 401
    assert ops_client.get("/ops/status", headers=_auth_headers("member-1")).status_code == 403

    allowed = ops_client.get("/ops/status", headers=_auth_headers())
    assert allowed.status_code == 200
    services = {s["name"]: s["status"] for s in allowed.json()["services"]}
    assert services["api"] == "ok"
    assert services["database"] == "ok"


def test_ops_status_sweep_ok_with_recent_heartbeat(ops_client: TestClient) -> None:
    heartbeat = _make_heartbeat(last_run_at=datetime.now(UTC) - timedelta(minutes=10))
    services = _services(ops_client, heartbeat)
    assert services["viability_sweep"]["status"] == "ok"
    assert services["viability_sweep"]["detail"] == "promoted=2"


def test_ops_status_sweep_unknown_without_heartbeat(ops_client: TestClient) -> None:
    services = _services(ops_client, None)
    assert services["viability_sweep"]["status"] == "unknown"
    assert "no heartbeat" in services["viability_sweep"]["detail"]


def test_ops_status_sweep_degraded_when_stale(ops_client: TestClient) -> None:
    heartbeat = _make_heartbeat(last_run_at=datetime.now(UTC) - timedelta(hours=2))
    services = _services(ops_client, heartbeat)
    assert services["viability_sweep"]["status"] == "degraded"


def test_ops_status_sweep_handles_naive_timestamps(ops_client: TestClient) -> None:
    naive = datetime.now(UTC).replace(tzinfo=None) - timedelta(minutes=5)
    services = _services(ops_client, _make_heartbeat(last_run_at=naive))
    assert services["viability_sweep"]["status"] == "ok"


def test_ops_status_sweep_error_when_heartbeat_error(ops_client: TestClient) -> None:
    heartbeat = _make_heartbeat(status="error", detail="promoted=0 errors=['db down']")
    services = _services(ops_client, heartbeat)
    assert services["viability_sweep"]["status"] == "error"


def test_ops_status_sweep_disabled() -> None:
    app.dependency_overrides[get_settings] = lambda: _settings(sweep_enabled=False)
    app.dependency_overrides[get_db] = lambda: _mock_session()
    try:
        client = TestClient(app)
        response = client.get("/ops/status", headers=_auth_headers())
        services = {s["name"]: s for s in response.json()["services"]}
        assert services["viability_sweep"]["detail"] == "sweep disabled"
    finally:
        app.dependency_overrides.pop(get_settings, None)
        app.dependency_overrides.pop(get_db, None)


def test_ops_events_filter_and_redaction(ops_client: TestClient) -> None:
    ops_events.configure_ops_event_logging(max_size=500)
    ops_events.ops_event_buffer.add(
        {
            "timestamp": "2026-02-20T10:00:00.000Z",
            "level": "error",
            "component": "src.handlers.interest",
            "event_type": "interest.failed",
            "message": "Interest failed for rita@example.com",
            "correlation_id": None,
            "payload": {"email": "rita@example.com", "note": "ligar depois", "trip_id": 4},
        }
    )

    response = ops_client.get("/ops/events?limit=10&level=error", headers=_auth_headers())

    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["event_type"] == "interest.failed"
    assert "[REDACTED]" in data[0]["message"]
    assert data[0]["payload"]["email"] == "[REDACTED]"
    assert data[0]["payload"]["note"] == "[REDACTED]"
    assert data[0]["payload"]["trip_id"] == 4


def test_ops_events_include_request_correlation_id(ops_client: TestClient) -> None:
    ops_events.configure_ops_event_logging(max_size=500)
    health = ops_client.get("/health", headers={"x-request-id": "trace-id-ops"})
    assert health.headers.get("x-request-id") == "trace-id-ops"

    response = ops_client.get(
        "/ops/events?limit=25&type=api.request.completed&correlation_id=trace-id-ops",
        headers=_auth_headers(),
    )

    assert response.status_code == 200
    health_events = [row for row in response.json() if row["payload"].get("path") == "/health"]
    assert health_events
    assert health_events[0]["correlation_id"] == "trace-id-ops"
