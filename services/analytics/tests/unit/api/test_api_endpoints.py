import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError
from src.api.dependencies import (
    get_job_repo,
    get_realtime_repo,
    get_store,
    get_token_repo,
)
from src.domain.errors import StoreUnavailableError
from src.domain.models import JobRecord
from src.main import app

AUTH = {"Authorization": "Bearer good-token"}


class DummyTokens:
    async def resolve(self, token):
        return "u1" if token == "good-token" else None


class DummyJobs:
    def __init__(self):
        self.jobs = {
            "mine": JobRecord(
                id="mine",
                status="running",
                type="import",
                userId="u1",
                totalItems=4,
                processedItems=1,
            ),
            "theirs": JobRecord(id="theirs", status="running", userId="u2"),
            "ownerless": JobRecord(id="ownerless", status="pending"),
        }

    async def get_job(self, job_id):
        return self.jobs.get(job_id)


class DummyRealtime:
    def __init__(self):
        self.recorded = []
        self.fail_writes = False

    async def record_activity(self, user_id, event_type, data, timestamp):
        if self.fail_writes:
            raise RedisConnectionError("redis down")
        self.recorded.append((user_id, event_type, data))
        return {"type": event_type, "data": data, "timestamp": timestamp.isoformat()}

    async def get_active_jobs(self, user_id):
        return [{"type": "import", "count": 1, "status": "running"}]

    async def get_recent_activity(self, user_id):
        return []

    async def get_system_metrics(self):
        raise RedisConnectionError("redis down")

    async def get_user_metrics(self, user_id):
        return {"active_requests": 0}

    async def get_active_alerts(self, user_id):
        return []


class DummyStore:
    """Empty store; optionally failing or returning a malformed row."""

    def __init__(self):
        self.fail = False
        self.malformed = False

    def _check(self):
        if self.fail:
            raise StoreUnavailableError("clickhouse down")

    async def count(self, table, **kwargs):
        self._check()
        return 0

    async def group_count(self, table, by, **kwargs):
        self._check()
        return []

    async def aggregate(self, table, **kwargs):
        self._check()
        # ungrouped aggregates always yield one row
        return [] if kwargs.get("by") else [{"count": 0}]

    async def fetch_rows(self, table, columns, **kwargs):
        self._check()
        if self.malformed and "created_at" in columns:
            return [{c: None for c in columns}]
        return []


@pytest.fixture
def fakes():
    store = DummyStore()
    realtime = DummyRealtime()
    app.dependency_overrides[get_token_repo] = DummyTokens
    app.dependency_overrides[get_job_repo] = DummyJobs
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_realtime_repo] = lambda: realtime
    yield store, realtime
    app.dependency_overrides.clear()


@pytest.fixture(scope="module", autouse=True)
def setup_app_state():
    async def _ping(self):
        return True

    app.state.redis = type("R", (), {"ping": _ping})()
    app.state.ready_event = asyncio.Event()
    app.state.ready_event.set()
    yield


@pytest.mark.parametrize(
    "path",
    [
        "/analytics/content-intelligence",
        "/analytics/business-insights",
        "/analytics/ai-performance",
        "/analytics/dashboard",
        "/analytics/realtime",
        "/jobs/mine",
    ],
)
def test_requires_bearer_token(fakes, path):
    client = TestClient(app)
    assert client.get(path).status_code == 401
    resp = client.get(path, headers={"Authorization": "Bearer wrong"})
    assert resp.status_code == 401


@pytest.mark.parametrize(
    "path,key",
    [
        ("/analytics/content-intelligence", "recommendations"),
        ("/analytics/business-insights", "benchmarks"),
        ("/analytics/ai-performance", "summary"),
        ("/analytics/dashboard", "summary"),
    ],
)
def test_analytics_payloads(fakes, path, key):
    client = TestClient(app)
    resp = client.get(path, params={"range": "7d"}, headers=AUTH)
    assert resp.status_code == 200
    body = resp.json()
    assert body["time_range"] == "7d"
    assert key in body
    assert body["status"]["degraded"] is False


def test_malformed_range_is_accepted(fakes):
    client = TestClient(app)
    resp = client.get("/analytics/dashboard", params={"range": "bogus"}, headers=AUTH)
    assert resp.status_code == 200
    assert resp.json()["time_range"] == "bogus"


def test_default_range(fakes):
    client = TestClient(app)
    resp = client.get("/analytics/dashboard", headers=AUTH)
    assert resp.json()["time_range"] == "30d"


def test_store_outage_is_reported_not_raised(fakes):
    store, _ = fakes
    store.fail = True
    client = TestClient(app)
    resp = client.get("/analytics/business-insights", headers=AUTH)
    assert resp.status_code == 200
    status = resp.json()["status"]
    assert status["degraded"] is True
    assert status["errors"]["roi"] == "StoreUnavailableError: clickhouse down"


def test_malformed_record_is_a_server_error(fakes):
    store, _ = fakes
    store.malformed = True
    client = TestClient(app, raise_server_exceptions=False)
    resp = client.get("/analytics/content-intelligence", headers=AUTH)
    assert resp.status_code == 500
    assert resp.json()["error"] == "malformed_record"


def test_realtime_snapshot_with_degraded_section(fakes):
    client = TestClient(app)
    resp = client.get("/analytics/realtime", headers=AUTH)
    assert resp.status_code == 200
    body = resp.json()
    assert body["active_jobs"][0]["type"] == "import"
    assert body["system_metrics"]["queue_size"] == 0
    assert body["system_metrics"]["last_updated"] is None
    assert body["status"]["sections"]["system_metrics"] == "degraded"


def test_record_activity(fakes):
    _, realtime = fakes
    client = TestClient(app)
    when = datetime(2024, 3, 9, tzinfo=timezone.utc)
    resp = client.post(
        "/analytics/realtime",
        json={"type": "item_created", "data": {"id": "i1"}, "timestamp": when.isoformat()},
        headers=AUTH,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["activity"]["type"] == "item_created"
    assert realtime.recorded == [("u1", "item_created", {"id": "i1"})]


def test_record_activity_validation(fakes):
    client = TestClient(app)
    resp = client.post("/analytics/realtime", json={"data": {}}, headers=AUTH)
    assert resp.status_code == 422
    resp = client.post(
        "/analytics/realtime", json={"type": "x", "timestamp": "whenever"}, headers=AUTH
    )
    assert resp.status_code == 422


def test_record_activity_store_down(fakes):
    _, realtime = fakes
    realtime.fail_writes = True
    client = TestClient(app)
    resp = client.post("/analytics/realtime", json={"type": "item_created"}, headers=AUTH)
    assert resp.status_code == 503
    assert resp.json()["error"] == "store_unavailable"


def test_get_job(fakes):
    client = TestClient(app)
    resp = client.get("/jobs/mine", headers=AUTH)
    assert resp.status_code == 200
    job = resp.json()["job"]
    assert job["totalItems"] == 4
    assert job["processedItems"] == 1
    assert job["userId"] == "u1"
    assert job["progress"] == 25


def test_job_not_found_and_forbidden(fakes):
    client = TestClient(app)
    assert client.get("/jobs/missing", headers=AUTH).status_code == 404
    assert client.get("/jobs/theirs", headers=AUTH).status_code == 403
    assert client.get("/jobs/ownerless", headers=AUTH).status_code == 403


def test_health_ready():
    client = TestClient(app)
    assert client.get("/healthz").status_code == 200
    assert client.get("/readyz").status_code == 200


def test_readyz_not_ready():
    client = TestClient(app)
    app.state.ready_event.clear()
    try:
        assert client.get("/readyz").status_code == 503
    finally:
        app.state.ready_event.set()


def test_healthz_error():
    client = TestClient(app)

    async def _boom(self):
        raise RedisConnectionError("redis down")

    from types import MethodType

    orig = app.state.redis.ping
    app.state.redis.ping = MethodType(_boom, app.state.redis)  # type: ignore[assignment]
    try:
        resp = client.get("/healthz")
        assert resp.status_code == 503
        assert "redis down" in resp.text
    finally:
        app.state.redis.ping = orig  # type: ignore[assignment]


def test_metrics_exposition(fakes):
    client = TestClient(app)
    client.get("/analytics/dashboard", headers=AUTH)
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "analytics_payload_build_seconds" in resp.text


def test_out_of_calendar_range_uses_default_window(fakes):
    client = TestClient(app)
    resp = client.get("/analytics/dashboard", params={"range": "1000000d"}, headers=AUTH)
    assert resp.status_code == 200
    assert resp.json()["time_range"] == "1000000d"
