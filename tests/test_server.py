"""HTTP layer tests — routing, identity headers, and error mapping.

The app is built with ``create_app`` and driven through httpx's ASGI
transport.  ASGITransport does not run the lifespan, so the in-memory
service is placed on ``app.state`` directly and ``get_db`` is overridden to
hand out FakeSessions.
"""

import asyncio

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from helpers.factories import BEGIN, checkbox, radio, schema_dict, text_input
from helpers.fakes import FakeSession
from survey_server.app import create_app
from survey_server.config import ServerSettings
from survey_server.dependencies import get_db

ADMIN = {"X-Admin-ID": "1", "X-Admin-Username": "alice"}
OTHER_ADMIN = {"X-Admin-ID": "2", "X-Admin-Username": "bob"}
USER = {"X-User-ID": "20260001", "X-User-Type": "undergrad"}

# Requests below run on the wall clock, so keep the window open
OPEN_UNTIL = "2099-12-31T23:59:59+00:00"


def _build_app(service, store, **settings):
    app = create_app(ServerSettings(redis_url=None, **settings))
    app.state.service = service

    async def override_db():
        yield FakeSession(store)

    app.dependency_overrides[get_db] = override_db
    return app


@pytest.fixture
def app(service, store):
    return _build_app(service, store)


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def _create_published(client, *items, **conf):
    conf.setdefault("end_time", OPEN_UNTIL)
    resp = await client.post(
        "/api/v1/admin/surveys",
        json={"type": "survey", "schema": schema_dict(*items, **conf)},
        headers=ADMIN,
    )
    assert resp.status_code == 201, resp.text
    survey = resp.json()
    resp = await client.put(
        f"/api/v1/admin/surveys/{survey['id']}/status",
        json={"status": "published"},
        headers=ADMIN,
    )
    assert resp.status_code == 200
    return survey


# =====================================================================
# Admin endpoints
# =====================================================================


class TestAdminEndpoints:

    @pytest.mark.asyncio
    async def test_create_and_fetch(self, client):
        resp = await client.post(
            "/api/v1/admin/surveys",
            json={"schema": schema_dict(radio("q1"))},
            headers=ADMIN,
        )
        assert resp.status_code == 201
        created = resp.json()
        assert created["status"] == "unpublished"
        assert created["type"] == "survey"

        resp = await client.get(f"/api/v1/admin/surveys/{created['id']}", headers=ADMIN)
        assert resp.status_code == 200
        assert resp.json()["schema"]["question_conf"]["items"][0]["id"] == "q1"

    @pytest.mark.asyncio
    async def test_missing_admin_header_is_401(self, client):
        resp = await client.get("/api/v1/admin/surveys")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_admin_header_is_400(self, client):
        resp = await client.get("/api/v1/admin/surveys", headers={"X-Admin-ID": "abc"})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_schema_defect_reports_path(self, client):
        resp = await client.post(
            "/api/v1/admin/surveys",
            json={"schema": schema_dict(radio("q1"), text_input("q1"))},
            headers=ADMIN,
        )
        assert resp.status_code == 400
        assert "question_conf.items[q1]" in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_other_admin_forbidden(self, client):
        survey = await _create_published(client, radio("q1"))
        resp = await client.get(f"/api/v1/admin/surveys/{survey['id']}/stats", headers=OTHER_ADMIN)
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_super_admin_sees_all(self, client):
        await _create_published(client, radio("q1"))
        resp = await client.get(
            "/api/v1/admin/surveys",
            headers={"X-Admin-ID": "99", "X-Admin-Role": "super"},
        )
        assert resp.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_update_delete_and_not_found(self, client):
        survey = await _create_published(client, radio("q1"))
        resp = await client.put(
            f"/api/v1/admin/surveys/{survey['id']}",
            json={"schema": schema_dict(radio("q1"), title="Edited")},
            headers=ADMIN,
        )
        assert resp.json()["title"] == "Edited"

        resp = await client.delete(f"/api/v1/admin/surveys/{survey['id']}", headers=ADMIN)
        assert resp.status_code == 204
        resp = await client.get(f"/api/v1/admin/surveys/{survey['id']}", headers=ADMIN)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_page_limit_bounds(self, client):
        resp = await client.get("/api/v1/admin/surveys?limit=0", headers=ADMIN)
        assert resp.status_code == 422


# =====================================================================
# Respondent endpoints
# =====================================================================


class TestRespondentEndpoints:

    @pytest.mark.asyncio
    async def test_submit_then_read_results(self, client):
        survey = await _create_published(client, checkbox("q1", options=["a", "b"]))

        resp = await client.get(f"/api/v1/surveys/{survey['path']}")
        assert resp.status_code == 200
        assert resp.json()["id"] == survey["id"]

        resp = await client.post(
            f"/api/v1/surveys/{survey['id']}/submissions",
            json={"answers": [{"question_id": "q1", "answer": "a,b"}]},
        )
        assert resp.status_code == 201
        assert isinstance(resp.json()["id"], int)

        resp = await client.get(f"/api/v1/admin/surveys/{survey['id']}/results", headers=ADMIN)
        page = resp.json()
        assert page["total"] == 1
        assert page["rows"][0]["answers"] == [{"question_id": "q1", "answer": "Option a,Option b"}]

    @pytest.mark.asyncio
    async def test_invalid_answer_is_400(self, client):
        survey = await _create_published(client, radio("q1"))
        resp = await client.post(
            f"/api/v1/surveys/{survey['id']}/submissions",
            json={"answers": [{"question_id": "q1", "answer": "zz"}]},
        )
        assert resp.status_code == 400
        assert "q1" in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_login_required_is_401(self, client):
        survey = await _create_published(client, radio("q1"), is_login_required=True)
        body = {"answers": [{"question_id": "q1", "answer": "a"}]}

        resp = await client.post(f"/api/v1/surveys/{survey['id']}/submissions", json=body)
        assert resp.status_code == 401
        resp = await client.post(
            f"/api/v1/surveys/{survey['id']}/submissions", json=body, headers=USER,
        )
        assert resp.status_code == 201

    @pytest.mark.asyncio
    async def test_closed_survey_is_400(self, client):
        survey = await _create_published(
            client, radio("q1"), begin_time=BEGIN, end_time="2026-01-02T00:00:00+00:00",
        )
        resp = await client.post(
            f"/api/v1/surveys/{survey['id']}/submissions",
            json={"answers": [{"question_id": "q1", "answer": "a"}]},
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_path_is_404(self, client):
        resp = await client.get("/api/v1/surveys/does-not-exist")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_user_type_is_400(self, client):
        resp = await client.get(
            "/api/v1/surveys/anything", headers={"X-User-ID": "u1", "X-User-Type": "staff"},
        )
        assert resp.status_code == 400


# =====================================================================
# Gateway secret, timeouts, and server errors
# =====================================================================


class TestServerBehaviour:

    @pytest.mark.asyncio
    async def test_proxy_secret_enforced(self, service, store):
        app = _build_app(service, store, trusted_proxy_secret="s3cret")
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/api/v1/admin/surveys", headers=ADMIN)
            assert resp.status_code == 403
            resp = await client.get(
                "/api/v1/admin/surveys", headers={**ADMIN, "X-Proxy-Secret": "wrong"},
            )
            assert resp.status_code == 403
            resp = await client.get(
                "/api/v1/admin/surveys", headers={**ADMIN, "X-Proxy-Secret": "s3cret"},
            )
            assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_slow_call_is_504(self, service, store):
        app = _build_app(service, store, request_timeout=0.05)

        async def stalled(*args, **kwargs):
            await asyncio.sleep(1)

        service.list_surveys = stalled
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/api/v1/admin/surveys", headers=ADMIN)
        assert resp.status_code == 504

    @pytest.mark.asyncio
    async def test_server_error_detail_hidden(self, client, store):
        survey = await _create_published(client, radio("q1"))
        store.surveys[survey["id"]].schema = "{corrupt"
        resp = await client.get(f"/api/v1/admin/surveys/{survey['id']}", headers=ADMIN)
        assert resp.status_code == 500
        assert resp.json() == {"detail": "Internal server error"}

    @pytest.mark.asyncio
    async def test_health_reports_database_failure(self, client, monkeypatch):
        def unreachable():
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        monkeypatch.setattr("survey_server.app.get_engine", unreachable)
        resp = await client.get("/health")
        assert resp.json() == {"status": "error", "database": "error", "cache": "disabled"}
