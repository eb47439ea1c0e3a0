"""
Azure Function entrypoints: HTTP API routes and the timer run.
ClickUp is served by a fake session patched over requests.get; Mongo is the in-memory fake.
"""

import json

import azure.functions as func
import pytest

import Video_Points
import Video_Points_API as api
from conftest import SYNTHETIC_ROSTER, FakeClickUpSession, make_task
from points_engine import clickup
from points_engine.config import CONFIG_COLLECTION, CONFIG_ID, DEFAULT_ENGINE_CONFIG
from points_engine.storage import REPORTS_COLLECTION
from utils import rbac

LISTS = DEFAULT_ENGINE_CONFIG["lists"]


@pytest.fixture
def app_env(fake_db, monkeypatch):
    fake_db[CONFIG_COLLECTION].insert_one({"_id": CONFIG_ID, "defaults": {"roster": SYNTHETIC_ROSTER}})
    session = FakeClickUpSession(
        lists={
            LISTS["producao"]["id"]: [
                make_task("p1", weight=4, editors=[(1, "alice"), (2, "bruno")], done="2026-02-10"),
            ],
            LISTS["freelas"]["id"]: [make_task("f1", weight=2, editors=[(5, "fred")], done="2026-02-12")],
        }
    )
    monkeypatch.setattr(clickup.requests, "get", session.get)
    monkeypatch.setattr(api, "get_db", lambda: fake_db)
    monkeypatch.setattr(Video_Points, "get_db", lambda: fake_db)
    monkeypatch.setattr(rbac, "get_db", lambda: fake_db)
    monkeypatch.setenv("CLICKUP_API_TOKEN", "pk_test")
    monkeypatch.setenv("VP_MANAGER_EMAILS", "lead@example.com")
    monkeypatch.setenv("VP_REPORT_MONTH", "2026-02")
    monkeypatch.delenv("AZURE_FUNCTIONS_ENVIRONMENT", raising=False)
    for var in ("VP_STREAK_THRESHOLD", "VP_STREAK_BONUS", "VP_NO_REWORK_BONUS", "VP_NO_REWORK_MAX_TASKS", "VP_TIMEZONE"):
        monkeypatch.delenv(var, raising=False)
    return fake_db, session


class _Timer:
    def __init__(self, past_due=False):
        self.past_due = past_due


def _request(method="GET", route="", params=None, headers=None):
    return func.HttpRequest(
        method=method,
        url=f"/api/video-points/{route}",
        params=params or {},
        route_params={"route": route},
        headers=headers or {},
        body=b"",
    )


def _body(resp):
    return json.loads(resp.get_body())


class TestHttpApi:
    def test_health(self, app_env):
        resp = api.main(_request(route="health"))
        assert resp.status_code == 200
        assert _body(resp)["status"] == "ok"

    def test_options(self, app_env):
        resp = api.main(_request(method="OPTIONS"))
        assert resp.status_code == 204
        assert "Access-Control-Allow-Methods" in resp.headers

    def test_unknown_route(self, app_env):
        assert api.main(_request(route="nope")).status_code == 404

    def test_missing_report_is_404(self, app_env):
        resp = api.main(_request(params={"month": "2026-01"}))
        assert resp.status_code == 404

    def test_bad_month_is_400(self, app_env):
        resp = api.main(_request(params={"month": "2026-1"}))
        assert resp.status_code == 400
        assert "YYYY-MM" in _body(resp)["error"]

    def test_compute_requires_manager(self, app_env):
        resp = api.main(_request(method="POST", route="compute", headers={"X-User-Email": "someone@example.com"}))
        assert resp.status_code == 403
        _, session = app_env
        assert session.calls == []

    def test_compute_then_read(self, app_env):
        db, _ = app_env
        headers = {"X-User-Email": "lead@example.com"}
        resp = api.main(_request(method="POST", route="compute", params={"month": "2026-02"}, headers=headers))
        assert resp.status_code == 200
        body = _body(resp)
        assert body["preview"] is False
        assert body["report"]["summary"]["total_points"] == 6.0
        assert "2026-02" in db[REPORTS_COLLECTION].docs

        stored = _body(api.main(_request(params={"month": "2026-02"})))
        assert stored["editors"] == body["report"]["editors"]

    def test_compute_preview_not_persisted(self, app_env):
        db, _ = app_env
        headers = {"x-ms-client-principal-name": "lead@example.com"}
        resp = api.main(
            _request(method="POST", route="compute", params={"month": "2026-02", "preview": "1"}, headers=headers)
        )
        assert resp.status_code == 200
        assert _body(resp)["preview"] is True
        assert db[REPORTS_COLLECTION].docs == {}

    def test_compute_unknown_list_is_400(self, app_env):
        headers = {"X-User-Email": "lead@example.com"}
        resp = api.main(_request(method="POST", route="compute", params={"list": "archive"}, headers=headers))
        assert resp.status_code == 400

    def test_spoofed_header_ignored_in_production(self, app_env, monkeypatch):
        monkeypatch.setenv("AZURE_FUNCTIONS_ENVIRONMENT", "Production")
        resp = api.main(_request(method="POST", route="compute", headers={"X-User-Email": "lead@example.com"}))
        assert resp.status_code == 403


class TestTimer:
    def test_scheduled_run_persists_month(self, app_env):
        db, _ = app_env
        Video_Points.main(_Timer())
        stored = db[REPORTS_COLLECTION].docs["2026-02"]
        assert stored["metadata"]["month"] == "2026-02"
        assert stored["summary"]["total_editors"] == 3

    def test_failure_is_raised(self, app_env, monkeypatch):
        monkeypatch.setenv("VP_REPORT_MONTH", "bad-month")
        with pytest.raises(ValueError):
            Video_Points.main(_Timer(past_due=True))
