"""
Shared fixtures: ClickUp-shaped task factory, synthetic roster config, and
in-memory fakes for MongoDB, the status-history lookup and the ClickUp API.

No test touches the network or a real database.
"""

import os
import sys
from urllib.parse import urlparse

import pandas as pd
import pytest

# Add root to path
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from points_engine.config import build_engine_config  # noqa: E402

TZ = "America/Sao_Paulo"

SYNTHETIC_ROSTER = {
    "fixed": ["alice", "bruno", "carla"],
    "ai_assisted": ["ian"],
    "freelance": ["fred"],
    "aliases": {"saturno": "Raphael (Saturno)"},
}


def local_ms(day: str, hour: int = 12, tz: str = TZ) -> str:
    """'2026-02-10' -> epoch ms string at `hour` local time."""
    ts = pd.Timestamp(f"{day} {hour:02d}:00", tz=tz)
    return str(int(ts.timestamp() * 1000))


def make_task(
    task_id,
    name="[1] [P1][XX][01/02] PEÇA - Cliente",
    weight=None,
    editors=(),
    done=None,
    tags=(),
    product=None,
    status="aprovado",
    source_list=None,
    weight_field_name="Pontos",
    date_field_name="📅 Primeira Edição",
):
    """
    Build a ClickUp task dict.
    editors: iterable of (id, username) pairs.
    done: 'YYYY-MM-DD' local day, or None.
    """
    fields = []
    if weight is not None:
        option_names = sorted({1, 2, 4, 5, int(weight)} if str(weight).isdigit() else {1, 2, 4, 5})
        options = [{"id": f"opt-{n}", "name": str(n), "orderindex": i} for i, n in enumerate(option_names)]
        if str(weight).isdigit():
            value = option_names.index(int(weight))
        else:
            options.append({"id": "opt-x", "name": str(weight), "orderindex": len(options)})
            value = len(options) - 1
        fields.append(
            {"id": "f-weight", "name": weight_field_name, "type": "drop_down", "type_config": {"options": options}, "value": value}
        )
    if editors is not None:
        fields.append(
            {
                "id": "f-editor",
                "name": "Editor",
                "type": "users",
                "value": [{"id": eid, "username": uname, "email": f"{eid}@example.com"} for eid, uname in editors],
            }
        )
    if done is not None:
        fields.append({"id": "f-date", "name": date_field_name, "type": "date", "value": local_ms(done)})
    if product is not None:
        fields.append(
            {
                "id": "f-product",
                "name": "Produto",
                "type": "drop_down",
                "type_config": {"options": [{"id": "p-1", "name": product, "orderindex": 0}]},
                "value": 0,
            }
        )
    task = {
        "id": str(task_id),
        "name": name,
        "status": {"status": status},
        "tags": [{"name": t} for t in tags],
        "assignees": [{"id": 999, "username": "Account Manager"}],
        "custom_fields": fields,
    }
    if source_list:
        task["_source_list"] = source_list
    return task


@pytest.fixture
def cfg():
    """Engine config with a synthetic roster and no env overrides."""
    return build_engine_config({"roster": SYNTHETIC_ROSTER}, environ={})


@pytest.fixture
def task_factory():
    return make_task


# ---------- Status-history lookup fake ----------
class FakeStatusLookup:
    """Callable lookup: records batches; `fail_batches` holds batch indexes that raise."""

    def __init__(self, histories=None, fail_batches=(), adjusted=()):
        self.histories = dict(histories or {})
        for tid in adjusted:
            self.histories[tid] = {"status_history": [{"status": "em edição"}, {"status": "PARA AJUSTAR"}]}
        self.fail_batches = set(fail_batches)
        self.batches = []

    def __call__(self, batch):
        index = len(self.batches)
        self.batches.append(list(batch))
        if index in self.fail_batches:
            raise RuntimeError("simulated ClickUp outage")
        return {
            tid: self.histories.get(tid, {"status_history": [{"status": "em edição"}, {"status": "aprovado"}]})
            for tid in batch
        }


@pytest.fixture
def status_lookup():
    return FakeStatusLookup


# ---------- MongoDB fakes ----------
class FakeCollection:
    def __init__(self):
        self.docs = {}

    def find_one(self, query, projection=None):
        doc = self.docs.get(query.get("_id"))
        if doc is None and "email" in query:
            doc = next((d for d in self.docs.values() if d.get("email") == query["email"]), None)
        return dict(doc) if doc is not None else None

    def insert_one(self, doc):
        self.docs[doc["_id"]] = dict(doc)

    def replace_one(self, query, doc, upsert=False):
        if query["_id"] in self.docs or upsert:
            self.docs[query["_id"]] = dict(doc)


class FakeDB:
    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]


@pytest.fixture
def fake_db():
    return FakeDB()


# ---------- ClickUp HTTP fake ----------
class FakeResponse:
    def __init__(self, status_code=200, payload=None, headers=None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.text = str(payload)

    def json(self):
        return self._payload


class FakeClickUpSession:
    """
    Serves /list/{id}/task pages and /task/bulk_time_in_status/task_ids.
    lists: {list_id: [task, ...]} paged in chunks of `page_size`.
    failing_lists: list ids that answer 500.
    """

    def __init__(self, lists=None, histories=None, page_size=100, failing_lists=()):
        self.lists = lists or {}
        self.histories = histories or {}
        self.page_size = page_size
        self.failing_lists = set(failing_lists)
        self.calls = []

    def get(self, url, headers=None, params=None, timeout=None):
        path = urlparse(url).path
        self.calls.append((path, params))
        if "/list/" in path:
            list_id = path.split("/list/")[1].split("/")[0]
            if list_id in self.failing_lists:
                return FakeResponse(500, {"err": "boom"})
            page = int(params["page"])
            tasks = self.lists.get(list_id, [])
            chunk = tasks[page * self.page_size : (page + 1) * self.page_size]
            return FakeResponse(200, {"tasks": [dict(t) for t in chunk]})
        if path.endswith("/task/bulk_time_in_status/task_ids"):
            ids = [v for k, v in params if k == "task_ids"]
            return FakeResponse(
                200,
                {tid: self.histories.get(tid, {"status_history": [{"status": "aprovado"}]}) for tid in ids},
            )
        return FakeResponse(404, {"err": "not found"})


@pytest.fixture
def clickup_session():
    return FakeClickUpSession


@pytest.fixture(autouse=True)
def _no_sleep(monkeypatch):
    import points_engine.clickup as clickup

    monkeypatch.setattr(clickup.time, "sleep", lambda *_: None)
