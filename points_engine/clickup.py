"""
Thin ClickUp v2 client: paged task reads and bulk time-in-status lookups.
"""

from __future__ import annotations

import logging
import os
import time

import pandas as pd
import requests

from utils.kv_secrets import get_secret

from .aggregator import SOURCE_LIST_KEY
from .config import ConfigError
from .fields import resolve_completion_timestamp

CLICKUP_API_BASE = os.getenv("CLICKUP_API_BASE", "https://api.clickup.com/api/v2")
KV_SECRET_CLICKUP_TOKEN = os.getenv("KV_SECRET_CLICKUP_TOKEN", "ClickUp-Api-Token")

PAGE_SIZE = 100
REQUEST_TIMEOUT = int(os.getenv("CLICKUP_TIMEOUT_SECONDS", "30"))
MAX_RETRIES = int(os.getenv("CLICKUP_MAX_RETRIES", "3"))


class ClickUpError(RuntimeError):
    pass


def get_api_token() -> str:
    token = get_secret(KV_SECRET_CLICKUP_TOKEN) or get_secret("CLICKUP_API_TOKEN")
    if not token:
        raise ConfigError(
            f"ClickUp API token missing. Set {KV_SECRET_CLICKUP_TOKEN} in Key Vault or CLICKUP_API_TOKEN in env."
        )
    return token


def _retry_wait(resp, attempt: int) -> float:
    header = resp.headers.get("Retry-After") if resp is not None else None
    try:
        return min(float(header), 60.0)
    except (TypeError, ValueError):
        return float(min(2**attempt, 8))


def clickup_get(path: str, params, token: str, session=None, retries: int = MAX_RETRIES):
    """GET with retry on 429 / 5xx / connection errors. Raises ClickUpError."""
    url = f"{CLICKUP_API_BASE}{path}"
    headers = {"Authorization": token, "Content-Type": "application/json"}
    http = session or requests

    last_err = None
    for attempt in range(1, retries + 1):
        try:
            resp = http.get(url, headers=headers, params=params, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            last_err = {"exception": str(e)}
            logging.warning("[ClickUp] GET %s error (attempt %d/%d): %s", path, attempt, retries, e)
            if attempt < retries:
                time.sleep(min(2**attempt, 8))
            continue

        if resp.status_code == 200:
            return resp.json()

        last_err = {"status": resp.status_code, "body": resp.text[:300]}
        if resp.status_code == 429 or resp.status_code >= 500:
            wait = _retry_wait(resp, attempt)
            logging.warning(
                "[ClickUp] GET %s -> %s (attempt %d/%d); retrying in %.1fs",
                path,
                resp.status_code,
                attempt,
                retries,
                wait,
            )
            if attempt < retries:
                time.sleep(wait)
            continue

        raise ClickUpError(f"GET {path} failed: {last_err}")

    raise ClickUpError(f"GET {path} failed after {retries} attempts: {last_err}")


def fetch_list_tasks(list_id: str, window: tuple[pd.Timestamp, pd.Timestamp], cfg: dict, token: str, session=None):
    """
    Page through a list until an empty or short page, keeping tasks whose
    completion field falls inside [start, end).
    """
    start, end = window
    params = {
        "page": 0,
        "include_closed": "true",
        "subtasks": "true",
        "date_updated_gt": int(start.timestamp() * 1000),
    }
    kept = []
    while True:
        logging.info("[ClickUp] Fetching page %d from list %s", params["page"], list_id)
        data = clickup_get(f"/list/{list_id}/task", dict(params), token, session=session)
        page_tasks = (data or {}).get("tasks") or []
        if not page_tasks:
            break

        for task in page_tasks:
            ts = resolve_completion_timestamp(task, cfg)
            if ts is not None and start <= ts < end:
                kept.append(task)

        if len(page_tasks) < PAGE_SIZE:
            break
        params["page"] += 1

    logging.info("[ClickUp] Found %d tasks in range from list %s", len(kept), list_id)
    return kept


def fetch_tasks(list_keys: list[str], window, cfg: dict, token: str, session=None) -> list[dict]:
    """
    Fetch every selected list. A list that fails contributes nothing; the run
    continues with the others. Tasks present in several lists are kept once,
    tagged with the freelance list whenever they appear in it.
    """
    tasks: list[dict] = []
    seen: dict = {}
    freelance_list = cfg.get("freelance_list")
    for key in list_keys:
        meta = cfg["lists"][key]
        logging.info("[ClickUp] Querying %s (%s)", meta.get("name", key), meta["id"])
        try:
            list_tasks = fetch_list_tasks(meta["id"], window, cfg, token, session=session)
        except Exception:
            logging.exception("[ClickUp] Failed to fetch list %s (%s); skipping it", key, meta["id"])
            continue

        for task in list_tasks:
            kept = seen.get(task.get("id"))
            if kept is not None:
                # A task also found in the freelance queue keeps that provenance
                if key == freelance_list:
                    kept[SOURCE_LIST_KEY] = key
                continue
            task[SOURCE_LIST_KEY] = key
            seen[task.get("id")] = task
            tasks.append(task)
    return tasks


def bulk_time_in_status(task_ids: list[str], token: str, session=None) -> dict:
    """GET /task/bulk_time_in_status/task_ids?task_ids=a&task_ids=b (max 100 ids)."""
    params = [("task_ids", tid) for tid in task_ids]
    data = clickup_get("/task/bulk_time_in_status/task_ids", params, token, session=session)
    return data if isinstance(data, dict) else {}


def make_status_lookup(token: str, session=None):
    def lookup(batch: list[str]) -> dict:
        return bulk_time_in_status(batch, token, session=session)

    return lookup
