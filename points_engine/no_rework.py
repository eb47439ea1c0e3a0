"""
No-rework ("turbinho") evaluation.

A task qualifies when its status history never passed through an adjustment
status. History comes from a batched lookup (at most 100 ids per call, issued
sequentially). Lookup failures never penalize the editor: a task whose
history could not be read is `unverified` and still counts as eligible.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Callable, Iterable

from .aggregator import TEAM_FIXED
from .allocation import round_half_up

VERIFIED_CLEAN = "verified_clean"
VERIFIED_ADJUSTED = "verified_adjusted"
UNVERIFIED = "unverified"

BONUS_ELIGIBLE = frozenset({VERIFIED_CLEAN, UNVERIFIED})

MAX_BATCH_SIZE = 100

StatusLookup = Callable[[list[str]], Mapping]


def _status_name(entry) -> str:
    if isinstance(entry, Mapping):
        entry = entry.get("status")
    return str(entry or "").strip().lower()


def classify_history(entry, adjustment_statuses: Iterable[str]) -> str:
    """
    entry: {"status_history": [{"status": ...}, ...], "current_status": {...}}
    Missing or malformed history -> UNVERIFIED.
    """
    if not isinstance(entry, Mapping):
        return UNVERIFIED
    history = entry.get("status_history")
    if not isinstance(history, list):
        return UNVERIFIED

    adjust = {str(s).strip().lower() for s in adjustment_statuses}
    seen = [_status_name(s) for s in history]
    if entry.get("current_status") is not None:
        seen.append(_status_name(entry.get("current_status")))
    if any(s in adjust for s in seen):
        return VERIFIED_ADJUSTED
    return VERIFIED_CLEAN


def unique_in_order(ids: Iterable) -> list[str]:
    seen = set()
    out = []
    for tid in ids:
        if tid is None or tid in seen:
            continue
        seen.add(tid)
        out.append(tid)
    return out


def verify_tasks(
    task_ids: list[str],
    lookup: StatusLookup,
    adjustment_statuses: Iterable[str],
    batch_size: int = MAX_BATCH_SIZE,
) -> dict[str, str]:
    """Return {task_id: VERIFIED_CLEAN | VERIFIED_ADJUSTED | UNVERIFIED}. Never raises."""
    batch_size = max(1, min(int(batch_size), MAX_BATCH_SIZE))
    adjust = list(adjustment_statuses)
    results: dict[str, str] = {}

    total = len(task_ids)
    for start in range(0, total, batch_size):
        batch = task_ids[start : start + batch_size]
        logging.info(
            "[VideoPoints][NoRework] Bulk status check: %d/%d",
            min(start + batch_size, total),
            total,
        )
        try:
            response = lookup(batch)
        except Exception as e:
            logging.warning(
                "[VideoPoints][NoRework] Lookup failed for batch %d-%d; marking unverified: %s",
                start,
                start + len(batch),
                e,
            )
            response = None

        if not isinstance(response, Mapping):
            for tid in batch:
                results[tid] = UNVERIFIED
            continue

        for tid in batch:
            results[tid] = classify_history(response.get(tid), adjust)
    return results


def evaluate_no_rework(editors: dict[str, dict], lookup: StatusLookup | None, cfg: dict) -> dict:
    """
    Returns {"details": {editor_id: {...}}, "skipped": bool, "checked": int, "statuses": {task_id: status}}.
    """
    nr_cfg = cfg["bonus"]["no_rework"]
    per_task = float(nr_cfg["value"])
    max_tasks = int(nr_cfg.get("max_tasks", 0) or 0)

    fixed = {eid: e for eid, e in editors.items() if e["team"] == TEAM_FIXED}
    unique_ids = unique_in_order(tid for e in fixed.values() for tid in e["task_ids"])

    if lookup is None:
        logging.warning("[VideoPoints][NoRework] No status lookup available; stage skipped.")
        return {"details": {}, "skipped": True, "checked": 0, "statuses": {}}

    if max_tasks and len(unique_ids) > max_tasks:
        logging.warning(
            "[VideoPoints][NoRework] %d unique tasks exceed the cap of %d; stage skipped for this run.",
            len(unique_ids),
            max_tasks,
        )
        return {"details": {}, "skipped": True, "checked": 0, "statuses": {}}

    logging.info("[VideoPoints][NoRework] Checking status history for %d tasks", len(unique_ids))
    statuses = verify_tasks(
        unique_ids,
        lookup,
        nr_cfg.get("adjustment_statuses", []),
        nr_cfg.get("batch_size", MAX_BATCH_SIZE),
    )

    details: dict[str, dict] = {}
    for eid, e in fixed.items():
        ids = e["task_ids"]
        per_status = [statuses.get(tid, UNVERIFIED) for tid in ids]
        qualifying = sum(1 for s in per_status if s in BONUS_ELIGIBLE)
        if qualifying == 0:
            continue
        details[eid] = {
            "name": e["name"],
            "total_tasks": len(ids),
            "clean": per_status.count(VERIFIED_CLEAN),
            "adjusted": per_status.count(VERIFIED_ADJUSTED),
            "unverified": per_status.count(UNVERIFIED),
            "qualifying": qualifying,
            "bonus": round_half_up(qualifying * per_task, 2),
        }

    return {"details": details, "skipped": False, "checked": len(unique_ids), "statuses": statuses}
