"""
Points aggregation.

One pass over the materialized task set. Every task's weight is split evenly
across its editors and accumulated per editor, per day and per task.
Rounding is not applied here; `finalize_editors` rounds once at the end.
"""

from __future__ import annotations

import logging

from .allocation import round_count, round_half_up, split_share
from .fields import is_weekend_task, normalize_label, resolve_completion_date, resolve_editors
from .weights import classify_task

TEAM_FIXED = "fixed"
TEAM_AI = "ai-assisted"
TEAM_FREELANCE = "freelance"

UNMATCHED_NO_WEIGHT = "unresolved weight"
UNMATCHED_NO_EDITOR = "no editor assigned"

SOURCE_LIST_KEY = "_source_list"


def _roster_match(name: str, entries: list[str]) -> bool:
    n = normalize_label(name)
    return any(normalize_label(e) and normalize_label(e) in n for e in entries)


def classify_team(name: str, cfg: dict) -> str:
    roster = cfg["roster"]
    if _roster_match(name, roster.get("fixed", [])):
        return TEAM_FIXED
    if _roster_match(name, roster.get("ai_assisted", [])):
        return TEAM_AI
    return TEAM_FREELANCE


def is_fixed_roster(name: str, cfg: dict) -> bool:
    return _roster_match(name, cfg["roster"].get("fixed", []))


def new_editor(editor_id: str, name: str, cfg: dict) -> dict:
    return {
        "id": editor_id,
        "name": name,
        "team": classify_team(name, cfg),
        "tasks_count": 0.0,
        "points": 0.0,
        "raw_points": 0.0,
        "daily": {},
        "task_ids": [],
        # [{task_id, weight, share, owners, source_list}]
        "task_weights": [],
        "weekend_tasks": [],
        "queue_tasks": 0,
        "total_tasks": 0,
        "rank": None,
        "bonus": None,
    }


def aggregate_points(tasks: list[dict], cfg: dict) -> dict:
    editors: dict[str, dict] = {}
    daily: dict[tuple[str, str], float] = {}
    unmatched: list[dict] = []
    freelance_list = cfg.get("freelance_list")

    for task in tasks:
        weight = classify_task(task, cfg)["weight"]
        if weight is None:
            unmatched.append(
                {"task_id": task.get("id"), "task_name": task.get("name"), "reason": UNMATCHED_NO_WEIGHT}
            )
            continue

        assigned = resolve_editors(task, cfg)
        if not assigned:
            unmatched.append(
                {"task_id": task.get("id"), "task_name": task.get("name"), "reason": UNMATCHED_NO_EDITOR}
            )
            continue

        day = resolve_completion_date(task, cfg)
        day_key = day.isoformat() if day else None
        weekend = is_weekend_task(task, cfg)
        source_list = task.get(SOURCE_LIST_KEY)
        owners = len(assigned)
        share = split_share(weight, owners)

        for ed in assigned:
            agg = editors.get(ed["id"])
            if agg is None:
                agg = editors[ed["id"]] = new_editor(ed["id"], ed["name"], cfg)

            agg["points"] += share
            agg["raw_points"] += share
            agg["tasks_count"] += split_share(1, owners)
            agg["total_tasks"] += 1
            if freelance_list and source_list == freelance_list:
                agg["queue_tasks"] += 1

            if day_key:
                agg["daily"][day_key] = agg["daily"].get(day_key, 0.0) + share
                daily[(ed["id"], day_key)] = daily.get((ed["id"], day_key), 0.0) + share

            agg["task_ids"].append(task.get("id"))
            contribution = {
                "task_id": task.get("id"),
                "weight": weight,
                "share": share,
                "owners": owners,
                "source_list": source_list,
            }
            agg["task_weights"].append(contribution)
            if weekend:
                agg["weekend_tasks"].append(contribution)

    logging.info(
        "[VideoPoints][Aggregate] tasks=%d editors=%d unmatched=%d",
        len(tasks),
        len(editors),
        len(unmatched),
    )
    return {
        "editors": editors,
        "daily": daily,
        "unmatched": unmatched,
        "task_ids": {eid: list(e["task_ids"]) for eid, e in editors.items()},
        "task_weights": {eid: list(e["task_weights"]) for eid, e in editors.items()},
    }


def finalize_editors(editors: dict[str, dict]) -> dict[str, dict]:
    """
    Round every aggregate exactly once: points/daily to 0.1, task count to an integer.
    `raw_points` stays unrounded so totals across editors are rounded from exact sums.
    """
    for e in editors.values():
        e["points"] = round_half_up(e["points"], 1)
        e["tasks_count"] = round_count(e["tasks_count"])
        e["daily"] = {d: round_half_up(v, 1) for d, v in sorted(e["daily"].items())}
    return editors
