"""
Pure bonus evaluators: streak days, weekend/holiday tasks and freelance payout.
The status-history check lives in no_rework.py since it is the only stage doing I/O.
"""

from __future__ import annotations

import logging

from .aggregator import TEAM_FIXED, TEAM_FREELANCE
from .allocation import round_half_up, split_share
from .config import freelance_table, weekend_table


# ---------- Streak / threshold ----------
def qualifying_days(daily: dict[str, float], threshold: float) -> list[dict]:
    """Days strictly above the threshold, ascending by date."""
    days = []
    for day, pts in daily.items():
        pts_r = round_half_up(pts, 1)
        if pts_r > threshold:
            days.append({"date": day, "points": pts_r})
    return sorted(days, key=lambda d: d["date"])


def evaluate_streaks(editors: dict[str, dict], cfg: dict) -> dict[str, dict]:
    streak_cfg = cfg["bonus"]["streak"]
    threshold = float(streak_cfg["threshold"])
    per_day = float(streak_cfg["value"])

    out: dict[str, dict] = {}
    for eid, e in editors.items():
        if e["team"] != TEAM_FIXED:
            continue
        days = qualifying_days(e["daily"], threshold)
        if not days:
            continue
        out[eid] = {
            "name": e["name"],
            "count": len(days),
            "total_bonus": round_half_up(len(days) * per_day, 2),
            "days": days,
        }
    logging.info("[VideoPoints][Streak] threshold=%s editors_with_days=%d", threshold, len(out))
    return out


# ---------- Weekend / holiday ----------
def _tabled_amount(table: dict[int, float], weight: int) -> float:
    """Exact entry, else the highest tabled weight not above `weight`, else 0."""
    if weight in table:
        return table[weight]
    lower = [w for w in table if w <= weight]
    return table[max(lower)] if lower else 0.0


def evaluate_weekend(editors: dict[str, dict], cfg: dict) -> dict[str, dict]:
    table = weekend_table(cfg)
    out: dict[str, dict] = {}
    for eid, e in editors.items():
        if not e["weekend_tasks"]:
            continue
        amount = 0.0
        count = 0.0
        for c in e["weekend_tasks"]:
            amount += split_share(_tabled_amount(table, c["weight"]), c["owners"])
            count += split_share(1, c["owners"])
        out[eid] = {
            "name": e["name"],
            "bonus": round_half_up(amount, 2),
            "task_count": round_half_up(count, 1),
            "task_ids": [c["task_id"] for c in e["weekend_tasks"]],
        }
    return out


# ---------- Freelance payout ----------
def queue_majority(editor: dict) -> bool:
    return editor["queue_tasks"] > 0 and editor["queue_tasks"] >= editor["total_tasks"] / 2


def freelance_task_amount(weight: int, cfg: dict, table: dict[int, float] | None = None) -> float:
    table = freelance_table(cfg) if table is None else table
    if weight in table:
        return table[weight]
    return float(cfg["bonus"]["freelance"].get("per_point", 0)) * weight


def evaluate_freelance(editors: dict[str, dict], cfg: dict) -> dict[str, dict]:
    table = freelance_table(cfg)
    require_majority = bool(cfg["bonus"]["freelance"].get("require_queue_majority", True))

    out: dict[str, dict] = {}
    for eid, e in editors.items():
        if e["team"] != TEAM_FREELANCE:
            continue
        eligible = queue_majority(e) or not require_majority
        payout = 0.0
        if eligible:
            for c in e["task_weights"]:
                payout += split_share(freelance_task_amount(c["weight"], cfg, table), c["owners"])
        out[eid] = {
            "name": e["name"],
            "payout": round_half_up(payout, 2),
            "queue_tasks": e["queue_tasks"],
            "total_tasks": e["total_tasks"],
            "eligible": eligible,
        }
    return out
