"""
Ranking and bonus assembly: turns finalized editor aggregates plus evaluator
outputs into the report document.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from .aggregator import TEAM_AI, TEAM_FIXED, TEAM_FREELANCE
from .allocation import round_half_up
from .evaluators import queue_majority


def apply_queue_override(editors: dict[str, dict], cfg: dict) -> list[str]:
    """
    Editors whose tasks mostly came from the freelance queue are freelance,
    even if their name also matches the fixed roster. Returns the flipped ids.
    """
    flipped = []
    for eid, e in editors.items():
        if e["team"] != TEAM_FREELANCE and queue_majority(e):
            logging.info(
                "[VideoPoints][Team] %s reclassified %s -> %s (queue %d/%d)",
                e["name"],
                e["team"],
                TEAM_FREELANCE,
                e["queue_tasks"],
                e["total_tasks"],
            )
            e["team"] = TEAM_FREELANCE
            flipped.append(eid)
    return flipped


def rank_fixed_roster(editors: dict[str, dict]) -> tuple[list[dict], list[dict]]:
    """Stable sort by points desc; ties keep encounter order. Only the fixed team gets a rank."""
    fixed = [e for e in editors.values() if e["team"] == TEAM_FIXED]
    others = [e for e in editors.values() if e["team"] != TEAM_FIXED]
    fixed.sort(key=lambda e: e["points"], reverse=True)
    for i, e in enumerate(fixed, start=1):
        e["rank"] = i
    others.sort(key=lambda e: e["points"], reverse=True)
    for e in others:
        e["rank"] = None
    return fixed, others


def productivity_bonus(rank: int | None, cfg: dict) -> float:
    if rank is None:
        return 0
    for entry in cfg["bonus"]["productivity"]:
        if int(entry["rank"]) == rank:
            return entry["value"]
    return 0


def zero_bonus() -> dict:
    return {
        "type": "none",
        "productivity": 0,
        "streak": 0,
        "streak_days": 0,
        "no_rework": 0,
        "no_rework_count": 0,
        "weekend": 0,
        "weekend_count": 0,
        "freelance_payout": 0,
        "total": 0,
    }


def build_bonus(
    editor: dict,
    cfg: dict,
    streaks: dict,
    no_rework: dict,
    weekend: dict,
    freelance: dict,
) -> dict:
    eid = editor["id"]
    bonus = zero_bonus()

    if editor["team"] == TEAM_FIXED:
        streak = streaks.get(eid) or {}
        nr = no_rework.get(eid) or {}
        wk = weekend.get(eid) or {}
        bonus.update(
            {
                "type": "fixed",
                "productivity": productivity_bonus(editor["rank"], cfg),
                "streak": streak.get("total_bonus", 0),
                "streak_days": streak.get("count", 0),
                "no_rework": nr.get("bonus", 0),
                "no_rework_count": nr.get("qualifying", 0),
                "weekend": wk.get("bonus", 0),
                "weekend_count": wk.get("task_count", 0),
            }
        )
        bonus["total"] = round_half_up(
            bonus["productivity"] + bonus["streak"] + bonus["no_rework"] + bonus["weekend"], 2
        )
    elif editor["team"] == TEAM_FREELANCE:
        fl = freelance.get(eid) or {}
        bonus["type"] = "freelance"
        bonus["freelance_payout"] = fl.get("payout", 0)
        bonus["total"] = bonus["freelance_payout"]
    # TEAM_AI keeps the zero breakdown
    return bonus


def assemble_report(
    editors: dict[str, dict],
    unmatched: list[dict],
    cfg: dict,
    *,
    month: str,
    streaks: dict,
    no_rework: dict,
    weekend: dict,
    freelance: dict,
    total_tasks: int,
    lists: list[str] | None = None,
    generated_at: datetime | None = None,
) -> dict:
    fixed, others = rank_fixed_roster(editors)
    ordered = fixed + others
    for e in ordered:
        e["bonus"] = build_bonus(e, cfg, streaks, no_rework.get("details", {}), weekend, freelance)

    # Summed before rounding; rounded per-editor points can overshoot the task weights
    total_points = round_half_up(sum(e.get("raw_points", e["points"]) for e in ordered), 1)
    total_bonus = round_half_up(sum(e["bonus"]["total"] for e in ordered), 2)
    generated_at = generated_at or datetime.now(timezone.utc)

    report = {
        "metadata": {
            "month": month,
            "generated_at": generated_at.isoformat(),
            "total_tasks": total_tasks,
            "lists": list(lists or []),
            "schema_version": cfg.get("schema_version"),
            "timezone": cfg["timezone"],
            "daily_target": cfg.get("daily_target"),
            "streak_threshold": cfg["bonus"]["streak"]["threshold"],
            "unit": cfg.get("unit", "pontos"),
            "no_rework_skipped": bool(no_rework.get("skipped")),
            "no_rework_checked": no_rework.get("checked", 0),
        },
        "editors": [
            {
                "id": e["id"],
                "name": e["name"],
                "team": e["team"],
                "totals": {"raw_count": e["tasks_count"], "points": e["points"]},
                "daily": e["daily"],
                "rank": e["rank"],
                "bonus": e["bonus"],
                "task_ids": list(e["task_ids"]),
            }
            for e in ordered
        ],
        "streak_days": streaks,
        "no_rework": no_rework.get("details", {}),
        "summary": {
            "total_points": total_points,
            "total_editors": len(ordered),
            "total_bonus": total_bonus,
            "teams": {
                team: sum(1 for e in ordered if e["team"] == team)
                for team in (TEAM_FIXED, TEAM_AI, TEAM_FREELANCE)
            },
            "ranking": [{"name": e["name"], "rank": e["rank"], "points": e["points"]} for e in fixed],
        },
        "unmatched": list(unmatched),
    }
    return report
