"""Runs the full points pipeline over an in-memory task set."""

from __future__ import annotations

import logging
from datetime import datetime

from .aggregator import aggregate_points, finalize_editors
from .assembler import apply_queue_override, assemble_report
from .evaluators import evaluate_freelance, evaluate_streaks, evaluate_weekend
from .no_rework import StatusLookup, evaluate_no_rework


def compute_report(
    tasks: list[dict],
    month: str,
    cfg: dict,
    status_lookup: StatusLookup | None = None,
    *,
    total_tasks: int | None = None,
    lists: list[str] | None = None,
    generated_at: datetime | None = None,
) -> dict:
    """
    Run every stage over an in-memory task set and return the report document.

    Only `status_lookup` performs I/O; without it the no-rework stage is
    skipped and its bonus is zero for everyone.
    """
    counts = aggregate_points(tasks, cfg)
    editors = counts["editors"]

    apply_queue_override(editors, cfg)

    streaks = evaluate_streaks(editors, cfg)
    no_rework = evaluate_no_rework(editors, status_lookup, cfg)
    weekend = evaluate_weekend(editors, cfg)
    freelance = evaluate_freelance(editors, cfg)

    finalize_editors(editors)

    report = assemble_report(
        editors,
        counts["unmatched"],
        cfg,
        month=month,
        streaks=streaks,
        no_rework=no_rework,
        weekend=weekend,
        freelance=freelance,
        total_tasks=len(tasks) if total_tasks is None else total_tasks,
        lists=lists,
        generated_at=generated_at,
    )
    logging.info(
        "[VideoPoints] Report for %s: editors=%d points=%s bonus=%s unmatched=%d",
        month,
        report["summary"]["total_editors"],
        report["summary"]["total_points"],
        report["summary"]["total_bonus"],
        len(report["unmatched"]),
    )
    return report
