from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone

REPORTS_COLLECTION = os.getenv("VP_REPORTS_COLLECTION", "Video_Points_Reports")


def save_report(report: dict, db) -> None:
    """Upsert the report keyed by its month."""
    month = report["metadata"]["month"]
    doc = {"_id": month, **report, "updated_at": datetime.now(timezone.utc)}
    db[REPORTS_COLLECTION].replace_one({"_id": month}, doc, upsert=True)
    logging.info("[VideoPoints] Saved report for %s to %s", month, REPORTS_COLLECTION)


def load_report(month: str, db) -> dict | None:
    doc = db[REPORTS_COLLECTION].find_one({"_id": month})
    if not doc:
        return None
    doc.pop("_id", None)
    return doc


def report_filename(month: str) -> str:
    return f"video-count-{month}.json"


def write_report_file(report: dict, out_dir: str) -> str:
    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, report_filename(report["metadata"]["month"]))
    with open(path, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2, ensure_ascii=False)
    logging.info("[VideoPoints] Report written to %s", path)
    return path
