"""
Command-line run of the monthly video points report.

Usage:
  python -m points_engine                         # current month
  python -m points_engine --month 2026-02         # specific month
  python -m points_engine --list fixed            # only the fixed-team queue
  python -m points_engine --dry-run               # show without saving
"""

import argparse
import json
import logging
import os
import sys

import pandas as pd
from dotenv import find_dotenv, load_dotenv

from .config import ConfigError, load_engine_config
from .runner import resolve_target_month, run_month
from .storage import write_report_file

DEFAULT_OUTPUT_DIR = os.path.join("docs", "reports")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="python -m points_engine",
        description="Points per editor from the ClickUp 'Primeira Edição' and 'Pontos' fields.",
    )
    parser.add_argument("--month", "-m", help="Month to count, YYYY-MM (default: current month)")
    parser.add_argument(
        "--list", "-l", dest="list_selector", default="all", help="all | producao | fixed | freelas (default: all)"
    )
    parser.add_argument("--dry-run", "-d", action="store_true", help="Show the result without saving")
    parser.add_argument("--output-dir", "-o", default=DEFAULT_OUTPUT_DIR, help="Directory for the JSON report")
    return parser.parse_args(argv)


def ranking_table(report: dict) -> pd.DataFrame:
    rows = []
    for e in report["editors"]:
        b = e["bonus"]
        rows.append(
            {
                "rank": e["rank"] if e["rank"] is not None else "-",
                "editor": e["name"],
                "team": e["team"],
                "points": e["totals"]["points"],
                "streak_days": b["streak_days"],
                "no_rework": b["no_rework_count"],
                "weekend": b["weekend"],
                "bonus": b["total"],
            }
        )
    return pd.DataFrame(rows, columns=["rank", "editor", "team", "points", "streak_days", "no_rework", "weekend", "bonus"])


def print_report(report: dict) -> None:
    meta = report["metadata"]
    print(f"\n  POINTS RANKING - {meta['month']}\n")
    if report["editors"]:
        print(ranking_table(report).to_string(index=False))
    print(f"\n  Total: {report['summary']['total_points']} {meta['unit']}")
    print(f"  Editors: {report['summary']['total_editors']}")
    print(f"  Daily target: {meta['daily_target']} | Streak: >{meta['streak_threshold']} per day")

    if report["streak_days"]:
        print("\nStreak days:")
        for data in report["streak_days"].values():
            print(f"  {data['name']}: {data['count']} day(s) -> {data['total_bonus']}")
            for day in data["days"]:
                print(f"    {day['date']}: {day['points']}")

    if meta["no_rework_skipped"]:
        print("\nNo-rework check skipped for this run.")
    elif report["no_rework"]:
        print("\nNo rework:")
        for data in report["no_rework"].values():
            print(f"  {data['name']}: {data['qualifying']}/{data['total_tasks']} tasks -> {data['bonus']}")

    unmatched = report["unmatched"]
    if unmatched:
        print(f"\n{len(unmatched)} unmatched tasks:")
        for u in unmatched[:10]:
            print(f"    - [{u['task_id']}] {u['task_name']} ({u['reason']})")
        if len(unmatched) > 10:
            print(f"    ... and {len(unmatched) - 10} more")


def main(argv=None) -> int:
    load_dotenv(find_dotenv(usecwd=True))

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=os.getenv("VP_LOG_LEVEL", "INFO").upper(),
            format="%(asctime)s %(levelname)s %(message)s",
        )
    for noisy in ("pymongo", "azure", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    args = parse_args(argv)
    try:
        cfg = load_engine_config()
        month = args.month or resolve_target_month(cfg)
        logging.info("[VideoPoints-CLI] month=%s list=%s dry_run=%s", month, args.list_selector, args.dry_run)
        # The CLI writes a file instead of Mongo; Mongo persistence belongs to the timer/API hosts
        report = run_month(month, args.list_selector, preview=True, cfg=cfg)
    except ConfigError as e:
        logging.error("[VideoPoints-CLI] %s", e)
        return 2

    print_report(report)
    if args.dry_run:
        print("\n[dry-run] Report not saved. Remove --dry-run to save.\n")
        print(json.dumps(report, indent=2, ensure_ascii=False))
    else:
        path = write_report_file(report, args.output_dir)
        print(f"\nReport saved to: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
