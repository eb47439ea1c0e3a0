"""
Shared monthly runner. The timer function, the HTTP function and the CLI all
go through `run_month`, so every host produces the same report.
"""

from __future__ import annotations

import logging
import os
import re

import pandas as pd

from utils.db_utils import get_db

from .clickup import fetch_tasks, get_api_token, make_status_lookup
from .config import ConfigError, load_engine_config
from .engine import compute_report
from .storage import save_report

_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def month_window(month: str, tz: str) -> tuple[pd.Timestamp, pd.Timestamp]:
    """
    month: 'YYYY-MM'
    returns [start, end) on the local calendar of `tz`
    """
    if not isinstance(month, str) or not _MONTH_RE.match(month):
        raise ConfigError(f"Invalid month {month!r}; expected YYYY-MM")
    y, m = map(int, month.split("-"))
    try:
        start = pd.Timestamp(year=y, month=m, day=1, tz=tz)
    except Exception as e:
        raise ConfigError(f"Invalid timezone {tz!r}: {e}") from e
    return start, start + pd.offsets.MonthBegin(1)


def resolve_target_month(cfg: dict, now: pd.Timestamp | None = None) -> str:
    """
    Determine which YYYY-MM window to process.
    Priority: explicit env override -> current month on the configured calendar.
    """
    override = os.getenv("VP_REPORT_MONTH")
    if override:
        return override
    now = now or pd.Timestamp.now(tz=cfg["timezone"])
    return now.strftime("%Y-%m")


def resolve_list_keys(selector: str | None, cfg: dict) -> list[str]:
    selector = (selector or "all").strip().lower()
    if selector == "all":
        return list(cfg["lists"])
    if selector not in cfg["lists"]:
        raise ConfigError(f"Unknown list {selector!r}; expected one of: all, {', '.join(cfg['lists'])}")
    return [selector]


def run_month(
    month: str | None = None,
    list_selector: str | None = "all",
    preview: bool = False,
    cfg: dict | None = None,
    token: str | None = None,
    session=None,
    db=None,
) -> dict:
    """
    Fetch, compute and (unless preview) persist the report for `month`.
    Input/config problems raise ConfigError before anything is fetched.
    """
    if cfg is None:
        cfg = load_engine_config(db)
    month = month or resolve_target_month(cfg)
    window = month_window(month, cfg["timezone"])
    list_keys = resolve_list_keys(list_selector, cfg)
    token = token or get_api_token()

    logging.info(
        "[VideoPoints] Run month=%s lists=%s preview=%s range=%s -> %s",
        month,
        ",".join(list_keys),
        preview,
        window[0].isoformat(),
        window[1].isoformat(),
    )

    tasks = fetch_tasks(list_keys, window, cfg, token, session=session)
    logging.info("[VideoPoints] Tasks with completion date in period: %d", len(tasks))
    if not tasks:
        logging.warning("[VideoPoints] No tasks found for %s", month)

    report = compute_report(
        tasks,
        month,
        cfg,
        make_status_lookup(token, session=session),
        lists=list_keys,
    )

    if not preview:
        save_report(report, db if db is not None else get_db())
    return report
