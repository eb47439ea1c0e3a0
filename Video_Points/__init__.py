import logging
from datetime import datetime, timezone

import azure.functions as func

from points_engine.config import load_engine_config
from points_engine.runner import resolve_target_month, run_month
from utils.db_utils import get_db


def run_scheduled(db=None, session=None, token=None) -> dict:
    """Compute and persist the current month's report with the stored config."""
    db = db if db is not None else get_db()
    cfg = load_engine_config(db)
    month = resolve_target_month(cfg)
    logging.info("[VideoPoints] Target month resolved as %s", month)
    return run_month(month, "all", preview=False, cfg=cfg, token=token, session=session, db=db)


def main(mytimer: func.TimerRequest) -> None:
    """Azure Functions timer entrypoint."""
    trigger_time = datetime.now(timezone.utc).isoformat()
    logging.info("[VideoPoints] Timer fired at %s", trigger_time)
    if getattr(mytimer, "past_due", False):
        logging.warning("[VideoPoints] Timer is running past due.")

    try:
        report = run_scheduled()
    except Exception:
        logging.exception("[VideoPoints] Monthly points run failed")
        raise

    logging.info(
        "[VideoPoints] Completed month=%s editors=%d total_points=%s",
        report["metadata"]["month"],
        report["summary"]["total_editors"],
        report["summary"]["total_points"],
    )
