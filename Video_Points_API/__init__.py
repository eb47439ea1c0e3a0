import logging

import azure.functions as func

from points_engine.config import ConfigError, load_engine_config
from points_engine.runner import month_window, resolve_target_month, run_month
from points_engine.storage import load_report
from utils import rbac
from utils.db_utils import get_db
from utils.http import error_response, options_response, respond

TRUTHY = ("1", "true", "yes")


def main(req: func.HttpRequest) -> func.HttpResponse:
    logging.info("Video_Points_API processed a request.")

    if req.method == "OPTIONS":
        return options_response()

    # Route: "video-points/{*route}"
    subpath = (req.route_params.get("route") or "").strip("/")

    if subpath == "health":
        return respond({"status": "ok", "service": "video-points-api"})
    if subpath == "":
        return get_report(req)
    if subpath == "compute":
        return compute(req)

    return error_response("Not Found", 404)


def get_report(req: func.HttpRequest) -> func.HttpResponse:
    try:
        db = get_db()
        cfg = load_engine_config(db)
        month = req.params.get("month") or resolve_target_month(cfg)
        month_window(month, cfg["timezone"])
        report = load_report(month, db)
    except ConfigError as e:
        return error_response(str(e), 400)
    except Exception as e:
        logging.exception("[VideoPoints-API] Failed to read report")
        return error_response(f"Failed to read report: {e}", 500)

    if report is None:
        return error_response(f"No report stored for {month}", 404)
    return respond(report)


def compute(req: func.HttpRequest) -> func.HttpResponse:
    """Recompute a month. ?month=YYYY-MM&list=all|producao|fixed|freelas&preview=1"""
    email = rbac.get_user_email(req)
    if not rbac.is_manager(email):
        logging.warning("[VideoPoints-API] Recompute denied for %s", email)
        return error_response("Forbidden", 403)

    preview = str(req.params.get("preview", "")).strip().lower() in TRUTHY
    try:
        db = get_db()
        cfg = load_engine_config(db)
        report = run_month(
            req.params.get("month"),
            req.params.get("list") or "all",
            preview=preview,
            cfg=cfg,
            db=db,
        )
    except ConfigError as e:
        return error_response(str(e), 400)
    except Exception as e:
        logging.exception("[VideoPoints-API] Recompute failed")
        return error_response(f"Recompute failed: {e}", 500)

    logging.info(
        "[VideoPoints-API] Recompute by %s month=%s preview=%s",
        email,
        report["metadata"]["month"],
        preview,
    )
    return respond({"preview": preview, "report": report})
