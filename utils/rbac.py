import os
import logging

from .db_utils import get_db


def get_allowed_emails(env_var_name: str) -> set[str]:
    raw = os.getenv(env_var_name, "")
    return {e.strip().lower() for e in raw.split(",") if e.strip()}


def _check_db_role(email: str, roles: tuple[str, ...]) -> bool:
    if not email:
        return False
    try:
        db = get_db()
        user = db.Admin_Permissions.find_one({"email": email})
    except Exception as e:
        logging.warning("[RBAC] Permission lookup failed for %s: %s", email, e)
        return False
    if not user:
        return False
    return any(r in (user.get("roles") or []) for r in roles)


def is_manager(email: str | None) -> bool:
    """Managers may trigger a recompute of the monthly report."""
    if not email:
        return False
    email = email.lower()

    # Check Env
    managers = get_allowed_emails("VP_MANAGER_EMAILS")
    admins = get_allowed_emails("VP_ADMIN_EMAILS")
    if (email in managers) or (email in admins):
        return True

    # Check DB
    return _check_db_role(email, ("admin", "manager", "super_admin"))


def get_user_email(req) -> str | None:
    # 1. Azure App Service Auth header is always honored
    val = req.headers.get("x-ms-client-principal-name")
    if val:
        return val

    # 2. Dev/Test only: X-User-Email. Ignored in Production to prevent spoofing
    is_dev_or_test = (
        os.getenv("AZURE_FUNCTIONS_ENVIRONMENT") != "Production"
        or os.getenv("DEBUG_RBAC") == "1"
    )

    if is_dev_or_test:
        val = req.headers.get("X-User-Email")
        if val:
            return val

    return None
