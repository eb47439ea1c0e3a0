"""
Field resolution for ClickUp task records.

Custom field names drift between lists (accents, emoji prefixes, small
wording changes), so lookups go through `normalize_label` and fall back to
substring containment when no exact name matches.
"""

from __future__ import annotations

import re
import unicodedata
from datetime import date
from typing import Any

import pandas as pd

_NON_WORD = re.compile(r"[^a-z0-9\s]+")
_SPACES = re.compile(r"\s+")


def normalize_label(text: Any) -> str:
    """'📅 Primeira Edição ' -> 'primeira edicao'"""
    if text is None:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(text))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    cleaned = _NON_WORD.sub(" ", stripped.lower())
    return _SPACES.sub(" ", cleaned).strip()


def find_field(task: dict, name: str) -> dict | None:
    fields = [f for f in (task.get("custom_fields") or []) if isinstance(f, dict)]
    wanted = normalize_label(name)
    if not wanted:
        return None

    for field in fields:
        if normalize_label(field.get("name")) == wanted:
            return field

    for field in fields:
        if wanted in normalize_label(field.get("name")):
            return field
    return None


def _option_label(options: list, value: Any) -> Any:
    for opt in options:
        if not isinstance(opt, dict):
            continue
        if opt.get("id") is not None and str(opt.get("id")) == str(value):
            return opt.get("name") or opt.get("label")
        if opt.get("orderindex") is not None and str(opt.get("orderindex")) == str(value):
            return opt.get("name") or opt.get("label")
    return None


def decode_epoch_ms(value: Any) -> pd.Timestamp | None:
    """Epoch milliseconds (int or numeric string) -> tz-aware UTC timestamp."""
    if value is None or isinstance(value, bool):
        return None
    try:
        ms = int(float(value))
    except (TypeError, ValueError):
        return None
    ts = pd.to_datetime(ms, unit="ms", utc=True, errors="coerce")
    if pd.isna(ts):
        return None
    return ts


def decode_number(value: Any) -> float | None:
    if isinstance(value, dict):
        value = value.get("current")
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def decode_users(value: Any, aliases: dict | None = None) -> list[dict]:
    alias_map = {normalize_label(k): v for k, v in (aliases or {}).items()}
    users = []
    for u in value if isinstance(value, list) else []:
        if not isinstance(u, dict) or u.get("id") is None:
            continue
        name = u.get("username") or u.get("email") or f"User {u['id']}"
        name = alias_map.get(normalize_label(name), name)
        users.append({"id": str(u["id"]), "name": name})
    return users


def parse_field_value(field: dict | None, aliases: dict | None = None) -> Any:
    if not field:
        return None
    value = field.get("value")
    if value is None:
        return None

    ftype = field.get("type")
    options = (field.get("type_config") or {}).get("options") or []

    if ftype == "drop_down":
        return _option_label(options, value)
    if ftype == "labels":
        labels = [_option_label(options, v) for v in (value if isinstance(value, list) else [value])]
        return [lbl for lbl in labels if lbl is not None]
    if ftype == "date":
        return decode_epoch_ms(value)
    if ftype in ("number", "currency", "formula"):
        return decode_number(value)
    if ftype == "users":
        return decode_users(value, aliases)
    return value


def get_field_value(task: dict, name: str, aliases: dict | None = None) -> Any:
    return parse_field_value(find_field(task, name), aliases)


# ---------- Task-level helpers ----------
def resolve_completion_timestamp(task: dict, cfg: dict) -> pd.Timestamp | None:
    value = get_field_value(task, cfg["fields"]["completion_date"])
    return value if isinstance(value, pd.Timestamp) else None


def resolve_completion_date(task: dict, cfg: dict) -> date | None:
    """Completion day on the tracking system's local calendar."""
    ts = resolve_completion_timestamp(task, cfg)
    if ts is None:
        return None
    return ts.tz_convert(cfg["timezone"]).date()


def resolve_editors(task: dict, cfg: dict) -> list[dict]:
    """
    Editors come only from the dedicated editor field. The generic assignee
    list is ignored because it also carries non-editor accounts.
    """
    value = get_field_value(task, cfg["fields"]["editor"], cfg["roster"].get("aliases"))
    if not isinstance(value, list):
        return []
    seen = set()
    editors = []
    for ed in value:
        if ed["id"] in seen:
            continue
        seen.add(ed["id"])
        editors.append(ed)
    return editors


def resolve_tags(task: dict) -> list[str]:
    tags = []
    for t in task.get("tags") or []:
        name = t.get("name") if isinstance(t, dict) else t
        if name:
            tags.append(str(name).strip().lower())
    return tags


def resolve_status(task: dict) -> str | None:
    status = task.get("status")
    if isinstance(status, dict):
        status = status.get("status")
    return str(status).strip().lower() if status else None


def is_weekend_task(task: dict, cfg: dict) -> bool:
    wanted = {normalize_label(t) for t in cfg["bonus"]["weekend"]["tags"]}
    return any(normalize_label(t) in wanted for t in resolve_tags(task))
