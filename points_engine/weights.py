"""
Task weight resolution.

Order of precedence:
  1. explicit "Pontos" field (leading digits, positive only)
  2. project type from the "Produto" field
  3. client code in the structured task name, e.g. "[398] [P13][MC][21/02] MODA - Thais"
  4. keyword regexes over the task name
Steps 2-4 live in TYPE_RESOLVERS and are tried in order; the first type wins.
"""

from __future__ import annotations

import re
from typing import Any, Callable

from .fields import get_field_value, normalize_label

UNKNOWN_TYPE = "unknown"

TASK_NAME_PATTERN = re.compile(
    r"\[(\d+)\]\s*\[([A-Z]\d+)\]\[([A-Z]+)\]\[(\d{2}/\d{2})\]\s*(\w+)\s*-\s*(.+?)$",
    re.IGNORECASE,
)

_LEADING_DIGITS = re.compile(r"^\s*(\d+)")


def parse_explicit_weight(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, list):
        value = value[0] if value else None
        if value is None:
            return None
    m = _LEADING_DIGITS.match(str(value))
    if not m:
        return None
    weight = int(m.group(1))
    return weight if weight > 0 else None


def _type_from_product(task: dict, cfg: dict) -> str | None:
    value = get_field_value(task, cfg["fields"]["product"])
    if isinstance(value, list):
        value = " ".join(str(v) for v in value)
    if not value:
        return None
    normalized = str(value).strip().lower()
    folded = normalize_label(normalized)

    for type_name in cfg["weights"]["project_types"]:
        if type_name in normalized or type_name in folded:
            return type_name

    for entry in cfg["weights"]["product_patterns"]:
        if re.search(entry["regex"], normalized, re.IGNORECASE):
            return entry["type"]
    return None


def _type_from_client_code(task: dict, cfg: dict) -> str | None:
    m = TASK_NAME_PATTERN.search(task.get("name") or "")
    if not m:
        return None
    return cfg["weights"]["client_codes"].get(m.group(3).upper())


def _type_from_name_keywords(task: dict, cfg: dict) -> str | None:
    name = task.get("name") or ""
    for entry in cfg["weights"]["name_patterns"]:
        if re.search(entry["regex"], name, re.IGNORECASE):
            return entry["type"]
    return None


TYPE_RESOLVERS: tuple[tuple[str, Callable[[dict, dict], str | None]], ...] = (
    ("product_field", _type_from_product),
    ("client_code", _type_from_client_code),
    ("name_keyword", _type_from_name_keywords),
)


def identify_project_type(task: dict, cfg: dict) -> tuple[str, str | None]:
    """Return (project_type, source). Unresolved tasks give ('unknown', None)."""
    for source, resolver in TYPE_RESOLVERS:
        type_name = resolver(task, cfg)
        if type_name:
            return type_name, source
    return UNKNOWN_TYPE, None


def classify_task(task: dict, cfg: dict) -> dict:
    explicit = parse_explicit_weight(get_field_value(task, cfg["fields"]["weight"]))
    if explicit is not None:
        return {"weight": explicit, "project_type": None, "source": "weight_field"}

    type_name, source = identify_project_type(task, cfg)
    weight = cfg["weights"]["project_types"].get(type_name)
    if not isinstance(weight, int) or weight <= 0:
        weight = None
    return {"weight": weight, "project_type": type_name, "source": source}


def resolve_weight(task: dict, cfg: dict) -> int | None:
    return classify_task(task, cfg)["weight"]
