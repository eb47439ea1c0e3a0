"""
Engine configuration.

The engine never reads rosters or rate tables from module state: every stage
receives the config dict built here. `DEFAULT_ENGINE_CONFIG` mirrors the
document bootstrapped into Mongo (`config` / `Video_Points_Config`), so the
stored document and the in-code defaults always share one shape.
"""

from __future__ import annotations

import copy
import logging
import os
from datetime import datetime, timezone
from typing import Any

from utils.db_utils import get_db

SCHEMA_VERSION = "2026-02-01.r1"
CONFIG_COLLECTION = "config"
CONFIG_ID = "Video_Points_Config"


class ConfigError(ValueError):
    """Invalid configuration or invocation input. Fatal to the run."""


DEFAULT_ENGINE_CONFIG: dict[str, Any] = {
    "schema_version": SCHEMA_VERSION,
    # Tracking system's local calendar; daily buckets use this day boundary
    "timezone": "America/Sao_Paulo",
    "daily_target": 6,
    "unit": "pontos",
    "lists": {
        "producao": {"id": "901303868623", "name": "Produção de Criativos"},
        "fixed": {"id": "901324270156", "name": "Fila de Edição (fixo)"},
        "freelas": {"id": "901324715701", "name": "Fila de Edição FREELAS"},
    },
    "freelance_list": "freelas",
    "fields": {
        "completion_date": "Primeira Edição",
        "weight": "Pontos",
        "product": "Produto",
        "editor": "Editor",
    },
    "roster": {
        "fixed": [
            "pedro ximenes",
            "lílian elen",
            "lilian elen",
            "rafael nóbrega",
            "rafael nobrega",
            "bruna",
            "vinícius",
            "vinicius",
            "daniel",
            "ricardo",
        ],
        "ai_assisted": ["rafael gomes"],
        "freelance": [
            "bianca",
            "ághata",
            "agatha",
            "maria eduarda",
            "gabriel bonilha",
            "raphael",
            "saturno",
            "gustavo",
            "hugo",
        ],
        "aliases": {"saturno": "Raphael (Saturno)"},
    },
    "weights": {
        "project_types": {
            "bbb": 1,
            "symphony": 1,
            "ttcx": 2,
            "gov": 2,
            "motion": 4,
            "longform": 5,
            "clp": 1,
        },
        # Near-matches for the product field after vocabulary containment fails
        "product_patterns": [
            {"regex": r"react|moda|cpg", "type": "bbb"},
            {"regex": r"anúncio|anuncio", "type": "ttcx"},
            {"regex": r"sinfonia", "type": "symphony"},
        ],
        "client_codes": {
            "MC": "bbb",
            "MELI": "bbb",
            "BBB": "bbb",
            "TTCX": "ttcx",
            "GOV": "gov",
            "MG": "motion",
            "LF": "longform",
            "SYM": "symphony",
            "CLP": "clp",
        },
        # Ordered; first match wins
        "name_patterns": [
            {"regex": r"bbb|react|moda|cpg|mercado\s*livre", "type": "bbb"},
            {"regex": r"ttcx|anúncio|anuncio|tiktok", "type": "ttcx"},
            {"regex": r"symphony|sinfonia|ia\b", "type": "symphony"},
            {"regex": r"motion\s*graphics?|animação|animacao", "type": "motion"},
            {"regex": r"long\s*form|youtube|podcast", "type": "longform"},
            {"regex": r"gov(erno)?|institucional", "type": "gov"},
            {"regex": r"clp|landing\s*page", "type": "clp"},
        ],
    },
    "bonus": {
        "productivity": [
            {"rank": 1, "value": 500},
            {"rank": 2, "value": 250},
        ],
        "streak": {"threshold": 8, "value": 100},
        "no_rework": {
            "value": 10,
            "adjustment_statuses": ["para ajustar", "para ajustar cliente"],
            "batch_size": 100,
            # Above this many unique task ids the stage is skipped for the run
            "max_tasks": 3000,
        },
        "weekend": {
            "tags": ["fds edição", "feriado edição"],
            "per_task": {"1": 35, "2": 50},
        },
        "freelance": {
            "per_weight": {"1": 35, "2": 70, "4": 140, "5": 175},
            "per_point": 35,
            "require_queue_majority": True,
        },
    },
}

# env var -> (config path, caster)
ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], Any]] = {
    "VP_STREAK_THRESHOLD": (("bonus", "streak", "threshold"), float),
    "VP_STREAK_BONUS": (("bonus", "streak", "value"), float),
    "VP_NO_REWORK_BONUS": (("bonus", "no_rework", "value"), float),
    "VP_NO_REWORK_MAX_TASKS": (("bonus", "no_rework", "max_tasks"), int),
    "VP_TIMEZONE": (("timezone",), str),
}


def deep_merge(base: dict, override: dict) -> dict:
    """Return a copy of `base` with `override` merged in. Lists are replaced, not merged."""
    out = copy.deepcopy(base)
    for key, val in (override or {}).items():
        if isinstance(val, dict) and isinstance(out.get(key), dict):
            out[key] = deep_merge(out[key], val)
        else:
            out[key] = copy.deepcopy(val)
    return out


def _set_path(cfg: dict, path: tuple[str, ...], value: Any) -> None:
    node = cfg
    for key in path[:-1]:
        node = node.setdefault(key, {})
    node[path[-1]] = value


def apply_env_overrides(cfg: dict, environ: dict | None = None) -> dict:
    environ = os.environ if environ is None else environ
    for env_name, (path, caster) in ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw in (None, ""):
            continue
        try:
            _set_path(cfg, path, caster(raw))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value for {env_name}: {raw!r}") from e
        logging.info("[Config] %s overrides %s", env_name, ".".join(path))
    return cfg


def _int_keyed(table: dict, label: str) -> dict[int, float]:
    out: dict[int, float] = {}
    for key, val in (table or {}).items():
        try:
            out[int(key)] = float(val)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{label}: non-numeric entry {key!r}: {val!r}") from e
    return out


def validate_config(cfg: dict) -> dict:
    """Check the values the engine relies on. Raises ConfigError."""
    for section in ("lists", "fields", "roster", "weights", "bonus"):
        if not isinstance(cfg.get(section), dict):
            raise ConfigError(f"Config section '{section}' missing or not an object")

    if cfg.get("freelance_list") not in cfg["lists"]:
        raise ConfigError(f"freelance_list {cfg.get('freelance_list')!r} is not a configured list")

    for type_name, weight in cfg["weights"]["project_types"].items():
        if not isinstance(weight, int) or isinstance(weight, bool) or weight <= 0:
            raise ConfigError(f"Weight for project type {type_name!r} must be a positive integer")

    streak = cfg["bonus"]["streak"]
    try:
        float(streak["threshold"])
        float(streak["value"])
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError("bonus.streak needs numeric 'threshold' and 'value'") from e

    batch_size = cfg["bonus"]["no_rework"].get("batch_size", 100)
    if not isinstance(batch_size, int) or not 1 <= batch_size <= 100:
        raise ConfigError("bonus.no_rework.batch_size must be an integer in 1..100")

    for entry in cfg["bonus"]["productivity"]:
        if "rank" not in entry or "value" not in entry:
            raise ConfigError(f"Productivity entry missing rank/value: {entry!r}")

    _int_keyed(cfg["bonus"]["weekend"]["per_task"], "bonus.weekend.per_task")
    _int_keyed(cfg["bonus"]["freelance"]["per_weight"], "bonus.freelance.per_weight")
    return cfg


def build_engine_config(overrides: dict | None = None, environ: dict | None = None) -> dict:
    """Defaults <- overrides <- env, then validate."""
    cfg = deep_merge(DEFAULT_ENGINE_CONFIG, overrides or {})
    apply_env_overrides(cfg, environ)
    return validate_config(cfg)


def weekend_table(cfg: dict) -> dict[int, float]:
    return _int_keyed(cfg["bonus"]["weekend"]["per_task"], "bonus.weekend.per_task")


def freelance_table(cfg: dict) -> dict[int, float]:
    return _int_keyed(cfg["bonus"]["freelance"]["per_weight"], "bonus.freelance.per_weight")


def _default_config_doc() -> dict:
    """Return the default config document with schema + versioning."""
    now_iso = datetime.now(timezone.utc).isoformat()
    return {
        "_id": CONFIG_ID,
        "module": "Video_Points",
        "schema_version": SCHEMA_VERSION,
        "status": "active",
        "createdAt": now_iso,
        "updatedAt": now_iso,
        "defaults": copy.deepcopy(DEFAULT_ENGINE_CONFIG),
        "meta": {
            "notes": "Auto-created by Video_Points runtime. Safe to edit values under `defaults`; keep top-level keys.",
        },
    }


def load_engine_config(db=None) -> dict:
    """
    Load the engine config from Mongo (bootstrapping the document with defaults
    when missing). Falls back to in-code defaults when Mongo is unavailable.
    Invalid stored values raise ConfigError.
    """
    stored: dict = {}
    try:
        if db is None:
            db = get_db()
        coll = db[CONFIG_COLLECTION]
        doc = coll.find_one({"_id": CONFIG_ID})
        if not doc:
            doc = _default_config_doc()
            coll.insert_one(doc)
            logging.info("[Config] Bootstrapped default config: %s/%s", CONFIG_COLLECTION, CONFIG_ID)
        stored = doc.get("defaults") or {}
        if not isinstance(stored, dict):
            stored = {}
        logging.info(
            "[Config] Loaded config %s (schema_version=%s)",
            CONFIG_ID,
            doc.get("schema_version", SCHEMA_VERSION),
        )
    except Exception as e:
        logging.warning("[Config] Config load failed; falling back to in-code defaults: %s", e)
        stored = {}

    return build_engine_config(stored)
