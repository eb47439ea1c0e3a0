"""
Monthly points & incentive engine for the video editing team.

ClickUp tasks -> weight/editor resolution -> per-editor points with daily
buckets -> streak, no-rework, weekend and freelance bonuses -> ranked report.
"""

from .config import ConfigError, build_engine_config, load_engine_config
from .engine import compute_report
from .runner import month_window, run_month

__all__ = [
    "ConfigError",
    "build_engine_config",
    "compute_report",
    "load_engine_config",
    "month_window",
    "run_month",
]
