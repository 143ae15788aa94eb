"""Engine settings loaded from environment variables.

Only presentation and execution knobs live here. Pricing constants (discount
tiers, service fee, VAT) are code in stayquote.domain.quote.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

DEFAULT_CURRENCY = "YER"
DEFAULT_ROUNDING_PLACES = 2
DEFAULT_QUOTE_WORKERS = 4
DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


@dataclass(frozen=True)
class EngineSettings:
    """Runtime settings.

    Attributes:
        currency: Label attached to quotes; amounts are never converted.
        rounding_places: Decimal places for the single output rounding.
        quote_workers: Thread pool size for batch quoting.
        log_level: Level for loggers created via get_logger().
    """

    currency: str = DEFAULT_CURRENCY
    rounding_places: int = DEFAULT_ROUNDING_PLACES
    quote_workers: int = DEFAULT_QUOTE_WORKERS
    log_level: str = DEFAULT_LOG_LEVEL


def _int_env(env: Mapping[str, str], name: str, default: int, minimum: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= minimum else default


def _level_env(env: Mapping[str, str], name: str, default: str) -> str:
    level = (env.get(name) or default).strip().upper()
    return level if level in LOG_LEVELS else default


def load_settings(env: Mapping[str, str] | None = None) -> EngineSettings:
    """Build settings from *env* (defaults to os.environ).

    Unparseable or out-of-range integers and unknown log levels fall back
    to defaults.
    """
    if env is None:
        env = os.environ

    return EngineSettings(
        currency=(env.get("STAYQUOTE_CURRENCY") or DEFAULT_CURRENCY).strip().upper(),
        rounding_places=_int_env(
            env, "STAYQUOTE_ROUNDING_PLACES", DEFAULT_ROUNDING_PLACES, minimum=0
        ),
        quote_workers=_int_env(
            env, "STAYQUOTE_QUOTE_WORKERS", DEFAULT_QUOTE_WORKERS, minimum=1
        ),
        log_level=_level_env(env, "LOG_LEVEL", DEFAULT_LOG_LEVEL),
    )
