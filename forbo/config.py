"""
Forbo - Configuration
=====================

Loads engine settings from config/config.ini. Every key has a fallback: a
malformed value reverts to its default on its own and is logged, the rest of
the file still applies.
"""

import configparser
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from loguru import logger

from .constraints import GridConstraints
from .errors import PreconditionError
from .models import Axis
from .selector import (
    DEFAULT_NUMBER_CLAMP_ORDER,
    DEFAULT_STAR_CLAMP_ORDER,
    ClampPolicy,
    PoolSizing,
)
from .statistics import DEFAULT_TREND_RECENT_PERIOD, WINDOW_NAMES, WindowSpec

DEFAULT_CONFIG_PATH = os.path.join("config", "config.ini")


@dataclass
class ForboConfig:
    windows: Dict[str, WindowSpec] = field(default_factory=lambda: {w: WindowSpec() for w in WINDOW_NAMES})
    trend_recent_period: int = DEFAULT_TREND_RECENT_PERIOD
    number_pool_size: int = 10
    number_pool_max: int = 10
    star_pool_size: int = 4
    star_pool_max: int = 4
    number_resolve_window: int = 10
    star_resolve_window: int = 4
    number_clamp_order: Tuple[str, ...] = DEFAULT_NUMBER_CLAMP_ORDER
    star_clamp_order: Tuple[str, ...] = DEFAULT_STAR_CLAMP_ORDER
    max_unique_attempts: int = 180
    validate_tariff: bool = True
    avoid_parity_extremes: bool = False
    balance_high_low: bool = False
    avoid_sequences: bool = False

    def sizing(self) -> Dict[Axis, PoolSizing]:
        return {
            Axis.NUMBERS: PoolSizing(self.number_pool_size, self.number_pool_max),
            Axis.STARS: PoolSizing(self.star_pool_size, self.star_pool_max),
        }

    def clamp_policies(self) -> Dict[Axis, ClampPolicy]:
        return {
            Axis.NUMBERS: ClampPolicy(tuple(self.number_clamp_order)),
            Axis.STARS: ClampPolicy(tuple(self.star_clamp_order)),
        }

    def resolve_window(self, axis: Axis) -> int:
        return self.number_resolve_window if axis is Axis.NUMBERS else self.star_resolve_window

    def constraints(self) -> GridConstraints:
        return GridConstraints(
            avoid_parity_extremes=self.avoid_parity_extremes,
            balance_high_low=self.balance_high_low,
            avoid_sequences=self.avoid_sequences,
        )


def _parse_order(raw: str, fallback: Tuple[str, ...]) -> Tuple[str, ...]:
    names = tuple(part.strip() for part in raw.split(",") if part.strip())
    return names or fallback


def _getint(config: configparser.ConfigParser, section: str, key: str, fallback: int) -> int:
    try:
        return config.getint(section, key, fallback=fallback)
    except ValueError as e:
        logger.error(f"Invalid [{section}] {key}: {e}, using {fallback}")
        return fallback


def _getboolean(config: configparser.ConfigParser, section: str, key: str, fallback: bool) -> bool:
    try:
        return config.getboolean(section, key, fallback=fallback)
    except ValueError as e:
        logger.error(f"Invalid [{section}] {key}: {e}, using {fallback}")
        return fallback


def _getwindow(config: configparser.ConfigParser, name: str, fallback: WindowSpec) -> WindowSpec:
    raw = config.get("windows", name, fallback=str(fallback))
    try:
        return WindowSpec.parse(raw)
    except PreconditionError as e:
        logger.error(f"Invalid [windows] {name}: {e}, using {fallback}")
        return fallback


def load_config(path: Optional[str] = None) -> ForboConfig:
    """
    Load the engine configuration.

    Args:
        path: INI file; defaults to $FORBO_CONFIG, then config/config.ini

    Returns:
        ForboConfig (defaults for anything missing or malformed)
    """
    path = path or os.getenv("FORBO_CONFIG", DEFAULT_CONFIG_PATH)
    defaults = ForboConfig()

    config = configparser.ConfigParser()
    try:
        read = config.read(path)
    except configparser.Error as e:
        logger.error(f"Error reading configuration from {path}: {e}")
        logger.warning("Using default engine configuration")
        return defaults
    if not read:
        logger.warning(f"Config file {path} not found, using defaults")
        return defaults

    loaded = ForboConfig(
        windows={name: _getwindow(config, name, defaults.windows[name]) for name in WINDOW_NAMES},
        trend_recent_period=_getint(config, "windows", "trend_recent_period", defaults.trend_recent_period),
        number_pool_size=_getint(config, "pools", "number_pool_size", defaults.number_pool_size),
        number_pool_max=_getint(config, "pools", "number_pool_max", defaults.number_pool_max),
        star_pool_size=_getint(config, "pools", "star_pool_size", defaults.star_pool_size),
        star_pool_max=_getint(config, "pools", "star_pool_max", defaults.star_pool_max),
        number_resolve_window=_getint(config, "pools", "number_resolve_window", defaults.number_resolve_window),
        star_resolve_window=_getint(config, "pools", "star_resolve_window", defaults.star_resolve_window),
        number_clamp_order=_parse_order(
            config.get("selection", "number_clamp_order", fallback=""), defaults.number_clamp_order
        ),
        star_clamp_order=_parse_order(
            config.get("selection", "star_clamp_order", fallback=""), defaults.star_clamp_order
        ),
        max_unique_attempts=_getint(config, "selection", "max_unique_attempts", defaults.max_unique_attempts),
        validate_tariff=_getboolean(config, "selection", "validate_tariff", defaults.validate_tariff),
        avoid_parity_extremes=_getboolean(
            config, "constraints", "avoid_parity_extremes", defaults.avoid_parity_extremes
        ),
        balance_high_low=_getboolean(config, "constraints", "balance_high_low", defaults.balance_high_low),
        avoid_sequences=_getboolean(config, "constraints", "avoid_sequences", defaults.avoid_sequences),
    )
    logger.info(f"Forbo configuration loaded from {path}")
    return loaded
