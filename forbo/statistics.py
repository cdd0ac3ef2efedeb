"""
Forbo - Statistics Source
=========================

Turns a window of historical draws into per-value statistics for the
number universe (1-50) and the star universe (1-12).

Components:
- WindowSpec: parsing and filtering of a statistics window
- frequencies / absences / trends / surrepr_z: per-value measures
- StatsSource: computes every configured window and freezes them into a
  StatsSnapshot consumed by the engine
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd
from loguru import logger

from .errors import PreconditionError
from .models import Axis, TrendDirection, ValueStat
from .simple_utils import round_half_up

NUMBER_COLUMNS = ["n1", "n2", "n3", "n4", "n5"]
STAR_COLUMNS = ["s1", "s2"]

# Windows the engine knows about
HIGH_WINDOW = "high"
TREND_WINDOW = "trend"
DORMEUR_WINDOW = "dormeur"
SURREPR_WINDOW = "surrepr"
WINDOW_NAMES = (HIGH_WINDOW, TREND_WINDOW, DORMEUR_WINDOW, SURREPR_WINDOW)

DEFAULT_TREND_RECENT_PERIOD = 65


def columns_for(axis: Axis) -> List[str]:
    return NUMBER_COLUMNS if axis is Axis.NUMBERS else STAR_COLUMNS


@dataclass(frozen=True)
class WindowSpec:
    """
    A statistics window.

    kind is one of 'all', 'last_20', 'last_year', 'draws', 'weeks', 'months',
    'years'; amount is only meaningful for the last four.
    """
    kind: str = "all"
    amount: Optional[int] = None

    KINDS = ("all", "last_20", "last_year", "draws", "weeks", "months", "years")

    @classmethod
    def parse(cls, text: str) -> "WindowSpec":
        """Parse 'all', 'last_20', 'last_year' or '<unit>:<N>' (e.g. 'draws:100')"""
        text = (text or "all").strip().lower()
        if ":" in text:
            kind, _, raw = text.partition(":")
            kind = kind.strip()
            try:
                amount = int(raw.strip())
            except ValueError:
                raise PreconditionError(f"Invalid window amount in '{text}'")
            if amount <= 0:
                raise PreconditionError(f"Window amount must be positive in '{text}'")
        else:
            kind, amount = text, None
        if kind not in cls.KINDS:
            raise PreconditionError(f"Unknown window kind '{kind}', expected one of {cls.KINDS}")
        if kind in ("draws", "weeks", "months", "years") and amount is None:
            raise PreconditionError(f"Window kind '{kind}' needs an amount, e.g. '{kind}:10'")
        return cls(kind=kind, amount=amount)

    def __str__(self) -> str:
        return self.kind if self.amount is None else f"{self.kind}:{self.amount}"


def sort_recent_first(draws_df: pd.DataFrame) -> pd.DataFrame:
    """Return draws ordered most recent first with a clean index"""
    if draws_df.empty or "draw_date" not in draws_df.columns:
        return draws_df.reset_index(drop=True)
    df = draws_df.copy()
    df["draw_date"] = pd.to_datetime(df["draw_date"])
    return df.sort_values("draw_date", ascending=False, kind="mergesort").reset_index(drop=True)


def filter_draws(draws_df: pd.DataFrame, spec: WindowSpec, today: Optional[datetime] = None) -> pd.DataFrame:
    """
    Restrict a recent-first draws frame to a window.

    Args:
        draws_df: Draws sorted most recent first
        spec: Window to apply
        today: Reference date for calendar windows (defaults to now)

    Returns:
        The filtered frame, still most recent first
    """
    if draws_df.empty or spec.kind == "all":
        return draws_df
    if spec.kind == "last_20":
        return draws_df.head(20)
    if spec.kind == "draws":
        return draws_df.head(spec.amount)

    now = pd.Timestamp(today or datetime.now())
    if spec.kind == "last_year":
        cutoff = now - pd.DateOffset(years=1)
    elif spec.kind == "weeks":
        cutoff = now - pd.DateOffset(weeks=spec.amount)
    elif spec.kind == "months":
        cutoff = now - pd.DateOffset(months=spec.amount)
    else:
        cutoff = now - pd.DateOffset(years=spec.amount)
    return draws_df[pd.to_datetime(draws_df["draw_date"]) >= cutoff]


def _value_matrix(draws_df: pd.DataFrame, axis: Axis) -> np.ndarray:
    if draws_df.empty:
        return np.zeros((0, axis.picks_per_draw), dtype=int)
    return draws_df[columns_for(axis)].to_numpy(dtype=int)


def frequencies(draws_df: pd.DataFrame, axis: Axis) -> np.ndarray:
    """Appearance count per value; index 0 is value 1"""
    matrix = _value_matrix(draws_df, axis)
    flat = matrix.ravel()
    flat = flat[(flat >= 1) & (flat <= axis.size)]
    return np.bincount(flat, minlength=axis.size + 1)[1:]


def absences(draws_df: pd.DataFrame, axis: Axis) -> np.ndarray:
    """Draws since last appearance (0 = in the latest draw, len(window) = never seen)"""
    matrix = _value_matrix(draws_df, axis)
    n_draws = len(matrix)
    if n_draws == 0:
        return np.zeros(axis.size, dtype=int)
    universe = np.arange(1, axis.size + 1)
    hits = (matrix[:, :, None] == universe[None, None, :]).any(axis=1)  # (draws, values)
    return np.where(hits.any(axis=0), hits.argmax(axis=0), n_draws)


def trends(draws_df: pd.DataFrame, axis: Axis,
           recent_period: int = DEFAULT_TREND_RECENT_PERIOD) -> List[Tuple[TrendDirection, int]]:
    """
    Compare the last R draws with the rate over the whole window.

    ratio = recent_count / (total_count / len(window) * R)
    ratio > 1.2 -> up, ratio < 0.8 -> down, otherwise stable (score 5).
    """
    n_draws = len(draws_df)
    r = min(recent_period, n_draws) or 1
    recent_counts = frequencies(draws_df.head(r), axis)
    total_counts = frequencies(draws_df, axis)

    result = []
    for recent, total in zip(recent_counts, total_counts):
        expected = (total / n_draws) * r if n_draws > 0 else 0.0
        ratio = recent / expected if expected > 0 else 0.0
        if ratio > 1.2:
            result.append((TrendDirection.UP, min(10, round_half_up((ratio - 1) * 10))))
        elif ratio < 0.8:
            result.append((TrendDirection.DOWN, max(0, round_half_up(ratio * 5))))
        else:
            result.append((TrendDirection.STABLE, 5))
    return result


def surrepr_z(observed: int, n_draws: int, p0: float) -> float:
    """
    Surrepresentation z-score under a binomial null.

    E = n * p0, sigma = sqrt(n * p0 * (1 - p0)), z = (k - E) / sigma (0 if sigma == 0)
    """
    expected = n_draws * p0
    sigma = math.sqrt(n_draws * p0 * (1 - p0))
    if sigma > 0:
        return (observed - expected) / sigma
    return 0.0


def compute_value_stats(draws_df: pd.DataFrame, axis: Axis,
                        trend_recent_period: int = DEFAULT_TREND_RECENT_PERIOD) -> List[ValueStat]:
    """Every statistic of every value of the axis, computed over one window"""
    freq = frequencies(draws_df, axis)
    absence = absences(draws_df, axis)
    trend = trends(draws_df, axis, trend_recent_period)
    n_draws = len(draws_df)

    return [
        ValueStat(
            value=value,
            frequency=int(freq[value - 1]),
            trend_score=float(trend[value - 1][1]),
            trend_direction=trend[value - 1][0],
            absence=int(absence[value - 1]),
            surrepr_z=float(surrepr_z(int(freq[value - 1]), n_draws, axis.p0)),
        )
        for value in axis.universe
    ]


def frequency_categories(stats: List[ValueStat], axis: Axis) -> Dict[str, List[int]]:
    """
    Split a universe into high/mid/low thirds by descending frequency.

    Numbers: 17 / 17 / 16. Stars: 4 / 4 / 4. Ties fall back on ascending value.
    """
    ordered = sorted(stats, key=lambda s: (-s.frequency, s.value))
    values = [s.value for s in ordered]
    if axis is Axis.NUMBERS:
        return {"high": values[:17], "mid": values[17:34], "low": values[34:50]}
    return {"high": values[:4], "mid": values[4:8], "low": values[8:12]}


@dataclass(frozen=True)
class StatsSnapshot:
    """
    Immutable per-window statistics for both axes.

    The engine reads one snapshot per generation, so a refresh never mixes
    old and new per-value data inside one pass.
    """
    stats: Mapping[Tuple[str, Axis], Tuple[ValueStat, ...]]
    draw_counts: Mapping[str, int] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)

    def get_value_stats(self, window: str, axis: Axis) -> List[ValueStat]:
        key = (window, axis)
        if key not in self.stats:
            raise PreconditionError(f"Snapshot has no statistics for window '{window}' ({axis.value})")
        return list(self.stats[key])

    @property
    def windows(self) -> List[str]:
        return sorted({w for w, _ in self.stats})


class StatsSource:
    """
    Computes statistics for the High, Trend, Dormeur and Surrepr windows.

    Usage:
        source = StatsSource(draws_df, {'high': WindowSpec.parse('all')})
        snapshot = source.snapshot()
    """

    def __init__(self, draws_df: pd.DataFrame, windows: Optional[Mapping[str, WindowSpec]] = None,
                 trend_recent_period: int = DEFAULT_TREND_RECENT_PERIOD, today: Optional[datetime] = None):
        """
        Initialize the statistics source.

        Args:
            draws_df: DataFrame with columns [draw_date, n1..n5, s1, s2]
            windows: Window per name; missing names default to 'all'
            trend_recent_period: Recent period R of the trend comparison
            today: Reference date for calendar windows
        """
        missing = [c for c in NUMBER_COLUMNS + STAR_COLUMNS if c not in draws_df.columns]
        if missing and not draws_df.empty:
            raise PreconditionError(f"Draws are missing columns: {missing}")

        self.draws_df = sort_recent_first(draws_df)
        self.windows = {name: WindowSpec() for name in WINDOW_NAMES}
        self.windows.update(windows or {})
        self.trend_recent_period = trend_recent_period
        self.today = today

        if self.draws_df.empty:
            logger.warning("StatsSource: No historical draws available")
        window_desc = ", ".join(f"{k}={v}" for k, v in self.windows.items())
        logger.info(
            f"StatsSource initialized ({len(self.draws_df)} draws, "
            f"windows: {window_desc}, R={trend_recent_period})"
        )

    def window_draws(self, window: str) -> pd.DataFrame:
        if window not in self.windows:
            raise PreconditionError(f"Unknown window '{window}'")
        return filter_draws(self.draws_df, self.windows[window], self.today)

    def get_value_stats(self, window: str, axis: Axis) -> List[ValueStat]:
        """Full-universe statistics of one axis over one window"""
        draws = self.window_draws(window)
        return compute_value_stats(draws, axis, self.trend_recent_period)

    def snapshot(self) -> StatsSnapshot:
        """Compute every window for both axes and freeze the result"""
        stats = {}
        counts = {}
        for window in self.windows:
            draws = self.window_draws(window)
            counts[window] = len(draws)
            for axis in Axis:
                stats[(window, axis)] = tuple(compute_value_stats(draws, axis, self.trend_recent_period))

        logger.debug(f"Statistics snapshot computed (draws per window={counts})")
        return StatsSnapshot(stats=stats, draw_counts=counts)
