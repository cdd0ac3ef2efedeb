"""
Forbo - Pool Builder
====================

Builds the five ranked orderings of a value universe from per-value
statistics. Every ordering is a permutation of the full universe with a
deterministic tie-break chain:

- by_value:     ascending value
- by_frequency: frequency desc, trend score desc, value asc
- by_trend:     trend score desc, frequency desc, value asc
- by_dormancy:  absence desc, value asc
- by_surrepr:   z-score desc, value asc
"""

import threading
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from .errors import PreconditionError
from .models import (
    Axis,
    DORMANT,
    HIGH,
    LOW,
    MID,
    RankedPools,
    SURREPR,
    TREND,
    ValueStat,
)
from .statistics import (
    DORMEUR_WINDOW,
    HIGH_WINDOW,
    SURREPR_WINDOW,
    TREND_WINDOW,
    StatsSnapshot,
    frequency_categories,
)


def _validate_universe(stats: Sequence[ValueStat], axis: Axis) -> None:
    values = [s.value for s in stats]
    expected = set(axis.universe)
    seen = set(values)
    duplicates = sorted({v for v in values if values.count(v) > 1})
    missing = sorted(expected - seen)
    extra = sorted(seen - expected)
    if duplicates or missing or extra:
        logger.error(
            f"Incomplete {axis.value} statistics (missing={missing}, "
            f"duplicates={duplicates}, out_of_range={extra})"
        )
        raise PreconditionError(
            f"Statistics must cover exactly {axis.value} 1-{axis.size} "
            f"(missing={missing}, duplicates={duplicates}, out_of_range={extra})"
        )


def build_pools(stats: Iterable[ValueStat], axis: Axis) -> RankedPools:
    """
    Build the five ranked pools of one universe.

    Args:
        stats: One ValueStat per value of the universe
        axis: Universe the statistics describe

    Returns:
        RankedPools with five full-length orderings

    Raises:
        PreconditionError: If stats is not exactly the universe
    """
    stats = list(stats)
    _validate_universe(stats, axis)

    pools = RankedPools(
        axis=axis,
        by_value=tuple(sorted(stats, key=lambda s: s.value)),
        by_frequency=tuple(sorted(stats, key=lambda s: (-s.frequency, -s.trend_score, s.value))),
        by_trend=tuple(sorted(stats, key=lambda s: (-s.trend_score, -s.frequency, s.value))),
        by_dormancy=tuple(sorted(stats, key=lambda s: (-s.absence, s.value))),
        by_surrepr=tuple(sorted(stats, key=lambda s: (-s.surrepr_z, s.value))),
    )
    logger.debug(
        f"Pools built for {axis.value}: top frequency={pools.values('by_frequency', 5)}, "
        f"top dormancy={pools.values('by_dormancy', 5)}"
    )
    return pools


def merge_window_stats(snapshot: StatsSnapshot, axis: Axis) -> List[ValueStat]:
    """
    Compose one ValueStat per value from the four configured windows.

    Frequency comes from the High window, trend from the Trend window,
    absence from the Dormeur window and z-score from the Surrepr window.
    """
    high = {s.value: s for s in snapshot.get_value_stats(HIGH_WINDOW, axis)}
    trend = {s.value: s for s in snapshot.get_value_stats(TREND_WINDOW, axis)}
    dormeur = {s.value: s for s in snapshot.get_value_stats(DORMEUR_WINDOW, axis)}
    surrepr = {s.value: s for s in snapshot.get_value_stats(SURREPR_WINDOW, axis)}

    merged = []
    for value in axis.universe:
        if not all(value in window for window in (high, trend, dormeur, surrepr)):
            raise PreconditionError(f"Snapshot is missing {axis.value} value {value} in at least one window")
        merged.append(ValueStat(
            value=value,
            frequency=high[value].frequency,
            trend_score=trend[value].trend_score,
            trend_direction=trend[value].trend_direction,
            absence=dormeur[value].absence,
            surrepr_z=surrepr[value].surrepr_z,
        ))
    return merged


def category_window(pools: RankedPools, category: str, size: int) -> List[int]:
    """
    Visible top-N window of a category pool.

    high, trend, surrepr and dormant read the head of their ranked pool;
    mid and low read the head of their frequency third.
    """
    size = max(0, size)
    if category == HIGH:
        return pools.values("by_frequency", size)
    if category == TREND:
        return pools.values("by_trend", size)
    if category == SURREPR:
        return pools.values("by_surrepr", size)
    if category == DORMANT:
        return pools.values("by_dormancy", size)
    if category in (MID, LOW):
        thirds = frequency_categories(list(pools.by_value), pools.axis)
        return thirds[category][:size]
    raise PreconditionError(f"Unknown category '{category}'")


class PoolBuilder:
    """
    Caches ranked pools per statistics snapshot.

    Pools are derived once per refresh and reused by every generation that
    reads the same snapshot.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot: Optional[StatsSnapshot] = None
        self._pools: Dict[Axis, RankedPools] = {}
        logger.info("PoolBuilder initialized")

    def pools_for(self, snapshot: StatsSnapshot, axis: Axis) -> RankedPools:
        """Return the cached pools of a snapshot, building them on first use"""
        with self._lock:
            if self._snapshot is not snapshot:
                self._snapshot = snapshot
                self._pools = {}
            if axis not in self._pools:
                self._pools[axis] = build_pools(merge_window_stats(snapshot, axis), axis)
            return self._pools[axis]

    def build_all(self, snapshot: StatsSnapshot) -> Tuple[RankedPools, RankedPools]:
        return self.pools_for(snapshot, Axis.NUMBERS), self.pools_for(snapshot, Axis.STARS)
