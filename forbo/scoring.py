"""
Forbo - Candidate Scorer
========================

Scores a working pool of candidates under the two knobs:

- CHAOS (0-10): uniform noise, capped at half the frequency spread
- TENDANCE (0-10): trend bonus, capped at half the frequency spread

Formula, per candidate:
    freq_range   = max(freq) - min(freq)  (1 when zero)
    trend_bonus  = trend_level/10 * trend_score/10 * freq_range * 0.5
    random_term  = U(0, 1) * freq_range * chaos_level/20
    final_score  = frequency + trend_bonus + random_term

This is the only place where randomness enters the engine. The random
source is injected so callers can replay or silence the noise.
"""

import itertools
from typing import Iterable, List, Optional, Protocol, Sequence

import numpy as np
from loguru import logger

from .errors import PreconditionError
from .models import ScoredCandidate, ValueStat


class RandomSource(Protocol):
    """Uniform pseudo-random source on [0, 1)"""

    def uniform(self) -> float:
        ...


class NumpyRandomSource:
    """numpy Generator backed source (default)"""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def uniform(self) -> float:
        return float(self._rng.random())

    def __repr__(self) -> str:
        return f"NumpyRandomSource(seed={self.seed})"


class ZeroNoise:
    """Always 0: removes the chaos term entirely"""

    def uniform(self) -> float:
        return 0.0

    def __repr__(self) -> str:
        return "ZeroNoise()"


class SequenceRandomSource:
    """Cycles through a fixed sequence of draws"""

    def __init__(self, values: Sequence[float]):
        if not values:
            raise ValueError("SequenceRandomSource needs at least one value")
        for v in values:
            if not 0.0 <= v < 1.0:
                raise ValueError(f"Random draws must lie in [0, 1), got {v}")
        self.values = list(values)
        self._cycle = itertools.cycle(self.values)

    def uniform(self) -> float:
        return next(self._cycle)

    def __repr__(self) -> str:
        return f"SequenceRandomSource({self.values})"


def _check_knob(name: str, level: float) -> None:
    if not 0 <= level <= 10:
        raise PreconditionError(f"{name} must be between 0 and 10, got {level}")


class CandidateScorer:
    """
    Bounded composite scoring of candidates.

    Frequency stays the dominant signal: trend and chaos can each add at most
    half of the frequency spread of the pool being scored.
    """

    def __init__(self, rng: Optional[RandomSource] = None):
        """
        Initialize candidate scorer.

        Args:
            rng: Random source for the chaos term (defaults to NumpyRandomSource)
        """
        self.rng = rng if rng is not None else NumpyRandomSource()
        logger.info(f"CandidateScorer initialized (rng={self.rng!r})")

    def score(self, pool: Iterable[ValueStat], chaos_level: float = 0,
              trend_level: float = 0) -> List[ScoredCandidate]:
        """
        Score and rank a pool.

        Args:
            pool: Deduplicated candidates, already stripped of excluded values
            chaos_level: Noise dial (0-10)
            trend_level: Trend influence dial (0-10)

        Returns:
            Candidates sorted by final score desc, then frequency desc,
            trend score desc and value asc
        """
        _check_knob("chaos_level", chaos_level)
        _check_knob("trend_level", trend_level)

        pool = list(pool)
        if not pool:
            return []

        frequencies = [s.frequency for s in pool]
        freq_range = (max(frequencies) - min(frequencies)) or 1
        chaos_ratio = chaos_level / 20
        trend_weight = trend_level / 10

        scored = []
        for stat in pool:
            trend_bonus = trend_weight * (stat.trend_score / 10) * (freq_range * 0.5)
            random_factor = self.rng.uniform() * freq_range * chaos_ratio
            scored.append(ScoredCandidate(
                value=stat.value,
                frequency=stat.frequency,
                trend_score=stat.trend_score,
                final_score=stat.frequency + trend_bonus + random_factor,
            ))

        scored.sort(key=lambda c: (-c.final_score, -c.frequency, -c.trend_score, c.value))
        return scored
