"""
Forbo - Selector
================

Frequency-first, quota-constrained, completion-filled selection:

1. Clamp the category wants (configurable precedence) until they fit the target
2. Score each category window in a fixed order and take its quota
3. Fill the remainder from the union of the category windows
4. Tag every pick with its source pool and keep the score that picked it

The per-value scores are returned explicitly so the dormancy pass can
replace the weakest picks without any shared state.
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from .categories import CategoryResolver
from .errors import PreconditionError
from .models import (
    Axis,
    CATEGORIES,
    DORMANT,
    HIGH,
    LOW,
    MID,
    RankedPools,
    SURREPR,
    SelectionOutcome,
    SelectionRequest,
    SelectionResult,
    TREND,
)
from .pools import category_window
from .scoring import CandidateScorer
from .simple_utils import round_half_up

# Order in which category quotas are served
SELECTION_ORDER = (HIGH, MID, LOW, TREND, SURREPR, DORMANT)

# Windows always part of the completion union
COMPLETION_CATEGORIES = (HIGH, DORMANT)

DEFAULT_NUMBER_CLAMP_ORDER = (HIGH, MID, LOW, TREND, SURREPR, DORMANT)
DEFAULT_STAR_CLAMP_ORDER = (DORMANT, LOW, MID, SURREPR, TREND, HIGH)


@dataclass(frozen=True)
class ClampPolicy:
    """Precedence used to shrink over-allocated wants (first name shrinks first)"""
    order: Tuple[str, ...] = DEFAULT_NUMBER_CLAMP_ORDER

    def clamp_wants(self, wants: Mapping[str, int], total: int) -> Dict[str, int]:
        """
        Reduce wants until their sum is at most total.

        Never raises a want and never returns a negative count. Categories
        missing from the policy shrink last, most recently added first.
        """
        clamped = {name: max(0, int(count)) for name, count in wants.items()}
        excess = sum(clamped.values()) - max(0, total)
        if excess <= 0:
            return clamped

        order = [c for c in self.order if c in clamped]
        order += [c for c in reversed(list(clamped)) if c not in order]
        for name in order:
            if excess <= 0:
                break
            cut = min(clamped[name], excess)
            clamped[name] -= cut
            excess -= cut

        logger.debug(f"Wants clamped to target {total}: {dict(wants)} -> {clamped}")
        return clamped


@dataclass(frozen=True)
class PoolSizing:
    """
    Size of the visible window of each category pool.

    The window grows linearly with the chaos dial, from base at chaos 0 to
    maximum at chaos 10.
    """
    base: int
    maximum: Optional[int] = None

    def size_for(self, chaos_level: float) -> int:
        maximum = self.base if self.maximum is None else max(self.base, self.maximum)
        return self.base + round_half_up((maximum - self.base) * chaos_level / 10)


DEFAULT_SIZING = {
    Axis.NUMBERS: PoolSizing(base=10, maximum=10),
    Axis.STARS: PoolSizing(base=4, maximum=4),
}

DEFAULT_CLAMP = {
    Axis.NUMBERS: ClampPolicy(DEFAULT_NUMBER_CLAMP_ORDER),
    Axis.STARS: ClampPolicy(DEFAULT_STAR_CLAMP_ORDER),
}


def derive_star_wants(number_wants: Mapping[str, int], star_target: int,
                      clamp_policy: ClampPolicy = DEFAULT_CLAMP[Axis.STARS]) -> Dict[str, int]:
    """
    Star quotas proportional to the number quotas.

    Each category gets round(share * star_target) stars, then the result is
    clamped so the stars never exceed star_target.
    """
    total = sum(max(0, w) for w in number_wants.values())
    if total == 0:
        return {}
    raw = {name: round_half_up(max(0, w) / total * star_target) for name, w in number_wants.items()}
    return clamp_policy.clamp_wants(raw, star_target)


def _dedupe(values: Sequence[int]) -> List[int]:
    seen = set()
    return [v for v in values if not (v in seen or seen.add(v))]


class Selector:
    """
    Picks exactly total_target values of one axis.

    Usage:
        selector = Selector(CandidateScorer())
        outcome = selector.select(pools, SelectionRequest(total_target=5, category_wants={'high': 3}))
    """

    def __init__(self, scorer: CandidateScorer,
                 sizing: Optional[Mapping[Axis, PoolSizing]] = None,
                 clamp: Optional[Mapping[Axis, ClampPolicy]] = None):
        """
        Initialize selector.

        Args:
            scorer: Candidate scorer (owns the random source)
            sizing: Visible window sizing per axis
            clamp: Want clamping policy per axis
        """
        self.scorer = scorer
        self.sizing = dict(DEFAULT_SIZING)
        self.sizing.update(sizing or {})
        self.clamp = dict(DEFAULT_CLAMP)
        self.clamp.update(clamp or {})
        logger.info(
            f"Selector initialized (numbers window={self.sizing[Axis.NUMBERS]}, "
            f"stars window={self.sizing[Axis.STARS]})"
        )

    def category_windows(self, pools: RankedPools, categories: Sequence[str],
                         chaos_level: float) -> Dict[str, List[int]]:
        size = min(self.sizing[pools.axis].size_for(chaos_level), pools.axis.size)
        return {name: category_window(pools, name, size) for name in categories}

    def select(self, pools: RankedPools, request: SelectionRequest) -> SelectionOutcome:
        """
        Run one selection pass.

        Args:
            pools: Ranked pools of the axis
            request: Target, quotas and knobs

        Returns:
            SelectionOutcome with the result and the score of every pick

        Raises:
            PreconditionError: If the target exceeds the universe or a
                category is unknown
        """
        axis = pools.axis
        total = request.total_target
        if total > axis.size:
            logger.error(f"Target {total} exceeds the {axis.value} universe ({axis.size})")
            raise PreconditionError(f"Cannot select {total} {axis.value} out of {axis.size}")
        unknown = [c for c in request.category_wants if c not in CATEGORIES]
        if unknown:
            raise PreconditionError(f"Unknown categories {unknown}, expected some of {CATEGORIES}")

        wants = self.clamp[axis].clamp_wants(request.category_wants, total)
        served = [c for c in SELECTION_ORDER if wants.get(c, 0) > 0]
        involved = served + [c for c in COMPLETION_CATEGORIES if c not in served]
        windows = self.category_windows(pools, involved, request.chaos_level)
        resolver = CategoryResolver(windows)

        picked: List[int] = []
        scores: Dict[int, float] = {}
        sources: Dict[int, str] = {}

        for category in served:
            count = wants[category]
            candidates = [pools.stat_of(v) for v in windows[category] if v not in scores]
            ranked = self.scorer.score(candidates, request.chaos_level, request.trend_level)
            for candidate in ranked[:count]:
                picked.append(candidate.value)
                scores[candidate.value] = candidate.final_score
                sources[candidate.value] = resolver.tag_for_selection(candidate.value, category)
            if len(ranked) < count:
                logger.debug(
                    f"{axis.value}: category '{category}' short by {count - len(ranked)} "
                    f"(window exhausted), completion will fill"
                )

        remaining = total - len(picked)
        if remaining > 0:
            union = _dedupe([v for c in involved for v in windows[c]])
            candidates = [v for v in union if v not in scores]
            if len(candidates) < remaining:
                logger.debug(
                    f"{axis.value}: completion union has {len(candidates)} free values for "
                    f"{remaining} slots, widening to the full universe"
                )
                candidates += [v for v in pools.values("by_frequency") if v not in scores and v not in union]
            ranked = self.scorer.score(
                [pools.stat_of(v) for v in candidates], request.chaos_level, request.trend_level
            )
            for candidate in ranked[:remaining]:
                picked.append(candidate.value)
                scores[candidate.value] = candidate.final_score
                sources[candidate.value] = resolver.tag_for_selection(candidate.value)

        result = SelectionResult(values=tuple(picked), source_of=sources, total_target=total)
        logger.debug(f"{axis.value} selected: {list(result.values)} (wants={wants})")
        return SelectionOutcome(result=result, selection_scores=scores)
