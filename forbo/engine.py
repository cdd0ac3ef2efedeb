"""
Forbo - Generation Engine
=========================

Facade over the whole pipeline:

    StatsSnapshot -> PoolBuilder -> Selector (+ CandidateScorer)
                  -> DormeurReplacer -> numbers and stars with sources

The engine is synchronous. Each generation reads one immutable statistics
snapshot and allocates its own selection scores, so concurrent calls do not
interfere and a refresh never tears a pass in half.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd
from loguru import logger

from .categories import RESOLVE_CATEGORIES, CategoryResolver
from .config import ForboConfig, load_config
from .constraints import GridConstraints
from .dormancy import DormeurReplacer
from .errors import PreconditionError, UniqueCombinationError
from .models import (
    Axis,
    GenerationResult,
    RankedPools,
    ReplacementProof,
    SelectionRequest,
    SelectionResult,
)
from .pools import PoolBuilder
from .scoring import CandidateScorer, RandomSource
from .selector import Selector, derive_star_wants
from .simple_utils import combination_key, format_grid
from .statistics import StatsSnapshot, StatsSource
from .tariff import Tariff, cap_star_wants


@dataclass(frozen=True)
class _EngineState:
    snapshot: StatsSnapshot
    pools: Mapping[Axis, RankedPools]


def requests_for_tariff(tariff: Tariff, number_wants: Optional[Mapping[str, int]] = None,
                        star_wants: Optional[Mapping[str, int]] = None, chaos_level: float = 0,
                        trend_level: float = 0, dormant_numbers: float = 0,
                        dormant_stars: float = 0) -> Tuple[SelectionRequest, SelectionRequest]:
    """
    Build the pair of selection requests for a tariff.

    When star_wants is omitted the star quotas follow the proportions of the
    number quotas. Star quotas are capped to what the numbers count allows.
    """
    number_wants = dict(number_wants or {})
    if star_wants is None:
        star_wants = derive_star_wants(number_wants, tariff.stars_count)
    star_wants = cap_star_wants(star_wants, tariff.numbers_count)

    numbers_request = SelectionRequest(
        total_target=tariff.numbers_count,
        category_wants=number_wants,
        chaos_level=chaos_level,
        trend_level=trend_level,
        dormant_percent=dormant_numbers,
    )
    stars_request = SelectionRequest(
        total_target=tariff.stars_count,
        category_wants=star_wants,
        chaos_level=chaos_level,
        trend_level=trend_level,
        dormant_percent=dormant_stars,
    )
    return numbers_request, stars_request


class ForboEngine:
    """
    Candidate-pool ranking and weighted selection engine.

    Usage:
        engine = ForboEngine.from_draws(draws_df)
        result = engine.generate(numbers_request, stars_request)
    """

    def __init__(self, snapshot: Optional[StatsSnapshot] = None, config: Optional[ForboConfig] = None,
                 rng: Optional[RandomSource] = None,
                 tariff_provider: Optional[Callable[[], Tariff]] = None):
        """
        Initialize the engine.

        Args:
            snapshot: Initial statistics (can be supplied later with refresh())
            config: Engine configuration (defaults to load_config())
            rng: Random source of the chaos term
            tariff_provider: Returns the externally validated target counts
        """
        self.config = config or load_config()
        self.scorer = CandidateScorer(rng)
        self.selector = Selector(self.scorer, self.config.sizing(), self.config.clamp_policies())
        self.replacer = DormeurReplacer()
        self.pool_builder = PoolBuilder()
        self.tariff_provider = tariff_provider

        self._lock = threading.Lock()
        self._state: Optional[_EngineState] = None
        self._generation_metrics = {
            'last_generation_time': None,
            'total_generations': 0,
            'avg_generation_time': 0.0,
        }

        if snapshot is not None:
            self.refresh(snapshot)
        logger.info(f"ForboEngine initialized (stats loaded: {snapshot is not None})")

    @classmethod
    def from_draws(cls, draws_df: pd.DataFrame, config: Optional[ForboConfig] = None,
                   rng: Optional[RandomSource] = None, **kwargs) -> "ForboEngine":
        """Compute statistics from a draws frame with the configured windows"""
        config = config or load_config()
        source = StatsSource(draws_df, config.windows, config.trend_recent_period)
        return cls(source.snapshot(), config=config, rng=rng, **kwargs)

    def refresh(self, snapshot: StatsSnapshot) -> None:
        """
        Swap in a new statistics snapshot.

        Pools are built before the swap; generations already running keep
        the snapshot they started with.
        """
        numbers, stars = self.pool_builder.build_all(snapshot)
        state = _EngineState(snapshot=snapshot, pools={Axis.NUMBERS: numbers, Axis.STARS: stars})
        with self._lock:
            self._state = state
        logger.info(f"Statistics refreshed (windows={snapshot.windows})")

    def _current_state(self) -> _EngineState:
        with self._lock:
            state = self._state
        if state is None:
            raise PreconditionError("No statistics loaded, call refresh() first")
        return state

    @property
    def has_stats(self) -> bool:
        return self._state is not None

    def pools(self, axis: Union[Axis, str]) -> RankedPools:
        return self._current_state().pools[_as_axis(axis)]

    def _check_targets(self, numbers_request: SelectionRequest, stars_request: SelectionRequest) -> None:
        for axis, request in ((Axis.NUMBERS, numbers_request), (Axis.STARS, stars_request)):
            if request.total_target > axis.size:
                logger.error(f"Target {request.total_target} exceeds the {axis.value} universe")
                raise PreconditionError(
                    f"Cannot select {request.total_target} {axis.value} out of {axis.size}"
                )

        if self.tariff_provider is not None:
            tariff = self.tariff_provider().validate()
            if (numbers_request.total_target, stars_request.total_target) != (
                    tariff.numbers_count, tariff.stars_count):
                logger.error(f"Requests do not match the selected tariff {tariff}")
                raise PreconditionError(
                    f"Requested {numbers_request.total_target}/{stars_request.total_target} "
                    f"but tariff is {tariff.numbers_count}/{tariff.stars_count}"
                )
        elif self.config.validate_tariff:
            Tariff(numbers_request.total_target, stars_request.total_target).validate()

    def _generate_axis(self, pools: RankedPools, request: SelectionRequest
                       ) -> Tuple[SelectionResult, Optional[ReplacementProof]]:
        outcome = self.selector.select(pools, request)
        return self.replacer.apply(
            outcome.result, outcome.selection_scores, pools.by_dormancy, request.dormant_percent
        )

    def generate(self, numbers_request: SelectionRequest, stars_request: SelectionRequest,
                 forbidden: Optional[Iterable[Tuple[Sequence[int], Sequence[int]]]] = None,
                 constraints: Optional[GridConstraints] = None) -> GenerationResult:
        """
        Generate one grid.

        Args:
            numbers_request: Selection request for the numbers
            stars_request: Selection request for the stars
            forbidden: Already played (numbers, stars) combinations to avoid
            constraints: Shape filters on the numbers (defaults to the configured ones)

        Returns:
            GenerationResult with numbers, stars and replacement proofs

        Raises:
            PreconditionError: Illegal targets or no statistics
            UniqueCombinationError: Every attempt was forbidden or rejected by a filter
        """
        start_time = time.time()
        state = self._current_state()
        self._check_targets(numbers_request, stars_request)

        forbidden_keys = {combination_key(n, s) for n, s in (forbidden or [])}
        constraints = constraints if constraints is not None else self.config.constraints()
        attempts = max(1, self.config.max_unique_attempts)

        for attempt in range(1, attempts + 1):
            numbers, number_proof = self._generate_axis(state.pools[Axis.NUMBERS], numbers_request)
            stars, star_proof = self._generate_axis(state.pools[Axis.STARS], stars_request)
            result = GenerationResult(
                numbers=numbers,
                stars=stars,
                number_proof=number_proof,
                star_proof=star_proof,
                attempts=attempt,
            )
            if result.combination_key() in forbidden_keys:
                logger.debug(f"Attempt {attempt}: combination already played, retrying")
                continue
            rejected_by = constraints.rejection(numbers.values)
            if rejected_by:
                logger.debug(f"Attempt {attempt}: {list(numbers.values)} rejected by {rejected_by}, retrying")
                continue

            self._update_metrics(time.time() - start_time)
            result.metadata = {
                'generation_time': self._generation_metrics['last_generation_time'],
                'snapshot_created_at': state.snapshot.created_at.isoformat(),
            }
            logger.info(
                f"Generated grid {format_grid(numbers.values, stars.values)} "
                f"(attempt {attempt}, chaos={numbers_request.chaos_level}, "
                f"trend={numbers_request.trend_level})"
            )
            return result

        logger.error(f"No acceptable combination found after {attempts} attempts")
        raise UniqueCombinationError(
            f"No unique combination found after {attempts} attempts (pool exhausted or constraints too tight)"
        )

    def resolve_source(self, value: int, axis: Union[Axis, str],
                       categories: Sequence[str] = RESOLVE_CATEGORIES) -> Optional[str]:
        """
        Category of a manually chosen value.

        Checks the dormant window, then the high window; None when the value
        is visible in neither. Pass categories to also check mid/low thirds.
        """
        axis = _as_axis(axis)
        if not 1 <= value <= axis.size:
            raise PreconditionError(f"Value {value} outside the {axis.value} universe")
        pools = self._current_state().pools[axis]
        resolver = CategoryResolver.from_pools(pools, self.config.resolve_window(axis), categories)
        return resolver.resolve(value)

    def _update_metrics(self, generation_time: float) -> None:
        metrics = self._generation_metrics
        with self._lock:
            metrics['last_generation_time'] = generation_time
            metrics['total_generations'] += 1
            n = metrics['total_generations']
            metrics['avg_generation_time'] += (generation_time - metrics['avg_generation_time']) / n

    def get_metrics(self) -> Dict[str, object]:
        with self._lock:
            return dict(self._generation_metrics)


def _as_axis(axis: Union[Axis, str]) -> Axis:
    try:
        return Axis(axis)
    except ValueError:
        raise PreconditionError(f"Unknown axis '{axis}', expected 'numbers' or 'stars'")
