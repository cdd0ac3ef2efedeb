"""
Forbo - Candidate-Pool Ranking and Weighted Selection Engine
============================================================

Ranks lottery numbers and stars from historical statistics and selects a
grid through a tunable blend of deterministic ranking and bounded noise:

- Statistics source (frequency, trend, absence, surrepresentation z-score)
- Pool builder (five ranked orderings per universe)
- Candidate scorer (CHAOS and TENDANCE knobs)
- Selector (category quotas, clamping, completion fill)
- Dormeur replacer (post-selection dormant injection)
- Category resolver (source tagging, dormant first)
- Grid constraints (parity, high/low and sequence filters)
"""

__version__ = "1.0.0"

from .errors import ForboError, PreconditionError, TariffError, UniqueCombinationError
from .models import (
    Axis,
    TrendDirection,
    ValueStat,
    RankedPools,
    SelectionRequest,
    SelectionResult,
    ScoredCandidate,
    GenerationResult,
)
from .statistics import StatsSource, StatsSnapshot, WindowSpec, surrepr_z
from .pools import PoolBuilder, build_pools
from .scoring import CandidateScorer, NumpyRandomSource, SequenceRandomSource, ZeroNoise
from .selector import ClampPolicy, PoolSizing, Selector, derive_star_wants
from .dormancy import DormeurReplacer, replacement_count
from .categories import CategoryResolver
from .constraints import GridConstraints
from .tariff import Tariff
from .config import ForboConfig, load_config
from .engine import ForboEngine, requests_for_tariff

__all__ = [
    # Errors
    'ForboError',
    'PreconditionError',
    'TariffError',
    'UniqueCombinationError',

    # Model
    'Axis',
    'TrendDirection',
    'ValueStat',
    'RankedPools',
    'SelectionRequest',
    'SelectionResult',
    'ScoredCandidate',
    'GenerationResult',

    # Statistics and pools
    'StatsSource',
    'StatsSnapshot',
    'WindowSpec',
    'surrepr_z',
    'PoolBuilder',
    'build_pools',

    # Selection
    'CandidateScorer',
    'NumpyRandomSource',
    'SequenceRandomSource',
    'ZeroNoise',
    'ClampPolicy',
    'PoolSizing',
    'Selector',
    'derive_star_wants',
    'DormeurReplacer',
    'replacement_count',
    'CategoryResolver',
    'GridConstraints',

    # Facade
    'Tariff',
    'ForboConfig',
    'load_config',
    'ForboEngine',
    'requests_for_tariff',
]
