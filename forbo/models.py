"""
Forbo - Data Model
==================

Value objects shared by every stage of the generation pipeline:
statistics (ValueStat), ranked pools (RankedPools), selection requests and
results, and the audit record of a dormancy replacement pass.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from .errors import PreconditionError


class Axis(str, Enum):
    """Value universe of one side of a grid"""
    NUMBERS = "numbers"
    STARS = "stars"

    @property
    def size(self) -> int:
        return 50 if self is Axis.NUMBERS else 12

    @property
    def picks_per_draw(self) -> int:
        return 5 if self is Axis.NUMBERS else 2

    @property
    def p0(self) -> float:
        """A-priori probability of one value appearing in one draw"""
        return self.picks_per_draw / self.size

    @property
    def universe(self) -> range:
        return range(1, self.size + 1)


class TrendDirection(str, Enum):
    UP = "up"
    STABLE = "stable"
    DOWN = "down"


# Category names used for quotas and source tagging
HIGH = "high"
MID = "mid"
LOW = "low"
TREND = "trend"
SURREPR = "surrepr"
DORMANT = "dormant"

CATEGORIES = (HIGH, MID, LOW, TREND, SURREPR, DORMANT)

# Names of the five orderings produced by the pool builder
POOL_NAMES = ("by_value", "by_frequency", "by_trend", "by_dormancy", "by_surrepr")


@dataclass(frozen=True)
class ValueStat:
    """Statistics of one value over one window"""
    value: int
    frequency: int
    trend_score: float = 5.0      # 0-10
    trend_direction: TrendDirection = TrendDirection.STABLE
    absence: int = 0              # draws since last appearance
    surrepr_z: float = 0.0


@dataclass(frozen=True)
class RankedPools:
    """The five orderings of one universe, derived once per statistics refresh"""
    axis: Axis
    by_value: Tuple[ValueStat, ...]
    by_frequency: Tuple[ValueStat, ...]
    by_trend: Tuple[ValueStat, ...]
    by_dormancy: Tuple[ValueStat, ...]
    by_surrepr: Tuple[ValueStat, ...]

    def ranked(self, name: str) -> Tuple[ValueStat, ...]:
        if name not in POOL_NAMES:
            raise PreconditionError(f"Unknown pool '{name}', expected one of {POOL_NAMES}")
        return getattr(self, name)

    def values(self, name: str, limit: Optional[int] = None) -> List[int]:
        pool = self.ranked(name)
        if limit is not None:
            pool = pool[:limit]
        return [s.value for s in pool]

    def stat_of(self, value: int) -> ValueStat:
        if not 1 <= value <= len(self.by_value):
            raise PreconditionError(f"Value {value} outside the {self.axis.value} universe")
        return self.by_value[value - 1]


class SelectionRequest(BaseModel):
    """Parameters of one selection pass on one axis"""
    total_target: int = Field(..., ge=0, description="Exact number of values to select")
    category_wants: Dict[str, int] = Field(
        default_factory=dict,
        description="Requested count per category (may over or under allocate)"
    )
    chaos_level: float = Field(default=0, ge=0, le=10, description="Uniform noise dial")
    trend_level: float = Field(default=0, ge=0, le=10, description="Trend influence dial")
    dormant_percent: float = Field(default=0, ge=0, le=10, description="Post-selection dormant share")

    @field_validator("category_wants")
    @classmethod
    def _wants_not_negative(cls, wants: Dict[str, int]) -> Dict[str, int]:
        for name, count in wants.items():
            if count < 0:
                raise ValueError(f"category '{name}' wants a negative count ({count})")
        return wants


@dataclass(frozen=True)
class ScoredCandidate:
    value: int
    frequency: int
    trend_score: float
    final_score: float


@dataclass
class SelectionResult:
    """Values picked on one axis together with the pool each one came from"""
    values: Tuple[int, ...]
    source_of: Dict[int, str]
    total_target: int

    def __post_init__(self):
        self.values = tuple(sorted(self.values))
        if len(set(self.values)) != len(self.values):
            raise PreconditionError(f"Selection contains duplicates: {self.values}")
        if len(self.values) > self.total_target:
            raise PreconditionError(
                f"Selection of {len(self.values)} values exceeds target {self.total_target}"
            )
        missing = [v for v in self.values if v not in self.source_of]
        if missing:
            raise PreconditionError(f"Values without a recorded source: {missing}")
        # Drop tags of values that are no longer selected
        self.source_of = {v: self.source_of[v] for v in self.values}

    def __len__(self) -> int:
        return len(self.values)

    def __contains__(self, value: int) -> bool:
        return value in self.values


@dataclass
class SelectionOutcome:
    """Selector output: the result and the per-value scores that picked it"""
    result: SelectionResult
    selection_scores: Dict[int, float]


@dataclass(frozen=True)
class ReplacementProof:
    """Audit trail of one dormancy replacement pass"""
    percent: float
    k: int
    before: Tuple[int, ...]
    to_replace: Tuple[int, ...]
    injected: Tuple[int, ...]
    after: Tuple[int, ...]


@dataclass
class GenerationResult:
    numbers: SelectionResult
    stars: SelectionResult
    number_proof: Optional[ReplacementProof] = None
    star_proof: Optional[ReplacementProof] = None
    attempts: int = 1
    metadata: Dict[str, object] = field(default_factory=dict)

    def combination_key(self) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        return self.numbers.values, self.stars.values
