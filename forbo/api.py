"""
Forbo - HTTP API
================

Thin FastAPI adapter over ForboEngine:
- POST /generate: one grid for a tariff and the knobs
- GET  /resolve/{axis}/{value}: source category of a manually chosen value
- GET  /pools/{axis}: visible head of every ranked pool
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from pydantic import BaseModel, Field

from .engine import ForboEngine, requests_for_tariff
from .errors import PreconditionError, UniqueCombinationError
from .models import POOL_NAMES
from .tariff import Tariff

_engine: Optional[ForboEngine] = None


def set_engine(engine: Optional[ForboEngine]) -> None:
    global _engine
    _engine = engine


def get_engine() -> ForboEngine:
    if _engine is None or not _engine.has_stats:
        raise HTTPException(status_code=503, detail="No statistics loaded")
    return _engine


class GenerateRequest(BaseModel):
    numbers_count: int = Field(..., ge=1, le=50, description="Tariff numbers count")
    stars_count: int = Field(..., ge=1, le=12, description="Tariff stars count")
    number_wants: Dict[str, int] = Field(default_factory=dict, description="Numbers per category")
    star_wants: Optional[Dict[str, int]] = Field(
        None, description="Stars per category (derived from number_wants when omitted)"
    )
    chaos_level: float = Field(default=0, ge=0, le=10, description="Noise dial")
    trend_level: float = Field(default=0, ge=0, le=10, description="Trend influence dial")
    dormant_numbers: float = Field(default=0, ge=0, le=10, description="Dormant replacement dial (numbers)")
    dormant_stars: float = Field(default=0, ge=0, le=10, description="Dormant replacement dial (stars)")
    avoid_parity_extremes: Optional[bool] = Field(None, description="Reject all-even or all-odd numbers")
    balance_high_low: Optional[bool] = Field(None, description="Reject numbers all above or all at or below 25")
    avoid_sequences: Optional[bool] = Field(None, description="Reject runs of 3 consecutive numbers")
    forbidden: List[List[List[int]]] = Field(
        default_factory=list, description="Already played grids as [[numbers], [stars]]"
    )


class AxisSelection(BaseModel):
    values: List[int]
    sources: Dict[int, str]
    replaced: List[int] = Field(default_factory=list)
    injected: List[int] = Field(default_factory=list)


class GenerateResponse(BaseModel):
    numbers: AxisSelection
    stars: AxisSelection
    price: float
    attempts: int


class ResolveResponse(BaseModel):
    axis: str
    value: int
    category: Optional[str]


forbo_router = APIRouter(prefix="/api/v1/forbo", tags=["Forbo"])


def _axis_payload(selection, proof) -> AxisSelection:
    return AxisSelection(
        values=list(selection.values),
        sources=dict(selection.source_of),
        replaced=list(proof.to_replace) if proof else [],
        injected=list(proof.injected) if proof else [],
    )


@forbo_router.post("/generate", response_model=GenerateResponse)
def generate_grid(payload: GenerateRequest, engine: ForboEngine = Depends(get_engine)) -> GenerateResponse:
    """Generate one grid for the requested tariff"""
    try:
        tariff = Tariff(payload.numbers_count, payload.stars_count)
        numbers_request, stars_request = requests_for_tariff(
            tariff,
            number_wants=payload.number_wants,
            star_wants=payload.star_wants,
            chaos_level=payload.chaos_level,
            trend_level=payload.trend_level,
            dormant_numbers=payload.dormant_numbers,
            dormant_stars=payload.dormant_stars,
        )
        forbidden = [(grid[0], grid[1]) for grid in payload.forbidden if len(grid) == 2]
        constraints = engine.config.constraints().with_overrides(
            avoid_parity_extremes=payload.avoid_parity_extremes,
            balance_high_low=payload.balance_high_low,
            avoid_sequences=payload.avoid_sequences,
        )
        result = engine.generate(numbers_request, stars_request, forbidden=forbidden, constraints=constraints)
    except PreconditionError as e:
        logger.warning(f"Generation rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except UniqueCombinationError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return GenerateResponse(
        numbers=_axis_payload(result.numbers, result.number_proof),
        stars=_axis_payload(result.stars, result.star_proof),
        price=tariff.price,
        attempts=result.attempts,
    )


@forbo_router.get("/resolve/{axis}/{value}", response_model=ResolveResponse)
def resolve_source(axis: str, value: int, engine: ForboEngine = Depends(get_engine)) -> ResolveResponse:
    try:
        category = engine.resolve_source(value, axis)
    except PreconditionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ResolveResponse(axis=axis, value=value, category=category)


@forbo_router.get("/pools/{axis}")
def get_pools(axis: str, limit: int = 10, engine: ForboEngine = Depends(get_engine)) -> Dict:
    """Head of every ranked pool, for display"""
    try:
        pools = engine.pools(axis)
    except PreconditionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {name: pools.values(name, max(0, limit)) for name in POOL_NAMES}
