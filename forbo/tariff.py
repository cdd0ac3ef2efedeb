"""
Forbo - Tariff Table
====================

Legal (numbers, stars) combinations of a multiple grid and their price.
The selection engine must hit a validated tariff exactly.
"""

from dataclasses import dataclass
from math import comb
from typing import Dict, Mapping, Sequence

from loguru import logger

from .errors import TariffError
from .models import DORMANT, HIGH, LOW, MID

# numbers count -> (min stars, max stars)
ALLOWED_COMBINATIONS: Dict[int, tuple] = {
    5: (2, 12),
    6: (2, 12),
    7: (2, 6),
    8: (2, 4),
    9: (2, 3),
    10: (2, 2),
}

# Price of a multiple grid in EUR: [numbers][stars]
PRICE_GRID: Dict[int, Dict[int, float]] = {
    5: {2: 2.50, 3: 7.50, 4: 15, 5: 25, 6: 37.50, 7: 52.50, 8: 70, 9: 90, 10: 112.50, 11: 137.50, 12: 165},
    6: {2: 15, 3: 45, 4: 90, 5: 150, 6: 225, 7: 315, 8: 420, 9: 540, 10: 675, 11: 825, 12: 990},
    7: {2: 52.50, 3: 157.50, 4: 315, 5: 525, 6: 787.50},
    8: {2: 140, 3: 420, 4: 840},
    9: {2: 315, 3: 945},
    10: {2: 630},
}

STAR_CAP_ORDER = (DORMANT, LOW, MID, HIGH)


def is_valid_combination(numbers_count: int, stars_count: int) -> bool:
    limits = ALLOWED_COMBINATIONS.get(numbers_count)
    if limits is None:
        return False
    return limits[0] <= stars_count <= limits[1]


def max_stars_for(numbers_count: int) -> int:
    """Largest star count allowed with this many numbers (2 when unknown)"""
    limits = ALLOWED_COMBINATIONS.get(numbers_count)
    return limits[1] if limits else 2


def grid_price(numbers_count: int, stars_count: int) -> float:
    """Price of the grid, 0.0 for an illegal combination"""
    if not is_valid_combination(numbers_count, stars_count):
        return 0.0
    return float(PRICE_GRID[numbers_count][stars_count])


def combination_count(numbers_count: int, stars_count: int) -> int:
    """Simple grids covered by a multiple grid: C(n, 5) * C(e, 2)"""
    return comb(numbers_count, 5) * comb(stars_count, 2)


def cap_star_wants(star_wants: Mapping[str, int], numbers_count: int,
                   order: Sequence[str] = STAR_CAP_ORDER) -> Dict[str, int]:
    """
    Reduce star wants to the maximum allowed for a numbers count.

    Categories shrink in order (dormant, low, mid, high by default).
    """
    capped = {name: max(0, int(v)) for name, v in star_wants.items()}
    excess = sum(capped.values()) - max_stars_for(numbers_count)
    if excess <= 0:
        return capped
    for name in list(order) + [n for n in capped if n not in order]:
        if excess <= 0:
            break
        if capped.get(name, 0) > 0:
            cut = min(capped[name], excess)
            capped[name] -= cut
            excess -= cut
    logger.debug(f"Star wants capped to {max_stars_for(numbers_count)} for {numbers_count} numbers: {capped}")
    return capped


@dataclass(frozen=True)
class Tariff:
    """Validated target counts of a generation"""
    numbers_count: int
    stars_count: int

    def validate(self) -> "Tariff":
        if not is_valid_combination(self.numbers_count, self.stars_count):
            logger.error(f"Illegal tariff requested: {self.numbers_count} numbers / {self.stars_count} stars")
            raise TariffError(
                f"{self.numbers_count} numbers with {self.stars_count} stars is not a legal combination"
            )
        return self

    @property
    def price(self) -> float:
        return grid_price(self.numbers_count, self.stars_count)

    @property
    def combinations(self) -> int:
        return combination_count(self.numbers_count, self.stars_count)
