"""
Forbo - Category Resolver
=========================

Single place that decides which named pool a value belongs to, for
display and audit. Dormancy takes precedence over every other category.
"""

from typing import Dict, List, Mapping, Optional, Sequence

from loguru import logger

from .models import DORMANT, HIGH, LOW, MID, RankedPools
from .pools import category_window

DEFAULT_PRECEDENCE = (DORMANT, HIGH, MID, LOW)

# Windows checked when resolving a manually chosen value
RESOLVE_CATEGORIES = (DORMANT, HIGH)

# Tag of a completion pick that sits in no visible window
FALLBACK_CATEGORY = HIGH


class CategoryResolver:
    """
    Resolves the source category of a value from visible pool windows.

    Usage:
        resolver = CategoryResolver({'dormant': [4, 9], 'high': [9, 23]})
        resolver.resolve(9)   # 'dormant'
    """

    def __init__(self, windows: Mapping[str, Sequence[int]],
                 precedence: Sequence[str] = DEFAULT_PRECEDENCE):
        self.windows: Dict[str, frozenset] = {name: frozenset(values) for name, values in windows.items()}
        # Categories without an explicit rank are checked after the ranked ones
        self.precedence: List[str] = [c for c in precedence if c in self.windows]
        self.precedence += [c for c in self.windows if c not in self.precedence]

    @classmethod
    def from_pools(cls, pools: RankedPools, window_size: int,
                   categories: Sequence[str] = RESOLVE_CATEGORIES) -> "CategoryResolver":
        """Build a resolver over the top-N window of each category pool"""
        windows = {name: category_window(pools, name, window_size) for name in categories}
        logger.debug(f"CategoryResolver built for {pools.axis.value} (window={window_size})")
        return cls(windows, precedence=categories)

    def resolve(self, value: int) -> Optional[str]:
        """First category whose visible window holds the value, or None"""
        for name in self.precedence:
            if value in self.windows[name]:
                return name
        return None

    def tag_for_selection(self, value: int, drawn_from: Optional[str] = None) -> str:
        """
        Source tag of a value picked during a selection pass.

        A value visible in the dormant window is always tagged dormant.
        Otherwise it keeps the category it was drawn from; completion picks
        (drawn_from=None) fall back on resolve().
        """
        if DORMANT in self.windows and value in self.windows[DORMANT]:
            return DORMANT
        if drawn_from is not None:
            return drawn_from
        return self.resolve(value) or FALLBACK_CATEGORY
