"""
Forbo - Simple Utilities
========================

Small numeric helpers shared by the statistics and selection modules.
"""

import math
from typing import Iterable, Sequence, Tuple


def round_half_up(x: float) -> int:
    """Round to the nearest integer, halves going up (2.5 -> 3, not 2)"""
    return int(math.floor(x + 0.5))


def combination_key(numbers: Iterable[int], stars: Iterable[int]) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
    """Order-independent key of a grid, used to detect duplicate combinations"""
    return tuple(sorted(int(n) for n in numbers)), tuple(sorted(int(s) for s in stars))


def format_grid(numbers: Sequence[int], stars: Sequence[int]) -> str:
    """Human readable grid, e.g. '07 12 23 41 50 | 03 11'"""
    left = " ".join(f"{n:02d}" for n in sorted(numbers))
    right = " ".join(f"{s:02d}" for s in sorted(stars))
    return f"{left} | {right}"
