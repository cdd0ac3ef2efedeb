"""
Forbo - Grid Constraints
========================

Shape filters applied to the numbers of a generated grid. A grid that
trips an enabled filter is discarded and generated again:

- avoid_parity_extremes: all numbers even, or all odd
- balance_high_low: all numbers above the split, or all at or below it
- avoid_sequences: a run of consecutive numbers (3 by default)
"""

from dataclasses import dataclass, replace
from typing import Optional, Sequence


def is_single_parity(numbers: Sequence[int]) -> bool:
    parities = {n % 2 for n in numbers}
    return len(parities) == 1


def is_one_sided(numbers: Sequence[int], split: int = 25) -> bool:
    """True when every number sits on the same side of split"""
    if not numbers:
        return False
    return all(n > split for n in numbers) or all(n <= split for n in numbers)


def has_run(numbers: Sequence[int], length: int = 3) -> bool:
    """True when the numbers contain `length` consecutive values"""
    ordered = sorted(set(numbers))
    run = 1
    for previous, current in zip(ordered, ordered[1:]):
        run = run + 1 if current == previous + 1 else 1
        if run >= length:
            return True
    return False


@dataclass(frozen=True)
class GridConstraints:
    avoid_parity_extremes: bool = False
    balance_high_low: bool = False
    avoid_sequences: bool = False
    high_low_split: int = 25
    sequence_length: int = 3

    @property
    def enabled(self) -> bool:
        return self.avoid_parity_extremes or self.balance_high_low or self.avoid_sequences

    def rejection(self, numbers: Sequence[int]) -> Optional[str]:
        """Name of the first filter the numbers trip, or None when accepted"""
        if not numbers:
            return None
        if self.avoid_parity_extremes and is_single_parity(numbers):
            return "avoid_parity_extremes"
        if self.balance_high_low and is_one_sided(numbers, self.high_low_split):
            return "balance_high_low"
        if self.avoid_sequences and has_run(numbers, self.sequence_length):
            return "avoid_sequences"
        return None

    def with_overrides(self, avoid_parity_extremes: Optional[bool] = None,
                       balance_high_low: Optional[bool] = None,
                       avoid_sequences: Optional[bool] = None) -> "GridConstraints":
        """Copy with the given toggles replaced; None keeps the current value"""
        overrides = {
            'avoid_parity_extremes': avoid_parity_extremes,
            'balance_high_low': balance_high_low,
            'avoid_sequences': avoid_sequences,
        }
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
