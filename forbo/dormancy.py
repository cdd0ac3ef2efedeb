"""
Forbo - Dormeur Replacer
========================

Post-processing pass that swaps the weakest picks of a selection for the
most dormant values not already present. Purely deterministic given the
selection scores and the dormancy ranking.
"""

import math
from typing import Mapping, Optional, Sequence, Tuple

from loguru import logger

from .errors import PreconditionError
from .models import DORMANT, ReplacementProof, SelectionResult, ValueStat
from .simple_utils import round_half_up


def replacement_count(total: int, percent: float) -> int:
    """
    Number of values to replace for a dormant percent (0-10).

    round(total * percent / 10), at least 1 when percent > 0, at most total.
    """
    if percent <= 0 or total <= 0:
        return 0
    k = max(1, round_half_up(total * percent / 10))
    return min(k, total)


class DormeurReplacer:
    """Injects top-ranked dormant values in place of the lowest-scored picks"""

    def apply(self, result: SelectionResult, selection_scores: Mapping[int, float],
              dormancy_pool: Sequence[ValueStat], percent: float
              ) -> Tuple[SelectionResult, Optional[ReplacementProof]]:
        """
        Apply the dormancy replacement.

        Args:
            result: Selection produced by the Selector
            selection_scores: Score of every pick from the same pass
            dormancy_pool: Values ranked most dormant first
            percent: Dormant share dial (0-10)

        Returns:
            Tuple of (new result, proof); proof is None when percent is 0
        """
        if not 0 <= percent <= 10:
            raise PreconditionError(f"dormant percent must be between 0 and 10, got {percent}")
        if percent == 0:
            return result, None

        total = result.total_target
        k = min(replacement_count(total, percent), len(result.values))

        # Weakest first; unscored values are never replaced before scored ones
        ordered = sorted(result.values, key=lambda v: (selection_scores.get(v, math.inf), v))
        to_replace = ordered[:k]
        remaining = [v for v in result.values if v not in to_replace]

        injected = []
        for stat in dormancy_pool:
            if len(injected) >= k:
                break
            candidate = stat.value
            if candidate in remaining or candidate in injected or candidate in to_replace:
                continue
            injected.append(candidate)

        if len(injected) < k:
            # Partial application: only the weakest len(injected) picks are swapped
            logger.debug(f"Dormancy pool supplied {len(injected)}/{k} replacements, applying partially")
            to_replace = to_replace[:len(injected)]
            remaining = [v for v in result.values if v not in to_replace]

        sources = {v: result.source_of[v] for v in remaining}
        sources.update({v: DORMANT for v in injected})
        new_result = SelectionResult(
            values=tuple(remaining + injected),
            source_of=sources,
            total_target=total,
        )

        proof = ReplacementProof(
            percent=percent,
            k=k,
            before=result.values,
            to_replace=tuple(to_replace),
            injected=tuple(injected),
            after=new_result.values,
        )
        logger.debug(f"Dormancy replacement: {proof}")
        return new_result, proof
