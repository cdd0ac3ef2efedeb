"""
Tests for the Forbo selector
============================

Tests for:
- Want clamping and star want derivation
- Chaos-driven pool sizing
- Quota serving, completion fill and source tagging
"""

import pytest

from forbo.errors import PreconditionError
from forbo.models import Axis, SelectionRequest
from forbo.pools import build_pools
from forbo.scoring import CandidateScorer, NumpyRandomSource, ZeroNoise
from forbo.selector import (
    DEFAULT_NUMBER_CLAMP_ORDER,
    DEFAULT_STAR_CLAMP_ORDER,
    ClampPolicy,
    PoolSizing,
    Selector,
    derive_star_wants,
)


@pytest.fixture
def number_pools(make_stats):
    return build_pools(make_stats(Axis.NUMBERS), Axis.NUMBERS)


@pytest.fixture
def star_pools(make_stats):
    return build_pools(make_stats(Axis.STARS), Axis.STARS)


@pytest.fixture
def selector():
    return Selector(CandidateScorer(ZeroNoise()))


class TestClampPolicy:

    def test_under_allocation_untouched(self):
        assert ClampPolicy().clamp_wants({'high': 2, 'dormant': 1}, 5) == {'high': 2, 'dormant': 1}

    def test_numbers_order_shrinks_high_first(self):
        policy = ClampPolicy(DEFAULT_NUMBER_CLAMP_ORDER)
        assert policy.clamp_wants({'high': 3, 'dormant': 4}, 5) == {'high': 1, 'dormant': 4}

    def test_stars_order_shrinks_dormant_first(self):
        policy = ClampPolicy(DEFAULT_STAR_CLAMP_ORDER)
        assert policy.clamp_wants({'high': 3, 'dormant': 4}, 5) == {'high': 3, 'dormant': 2}

    def test_shrink_spills_into_next_category(self):
        policy = ClampPolicy(DEFAULT_NUMBER_CLAMP_ORDER)
        clamped = policy.clamp_wants({'high': 1, 'mid': 2, 'low': 4}, 2)
        assert clamped == {'high': 0, 'mid': 0, 'low': 2}

    @pytest.mark.parametrize("wants,total", [
        ({'high': 9, 'mid': 9, 'low': 9, 'trend': 9, 'surrepr': 9, 'dormant': 9}, 5),
        ({'high': 3, 'dormant': 4}, 0),
        ({'high': -2, 'dormant': 4}, 3),
        ({'custom': 4, 'high': 1}, 2),
    ])
    def test_clamped_sum_fits_and_never_negative(self, wants, total):
        clamped = ClampPolicy().clamp_wants(wants, total)
        assert sum(clamped.values()) <= total
        assert all(count >= 0 for count in clamped.values())
        for name, count in clamped.items():
            assert count <= max(0, wants[name])

    def test_clamp_reaches_target_exactly_when_over(self):
        clamped = ClampPolicy().clamp_wants({'high': 6, 'trend': 6}, 10)
        assert sum(clamped.values()) == 10


class TestPoolSizing:

    @pytest.mark.parametrize("chaos,expected", [(0, 10), (5, 15), (10, 20), (2.5, 13)])
    def test_grows_with_chaos(self, chaos, expected):
        assert PoolSizing(10, 20).size_for(chaos) == expected

    def test_fixed_size(self):
        assert PoolSizing(4).size_for(10) == 4
        assert PoolSizing(4, 2).size_for(10) == 4


class TestDeriveStarWants:

    def test_proportional(self):
        assert derive_star_wants({'high': 3, 'dormant': 2}, 2) == {'high': 1, 'dormant': 1}

    def test_never_exceeds_target(self):
        wants = derive_star_wants({'high': 1, 'mid': 1, 'low': 1}, 2)
        assert sum(wants.values()) <= 2

    def test_no_number_wants(self):
        assert derive_star_wants({}, 2) == {}
        assert derive_star_wants({'high': 0}, 2) == {}


class TestSelector:

    def test_high_frequency_value_scenario(self, make_stats, selector):
        """7 dominates, 42 is the rarest: 7 is always in, 42 never"""
        stats = make_stats(Axis.NUMBERS, frequency=lambda v: {7: 50, 42: 1}.get(v, 10))
        pools = build_pools(stats, Axis.NUMBERS)
        request = SelectionRequest(total_target=5, category_wants={'high': 5})

        outcome = selector.select(pools, request)
        assert outcome.result.values == (1, 2, 3, 4, 7)
        assert 42 not in outcome.result

        noisy = Selector(CandidateScorer(NumpyRandomSource(seed=5)))
        for _ in range(20):
            result = noisy.select(pools, request.model_copy(update={'chaos_level': 10})).result
            assert 7 in result
            assert 42 not in result

    def test_quotas_and_sources(self, number_pools, selector):
        request = SelectionRequest(total_target=5, category_wants={'high': 3, 'dormant': 4})
        outcome = selector.select(number_pools, request)

        # high clamped to 1; dormant window is 41..50, ranked by frequency
        assert outcome.result.values == (1, 41, 42, 43, 44)
        assert outcome.result.source_of == {1: 'high', 41: 'dormant', 42: 'dormant', 43: 'dormant', 44: 'dormant'}
        assert outcome.selection_scores == {1: 59, 41: 19, 42: 18, 43: 17, 44: 16}

    def test_mid_and_low_quotas(self, number_pools, selector):
        request = SelectionRequest(total_target=5, category_wants={'mid': 2, 'low': 3})
        result = selector.select(number_pools, request).result
        assert result.values == (18, 19, 35, 36, 37)
        assert result.source_of[18] == 'mid'
        assert result.source_of[35] == 'low'

    def test_categories_do_not_pick_twice(self, make_stats, selector):
        # by_trend and by_frequency share their head
        stats = make_stats(Axis.NUMBERS, trend=lambda v: 10.0 - v / 10)
        pools = build_pools(stats, Axis.NUMBERS)
        request = SelectionRequest(total_target=4, category_wants={'high': 2, 'trend': 2})
        outcome = selector.select(pools, request)
        assert outcome.result.values == (1, 2, 3, 4)
        assert outcome.result.source_of == {1: 'high', 2: 'high', 3: 'trend', 4: 'trend'}

    def test_completion_fills_the_target(self, number_pools, selector):
        request = SelectionRequest(total_target=5, category_wants={'dormant': 1})
        outcome = selector.select(number_pools, request)
        assert len(outcome.result) == 5
        assert outcome.result.values == (1, 2, 3, 4, 41)
        assert outcome.result.source_of[1] == 'high'
        assert outcome.result.source_of[41] == 'dormant'

    def test_dormant_tag_wins_over_high(self, make_stats, selector):
        # 1 is both the most frequent and the most dormant value
        stats = make_stats(Axis.NUMBERS, absence=lambda v: 100 if v == 1 else v)
        pools = build_pools(stats, Axis.NUMBERS)
        result = selector.select(pools, SelectionRequest(total_target=5, category_wants={'high': 5})).result
        assert result.source_of[1] == 'dormant'
        assert result.source_of[2] == 'high'

    def test_completion_widens_past_the_windows(self, number_pools, selector):
        outcome = selector.select(number_pools, SelectionRequest(total_target=25))
        assert outcome.result.values == tuple(range(1, 26))
        assert set(outcome.result.source_of.values()) == {'high'}

    def test_full_universe(self, star_pools, selector):
        result = selector.select(star_pools, SelectionRequest(total_target=12, category_wants={'low': 2})).result
        assert result.values == tuple(range(1, 13))

    def test_zero_target(self, star_pools, selector):
        outcome = selector.select(star_pools, SelectionRequest(total_target=0, category_wants={'high': 2}))
        assert outcome.result.values == ()
        assert outcome.selection_scores == {}

    def test_target_beyond_universe(self, star_pools, selector):
        with pytest.raises(PreconditionError):
            selector.select(star_pools, SelectionRequest(total_target=13))

    def test_unknown_category(self, star_pools, selector):
        with pytest.raises(PreconditionError):
            selector.select(star_pools, SelectionRequest(total_target=2, category_wants={'lucky': 2}))

    def test_deterministic_without_chaos(self, make_stats, selector):
        stats = make_stats(Axis.NUMBERS, frequency=lambda v: 10 if v % 2 else 12)
        pools = build_pools(stats, Axis.NUMBERS)
        request = SelectionRequest(total_target=5, category_wants={'high': 3, 'surrepr': 2}, trend_level=7)
        first = selector.select(pools, request).result
        for _ in range(5):
            assert selector.select(pools, request).result == first

    def test_size_invariant_with_chaos(self, number_pools, star_pools):
        selector = Selector(
            CandidateScorer(NumpyRandomSource(seed=1)),
            sizing={Axis.NUMBERS: PoolSizing(10, 20), Axis.STARS: PoolSizing(4, 8)},
        )
        wants = {'high': 2, 'mid': 1, 'low': 1, 'trend': 1, 'surrepr': 1, 'dormant': 1}
        for target in (5, 7, 10):
            for chaos in (0, 3, 10):
                request = SelectionRequest(total_target=target, category_wants=wants, chaos_level=chaos)
                result = selector.select(number_pools, request).result
                assert len(result) == target
                assert len(set(result.values)) == target
        stars = selector.select(star_pools, SelectionRequest(total_target=3, category_wants=wants, chaos_level=10))
        assert len(stars.result) == 3

    def test_negative_wants_rejected(self):
        with pytest.raises(ValueError):
            SelectionRequest(total_target=5, category_wants={'high': -1})
