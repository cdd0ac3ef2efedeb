"""
Tests for the Forbo category resolver
=====================================
"""

import pytest

from forbo.categories import CategoryResolver
from forbo.models import Axis
from forbo.pools import build_pools


@pytest.fixture
def resolver():
    return CategoryResolver({'high': [9, 23], 'dormant': [4, 9]})


def test_dormant_takes_precedence(resolver):
    assert resolver.resolve(9) == 'dormant'
    assert resolver.resolve(4) == 'dormant'
    assert resolver.resolve(23) == 'high'


def test_unknown_value_resolves_to_none(resolver):
    assert resolver.resolve(30) is None


def test_custom_precedence():
    resolver = CategoryResolver({'high': [9], 'dormant': [9]}, precedence=('high', 'dormant'))
    assert resolver.resolve(9) == 'high'


def test_unranked_categories_checked_last():
    resolver = CategoryResolver({'trend': [5, 6], 'high': [6]})
    assert resolver.resolve(6) == 'high'
    assert resolver.resolve(5) == 'trend'


def test_tag_for_selection(resolver):
    assert resolver.tag_for_selection(9, 'high') == 'dormant'
    assert resolver.tag_for_selection(23, 'trend') == 'trend'
    assert resolver.tag_for_selection(23) == 'high'
    assert resolver.tag_for_selection(30) == 'high'


def test_from_pools_checks_dormant_and_high(make_stats):
    pools = build_pools(make_stats(Axis.NUMBERS), Axis.NUMBERS)
    resolver = CategoryResolver.from_pools(pools, 10)

    assert resolver.resolve(50) == 'dormant'
    assert resolver.resolve(1) == 'high'
    # 18 and 20 sit in the mid window, 35 in the low window
    assert resolver.resolve(18) is None
    assert resolver.resolve(20) is None
    assert resolver.resolve(35) is None
    assert resolver.resolve(30) is None


def test_from_pools_with_every_category(make_stats):
    pools = build_pools(make_stats(Axis.NUMBERS), Axis.NUMBERS)
    resolver = CategoryResolver.from_pools(pools, 10, categories=('dormant', 'high', 'mid', 'low'))

    assert resolver.resolve(50) == 'dormant'
    assert resolver.resolve(1) == 'high'
    assert resolver.resolve(20) == 'mid'
    assert resolver.resolve(35) == 'low'
    # 41 is in both the low and the dormant windows
    assert resolver.resolve(41) == 'dormant'
    assert resolver.resolve(30) is None


def test_window_size_limits_visibility(make_stats):
    pools = build_pools(make_stats(Axis.STARS), Axis.STARS)
    narrow = CategoryResolver.from_pools(pools, 1, categories=('dormant', 'high'))
    assert narrow.resolve(12) == 'dormant'
    assert narrow.resolve(1) == 'high'
    assert narrow.resolve(2) is None
