import os
import sys

import pandas as pd
import pytest

# Ensure repository root is on sys.path so `import forbo` works during tests
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from forbo.config import ForboConfig  # noqa: E402
from forbo.models import Axis, ValueStat  # noqa: E402
from forbo.statistics import WINDOW_NAMES, StatsSnapshot  # noqa: E402


def _pick(override, value, default):
    if override is None:
        return default
    if callable(override):
        return override(value)
    return override.get(value, default)


@pytest.fixture
def make_stats():
    """
    Factory of full-universe statistics.

    Defaults: frequency = 60 - value (numbers) or 20 - value (stars), so value 1
    is the most frequent; absence = value, so the top of the universe is the
    most dormant; z-score decreases with the value; trend score is 5.
    Each measure can be overridden with a callable or a {value: x} dict.
    """
    def factory(axis=Axis.NUMBERS, frequency=None, trend=None, absence=None, z=None):
        base = 60 if axis is Axis.NUMBERS else 20
        return [
            ValueStat(
                value=v,
                frequency=_pick(frequency, v, base - v),
                trend_score=_pick(trend, v, 5.0),
                absence=_pick(absence, v, v),
                surrepr_z=_pick(z, v, (base / 2 - v) / 10),
            )
            for v in axis.universe
        ]
    return factory


@pytest.fixture
def make_snapshot(make_stats):
    """Snapshot whose four windows all carry the same statistics"""
    def factory(numbers=None, stars=None):
        numbers = numbers or make_stats(Axis.NUMBERS)
        stars = stars or make_stats(Axis.STARS)
        stats = {}
        for window in WINDOW_NAMES:
            stats[(window, Axis.NUMBERS)] = tuple(numbers)
            stats[(window, Axis.STARS)] = tuple(stars)
        return StatsSnapshot(stats=stats, draw_counts={w: 100 for w in WINDOW_NAMES})
    return factory


@pytest.fixture
def config():
    """Default engine configuration, independent of config/config.ini"""
    return ForboConfig()


@pytest.fixture
def sample_draws():
    """Create 120 sample EuroMillions draws, twice a week"""
    draws = []
    dates = pd.date_range("2024-01-02", periods=120, freq="3D")
    for i, date in enumerate(dates):
        draws.append({
            'draw_date': date.strftime('%Y-%m-%d'),
            'n1': (i % 50) + 1,
            'n2': ((i + 10) % 50) + 1,
            'n3': ((i + 20) % 50) + 1,
            'n4': ((i + 30) % 50) + 1,
            'n5': ((i + 40) % 50) + 1,
            's1': (i % 12) + 1,
            's2': ((i + 5) % 12) + 1,
        })
    return pd.DataFrame(draws)
