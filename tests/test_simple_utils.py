from forbo.simple_utils import combination_key, format_grid, round_half_up


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(1.49) == 1
    assert round_half_up(0.0) == 0


def test_combination_key_ignores_order():
    assert combination_key([12, 7, 41, 3, 50], [11, 2]) == combination_key((3, 7, 12, 41, 50), (2, 11))
    assert combination_key([1, 2, 3, 4, 5], [1, 2]) != combination_key([1, 2, 3, 4, 5], [1, 3])


def test_combination_key_accepts_numpy_values():
    import numpy as np
    key = combination_key(np.array([5, 1, 3, 2, 4]), np.array([2, 1]))
    assert key == ((1, 2, 3, 4, 5), (1, 2))
    assert all(type(n) is int for n in key[0])


def test_format_grid():
    assert format_grid([41, 7, 12, 23, 50], [11, 3]) == "07 12 23 41 50 | 03 11"
