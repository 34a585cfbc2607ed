import pytest
from src.analytics.ratios import ema, mean, percentage, ratio


def test_ratio_guards_non_positive_denominator():
    assert ratio(3, 4) == 0.75
    assert ratio(3, 0) == 0
    assert ratio(3, -1) == 0


def test_percentage():
    assert percentage(1, 4) == 25
    assert percentage(5, 0) == 0


def test_mean():
    assert mean([2, 4, 6]) == 4
    assert mean([]) == 0
    assert mean(x for x in (1, 2)) == 1.5


def test_ema_weights_previous_value():
    assert ema(100, 200) == pytest.approx(110)
    assert ema(0, 50) == pytest.approx(5)
    assert ema(100, 200, weight=0.5) == pytest.approx(150)
