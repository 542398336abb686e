import pytest

from habitual.core.errors import ValidationError
from habitual.lib.scores import percent, round_half_up
from habitual.mastery import Trend, lag_score, mastery_score, period_days, trend_of


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(2.49) == 2


def test_percent_handles_empty_denominator():
    assert percent(3, 0) == 0
    assert percent(2, 3) == 67


def test_mastery_perfect_record():
    assert mastery_score(100, 100, 100) == 100


def test_mastery_near_perfect_is_not_100():
    assert mastery_score(100, 100, 99) == 99
    assert mastery_score(99, 100, 100) == 99


def test_mastery_weights():
    assert mastery_score(67, 29, 50) == 52
    assert mastery_score(0, 0, 0) == 0


@pytest.mark.parametrize(
    "rate,consistency,ratio",
    [(0, 0, 0), (100, 0, 0), (0, 100, 0), (50, 50, 50), (100, 100, 100), (100, 99, 100)],
)
def test_mastery_is_bounded(rate, consistency, ratio):
    assert 0 <= mastery_score(rate, consistency, ratio) <= 100


def test_trend_thresholds():
    assert trend_of(0, 0) is Trend.STABLE
    assert trend_of(0, 1) is Trend.IMPROVING
    assert trend_of(10, 12) is Trend.STABLE
    assert trend_of(10, 13) is Trend.IMPROVING
    assert trend_of(10, 8) is Trend.STABLE
    assert trend_of(10, 7) is Trend.DECLINING


def test_lag_score_extremes():
    assert lag_score(0.0, 100, 0) == 0
    assert lag_score(1.0, 0, 30) == 100
    assert lag_score(1.0, 0, 300) == 100


def test_lag_score_mixed():
    assert lag_score(0.5, 25, 7) == 55


def test_period_days():
    assert period_days("week") == 7
    assert period_days("month") == 30
    assert period_days("quarter") == 90


def test_unknown_period_rejected():
    with pytest.raises(ValidationError):
        period_days("fortnight")
