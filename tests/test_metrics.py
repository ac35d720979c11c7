import math

import numpy as np
import pytest

from rppg_focus.pipeline.metrics import Baseline, autonomic_balance, focus_score, rmssd


def test_rmssd_known_intervals():
    assert rmssd([1.0, 1.0, 1.0, 1.04, 0.96]) == pytest.approx(math.sqrt(800), rel=1e-6)


def test_rmssd_needs_three_intervals():
    assert math.isnan(rmssd([]))
    assert math.isnan(rmssd([0.8, 0.9]))
    # three intervals -> two differences: +100, -100 ms
    assert rmssd([1.0, 1.1, 1.0]) == pytest.approx(100.0)


def test_rmssd_is_pure():
    ibis = [0.81, 0.84, 0.79, 0.86]
    assert rmssd(ibis) == rmssd(ibis)
    assert ibis == [0.81, 0.84, 0.79, 0.86]


def test_focus_at_baseline_is_neutral():
    assert focus_score(70, 40) == 50
    assert focus_score(90, 25, Baseline(90, 25)) == 50


def test_focus_direction():
    # hrZ = 10/7 -> 50 + 28.57
    assert focus_score(80, 40) == 79
    # rmZ = (40-30)/10 = 1 -> 80
    assert focus_score(70, 30) == 80
    assert focus_score(70, 60) < 50
    assert focus_score(70, 20) == 100


def test_focus_missing_terms_contribute_zero():
    assert focus_score(None, None) == 50
    assert focus_score(None, 30) == 80
    assert focus_score(80, float('nan')) == 79


def test_focus_always_bounded():
    rng = np.random.default_rng(11)
    values = list(rng.uniform(-1e6, 1e6, 200)) + [0.0, 1e300, -1e300, 1e308, -1e308]
    for _ in range(500):
        hr, rm, hb, rb = (float(rng.choice(values)) for _ in range(4))
        score = focus_score(hr, rm, Baseline(hb, rb))
        assert 0 <= score <= 100
        assert isinstance(score, int)


def test_autonomic_balance():
    assert autonomic_balance(32, 40) == (50, 50)
    assert autonomic_balance(64, 40) == (100, 0)
    assert autonomic_balance(100, 40) == (100, 0)
    assert autonomic_balance(0, 40) == (0, 100)
    # no RMSSD yet -> baseline value is used
    assert autonomic_balance(None, 32) == autonomic_balance(32, 32)
