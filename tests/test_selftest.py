import numpy as np

from rppg_focus.pipeline.selftest import check_hr_recovery, check_rmssd, run_self_tests


def test_self_tests_pass():
    results = run_self_tests(rng=np.random.default_rng(1))
    assert [r.name for r in results] == ["HR estimate (72 bpm)", "RMSSD estimate"]
    assert all(r.passed for r in results), results


def test_rmssd_check_reports_value():
    result = check_rmssd()
    assert result.passed
    assert result.detail == "got 28.3 ms"


def test_hr_check_at_another_rate():
    result = check_hr_recovery(rng=np.random.default_rng(3), f_true=1.5, tol_bpm=3.0)
    assert result.passed
    assert result.name == "HR estimate (90 bpm)"
