"""
Metrics for rPPG: HRV (RMSSD), focus score, autonomic balance
"""
from dataclasses import dataclass

import numpy as np

from rppg_focus.config import BASELINE_HR_BPM, BASELINE_RMSSD_MS, MIN_RMSSD_IBIS


@dataclass(frozen=True)
class Baseline:
    heart_rate_bpm: float = BASELINE_HR_BPM
    rmssd_ms: float = BASELINE_RMSSD_MS


def rmssd(intervals_sec):
    """Root mean square of successive IBI differences, in ms.

    NaN with fewer than 3 intervals. Pure, no state.
    """
    ibis = np.asarray(intervals_sec, dtype=np.float64)
    if ibis.size < MIN_RMSSD_IBIS:
        return float('nan')
    diffs = np.diff(ibis * 1000.0)
    return float(np.sqrt(np.mean(diffs ** 2)))


def focus_score(hr, rm, baseline=None):
    """Trial focus heuristic in [0, 100]: HR above baseline and RMSSD below
    baseline push the score up.

    This is NOT a validated physiological measure. The weights (20, 30) and
    scale floors (5 bpm / 10%, 10 ms / 25%) are empirical and kept as-is;
    changing them needs new calibration data.

    hr or rm may be None (or NaN), in which case that term contributes 0.
    """
    baseline = baseline or Baseline()
    hr_base = baseline.heart_rate_bpm
    rm_base = baseline.rmssd_ms
    hr_z = 0.0
    if hr is not None and np.isfinite(hr):
        hr_z = (hr - hr_base) / max(5.0, 0.1 * hr_base)
    rm_z = 0.0
    if rm is not None and np.isfinite(rm):
        rm_z = (rm_base - rm) / max(10.0, 0.25 * rm_base)
    raw = 50.0 + 20.0 * hr_z + 30.0 * rm_z
    if not np.isfinite(raw):
        raw = 100.0 if raw > 0 else 0.0
    return int(min(100, max(0, round(raw))))


def autonomic_balance(rm, rm_base=BASELINE_RMSSD_MS):
    """(parasympathetic %, sympathetic %) estimate from RMSSD vs baseline."""
    if rm is None or not np.isfinite(rm):
        rm = rm_base
    denom = rm_base * 1.6
    p = rm / denom if denom > 0 else 0.0
    paras = int(round(min(1.0, max(0.0, p)) * 100))
    return paras, 100 - paras
