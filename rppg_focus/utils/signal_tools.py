"""
Streaming filter utilities for rPPG: trailing detrend + 2nd order IIR biquads
"""
import math
from functools import lru_cache

import numpy as np

from rppg_focus.config import (
    DETREND_MIN_SAMPLES,
    DETREND_WINDOW_SEC,
    FILTER_Q,
    HIGHPASS_HZ,
    LOWPASS_HZ,
)


@lru_cache(maxsize=256)
def biquad_coefficients(fs, fc, q=FILTER_Q, btype='lowpass'):
    """RBJ cookbook biquad, normalized so a0 == 1.

    Returns (b0, b1, b2, a1, a2). Cached on the arguments; the pipeline only
    ever passes integer sampling rates so the cache stays small.
    """
    w0 = 2.0 * math.pi * fc / fs
    cosw0 = math.cos(w0)
    alpha = math.sin(w0) / (2.0 * q)
    if btype == 'lowpass':
        b0 = (1.0 - cosw0) / 2.0
        b1 = 1.0 - cosw0
        b2 = (1.0 - cosw0) / 2.0
    elif btype == 'highpass':
        b0 = (1.0 + cosw0) / 2.0
        b1 = -(1.0 + cosw0)
        b2 = (1.0 + cosw0) / 2.0
    else:
        raise ValueError(f"unknown biquad type: {btype}")
    a0 = 1.0 + alpha
    a1 = -2.0 * cosw0
    a2 = 1.0 - alpha
    return b0 / a0, b1 / a0, b2 / a0, a1 / a0, a2 / a0


class Biquad:
    """Direct form I biquad whose coefficients can be swapped between samples."""

    def __init__(self, fs, fc, btype='lowpass', q=FILTER_Q):
        self.fc = fc
        self.btype = btype
        self.q = q
        self.fs = None
        self.x1 = self.x2 = 0.0
        self.y1 = self.y2 = 0.0
        self.retune(fs)

    def retune(self, fs):
        # only the coefficients change, the running history is kept
        self.fs = fs
        self.b0, self.b1, self.b2, self.a1, self.a2 = biquad_coefficients(fs, self.fc, self.q, self.btype)

    def step(self, x):
        y = (self.b0 * x + self.b1 * self.x1 + self.b2 * self.x2
             - self.a1 * self.y1 - self.a2 * self.y2)
        self.x2, self.x1 = self.x1, x
        self.y2, self.y1 = self.y1, y
        return y


def detrend_window(fs):
    return max(DETREND_MIN_SAMPLES, int(round(DETREND_WINDOW_SEC * fs)))


def moving_average_tail(values, win):
    if len(values) == 0:
        return 0.0
    n = min(win, len(values))
    return float(np.mean(values[-n:]))


class DetrendedFilterBank:
    """Raw brightness -> band-limited pulse wave, one sample per tick.

    Both biquads are re-derived every tick from that tick's sampling-rate
    estimate (camera timing drifts); the coefficient cache is keyed on the
    integer rate.
    """

    def __init__(self, fs, low=HIGHPASS_HZ, high=LOWPASS_HZ):
        self.hp = Biquad(fs, low, 'highpass')
        self.lp = Biquad(fs, high, 'lowpass')

    def step(self, raw, raw_history, fs):
        """Filter one sample. raw_history holds the earlier raw samples only."""
        self.hp.retune(fs)
        self.lp.retune(fs)
        win = detrend_window(fs)
        tail = list(raw_history[max(0, len(raw_history) - (win - 1)):])
        tail.append(raw)
        detrended = raw - moving_average_tail(tail, win)
        return self.lp.step(self.hp.step(detrended))
