"""
Band-limited spectral HR estimation for rPPG (Goertzel resonator bank)
"""
from dataclasses import dataclass

import numpy as np
from scipy.signal import lfilter

from rppg_focus.config import MIN_SPECTRAL_SECONDS, SPECTRAL_BAND, SPECTRAL_BINS


@dataclass(frozen=True)
class SpectrumResult:
    frequencies: np.ndarray
    powers: np.ndarray


def goertzel_power(x, f, fs):
    """Power of x at a single frequency f (Hz) via the Goertzel recurrence
    s[n] = x[n] + 2cos(w) s[n-1] - s[n-2]."""
    w = 2.0 * np.pi * f / fs
    coeff = 2.0 * np.cos(w)
    if len(x) == 0:
        return 0.0
    s = lfilter([1.0], [1.0, -coeff, 1.0], x)
    s_prev = s[-1]
    s_prev2 = s[-2] if len(s) > 1 else 0.0
    real = s_prev - s_prev2 * np.cos(w)
    imag = s_prev2 * np.sin(w)
    return float(real * real + imag * imag)


def spectrum(segment, fs, band=SPECTRAL_BAND, bins=SPECTRAL_BINS):
    """Power at `bins` linearly spaced frequencies covering band (inclusive).

    Pure function: only the HR band is evaluated, cost is bins * len(segment).
    """
    f0, f1 = band
    x = np.asarray(segment, dtype=np.float64)
    freqs = np.linspace(f0, f1, int(bins))
    powers = np.array([goertzel_power(x, f, fs) for f in freqs], dtype=np.float64)
    return SpectrumResult(frequencies=freqs, powers=powers)


def dominant_index(powers):
    # np.argmax returns the first maximum in frequency order
    return int(np.argmax(powers))


def quality_ratio(powers, k=None):
    """Peak power over the band's median power; None when the median is 0."""
    if k is None:
        k = dominant_index(powers)
    med = float(np.median(powers))
    if med == 0 or not np.isfinite(med):
        return None
    return float(powers[k] / med)


def has_enough_samples(segment, fs):
    return len(segment) > fs * MIN_SPECTRAL_SECONDS


def estimate_hr(segment, fs, band=SPECTRAL_BAND, bins=SPECTRAL_BINS):
    """Returns (bpm, quality_ratio) or None when the segment is too short
    or contains non-finite values."""
    if not has_enough_samples(segment, fs):
        return None
    x = np.asarray(segment, dtype=np.float64)
    if not np.all(np.isfinite(x)):
        return None
    sp = spectrum(x, fs, band, bins)
    k = dominant_index(sp.powers)
    bpm = float(sp.frequencies[k] * 60.0)
    return bpm, quality_ratio(sp.powers, k)
