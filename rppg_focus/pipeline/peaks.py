"""
Adaptive-threshold peak detection on the filtered pulse wave -> inter-beat intervals
"""
import numpy as np

from rppg_focus.config import MIN_PEAK_SAMPLES, PEAK_THRESHOLD_SIGMA, PEAK_WINDOW_SEC, REFRACTORY_SEC


def adaptive_threshold(window, sigma=PEAK_THRESHOLD_SIGMA):
    w = np.asarray(window, dtype=np.float64)
    mean = float(np.mean(w))
    sd = float(np.std(w, ddof=1)) if w.size > 1 else 0.0
    return mean + sigma * sd


class PeakIntervalExtractor:
    """One-sample-delayed local maximum check with a refractory period.

    Only accepted peaks move last_peak_ts; a candidate inside the refractory
    period is dropped without touching it.
    """

    def __init__(self, window_sec=PEAK_WINDOW_SEC, refractory=REFRACTORY_SEC):
        self.window_sec = window_sec
        self.refractory = refractory
        self.last_peak_ts = None

    def update(self, timestamps, filtered, fs):
        """Returns a new IBI in seconds, or None."""
        n = len(filtered)
        if n < MIN_PEAK_SAMPLES:
            return None
        i0 = max(0, n - int(self.window_sec * fs))
        thr = adaptive_threshold(filtered[i0:])

        i = n - 2
        y = filtered[i]
        if not (y > thr and y > filtered[i - 1] and y > filtered[i + 1]):
            return None
        t_peak = timestamps[i]
        if self.last_peak_ts is not None and t_peak - self.last_peak_ts < self.refractory:
            return None
        ibi = None
        if self.last_peak_ts is not None:
            ibi = t_peak - self.last_peak_ts
        self.last_peak_ts = t_peak
        return ibi
