"""
Time-indexed sample buffers with a fixed retention window
"""
from bisect import bisect_left
from collections import deque

import numpy as np

from rppg_focus.config import FALLBACK_FPS, MAX_FPS, MAX_IBI_COUNT, MAX_RETENTION_SEC, MIN_FPS


class OutOfOrderTick(ValueError):
    pass


class WindowedBuffer:
    """Parallel timestamp/raw/filtered lists plus the rolling IBI set.

    Appends happen at the tail only; trim() drops from the head everything
    older than tail - max_retention. IBIs are evicted FIFO, by count and
    while the buffer span still exceeds the retention window.
    """

    def __init__(self, max_retention=MAX_RETENTION_SEC, max_ibis=MAX_IBI_COUNT):
        self.max_retention = float(max_retention)
        self.timestamps = []
        self.raw_values = []
        self.filtered_values = []
        self.ibis = deque(maxlen=int(max_ibis))

    def __len__(self):
        return len(self.timestamps)

    @property
    def last_timestamp(self):
        return self.timestamps[-1] if self.timestamps else None

    @property
    def span(self):
        if len(self.timestamps) < 2:
            return 0.0
        return self.timestamps[-1] - self.timestamps[0]

    def check_timestamp(self, ts):
        last = self.last_timestamp
        if last is not None and not ts > last:
            raise OutOfOrderTick(f"tick at {ts!r} is not after previous tick at {last!r}")

    def append(self, ts, raw, filtered):
        self.check_timestamp(ts)
        self.timestamps.append(ts)
        self.raw_values.append(raw)
        self.filtered_values.append(filtered)
        self.trim()

    def add_ibi(self, ibi):
        self.ibis.append(ibi)

    def trim(self):
        if not self.timestamps:
            return
        cutoff = self.timestamps[-1] - self.max_retention
        i0 = bisect_left(self.timestamps, cutoff)
        if i0:
            del self.timestamps[:i0]
            del self.raw_values[:i0]
            del self.filtered_values[:i0]
        # after the head trim this only fires on float rounding in the cutoff
        while self.ibis and len(self.timestamps) > 1 and self.span > self.max_retention:
            self.ibis.popleft()

    def latest_segment(self, window_sec):
        """Longest suffix of filtered values spanning at most window_sec.

        Returns (segment, fs_used); fs_used is the mean sample rate of the
        suffix clamped to [10, 90] Hz, 30 Hz when it cannot be computed.
        """
        if not self.timestamps:
            return np.zeros(0), float(FALLBACK_FPS)
        t = self.timestamps
        cutoff = t[-1] - window_sec
        i0 = 0
        for i in range(len(t) - 1, -1, -1):
            if t[i] < cutoff:
                i0 = i + 1
                break
        segment = np.asarray(self.filtered_values[i0:], dtype=np.float64)
        n = len(t) - 1 - i0
        dt = (t[-1] - t[i0]) / max(1, n)
        if dt > 0 and np.isfinite(dt):
            fs_used = min(float(MAX_FPS), max(float(MIN_FPS), 1.0 / dt))
        else:
            fs_used = float(FALLBACK_FPS)
        return segment, fs_used
