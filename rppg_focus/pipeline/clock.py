"""
Effective sampling rate from irregular tick timestamps
"""
from rppg_focus.config import FPS_EMA_ALPHA, INITIAL_FPS, MAX_FPS, MIN_DT_SEC, MIN_FPS


class SamplingClock:
    def __init__(self, initial_fps=INITIAL_FPS):
        self.fps_ema = float(initial_fps)
        self.last_ts = None

    def peek(self, ts):
        """Rate the clock would report for a tick at ts, without committing it."""
        ema = self.fps_ema
        if self.last_ts is not None:
            dt = ts - self.last_ts
            inst = 1.0 / max(dt, MIN_DT_SEC)
            ema = ema * (1.0 - FPS_EMA_ALPHA) + inst * FPS_EMA_ALPHA
        return ema, int(round(min(MAX_FPS, max(MIN_FPS, ema))))

    def tick(self, ts):
        self.fps_ema, fs = self.peek(ts)
        self.last_ts = ts
        return fs

    @property
    def rate(self):
        return int(round(min(MAX_FPS, max(MIN_FPS, self.fps_ema))))
