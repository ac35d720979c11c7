"""
rPPG focus pipeline orchestrator: one synchronous step per (timestamp, brightness) tick
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from rppg_focus.config import HIGHPASS_HZ, LOWPASS_HZ, PipelineConfig
from rppg_focus.pipeline.buffers import OutOfOrderTick, WindowedBuffer
from rppg_focus.pipeline.clock import SamplingClock
from rppg_focus.pipeline.metrics import Baseline, focus_score, rmssd
from rppg_focus.pipeline.peaks import PeakIntervalExtractor
from rppg_focus.utils.signal_processing import estimate_hr
from rppg_focus.utils.signal_tools import DetrendedFilterBank

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Sample:
    timestamp: float
    raw_value: float


@dataclass
class TickOutputs:
    """Per-tick results. A field is None when its computation was skipped
    this tick (not enough data yet). focus_score may be emitted while HR or
    RMSSD is still missing; a missing term contributes 0, so early scores
    sit at 50."""
    heart_rate_bpm: Optional[int] = None
    quality_ratio: Optional[float] = None
    rmssd_ms: Optional[int] = None
    focus_score: Optional[int] = None
    filtered_segment: np.ndarray = field(default_factory=lambda: np.zeros(0))


@dataclass
class PipelineState:
    """Everything a tick mutates. Owned by one pipeline, one writer."""
    config: PipelineConfig
    clock: SamplingClock
    filters: DetrendedFilterBank
    buffer: WindowedBuffer
    peaks: PeakIntervalExtractor
    baseline: Baseline = field(default_factory=Baseline)
    last_hr_bpm: Optional[int] = None

    @classmethod
    def create(cls, config=None):
        config = config or PipelineConfig()
        clock = SamplingClock()
        return cls(
            config=config,
            clock=clock,
            filters=DetrendedFilterBank(clock.rate, HIGHPASS_HZ, LOWPASS_HZ),
            buffer=WindowedBuffer(config.max_retention_seconds, config.max_ibi_count),
            peaks=PeakIntervalExtractor(
                window_sec=min(config.peak_window_seconds, config.max_retention_seconds),
                refractory=config.refractory_period_seconds,
            ),
        )


def process_tick(state, ts, raw):
    """Run one pipeline step against state. Raises OutOfOrderTick (state
    untouched) if ts does not move forward, ValueError on non-finite input."""
    ts = float(ts)
    raw = float(raw)
    if not (math.isfinite(ts) and math.isfinite(raw)):
        raise ValueError(f"non-finite tick ({ts!r}, {raw!r})")
    state.buffer.check_timestamp(ts)
    cfg = state.config
    buf = state.buffer

    fs = state.clock.tick(ts)
    filtered = state.filters.step(raw, buf.raw_values, fs)
    buf.append(ts, raw, filtered)

    out = TickOutputs()
    segment, fs_used = buf.latest_segment(cfg.analysis_window_seconds)
    out.filtered_segment = segment

    est = estimate_hr(segment, fs_used, cfg.spectral_band_hz, cfg.spectral_bins)
    if est is not None:
        bpm, q = est
        if math.isfinite(bpm):
            out.heart_rate_bpm = int(round(bpm))
            state.last_hr_bpm = out.heart_rate_bpm
        out.quality_ratio = round(q, 1) if q is not None else None
        logger.debug("hr=%.1f bpm quality=%s fs=%.1f n=%d", bpm, out.quality_ratio, fs_used, len(segment))

    ibi = state.peaks.update(buf.timestamps, buf.filtered_values, fs)
    if ibi is not None:
        buf.add_ibi(ibi)
        rm = rmssd(buf.ibis)
        if math.isfinite(rm):
            out.rmssd_ms = int(round(rm))
        out.focus_score = focus_score(state.last_hr_bpm, rm, state.baseline)
        logger.debug("ibi=%.3fs rmssd=%s focus=%s", ibi, out.rmssd_ms, out.focus_score)
    return out


class FocusPipeline:
    def __init__(self, config=None):
        self.state = PipelineState.create(config)

    @property
    def config(self):
        return self.state.config

    @property
    def baseline(self):
        return self.state.baseline

    @property
    def buffer(self):
        return self.state.buffer

    @property
    def sampling_rate(self):
        return self.state.clock.rate

    def push_tick(self, ts, raw_brightness):
        return process_tick(self.state, ts, raw_brightness)

    def push_sample(self, sample):
        return process_tick(self.state, sample.timestamp, sample.raw_value)

    def set_baseline(self, heart_rate_bpm, rmssd_ms):
        self.state.baseline = Baseline(float(heart_rate_bpm), float(rmssd_ms))
        logger.info("baseline set: hr=%.1f bpm rmssd=%.1f ms", heart_rate_bpm, rmssd_ms)

    def calibrate_baseline(self, heart_rate_bpm, rmssd_ms):
        """Adopt a recent stable HR/RMSSD pair as the baseline; ignored
        (returns False) unless both are present and non-zero."""
        if not heart_rate_bpm or not rmssd_ms:
            return False
        self.set_baseline(heart_rate_bpm, rmssd_ms)
        return True


__all__ = ["FocusPipeline", "OutOfOrderTick", "PipelineState", "Sample", "TickOutputs", "process_tick"]
