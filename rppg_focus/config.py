"""
Configuration file for rPPG focus monitor hyperparameters
"""
from dataclasses import dataclass
import math

# Sampling clock
INITIAL_FPS = 30.0
FPS_EMA_ALPHA = 0.1
MIN_DT_SEC = 1.0 / 120
MIN_FPS = 10
MAX_FPS = 90
FALLBACK_FPS = 30

# Detrend + biquad band-limiting
DETREND_WINDOW_SEC = 1.0
DETREND_MIN_SAMPLES = 5
HIGHPASS_HZ = 0.7
LOWPASS_HZ = 3.0
FILTER_Q = math.sqrt(0.5)

# Buffers
MAX_RETENTION_SEC = 60.0
ANALYSIS_WINDOW_SEC = 12.0  # spectral window, also the displayed waveform

# Spectral estimate (Goertzel bins over the HR band)
SPECTRAL_BAND = (0.7, 3.0)  # Hz, 42-180 bpm
SPECTRAL_BINS = 120
MIN_SPECTRAL_SECONDS = 4  # need > 4 s of samples before estimating

# Peaks -> IBIs
PEAK_WINDOW_SEC = 5.0
PEAK_THRESHOLD_SIGMA = 0.6
REFRACTORY_SEC = 0.333  # 180 bpm ceiling
MIN_PEAK_SAMPLES = 5
MAX_IBI_COUNT = 20
MIN_RMSSD_IBIS = 3

# Baseline defaults used until the user calibrates
BASELINE_HR_BPM = 70.0
BASELINE_RMSSD_MS = 40.0

# Camera / ROI
CAMERA_INDEX = 0
FRAME_SIZE = (640, 480)  # width, height
READ_RETRIES = 5  # dropped camera frames tolerated in a row
READ_RETRY_DELAY_SEC = 0.01
CENTER_ROI = (0.40, 0.12, 0.20, 0.18)  # x, y, w, h normalized, mid forehead
ROI_SAMPLE_PIXELS = 5000  # green mean is taken over ~this many pixels
FACE_DETECT_EVERY = 10  # frames
ROI_LOCK_SEC = 1.5
MIRROR = True

# Demo signal: ~72 bpm pulse + 0.25 Hz respiratory sinus arrhythmia + noise
DEMO_RATE_HZ = 30.0
DEMO_BASE = 128.0
DEMO_HEART_HZ = 1.2
DEMO_HEART_AMP = 8.0
DEMO_RSA_HZ = 0.25
DEMO_RSA_AMP = 3.0
DEMO_NOISE = 2.0  # peak-to-peak uniform noise


class InvalidConfiguration(ValueError):
    pass


@dataclass(frozen=True)
class PipelineConfig:
    max_retention_seconds: float = MAX_RETENTION_SEC
    spectral_band_hz: tuple = SPECTRAL_BAND
    spectral_bins: int = SPECTRAL_BINS
    analysis_window_seconds: float = ANALYSIS_WINDOW_SEC
    peak_window_seconds: float = PEAK_WINDOW_SEC
    refractory_period_seconds: float = REFRACTORY_SEC
    max_ibi_count: int = MAX_IBI_COUNT

    def __post_init__(self):
        self.validate()

    def validate(self):
        if not self.max_retention_seconds > 0:
            raise InvalidConfiguration(f"max_retention_seconds must be > 0, got {self.max_retention_seconds}")
        try:
            f0, f1 = self.spectral_band_hz
        except (TypeError, ValueError):
            raise InvalidConfiguration(f"spectral_band_hz must be a (low, high) pair, got {self.spectral_band_hz!r}")
        if not (0 < f0 < f1):
            raise InvalidConfiguration(f"spectral band requires 0 < f0 < f1, got ({f0}, {f1})")
        if int(self.spectral_bins) != self.spectral_bins or self.spectral_bins < 2:
            raise InvalidConfiguration(f"spectral_bins must be an integer >= 2, got {self.spectral_bins}")
        for name in ("analysis_window_seconds", "peak_window_seconds", "refractory_period_seconds"):
            if not getattr(self, name) > 0:
                raise InvalidConfiguration(f"{name} must be > 0, got {getattr(self, name)}")
        if int(self.max_ibi_count) != self.max_ibi_count or self.max_ibi_count < 1:
            raise InvalidConfiguration(f"max_ibi_count must be an integer >= 1, got {self.max_ibi_count}")
