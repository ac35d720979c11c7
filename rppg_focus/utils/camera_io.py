"""
Frame sources: camera and video IO using OpenCV, plus a synthetic demo signal.
Every source yields one Sample (timestamp, ROI brightness) per next_sample() call
and None at end of stream.
"""
import logging
import math
import time
from dataclasses import dataclass

import cv2
import numpy as np

from rppg_focus.config import (
    CAMERA_INDEX,
    DEMO_BASE,
    DEMO_HEART_AMP,
    DEMO_HEART_HZ,
    DEMO_NOISE,
    DEMO_RATE_HZ,
    DEMO_RSA_AMP,
    DEMO_RSA_HZ,
    FALLBACK_FPS,
    FRAME_SIZE,
    READ_RETRIES,
    READ_RETRY_DELAY_SEC,
)
from rppg_focus.pipeline.rppg_pipeline import Sample
from rppg_focus.preprocessing.roi_extraction import DEFAULT_ROI, roi_brightness

logger = logging.getLogger(__name__)


class CameraIO:
    """Live camera source. The ROI comes from region_tracker when it has one,
    otherwise the fixed centre forehead rect is used.

    A failed read is retried up to read_retries times, retry_delay apart;
    only a camera that stays silent that long ends the stream.
    """

    def __init__(self, source=CAMERA_INDEX, region_tracker=None, frame_size=FRAME_SIZE, clock=time.monotonic,
                 read_retries=READ_RETRIES, retry_delay=READ_RETRY_DELAY_SEC):
        self.source = source
        self.region_tracker = region_tracker
        self.frame_size = frame_size
        self.clock = clock
        self.read_retries = read_retries
        self.retry_delay = retry_delay
        self.cap = None
        self.last_frame = None
        self.last_region = None

    def open(self):
        self.cap = cv2.VideoCapture(self.source)
        if not self.cap.isOpened():
            self.cap.release()
            self.cap = None
            logger.warning("camera %r could not be opened", self.source)
            raise RuntimeError(f"camera unavailable: {self.source!r}")
        if self.frame_size is not None:
            self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.frame_size[0])
            self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.frame_size[1])
        return self

    def read(self):
        if self.cap is None:
            self.open()
        ret, frame = self.cap.read()
        return ret, frame

    def frame_timestamp(self):
        return self.clock()

    def current_region(self):
        if self.region_tracker is not None:
            region = self.region_tracker.current_region()
            if region is not None:
                return region
        return DEFAULT_ROI

    def read_frame(self):
        for attempt in range(self.read_retries + 1):
            ret, frame = self.read()
            if ret and frame is not None:
                return frame
            if attempt < self.read_retries:
                time.sleep(self.retry_delay)
        if self.read_retries:
            logger.warning("no frame from %r after %d attempts", self.source, self.read_retries + 1)
        return None

    def next_sample(self):
        frame = self.read_frame()
        if frame is None:
            return None
        ts = self.frame_timestamp()
        if self.region_tracker is not None:
            self.region_tracker.observe(frame, ts)
        region = self.current_region()
        value = roi_brightness(frame, region)
        if value is None:
            return None
        self.last_frame = frame
        self.last_region = region
        return Sample(ts, value)

    def release(self):
        if self.cap is not None:
            self.cap.release()
            self.cap = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.release()


class VideoFileIO(CameraIO):
    """Pre-recorded clip. Timestamps come from the container position,
    falling back to frame_index / fps when the position does not advance.
    A failed read is the end of the clip, no retries."""

    def __init__(self, path, region_tracker=None):
        super().__init__(source=path, region_tracker=region_tracker, frame_size=None, read_retries=0)
        self.fps = None
        self.frame_index = 0
        self.last_ts = None

    def open(self):
        super().open()
        fps = self.cap.get(cv2.CAP_PROP_FPS)
        if not fps or fps != fps or fps < 1:
            fps = FALLBACK_FPS
        self.fps = float(fps)
        return self

    def frame_timestamp(self):
        ts = self.cap.get(cv2.CAP_PROP_POS_MSEC) / 1000.0
        fallback = self.frame_index / self.fps
        self.frame_index += 1
        if not math.isfinite(ts) or (self.last_ts is not None and ts <= self.last_ts):
            ts = fallback
            if self.last_ts is not None and ts <= self.last_ts:
                ts = self.last_ts + 1.0 / self.fps
        self.last_ts = ts
        return ts


class SyntheticSource:
    """Demo mode: rPPG-like brightness, ~72 bpm pulse + 0.25 Hz RSA + uniform
    noise, ticking at rate_hz. Pass an rng (numpy Generator) for repeatable runs.

    jitter (0..1) randomly stretches tick spacing by up to that fraction to
    mimic uneven camera timing.
    """

    def __init__(self, rate_hz=DEMO_RATE_HZ, heart_hz=DEMO_HEART_HZ, rsa_hz=DEMO_RSA_HZ,
                 rng=None, duration=None, jitter=0.0, start=0.0):
        self.rate_hz = float(rate_hz)
        self.heart_hz = heart_hz
        self.rsa_hz = rsa_hz
        self.rng = rng if rng is not None else np.random.default_rng()
        self.duration = duration
        self.jitter = jitter
        self.start = start
        self.t = None
        self.last_frame = None
        self.last_region = None

    def value_at(self, t):
        sig = (DEMO_HEART_AMP * math.sin(2 * math.pi * self.heart_hz * t)
               + DEMO_RSA_AMP * math.sin(2 * math.pi * self.rsa_hz * t)
               + (self.rng.random() - 0.5) * DEMO_NOISE)
        return DEMO_BASE + sig

    def next_sample(self):
        if self.t is None:
            self.t = self.start
        else:
            dt = 1.0 / self.rate_hz
            if self.jitter:
                dt *= 1.0 + self.jitter * self.rng.random()
            self.t += dt
        if self.duration is not None and self.t - self.start > self.duration:
            return None
        return Sample(self.t, self.value_at(self.t))

    def release(self):
        pass


@dataclass
class EnvironmentReport:
    opencv_version: str
    cascade_ok: bool
    camera_ok: bool
    detail: str = ""

    @property
    def ready(self):
        return self.cascade_ok and self.camera_ok


def probe_environment(camera_index=CAMERA_INDEX):
    """Check what live mode needs (face cascade, a readable camera). Never raises."""
    cascade_ok = not cv2.CascadeClassifier(cv2.data.haarcascades + 'haarcascade_frontalface_default.xml').empty()
    camera_ok = False
    detail = ""
    cap = cv2.VideoCapture(camera_index)
    try:
        if cap.isOpened():
            ret, _ = cap.read()
            camera_ok = bool(ret)
            if not ret:
                detail = "camera opened but returned no frame (in use by another app?)"
        else:
            detail = "no camera found or access denied; check OS privacy settings"
    finally:
        cap.release()
    return EnvironmentReport(cv2.__version__, cascade_ok, camera_ok, detail)
