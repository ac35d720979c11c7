# rppg_focus/dashboard/core.py
"""
Background processor for the Streamlit dashboard.

A single worker thread reads a sample and steps the pipeline, so the pipeline
still has exactly one writer. The UI only reads published snapshots, and asks
for baseline calibration through a flag the worker applies between ticks.
"""

import logging
import threading
import time

import cv2
import psutil

from rppg_focus.config import CAMERA_INDEX, PipelineConfig
from rppg_focus.pipeline.metrics import autonomic_balance
from rppg_focus.pipeline.rppg_pipeline import FocusPipeline
from rppg_focus.preprocessing.face_detection import HaarRegionTracker
from rppg_focus.utils.camera_io import CameraIO, SyntheticSource
from rppg_focus.utils.visualization import LatestMetrics, render_frame

logger = logging.getLogger(__name__)


class Processor:
    def __init__(self, demo=False, camera_idx=CAMERA_INDEX, roi_mode='auto', mirror=True, config=None, source=None):
        self.demo = demo
        self.camera_idx = int(camera_idx)
        self.roi_mode = roi_mode
        self.mirror = mirror
        self.pipeline = FocusPipeline(config or PipelineConfig())
        self.latest = LatestMetrics()
        self.source = source
        self.lock = threading.Lock()
        self.stop_flag = threading.Event()
        self.calibrate_request = threading.Event()
        self.thread_proc = None
        self.latest_frame = None
        self.latest_metrics = {}
        self.error = None

    def _build_source(self):
        if self.source is not None:
            return self.source
        if self.demo:
            return SyntheticSource(start=time.monotonic())
        tracker = HaarRegionTracker() if self.roi_mode == 'auto' else None
        return CameraIO(self.camera_idx, region_tracker=tracker).open()

    def start(self):
        self.stop_flag.clear()
        self.source = self._build_source()
        self.thread_proc = threading.Thread(target=self._proc_worker, daemon=True)
        self.thread_proc.start()

    def request_calibration(self):
        self.calibrate_request.set()

    def step(self):
        """One tick: read, process, publish. Returns False at end of stream."""
        sample = self.source.next_sample()
        if sample is None:
            return False
        self.latest.update(self.pipeline.push_sample(sample))
        if self.calibrate_request.is_set():
            self.calibrate_request.clear()
            if not self.pipeline.calibrate_baseline(self.latest.hr, self.latest.rmssd):
                logger.info("calibration skipped: HR and RMSSD not both available yet")
        overlay = render_frame(self.source, self.latest, self.pipeline.baseline, self.mirror)
        baseline = self.pipeline.baseline
        paras, sympa = autonomic_balance(self.latest.rmssd, baseline.rmssd_ms)
        metrics = {
            "hr": self.latest.hr, "quality": self.latest.quality, "rmssd": self.latest.rmssd,
            "focus": self.latest.focus, "parasympathetic": paras, "sympathetic": sympa,
            "baseline_hr": baseline.heart_rate_bpm, "baseline_rmssd": baseline.rmssd_ms,
            "fps": self.pipeline.sampling_rate, "samples": len(self.pipeline.buffer),
            "cpu": psutil.cpu_percent(interval=None), "ts": sample.timestamp,
        }
        with self.lock:
            self.latest_frame = overlay
            self.latest_metrics = metrics
        if self.demo:
            time.sleep(max(0.0, sample.timestamp - time.monotonic()))
        return True

    def _proc_worker(self):
        try:
            while not self.stop_flag.is_set():
                if not self.step():
                    logger.info("source ended")
                    break
        except Exception as e:
            logger.exception("processing stopped")
            self.error = str(e)
        finally:
            self.source.release()

    def get_frame_and_info(self, encode_jpeg=True):
        with self.lock:
            frame = None if self.latest_frame is None else self.latest_frame.copy()
            metrics = dict(self.latest_metrics)
        if frame is None:
            return None, metrics
        if encode_jpeg:
            ret, buf = cv2.imencode('.jpg', frame, [int(cv2.IMWRITE_JPEG_QUALITY), 80])
            if not ret:
                return None, metrics
            return buf.tobytes(), metrics
        return frame, metrics

    def stop(self):
        self.stop_flag.set()
        if self.thread_proc is not None:
            self.thread_proc.join(timeout=2.0)
