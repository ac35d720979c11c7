import numpy as np
import pytest

from rppg_focus.preprocessing.face_detection import HaarRegionTracker
from rppg_focus.preprocessing.roi_extraction import (
    DEFAULT_ROI,
    NormalizedRect,
    average_roi_signal,
    crop_roi,
    forehead_from_face,
    roi_brightness,
)


class FakeDetector:
    def __init__(self, faces):
        self.faces = faces
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        return self.faces


def _frame():
    frame = np.zeros((480, 640, 3), dtype=np.uint8)
    frame[..., 1] = 50
    x, y, w, h = DEFAULT_ROI.to_pixels(640, 480)
    frame[y:y + h, x:x + w, 1] = 200
    frame[y:y + h, x:x + w, 2] = 10
    return frame


def test_brightness_is_green_mean_inside_roi():
    assert roi_brightness(_frame()) == pytest.approx(200.0)
    assert roi_brightness(_frame(), NormalizedRect(0.0, 0.9, 0.1, 0.1)) == pytest.approx(50.0)


def test_crop_uses_source_coordinates():
    frame = _frame()
    roi = crop_roi(frame, DEFAULT_ROI)
    assert roi.shape == (86, 128, 3)


def test_empty_roi_has_no_signal():
    assert average_roi_signal(np.zeros((0, 0, 3), dtype=np.uint8)) is None
    assert average_roi_signal(None) is None


def test_large_roi_is_subsampled():
    roi = np.full((200, 200, 3), 7, dtype=np.uint8)
    assert average_roi_signal(roi, max_pixels=100) == pytest.approx(7.0)


def test_to_pixels_clamps_to_frame():
    assert NormalizedRect(0.9, 0.9, 0.5, 0.5).to_pixels(100, 100) == (90, 90, 10, 10)
    assert NormalizedRect(-0.2, 0.0, 0.1, 0.1).to_pixels(100, 100) == (0, 0, 10, 10)


def test_mirrored_rect():
    r = NormalizedRect(0.1, 0.2, 0.3, 0.4).mirrored()
    assert (r.x, r.y, r.w, r.h) == pytest.approx((0.6, 0.2, 0.3, 0.4))


def test_forehead_from_face():
    r = forehead_from_face((100, 50, 200, 200), 640, 480)
    assert r.x == pytest.approx((100 + 0.2 * 200) / 640)
    assert r.y == pytest.approx((50 + 0.18 * 200) / 480)
    assert r.w == pytest.approx(0.6 * 200 / 640)
    assert r.h == pytest.approx(0.30 * 200 / 480)


def test_forehead_stays_inside_frame():
    r = forehead_from_face((600, 400, 200, 200), 640, 480)
    assert 0.0 <= r.x and r.x + r.w <= 1.0 + 1e-9
    assert 0.0 <= r.y and r.y + r.h <= 1.0 + 1e-9


def test_tracker_picks_largest_face_and_locks():
    detector = FakeDetector([(10, 10, 50, 50), (100, 100, 200, 200)])
    tracker = HaarRegionTracker(detector=detector, detect_every=1, lock_seconds=1.5)
    frame = _frame()
    assert tracker.current_region() is None

    tracker.observe(frame, 0.0)
    assert tracker.face_bbox == (100, 100, 200, 200)
    assert tracker.current_region() == forehead_from_face((100, 100, 200, 200), 640, 480)

    detector.faces = [(0, 0, 300, 300)]
    tracker.observe(frame, 1.0)
    assert detector.calls == 1
    assert tracker.face_bbox == (100, 100, 200, 200)

    tracker.observe(frame, 2.0)
    assert detector.calls == 2
    assert tracker.face_bbox == (0, 0, 300, 300)


def test_tracker_keeps_region_when_face_lost():
    detector = FakeDetector([(100, 100, 200, 200)])
    tracker = HaarRegionTracker(detector=detector, detect_every=1, lock_seconds=0.0)
    tracker.observe(_frame(), 0.0)
    region = tracker.current_region()
    detector.faces = []
    tracker.observe(_frame(), 1.0)
    assert tracker.current_region() == region


def test_tracker_detects_every_nth_frame():
    detector = FakeDetector([])
    tracker = HaarRegionTracker(detector=detector, detect_every=3)
    for i in range(7):
        tracker.observe(_frame(), float(i))
    assert detector.calls == 2
    assert tracker.current_region() is None
