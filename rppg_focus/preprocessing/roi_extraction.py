"""
ROI extraction for the forehead: normalized rects, cropping, green-channel brightness
"""
from dataclasses import dataclass

import numpy as np

from rppg_focus.config import CENTER_ROI, ROI_SAMPLE_PIXELS


@dataclass(frozen=True)
class NormalizedRect:
    """Rect as fractions of frame width/height."""
    x: float
    y: float
    w: float
    h: float

    def to_pixels(self, frame_w, frame_h):
        x = int(round(self.x * frame_w))
        y = int(round(self.y * frame_h))
        w = max(1, int(round(self.w * frame_w)))
        h = max(1, int(round(self.h * frame_h)))
        x = min(max(0, x), frame_w - 1)
        y = min(max(0, y), frame_h - 1)
        return x, y, min(w, frame_w - x), min(h, frame_h - y)

    def mirrored(self):
        return NormalizedRect(1.0 - self.x - self.w, self.y, self.w, self.h)


DEFAULT_ROI = NormalizedRect(*CENTER_ROI)


def clamp(v, lo, hi):
    return max(lo, min(hi, v))


# Assumes face bounding box: (x, y, w, h) in pixels
def forehead_from_face(face_bbox, frame_w, frame_h):
    x, y, w, h = face_bbox
    nx, ny, nw, nh = x / frame_w, y / frame_h, w / frame_w, h / frame_h
    rw = nw * 0.6
    rh = nh * 0.30
    rx = nx + nw * 0.2
    ry = ny + nh * 0.18
    rw = clamp(rw, 0.0, 1.0)
    rh = clamp(rh, 0.0, 1.0)
    return NormalizedRect(clamp(rx, 0.0, 1.0 - rw), clamp(ry, 0.0, 1.0 - rh), rw, rh)


def crop_roi(frame, rect):
    """Crop a frame (H, W, 3) by a normalized rect in source-frame coordinates."""
    fh, fw = frame.shape[:2]
    x, y, w, h = rect.to_pixels(fw, fh)
    return frame[y:y + h, x:x + w]


def average_roi_signal(roi, max_pixels=ROI_SAMPLE_PIXELS, channel=1):
    """Mean of one channel (green for BGR/RGB) over every step-th pixel."""
    if roi is None or roi.size == 0:
        return None
    plane = roi[..., channel] if roi.ndim == 3 else roi
    flat = plane.reshape(-1)
    step = max(1, flat.size // max_pixels)
    return float(np.mean(flat[::step], dtype=np.float64))


def roi_brightness(frame, rect=None):
    return average_roi_signal(crop_roi(frame, rect or DEFAULT_ROI))
