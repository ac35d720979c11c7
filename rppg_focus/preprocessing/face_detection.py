"""
Face detection using Haarcascade (CPU-friendly), mapped to a forehead ROI
"""
import logging

import cv2

from rppg_focus.config import FACE_DETECT_EVERY, ROI_LOCK_SEC
from rppg_focus.preprocessing.roi_extraction import forehead_from_face

logger = logging.getLogger(__name__)


class FaceDetector:
    def __init__(self, cascade_path=None):
        if cascade_path is None:
            cascade_path = cv2.data.haarcascades + 'haarcascade_frontalface_default.xml'
        self.face_cascade = cv2.CascadeClassifier(cascade_path)
        if self.face_cascade.empty():
            raise RuntimeError(f"could not load face cascade: {cascade_path}")

    def detect(self, frame):
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        faces = self.face_cascade.detectMultiScale(gray, scaleFactor=1.1, minNeighbors=4, minSize=(80, 80))
        return faces


class HaarRegionTracker:
    """Region tracker: re-detects every few frames, holds a found forehead
    rect for lock_seconds, and reports None until a face has been seen."""

    def __init__(self, detector=None, detect_every=FACE_DETECT_EVERY, lock_seconds=ROI_LOCK_SEC):
        self.detector = detector or FaceDetector()
        self.detect_every = max(1, int(detect_every))
        self.lock_seconds = lock_seconds
        self.region = None
        self.face_bbox = None
        self.frame_count = 0
        self.lock_until = float('-inf')

    def observe(self, frame, ts):
        self.frame_count += 1
        if ts <= self.lock_until or self.frame_count % self.detect_every != 0:
            return
        faces = self.detector.detect(frame)
        if len(faces) == 0:
            return
        # largest face wins
        x, y, w, h = sorted(faces, key=lambda r: r[2] * r[3], reverse=True)[0]
        fh, fw = frame.shape[:2]
        self.face_bbox = (int(x), int(y), int(w), int(h))
        self.region = forehead_from_face(self.face_bbox, fw, fh)
        self.lock_until = ts + self.lock_seconds
        logger.debug("forehead roi updated: %s", self.region)

    def current_region(self):
        return self.region
