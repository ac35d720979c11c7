"""
Visualization utilities for rPPG focus monitor (OpenCV overlays, matplotlib trend)
"""
import cv2
import matplotlib.pyplot as plt
import numpy as np

from rppg_focus.pipeline.metrics import autonomic_balance

FONT = cv2.FONT_HERSHEY_SIMPLEX
GREEN = (0, 200, 0)
GREY = (200, 200, 200)
PARA_COLOR = (129, 185, 16)  # BGR emerald
SYMPA_COLOR = (94, 63, 244)  # BGR rose


def fmt(value, pattern="{}", missing="--"):
    return pattern.format(value) if value is not None else missing


def quality_color(q):
    if q is None:
        return (0, 120, 255)
    if q >= 5:
        return GREEN
    if q >= 2.5:
        return (0, 180, 220)
    return (0, 120, 255)


# --- OpenCV-only overlays (non-blocking) ---
def draw_metrics_overlay(frame, hr=None, quality=None, rmssd=None, focus=None, baseline=None, pos=(10, 30)):
    x, y = pos
    cv2.putText(frame, f"HR: {fmt(hr, '{} bpm')}", (x, y), FONT, 0.9, quality_color(quality), 2)
    cv2.putText(frame, f"Quality: {fmt(quality, '{:.1f}')}", (x, y + 28), FONT, 0.6, GREY, 1)
    cv2.putText(frame, f"RMSSD: {fmt(rmssd, '{} ms')}", (x, y + 52), FONT, 0.6, GREY, 1)
    cv2.putText(frame, f"Focus (trial): {fmt(focus)}", (x, y + 76), FONT, 0.6, GREY, 1)
    if baseline is not None:
        cv2.putText(frame, f"Baseline: {baseline.heart_rate_bpm:.0f} bpm / {baseline.rmssd_ms:.0f} ms",
                    (x, y + 100), FONT, 0.5, (180, 220, 255), 1)
    return frame


def draw_balance_bars(frame, balance, rect=(10, 150, 200, 40)):
    """balance = (parasympathetic %, sympathetic %)."""
    paras, sympa = balance
    x, y, w, h = rect
    bar_h = max(4, h // 2 - 6)
    for i, (label, pct, color) in enumerate((("Para", paras, PARA_COLOR), ("Sympa", sympa, SYMPA_COLOR))):
        by = y + i * (bar_h + 12)
        cv2.rectangle(frame, (x + 60, by), (x + w, by + bar_h), (60, 60, 60), -1)
        fill = int((w - 60) * pct / 100.0)
        if fill > 0:
            cv2.rectangle(frame, (x + 60, by), (x + 60 + fill, by + bar_h), color, -1)
        cv2.putText(frame, f"{label} {pct}%", (x, by + bar_h), FONT, 0.4, GREY, 1)
    return frame


def draw_roi(frame, rect, mirror=False, color=(0, 255, 0)):
    """Outline a normalized ROI. With mirror the frame is assumed already
    flipped for display, so the rect is flipped to match."""
    fh, fw = frame.shape[:2]
    r = rect.mirrored() if mirror else rect
    x, y, w, h = r.to_pixels(fw, fh)
    cv2.rectangle(frame, (x, y), (x + w, y + h), color, 2)
    return frame


def draw_scroll_plot(frame, signal_buffer, rect=(10, 400, 500, 120)):
    fh, fw = frame.shape[:2]
    x, y, w, h = rect
    # Clamp to frame bounds
    if x < 0: x = 0
    if y < 0: y = 0
    if x + w > fw:
        w = max(1, fw - x)
    if y + h > fh:
        h = max(1, fh - y)
    plot = np.zeros((h, w, 3), dtype=np.uint8) + 30
    if signal_buffer is not None and len(signal_buffer) > 1:
        s = np.asarray(signal_buffer, dtype=np.float32)
        # normalize to [0, 1] for drawing; flat signal draws mid-line
        rng = float(np.ptp(s)) or 1.0
        s = (s - s.min()) / rng
        xs = np.linspace(0, w - 1, len(s)).astype(np.int32)
        ys = (h - 1 - (s * (h - 1))).astype(np.int32)
        pts = np.stack([xs, ys], axis=1).reshape(-1, 1, 2)
        cv2.polylines(plot, [pts], False, (129, 185, 16), 1)
    frame[y:y + h, x:x + w] = plot
    return frame


hr_fig = None
hr_axes = None


def plot_hr_realtime(hr_history, rmssd_history=None, focus_history=None):
    global hr_fig, hr_axes
    if hr_fig is None or hr_axes is None:
        plt.ion()
        hr_fig, hr_axes = plt.subplots(3, 1, sharex=True, figsize=(6, 6))
    series = (
        (hr_history, 'Heart Rate (BPM)', 'r'),
        (rmssd_history or [], 'RMSSD (ms)', 'g'),
        (focus_history or [], 'Focus (trial)', 'b'),
    )
    for ax, (values, title, color) in zip(hr_axes, series):
        ax.clear()
        ax.plot(values, color=color)
        ax.set_title(title)
    hr_axes[-1].set_xlabel('Update')
    plt.pause(0.001)


class LatestMetrics:
    """Last known value of every TickOutputs field, for display."""

    def __init__(self, history=300):
        self.history = history
        self.hr = None
        self.quality = None
        self.rmssd = None
        self.focus = None
        self.segment = []
        self.hr_hist = []
        self.rmssd_hist = []
        self.focus_hist = []

    def update(self, out):
        self.segment = out.filtered_segment
        if out.heart_rate_bpm is not None:
            self.hr = out.heart_rate_bpm
            self.quality = out.quality_ratio
            self.hr_hist = (self.hr_hist + [self.hr])[-self.history:]
        if out.rmssd_ms is not None:
            self.rmssd = out.rmssd_ms
            self.rmssd_hist = (self.rmssd_hist + [self.rmssd])[-self.history:]
        if out.focus_score is not None:
            self.focus = out.focus_score
            self.focus_hist = (self.focus_hist + [self.focus])[-self.history:]


def render_frame(source, latest, baseline, mirror=True, canvas=(480, 640, 3)):
    """Compose the display frame: mirrored video (or a blank canvas in demo
    mode), ROI box, metrics, balance bars and the filtered waveform."""
    frame = source.last_frame
    if frame is None:
        frame = np.zeros(canvas, dtype=np.uint8)
    else:
        frame = cv2.flip(frame, 1) if mirror else frame.copy()
        if source.last_region is not None:
            draw_roi(frame, source.last_region, mirror=mirror)
    draw_metrics_overlay(frame, latest.hr, latest.quality, latest.rmssd, latest.focus, baseline)
    draw_balance_bars(frame, autonomic_balance(latest.rmssd, baseline.rmssd_ms))
    fh, fw = frame.shape[:2]
    draw_scroll_plot(frame, latest.segment, rect=(10, fh - 130, fw - 20, 120))
    return frame
