# rppg_focus/dashboard/streamlit_app.py
"""
Run with:
    streamlit run rppg_focus/dashboard/streamlit_app.py

Start/stop the camera or the synthetic demo, calibrate the baseline from the
current HR/RMSSD, and run the numerical self-tests. Not a medical device: the
focus score is a trial heuristic.
"""

import time

import numpy as np
import pandas as pd
import streamlit as st

from rppg_focus.dashboard.core import Processor
from rppg_focus.pipeline.selftest import run_self_tests
from rppg_focus.utils.camera_io import probe_environment
from rppg_focus.utils.visualization import fmt

st.set_page_config(layout="wide", page_title="rPPG Focus Monitor")

st.title("rPPG Focus Monitor: on-device HR, HRV (RMSSD) and trial focus score")

# Sidebar
st.sidebar.header("Settings & Controls")
camera_idx = st.sidebar.number_input("Camera index", value=0, min_value=0, max_value=5, step=1)
roi_mode = st.sidebar.radio("ROI", ("auto", "center"), help="auto: Haar face detection, center: fixed forehead box")
mirror = st.sidebar.checkbox("Mirror preview", value=True)
start_button = st.sidebar.button("Start camera")
demo_button = st.sidebar.button("Start demo (no camera)")
stop_button = st.sidebar.button("Stop")
calibrate_button = st.sidebar.button("Calibrate baseline")
selftest_button = st.sidebar.button("Run self-tests")
env_button = st.sidebar.button("Check environment")

# session state
if 'processor' not in st.session_state:
    st.session_state.processor = None
if 'selftests' not in st.session_state:
    st.session_state.selftests = None


def stop_processor():
    if st.session_state.processor is not None:
        st.session_state.processor.stop()
        st.session_state.processor = None


if start_button or demo_button:
    stop_processor()
    proc = Processor(demo=bool(demo_button), camera_idx=camera_idx, roi_mode=roi_mode, mirror=mirror)
    try:
        proc.start()
        st.session_state.processor = proc
        st.success("Demo started (synthetic signal)." if demo_button else "Camera started.")
    except RuntimeError as e:
        st.error(f"{e}. Close other apps using the camera, check OS privacy settings, or use the demo.")

if stop_button:
    stop_processor()
    st.success("Stopped.")

if calibrate_button:
    if st.session_state.processor is not None:
        st.session_state.processor.request_calibration()
        st.sidebar.info("Baseline will be taken from the current HR / RMSSD.")
    else:
        st.sidebar.warning("Start the camera or demo first.")

if selftest_button:
    st.session_state.selftests = pd.DataFrame(
        [{"test": r.name, "pass": r.passed, "detail": r.detail} for r in run_self_tests()]
    )

if env_button:
    report = probe_environment(int(camera_idx))
    st.sidebar.write({
        "OpenCV": report.opencv_version,
        "face cascade": report.cascade_ok,
        "camera": report.camera_ok,
        "note": report.detail or "-",
    })

col1, col2 = st.columns((2, 1))
with col1:
    img_placeholder = st.empty()
    st.caption("Live video with ROI and filtered pulse waveform")
with col2:
    hr_metric = st.empty()
    rmssd_metric = st.empty()
    focus_metric = st.empty()
    quality_metric = st.empty()
    balance_box = st.empty()
    status_box = st.empty()
    if st.session_state.selftests is not None:
        st.dataframe(st.session_state.selftests, hide_index=True)


# Main display loop
def update_display():
    proc = st.session_state.processor
    if proc is None:
        img_placeholder.image(np.zeros((480, 640, 3), dtype=np.uint8), channels="BGR")
        status_box.write("Idle")
        return
    img_bytes, metrics = proc.get_frame_and_info()
    if img_bytes is not None:
        img_placeholder.image(img_bytes, channels="BGR")
    if proc.error:
        status_box.error(f"Processing stopped: {proc.error}")
        return
    if not metrics:
        return
    hr_metric.metric("Heart rate (bpm)", fmt(metrics.get("hr")))
    rmssd_metric.metric("RMSSD (ms)", fmt(metrics.get("rmssd")))
    focus_metric.metric("Focus (trial)", fmt(metrics.get("focus")))
    quality_metric.metric("Signal quality (peak/median)", fmt(metrics.get("quality"), "{:.1f}"))
    balance_box.progress(metrics["parasympathetic"],
                         text=f"Parasympathetic {metrics['parasympathetic']}% / sympathetic {metrics['sympathetic']}%")
    status_box.caption(
        f"fs {metrics['fps']} Hz, {metrics['samples']} samples, CPU {metrics['cpu']:.0f}%, "
        f"baseline {metrics['baseline_hr']:.0f} bpm / {metrics['baseline_rmssd']:.0f} ms"
    )


# Streamlit runs top-to-bottom. To keep updating, re-run periodically.
while True:
    update_display()
    time.sleep(0.06)
