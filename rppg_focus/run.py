import argparse
import logging
import threading
import time

import cv2

from rppg_focus.config import CAMERA_INDEX, MIRROR, PipelineConfig
from rppg_focus.pipeline.rppg_pipeline import FocusPipeline
from rppg_focus.pipeline.selftest import run_self_tests
from rppg_focus.preprocessing.face_detection import HaarRegionTracker
from rppg_focus.utils.camera_io import CameraIO, SyntheticSource, VideoFileIO, probe_environment
from rppg_focus.utils.visualization import (
    LatestMetrics,
    plot_hr_realtime,
    render_frame,
)

logger = logging.getLogger("rppg_focus.run")


def build_source(args):
    if args.demo:
        return SyntheticSource(start=time.monotonic())
    tracker = HaarRegionTracker() if args.roi == 'auto' else None
    if args.video:
        return VideoFileIO(args.video, region_tracker=tracker).open()
    return CameraIO(args.camera, region_tracker=tracker).open()


def run(args, stop_flag=None):
    stop_flag = stop_flag or threading.Event()
    pipeline = FocusPipeline(PipelineConfig())
    latest = LatestMetrics()
    source = build_source(args)
    mirror = not args.no_mirror
    try:
        while not stop_flag.is_set():
            sample = source.next_sample()
            if sample is None:
                logger.info("end of stream")
                break
            latest.update(pipeline.push_sample(sample))

            cv2.imshow('rPPG focus', render_frame(source, latest, pipeline.baseline, mirror))
            if args.plot and latest.hr_hist:
                plot_hr_realtime(latest.hr_hist, latest.rmssd_hist, latest.focus_hist)
            key = cv2.waitKey(1) & 0xFF
            if key == ord('q'):
                stop_flag.set()
            elif key == ord('b'):
                if not pipeline.calibrate_baseline(latest.hr, latest.rmssd):
                    logger.info("baseline needs both HR and RMSSD; keep still a little longer")
            if args.demo:
                # pace the synthetic source in real time
                time.sleep(max(0.0, sample.timestamp - time.monotonic()))
    finally:
        source.release()
        cv2.destroyAllWindows()


def selftest():
    ok = True
    for result in run_self_tests():
        print(f"[{'PASS' if result.passed else 'FAIL'}] {result.name}: {result.detail}")
        ok = ok and result.passed
    return 0 if ok else 1


def main(argv=None):
    parser = argparse.ArgumentParser(description="On-device webcam heart rate, HRV (RMSSD) and trial focus score.")
    src = parser.add_mutually_exclusive_group()
    src.add_argument("--demo", action="store_true", help="Use the synthetic signal instead of a camera")
    src.add_argument("--video", default=None, help="Read frames from a video file")
    parser.add_argument("--camera", type=int, default=CAMERA_INDEX)
    parser.add_argument("--roi", choices=("auto", "center"), default="auto")
    parser.add_argument("--no-mirror", action="store_true", default=not MIRROR)
    parser.add_argument("--plot", action="store_true", help="Show matplotlib trend plots")
    parser.add_argument("--selftest", action="store_true", help="Run numerical self-tests and exit")
    parser.add_argument("--check-env", action="store_true", help="Report camera/cascade availability and exit")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.selftest:
        return selftest()
    if args.check_env:
        report = probe_environment(args.camera)
        print(f"OpenCV {report.opencv_version} cascade={'ok' if report.cascade_ok else 'missing'} "
              f"camera={'ok' if report.camera_ok else 'unavailable'} {report.detail}")
        return 0 if report.ready else 1
    try:
        run(args)
    except RuntimeError as e:
        logger.error("%s (try --demo, or --check-env for details)", e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
