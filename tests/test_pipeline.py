import numpy as np
import pytest

from rppg_focus.config import InvalidConfiguration, PipelineConfig
from rppg_focus.pipeline.metrics import focus_score, rmssd
from rppg_focus.pipeline.rppg_pipeline import FocusPipeline, OutOfOrderTick, TickOutputs
from rppg_focus.utils.camera_io import SyntheticSource


def _run_demo(seconds=40, seed=0, config=None, jitter=0.0):
    pipeline = FocusPipeline(config)
    source = SyntheticSource(rng=np.random.default_rng(seed), duration=seconds, jitter=jitter)
    outputs = []
    while True:
        sample = source.next_sample()
        if sample is None:
            break
        outputs.append(pipeline.push_sample(sample))
    return pipeline, outputs


def test_demo_signal_end_to_end():
    pipeline, outputs = _run_demo()
    hrs = [o.heart_rate_bpm for o in outputs if o.heart_rate_bpm is not None]
    assert hrs
    assert abs(hrs[-1] - 72) <= 3
    assert outputs[-1].quality_ratio is not None and outputs[-1].quality_ratio > 1

    assert any(o.rmssd_ms is not None for o in outputs)
    scores = [o.focus_score for o in outputs if o.focus_score is not None]
    assert scores and all(0 <= s <= 100 for s in scores)

    ibis = list(pipeline.buffer.ibis)
    assert len(ibis) == 20
    assert 0.75 < float(np.median(ibis)) < 0.92


def test_outputs_absent_until_enough_data():
    _, outputs = _run_demo(seconds=6)
    first = outputs[0]
    assert isinstance(first, TickOutputs)
    assert first.heart_rate_bpm is None and first.quality_ratio is None
    assert first.rmssd_ms is None and first.focus_score is None
    assert len(first.filtered_segment) == 1
    # at 30 Hz the spectral estimate needs more than 120 samples
    assert outputs[100].heart_rate_bpm is None
    assert outputs[130].heart_rate_bpm is not None


def test_filtered_segment_is_analysis_window():
    pipeline, outputs = _run_demo(seconds=20)
    seg = outputs[-1].filtered_segment
    assert 12 * 30 - 2 <= len(seg) <= 12 * 30 + 2
    assert np.array_equal(seg, np.asarray(pipeline.buffer.filtered_values[-len(seg):]))


def test_out_of_order_tick_rejected_without_side_effects():
    pipeline = FocusPipeline()
    pipeline.push_tick(1.0, 128.0)
    pipeline.push_tick(1.05, 129.0)
    state = pipeline.state
    snapshot = (
        list(state.buffer.timestamps), list(state.buffer.raw_values), list(state.buffer.filtered_values),
        state.clock.fps_ema, state.clock.last_ts, state.filters.hp.y1, state.filters.lp.y1,
    )
    for ts in (1.05, 0.5):
        with pytest.raises(OutOfOrderTick):
            pipeline.push_tick(ts, 130.0)
    assert snapshot == (
        list(state.buffer.timestamps), list(state.buffer.raw_values), list(state.buffer.filtered_values),
        state.clock.fps_ema, state.clock.last_ts, state.filters.hp.y1, state.filters.lp.y1,
    )


def test_non_finite_tick_rejected():
    pipeline = FocusPipeline()
    pipeline.push_tick(0.0, 128.0)
    with pytest.raises(ValueError):
        pipeline.push_tick(0.1, float('nan'))
    with pytest.raises(ValueError):
        pipeline.push_tick(float('inf'), 1.0)
    assert len(pipeline.buffer) == 1


def test_deterministic_for_identical_ticks():
    _, a = _run_demo(seconds=15, seed=4, jitter=0.3)
    _, b = _run_demo(seconds=15, seed=4, jitter=0.3)
    assert len(a) == len(b)
    for x, y in zip(a, b):
        assert (x.heart_rate_bpm, x.quality_ratio, x.rmssd_ms, x.focus_score) == \
            (y.heart_rate_bpm, y.quality_ratio, y.rmssd_ms, y.focus_score)
        assert np.array_equal(x.filtered_segment, y.filtered_segment)


def test_retention_invariant_with_jittered_ticks():
    pipeline = FocusPipeline(PipelineConfig(max_retention_seconds=5))
    source = SyntheticSource(rng=np.random.default_rng(2), duration=20, jitter=0.8)
    while True:
        sample = source.next_sample()
        if sample is None:
            break
        pipeline.push_sample(sample)
        t = pipeline.buffer.timestamps
        assert t[-1] - t[0] <= 5
        assert all(a < b for a, b in zip(t, t[1:]))
        # filters follow the clock every tick
        assert pipeline.state.filters.hp.fs == pipeline.sampling_rate
        assert pipeline.state.filters.lp.fs == pipeline.sampling_rate


def test_baseline_controls():
    pipeline = FocusPipeline()
    assert (pipeline.baseline.heart_rate_bpm, pipeline.baseline.rmssd_ms) == (70.0, 40.0)
    pipeline.set_baseline(80, 30)
    assert (pipeline.baseline.heart_rate_bpm, pipeline.baseline.rmssd_ms) == (80.0, 30.0)
    assert pipeline.calibrate_baseline(None, 35) is False
    assert pipeline.calibrate_baseline(75, 0) is False
    assert pipeline.baseline.rmssd_ms == 30.0
    assert pipeline.calibrate_baseline(75, 35) is True
    assert (pipeline.baseline.heart_rate_bpm, pipeline.baseline.rmssd_ms) == (75.0, 35.0)


def test_focus_uses_last_hr_and_current_baseline():
    pipeline = FocusPipeline()
    pipeline.set_baseline(100, 10)
    source = SyntheticSource(rng=np.random.default_rng(9), duration=30)
    seen = 0
    while True:
        sample = source.next_sample()
        if sample is None:
            break
        out = pipeline.push_sample(sample)
        if out.focus_score is None:
            continue
        seen += 1
        expected = focus_score(pipeline.state.last_hr_bpm, rmssd(pipeline.buffer.ibis), pipeline.baseline)
        assert out.focus_score == expected
    assert seen > 10


@pytest.mark.parametrize("kwargs", [
    {"max_retention_seconds": 0},
    {"max_retention_seconds": -5},
    {"spectral_band_hz": (3.0, 0.7)},
    {"spectral_band_hz": (1.0, 1.0)},
    {"spectral_bins": 1},
    {"peak_window_seconds": 0},
    {"refractory_period_seconds": -0.1},
    {"max_ibi_count": 0},
])
def test_invalid_configuration_fails_fast(kwargs):
    with pytest.raises(InvalidConfiguration):
        PipelineConfig(**kwargs)


def test_invalid_configuration_is_value_error():
    assert issubclass(InvalidConfiguration, ValueError)
    assert issubclass(OutOfOrderTick, ValueError)


def test_first_focus_is_neutral_before_hr_and_rmssd():
    _, outputs = _run_demo(seconds=10, seed=3)
    first = next(o for o in outputs if o.focus_score is not None)
    assert first.heart_rate_bpm is None and first.rmssd_ms is None
    assert first.focus_score == 50
