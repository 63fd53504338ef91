import numpy as np
import pytest

from defib_simulator import catalog
from defib_simulator.beat_generation import calculate_qt_from_heart_rate, place_regular_beat
from defib_simulator.constants import (
    BUFFER_SECONDS, MIN_CYCLE_SAMPLES, SAMPLE_RATE, SINUS_PARAMS, SVT_PARAMS, VF_PARAMS, VT_PARAMS,
)
from defib_simulator.models import RhythmClass, UnknownRhythmError, WaveformBuffer
from defib_simulator.rhythm_logic import generate_regular_ecg, generate_vf, generate_vt, vf_band_schedule
from defib_simulator.waveform_primitives import add_gaussian

EXPECTED_SAMPLES = SAMPLE_RATE * BUFFER_SECONDS

# nominal beats per buffer and allowed relative deviation
EXPECTED_BEATS = {
    RhythmClass.SINUS: (75 * 2, 0.10),
    RhythmClass.SVT: (180 * 2, 0.10),
    RhythmClass.PEA_NARROW: (50 * 2, 0.10),
    RhythmClass.AFIB_RVR: (150 * 2, 0.15),
    RhythmClass.VT_PULSE: (160 * 2, 0.10),
    RhythmClass.PVT: (170 * 2, 0.10),
}


@pytest.mark.parametrize("rhythm", list(RhythmClass))
def test_buffer_length_and_marks_in_bounds(buffers, rhythm):
    buffer = buffers[rhythm]
    assert buffer.rhythm == rhythm
    assert len(buffer.samples) == EXPECTED_SAMPLES
    assert buffer.duration_sec == BUFFER_SECONDS
    assert np.all(np.isfinite(buffer.samples))
    marks = buffer.depolarization_marks
    if marks.size:
        assert np.all(np.diff(marks) > 0)
        assert marks[0] >= 0
        assert marks[-1] < EXPECTED_SAMPLES


@pytest.mark.parametrize("rhythm", [RhythmClass.VF, RhythmClass.ASYSTOLE])
def test_chaotic_and_flat_rhythms_have_no_marks(buffers, rhythm):
    assert buffers[rhythm].depolarization_marks.size == 0


@pytest.mark.parametrize("rhythm", list(EXPECTED_BEATS))
def test_beat_count_matches_rate(buffers, rhythm):
    nominal, tolerance = EXPECTED_BEATS[rhythm]
    count = buffers[rhythm].depolarization_marks.size
    assert abs(count - nominal) <= nominal * tolerance


@pytest.mark.parametrize("rhythm", list(RhythmClass))
def test_successive_loads_differ(rhythm):
    first = catalog.synthesize(rhythm)
    second = catalog.synthesize(rhythm)
    assert not np.array_equal(first.samples, second.samples)


def test_same_seed_reproduces_buffer():
    first = catalog.synthesize(RhythmClass.AFIB_RVR, np.random.default_rng(5))
    second = catalog.synthesize(RhythmClass.AFIB_RVR, np.random.default_rng(5))
    np.testing.assert_array_equal(first.samples, second.samples)
    np.testing.assert_array_equal(first.depolarization_marks, second.depolarization_marks)


def test_buffers_are_write_once(buffers):
    buffer = buffers[RhythmClass.SINUS]
    with pytest.raises(ValueError):
        buffer.samples[0] = 5.0
    with pytest.raises(ValueError):
        buffer.depolarization_marks[0] = 1


def test_afib_is_irregular_and_sinus_is_not(buffers):
    def rr_variation(rhythm):
        rr = np.diff(buffers[rhythm].depolarization_marks)
        return rr.std() / rr.mean()

    assert rr_variation(RhythmClass.SINUS) < 0.08
    assert rr_variation(RhythmClass.AFIB_RVR) > 0.15


def test_afib_rr_intervals_respect_bounds(buffers):
    rr_sec = np.diff(buffers[RhythmClass.AFIB_RVR].depolarization_marks) / SAMPLE_RATE
    assert rr_sec.min() >= 0.28 - 1 / SAMPLE_RATE
    assert rr_sec.max() <= 1.1 + 1 / SAMPLE_RATE


def test_vf_is_large_and_asystole_is_flat(buffers):
    assert buffers[RhythmClass.VF].samples.std() > 0.2
    assert np.abs(buffers[RhythmClass.ASYSTOLE].samples).max() <= 0.015


def test_r_peak_is_the_tallest_point_of_a_sinus_beat(buffers):
    buffer = buffers[RhythmClass.SINUS]
    r_index = int(buffer.depolarization_marks[3])
    neighbourhood = buffer.samples[r_index - 40:r_index + 40]
    assert buffer.samples[r_index] == pytest.approx(neighbourhood.max(), abs=0.1)
    assert buffer.samples[r_index] > 0.7


def test_vt_capture_beats_keep_one_mark_per_cycle():
    params = dict(VT_PARAMS, capture_interval_cycles=(1, 1), capture_probability=1.0)
    buffer = generate_vt(RhythmClass.PVT, params, np.random.default_rng(3), duration_sec=10)
    cycle = int(np.floor(60.0 / params["heart_rate_bpm"] * SAMPLE_RATE))
    assert np.all(np.diff(buffer.depolarization_marks) == cycle)


def test_degenerate_rates_are_guarded():
    # zero rate clamps to the physiologic floor instead of dividing by zero
    params = dict(SINUS_PARAMS, heart_rate_bpm=0.0)
    buffer = generate_regular_ecg(RhythmClass.SINUS, params, np.random.default_rng(3), duration_sec=4)
    assert 2 <= buffer.depolarization_marks.size <= 4

    # absurd rate hits the minimum cycle length instead of looping forever
    params = dict(VT_PARAMS, heart_rate_bpm=1e9)
    buffer = generate_vt(RhythmClass.VT_PULSE, params, np.random.default_rng(3), duration_sec=1)
    assert np.all(np.diff(buffer.depolarization_marks) == MIN_CYCLE_SAMPLES)


def test_unknown_rhythm_fails_fast():
    with pytest.raises(UnknownRhythmError):
        catalog.synthesize("torsades")
    with pytest.raises(ValueError):
        catalog.select("nsr")


def test_buffer_rejects_marks_outside_samples():
    with pytest.raises(ValueError):
        WaveformBuffer(RhythmClass.SINUS, np.zeros(10), np.array([2, 10]))
    with pytest.raises(ValueError):
        WaveformBuffer(RhythmClass.SINUS, np.zeros(10), np.array([5, 5]))


def test_qt_rate_correction_is_clamped():
    assert calculate_qt_from_heart_rate(60) == pytest.approx(400.0)
    assert calculate_qt_from_heart_rate(200) == 280.0
    assert calculate_qt_from_heart_rate(30) == 460.0


def test_gaussian_pulse_peak_and_truncation():
    signal = np.zeros(200)
    add_gaussian(signal, 100, 2.0, 5)
    assert signal[100] == pytest.approx(2.0)
    assert signal[79] == 0.0
    assert signal[121] == 0.0
    assert signal[90] == pytest.approx(2.0 * np.exp(-2.0))


def test_catalog_flags():
    assert {p.rhythm for p in catalog.list_profiles() if p.shockable} == {RhythmClass.VF, RhythmClass.PVT}
    assert {p.rhythm for p in catalog.list_profiles() if not p.syncable} == {RhythmClass.VF, RhythmClass.ASYSTOLE}
    assert catalog.select("svt").sync_recommended


def test_random_case_never_picks_sinus():
    gen = np.random.default_rng(0)
    picks = {catalog.random_case(gen) for _ in range(200)}
    assert RhythmClass.SINUS not in picks
    assert picks == set(catalog.RANDOM_CASE_POOL)


def test_svt_hides_the_p_wave():
    # one beat at onset 100: an SVT beat has no atrial wave ahead of its QRS
    svt = np.zeros(1000)
    place_regular_beat(svt, 100, 180, SVT_PARAMS, np.random.default_rng(1))
    assert np.abs(svt[:100]).max() < 1e-3

    sinus = np.zeros(1000)
    place_regular_beat(sinus, 100, 75, SINUS_PARAMS, np.random.default_rng(1))
    assert sinus[:100].max() > 0.01


def test_svt_retrograde_p_in_about_a_third_of_beats():
    # with and without the retrograde pulse the random draws before it are identical
    no_retrograde = dict(SVT_PARAMS, retrograde_p_probability=0.0)
    trials = 2000
    seen = 0
    for seed in range(trials):
        with_p = np.zeros(600)
        without_p = np.zeros(600)
        r_center = place_regular_beat(with_p, 100, 180, SVT_PARAMS, np.random.default_rng(seed))
        place_regular_beat(without_p, 100, 180, no_retrograde, np.random.default_rng(seed))
        diff = with_p - without_p
        if diff.min() < -0.05:
            seen += 1
            # negative pulse shortly after R
            assert np.argmin(diff) == pytest.approx(r_center + 0.06 * SAMPLE_RATE, abs=1)
            assert diff.min() == pytest.approx(-0.08 * SVT_PARAMS["amplitude_scale"], abs=0.005)
    assert seen / trials == pytest.approx(0.30, abs=0.04)


def test_regular_rhythms_carry_bounded_baseline_drift():
    flat = dict(SINUS_PARAMS, p_amplitude=0.0, q_amplitude=0.0, r_amplitude=0.0, s_amplitude=0.0, t_amplitude=0.0)
    buffer = generate_regular_ecg(RhythmClass.SINUS, flat, np.random.default_rng(8))
    # drift is capped at 0.08 mV, noise at 0.02 mV
    assert np.abs(buffer.samples).max() <= 0.1 + 1e-9
    smoothed = np.convolve(buffer.samples, np.ones(250) / 250, mode="valid")
    assert np.ptp(smoothed) > 0.01


def test_vf_bands_wander_within_bounds():
    frequencies, amplitudes = vf_band_schedule(np.random.default_rng(4), 120)
    assert frequencies.shape == amplitudes.shape == (120, 3)
    for i, (low, high) in enumerate(VF_PARAMS["frequency_bands_hz"]):
        assert np.all((frequencies[:, i] >= low) & (frequencies[:, i] <= high))
        assert np.ptp(frequencies[:, i]) > 0
    for i, (low, high) in enumerate(VF_PARAMS["amplitude_bounds"]):
        assert np.all((amplitudes[:, i] >= low) & (amplitudes[:, i] <= high))
        assert np.ptp(amplitudes[:, i]) > 0


def test_vf_trace_is_continuous_across_wander_blocks():
    samples = generate_vf(np.random.default_rng(6)).samples
    # sine slope plus one amplitude step plus noise stays well under 0.75 mV per sample
    assert np.abs(np.diff(samples)).max() < 0.75


def test_vt_capture_beats_are_narrow_and_spaced():
    buffer = generate_vt(RhythmClass.PVT, VT_PARAMS, np.random.default_rng(12))
    marks = buffer.depolarization_marks
    # the R lobe 15 samples before the peak: ~0.65 mV for a wide beat, ~0.4 mV for a capture
    shoulder = buffer.samples[marks - 15]
    captures = np.flatnonzero(shoulder < 0.52)
    assert np.all(shoulder[shoulder >= 0.52] > 0.6)
    assert 3 <= captures.size <= 40
    min_gap, max_gap = VT_PARAMS["capture_interval_cycles"]
    assert captures[0] >= min_gap
    assert np.diff(captures).min() >= min_gap
    # a capture is also taller: the fusion spike sits on the R peak
    assert buffer.samples[marks[captures]].mean() > buffer.samples[np.delete(marks, captures)].mean() + 0.2


def test_buffers_compare_by_identity(buffers):
    buffer = buffers[RhythmClass.SINUS]
    copy = WaveformBuffer(buffer.rhythm, buffer.samples, buffer.depolarization_marks, buffer.sample_rate)
    assert buffer == buffer
    assert buffer != copy
    assert len({buffer, copy}) == 2
