# /backend/defib_simulator/rhythm_logic.py
import logging
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .constants import (
    SAMPLE_RATE, BUFFER_SECONDS, BASELINE_MV, MIN_CYCLE_SAMPLES, AFIB_RR_BOUNDS_SEC,
    REGULAR_NOISE_MV, ASYSTOLE_NOISE_MV,
    SINUS_PARAMS, SVT_PARAMS, PEA_NARROW_PARAMS, AFIB_PARAMS,
    VT_PULSE_PARAMS, PVT_PARAMS, VF_PARAMS,
)
from .beat_generation import place_qrs_triplet, place_regular_beat
from .models import RhythmClass, WaveformBuffer
from .waveform_primitives import (
    add_gaussian, baseline_wander, ensure_rng, generate_fibrillatory_baseline, jitter, uniform_noise,
)

logger = logging.getLogger(__name__)


def _finish(rhythm: RhythmClass, signal: np.ndarray, r_peaks: List[int], fs: int) -> WaveformBuffer:
    logger.debug(f"Synthesized {rhythm.value}: {len(signal)} samples, {len(r_peaks)} R-peaks")
    return WaveformBuffer(rhythm=rhythm, samples=signal, depolarization_marks=np.array(r_peaks, dtype=np.int64), sample_rate=fs)


# --- Regular Conduction (Sinus, SVT, PEA) ---
def generate_regular_ecg(
    rhythm: RhythmClass, params: Dict[str, Any],
    rng: Optional[np.random.Generator] = None,
    duration_sec: float = BUFFER_SECONDS, fs: int = SAMPLE_RATE,
) -> WaveformBuffer:
    rng = ensure_rng(rng)
    num_samples = int(duration_sec * fs)
    signal = np.full(num_samples, BASELINE_MV)
    r_peaks: List[int] = []
    min_rate, max_rate = params["rate_bounds_bpm"]

    onset = 0.0
    while onset < num_samples:
        heart_rate_bpm = min(max_rate, max(min_rate, jitter(rng, params["heart_rate_bpm"], params["rate_jitter"])))
        cycle_samples = max(MIN_CYCLE_SAMPLES, 60.0 / heart_rate_bpm * fs)
        r_center = place_regular_beat(signal, onset, heart_rate_bpm, params, rng, fs)
        r_index = int(round(r_center))
        if r_index < num_samples and (not r_peaks or r_index > r_peaks[-1]):
            r_peaks.append(r_index)
        onset += cycle_samples

    signal += baseline_wander(rng, num_samples, fs)
    signal += uniform_noise(rng, num_samples, REGULAR_NOISE_MV)
    return _finish(rhythm, signal, r_peaks, fs)


# --- AF with RVR: fibrillatory baseline + memoryless R-R ---
def generate_afib_rvr(
    rng: Optional[np.random.Generator] = None, params: Dict[str, Any] = AFIB_PARAMS,
    duration_sec: float = BUFFER_SECONDS, fs: int = SAMPLE_RATE,
) -> WaveformBuffer:
    rng = ensure_rng(rng)
    num_samples = int(duration_sec * fs)
    signal = generate_fibrillatory_baseline(
        rng, num_samples, params["f_wave_hz_range"], params["f_wave_amplitude"], params["noise_mv"], fs,
    )
    r_peaks: List[int] = []

    mean_rr_sec = 60.0 / max(params["mean_rate_bpm"], 1.0)
    min_rr_sec, max_rr_sec = AFIB_RR_BOUNDS_SEC
    spread = params["rr_spread_sec"]
    t = rng.uniform(0.1, max(0.1, mean_rr_sec * 0.6))
    while t * fs < num_samples:
        r_index = int(np.floor(t * fs))
        place_qrs_triplet(
            signal, r_index,
            params["q_offset"], params["q_amplitude"], params["q_sigma"],
            params["r_amplitude"], params["r_sigma"],
            params["s_offset"], params["s_amplitude"], params["s_sigma"],
        )
        add_gaussian(signal, r_index + int(params["t_delay_sec"] * fs), params["t_amplitude"], params["t_sigma"])
        r_peaks.append(r_index)
        # each R-R is drawn independently of the previous one
        t += min(max_rr_sec, max(min_rr_sec, rng.uniform(mean_rr_sec - spread, mean_rr_sec + spread)))

    return _finish(RhythmClass.AFIB_RVR, signal, r_peaks, fs)


# --- Monomorphic VT (broad QRS) with occasional capture/fusion beats ---
def generate_vt(
    rhythm: RhythmClass, params: Dict[str, Any],
    rng: Optional[np.random.Generator] = None,
    duration_sec: float = BUFFER_SECONDS, fs: int = SAMPLE_RATE,
) -> WaveformBuffer:
    rng = ensure_rng(rng)
    num_samples = int(duration_sec * fs)
    signal = np.full(num_samples, BASELINE_MV)
    r_peaks: List[int] = []

    heart_rate_bpm = max(params["heart_rate_bpm"], 1.0)
    cycle_samples = max(MIN_CYCLE_SAMPLES, int(np.floor(60.0 / heart_rate_bpm * fs)))
    min_gap, max_gap = params["capture_interval_cycles"]
    capture_due = int(rng.integers(min_gap, max_gap + 1))

    k = 0
    while k * cycle_samples < num_samples:
        base = k * cycle_samples
        center = base + params["r_cycle_fraction"] * cycle_samples
        width_scale = 1.0
        is_capture = False
        if k == capture_due:
            if rng.random() < params["capture_probability"]:
                width_scale = params["capture_width_scale"]
                is_capture = True
            capture_due = k + int(rng.integers(min_gap, max_gap + 1))

        place_qrs_triplet(
            signal, center,
            params["q_offset"] * width_scale, params["q_amplitude"], params["q_sigma"] * width_scale,
            params["r_amplitude"], params["r_sigma"] * width_scale,
            params["s_offset"] * width_scale, params["s_amplitude"], params["s_sigma"] * width_scale,
        )
        if is_capture:
            add_gaussian(signal, center, params["capture_spike_amplitude"], params["capture_spike_sigma"])
        r_index = int(round(center))
        if r_index < num_samples:
            r_peaks.append(r_index)
        # small T
        add_gaussian(signal, base + params["t_cycle_fraction"] * cycle_samples, params["t_amplitude"], params["t_sigma"])
        k += 1

    signal += uniform_noise(rng, num_samples, params["noise_mv"])
    return _finish(rhythm, signal, r_peaks, fs)


# --- Ventricular Fibrillation: wandering sum of sines ---
def generate_vf(
    rng: Optional[np.random.Generator] = None, params: Dict[str, Any] = VF_PARAMS,
    duration_sec: float = BUFFER_SECONDS, fs: int = SAMPLE_RATE,
) -> WaveformBuffer:
    rng = ensure_rng(rng)
    num_samples = int(duration_sec * fs)
    block = params["wander_every_samples"]
    num_blocks = -(-num_samples // block)

    frequencies, amplitudes = vf_band_schedule(rng, num_blocks, params)
    phases = rng.uniform(0, 2 * np.pi, frequencies.shape[1])

    signal = np.empty(num_samples)
    for b, start in enumerate(range(0, num_samples, block)):
        end = min(num_samples, start + block)
        t = np.arange(end - start)[:, None] / fs
        signal[start:end] = (amplitudes[b] * np.sin(phases + 2 * np.pi * frequencies[b] * t)).sum(axis=1)
        # carry each band's phase across the block edge so the trace stays continuous
        phases = (phases + 2 * np.pi * frequencies[b] * (end - start) / fs) % (2 * np.pi)

    signal += uniform_noise(rng, num_samples, params["noise_mv"])
    return _finish(RhythmClass.VF, signal, [], fs)


def vf_band_schedule(
    rng: np.random.Generator, num_blocks: int, params: Dict[str, Any] = VF_PARAMS,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Per-block frequency and amplitude of each VF band, shape (num_blocks, num_bands).

    Both random-walk in bounded steps; frequencies stay inside their band and
    amplitudes inside `amplitude_bounds`.
    """
    bands = params["frequency_bands_hz"]
    amp_bounds = params["amplitude_bounds"]
    frequencies = np.empty((num_blocks, len(bands)))
    amplitudes = np.empty((num_blocks, len(bands)))

    freq = [rng.uniform(*band) for band in bands]
    amp = [rng.uniform(*initial) for initial in params["initial_amplitudes"]]
    for b in range(num_blocks):
        # coarse -> fine: frequencies and amplitudes drift in bounded steps
        for i, band in enumerate(bands):
            freq[i] = float(np.clip(jitter(rng, freq[i], params["frequency_jitter"]), *band))
            amp[i] = float(np.clip(jitter(rng, amp[i], params["amplitude_jitter"][i]), *amp_bounds[i]))
        frequencies[b] = freq
        amplitudes[b] = amp
    return frequencies, amplitudes


def generate_asystole(
    rng: Optional[np.random.Generator] = None,
    duration_sec: float = BUFFER_SECONDS, fs: int = SAMPLE_RATE,
) -> WaveformBuffer:
    rng = ensure_rng(rng)
    num_samples = int(duration_sec * fs)
    return _finish(RhythmClass.ASYSTOLE, uniform_noise(rng, num_samples, ASYSTOLE_NOISE_MV), [], fs)


# --- Scenario generators (one per rhythm class) ---
def generate_sinus(rng: Optional[np.random.Generator] = None) -> WaveformBuffer:
    return generate_regular_ecg(RhythmClass.SINUS, SINUS_PARAMS, rng)


def generate_svt(rng: Optional[np.random.Generator] = None) -> WaveformBuffer:
    return generate_regular_ecg(RhythmClass.SVT, SVT_PARAMS, rng)


def generate_pea_narrow(rng: Optional[np.random.Generator] = None) -> WaveformBuffer:
    # Electrical activity without a pulse: on the monitor this is sinus brady
    return generate_regular_ecg(RhythmClass.PEA_NARROW, PEA_NARROW_PARAMS, rng)


def generate_vt_pulse(rng: Optional[np.random.Generator] = None) -> WaveformBuffer:
    return generate_vt(RhythmClass.VT_PULSE, VT_PULSE_PARAMS, rng)


def generate_pvt(rng: Optional[np.random.Generator] = None) -> WaveformBuffer:
    return generate_vt(RhythmClass.PVT, PVT_PARAMS, rng)
