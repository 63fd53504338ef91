# /backend/defib_simulator/waveform_primitives.py
from typing import Optional

import numpy as np

from .constants import (
    SAMPLE_RATE, PULSE_SPAN_SIGMAS, BASELINE_DRIFT_STEP_SEC,
    BASELINE_DRIFT_STEP_MV, BASELINE_DRIFT_MAX_MV,
)


def ensure_rng(rng: Optional[np.random.Generator] = None) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


# --- Waveform Primitives ---
def add_gaussian(signal: np.ndarray, center: float, amplitude: float, sigma_samples: float) -> None:
    """Adds a gaussian pulse in place, truncated to +/- PULSE_SPAN_SIGMAS around center."""
    if sigma_samples <= 1e-9 or amplitude == 0: return
    start = max(0, int(np.floor(center - PULSE_SPAN_SIGMAS * sigma_samples)))
    end = min(len(signal) - 1, int(np.ceil(center + PULSE_SPAN_SIGMAS * sigma_samples)))
    if start > end: return
    x = (np.arange(start, end + 1) - center) / sigma_samples
    signal[start:end + 1] += amplitude * np.exp(-0.5 * x * x)


def jitter(rng: np.random.Generator, base: float, fraction: float) -> float:
    return base * (1.0 + rng.uniform(-fraction, fraction))


def uniform_noise(rng: np.random.Generator, num_samples: int, amplitude_mv: float) -> np.ndarray:
    return rng.uniform(-amplitude_mv, amplitude_mv, num_samples)


def baseline_wander(rng: np.random.Generator, num_samples: int, fs: int = SAMPLE_RATE) -> np.ndarray:
    """Random-walk baseline, re-perturbed every BASELINE_DRIFT_STEP_SEC and linearly interpolated."""
    step_samples = max(1, int(BASELINE_DRIFT_STEP_SEC * fs))
    knot_idx = np.arange(0, num_samples + step_samples, step_samples)
    steps = rng.uniform(-BASELINE_DRIFT_STEP_MV, BASELINE_DRIFT_STEP_MV, len(knot_idx))
    knots = np.zeros(len(knot_idx))
    level = 0.0
    for k, step in enumerate(steps):
        level = float(np.clip(level + step, -BASELINE_DRIFT_MAX_MV, BASELINE_DRIFT_MAX_MV))
        knots[k] = level
    return np.interp(np.arange(num_samples), knot_idx, knots)


# --- Fibrillatory Baseline for AFib ---
def generate_fibrillatory_baseline(
    rng: np.random.Generator, num_samples: int,
    frequency_hz_range: tuple, amplitude_mv: float, noise_mv: float,
    fs: int = SAMPLE_RATE,
) -> np.ndarray:
    f_wave_hz = rng.uniform(*frequency_hz_range)
    time_axis = np.arange(num_samples) / fs
    f_waves = amplitude_mv * np.sin(2 * np.pi * f_wave_hz * time_axis)
    return f_waves + uniform_noise(rng, num_samples, noise_mv)
