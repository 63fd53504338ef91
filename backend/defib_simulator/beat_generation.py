# /backend/defib_simulator/beat_generation.py
import math
from typing import Dict, Any

import numpy as np

from .constants import (
    SAMPLE_RATE, QT_REFERENCE_MS, QT_BOUNDS_MS, T_WAVE_QT_FRACTION,
    QRS_SIGMA_FACTOR, Q_OFFSET_FACTOR, S_OFFSET_FACTOR, Q_SIGMA_FACTOR, S_SIGMA_FACTOR,
    RETROGRADE_P_DELAY_SEC, RETROGRADE_P_AMPLITUDE, RETROGRADE_P_SIGMA_SAMPLES,
)
from .waveform_primitives import add_gaussian, jitter


def calculate_qt_from_heart_rate(heart_rate_bpm: float) -> float:
    """
    Simplified rate correction: QT = 400 * sqrt(RR), clamped to QT_BOUNDS_MS.

    Returns:
        QT interval in milliseconds
    """
    if heart_rate_bpm <= 0:
        return QT_REFERENCE_MS
    qt_ms = QT_REFERENCE_MS * math.sqrt(60.0 / heart_rate_bpm)
    return max(QT_BOUNDS_MS[0], min(QT_BOUNDS_MS[1], qt_ms))


def place_qrs_triplet(
    signal: np.ndarray, r_center: float,
    q_offset: float, q_amplitude: float, q_sigma: float,
    r_amplitude: float, r_sigma: float,
    s_offset: float, s_amplitude: float, s_sigma: float,
) -> None:
    # Q-wave (small, initial negative)
    add_gaussian(signal, r_center + q_offset, q_amplitude, q_sigma)
    # R-wave (main positive)
    add_gaussian(signal, r_center, r_amplitude, r_sigma)
    # S-wave (final negative)
    add_gaussian(signal, r_center + s_offset, s_amplitude, s_sigma)


def place_regular_beat(
    signal: np.ndarray, onset: float, heart_rate_bpm: float,
    params: Dict[str, Any], rng: np.random.Generator, fs: int = SAMPLE_RATE,
) -> float:
    """
    Draws one P-QRS-T cycle starting at sample `onset` and returns the R-peak position.

    PR, QRS width and QT are drawn independently for every beat so no two cycles
    are identical.
    """
    amp = params["amplitude_scale"]
    pr_samples = rng.uniform(*params["pr_range_sec"]) * fs
    qrs_samples = jitter(rng, params["qrs_duration_ms"], params["qrs_jitter"]) / 1000.0 * fs
    qt_samples = calculate_qt_from_heart_rate(heart_rate_bpm) / 1000.0 * fs

    # P wave (small, positive)
    if params["p_amplitude"] != 0:
        p_duration_samples = params["p_duration"] * fs
        add_gaussian(signal, onset + p_duration_samples / 2, params["p_amplitude"] * amp, p_duration_samples / 4)

    r_center = onset + pr_samples
    r_sigma = qrs_samples * QRS_SIGMA_FACTOR
    place_qrs_triplet(
        signal, r_center,
        -qrs_samples * Q_OFFSET_FACTOR, params["q_amplitude"] * amp, r_sigma * Q_SIGMA_FACTOR,
        params["r_amplitude"] * amp, r_sigma,
        qrs_samples * S_OFFSET_FACTOR, params["s_amplitude"] * amp, r_sigma * S_SIGMA_FACTOR,
    )

    if params["retrograde_p_probability"] > 0 and rng.random() < params["retrograde_p_probability"]:
        add_gaussian(signal, r_center + RETROGRADE_P_DELAY_SEC * fs, RETROGRADE_P_AMPLITUDE * amp, RETROGRADE_P_SIGMA_SAMPLES)

    # T-wave (broad, positive)
    add_gaussian(
        signal, r_center + T_WAVE_QT_FRACTION * qt_samples,
        params["t_amplitude"] * amp, params["t_sigma_qt_fraction"] * qt_samples,
    )
    return r_center
