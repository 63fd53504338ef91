# /backend/defib_simulator/constants.py

# --- Waveform Generation Constants ---
SAMPLE_RATE = 500  # Hz
BUFFER_SECONDS = 120  # seconds of pre-generated data per rhythm
BASELINE_MV = 0.0
PULSE_SPAN_SIGMAS = 4.0  # gaussian pulses are truncated beyond this many sigmas
MIN_CYCLE_SAMPLES = 20

# --- Display Constants ---
VISIBLE_SECONDS_BY_SPEED = {25: 6.0, 50: 3.0}  # mm/s sweep -> seconds on screen
GAIN_SCALE_BY_GAIN = {5: 14.0, 10: 24.0, 20: 36.0}  # mm/mV -> amplitude scaler
DEFAULT_SWEEP_SPEED = 25
DEFAULT_GAIN = 10
MAX_COLUMNS = 10000  # widest window a renderer may request

# --- Rate / Interval Bounds ---
PHYSIOLOGIC_RATE_BOUNDS_BPM = (45.0, 190.0)
QT_REFERENCE_MS = 400.0
QT_BOUNDS_MS = (280.0, 460.0)
T_WAVE_QT_FRACTION = 0.65  # T peak sits at PR + 0.65 * QT
AFIB_RR_BOUNDS_SEC = (0.28, 1.1)

# --- Noise & Baseline Wander ---
REGULAR_NOISE_MV = 0.02
BASELINE_DRIFT_STEP_SEC = 1.6
BASELINE_DRIFT_STEP_MV = 0.03
BASELINE_DRIFT_MAX_MV = 0.08
ASYSTOLE_NOISE_MV = 0.015

# --- Beat Morphology Definitions ---
# Amplitudes in mV, intervals in seconds. Q/S offsets and sigmas are fractions
# of the (jittered) QRS width in samples.
SINUS_PARAMS = {
    "heart_rate_bpm": 75.0, "rate_bounds_bpm": PHYSIOLOGIC_RATE_BOUNDS_BPM,
    "rate_jitter": 0.03, "pr_range_sec": (0.14, 0.20),
    "qrs_duration_ms": 80.0, "qrs_jitter": 0.08,
    "p_duration": 0.09, "p_amplitude": 0.18,
    "q_amplitude": -0.18, "r_amplitude": 1.1, "s_amplitude": -0.28,
    "t_amplitude": 0.35, "t_sigma_qt_fraction": 0.14,
    "amplitude_scale": 1.0,
    "retrograde_p_probability": 0.0,
}
SVT_PARAMS = SINUS_PARAMS.copy()  # AVNRT-like, P hidden in the QRS
SVT_PARAMS.update({
    "heart_rate_bpm": 180.0, "rate_bounds_bpm": (160.0, 210.0),
    "pr_range_sec": (0.08, 0.10), "qrs_duration_ms": 70.0,
    "p_amplitude": 0.0, "amplitude_scale": 0.9,
    "retrograde_p_probability": 0.30,
})
PEA_NARROW_PARAMS = SINUS_PARAMS.copy()  # looks like sinus brady, no pulse
PEA_NARROW_PARAMS.update({
    "heart_rate_bpm": 50.0, "amplitude_scale": 0.9,
})

QRS_SIGMA_FACTOR = 0.28  # width -> R sigma
Q_OFFSET_FACTOR = 0.25
S_OFFSET_FACTOR = 0.25
Q_SIGMA_FACTOR = 0.5  # relative to R sigma
S_SIGMA_FACTOR = 0.6

RETROGRADE_P_DELAY_SEC = 0.06
RETROGRADE_P_AMPLITUDE = -0.08
RETROGRADE_P_SIGMA_SAMPLES = 6.0

AFIB_PARAMS = {
    "mean_rate_bpm": 150.0, "rr_spread_sec": 0.18,
    "f_wave_hz_range": (5.0, 8.0), "f_wave_amplitude": 0.08, "noise_mv": 0.03,
    # QRS triplet in samples relative to the R index
    "q_offset": -6, "q_amplitude": -0.12, "q_sigma": 4.0,
    "r_amplitude": 0.9, "r_sigma": 6.0,
    "s_offset": 6, "s_amplitude": -0.2, "s_sigma": 5.0,
    "t_delay_sec": 0.22, "t_amplitude": 0.25, "t_sigma": 20.0,
}

VT_PARAMS = {
    "heart_rate_bpm": 170.0,
    "r_cycle_fraction": 0.3, "t_cycle_fraction": 0.62,
    "q_offset": -10, "q_amplitude": -0.18, "q_sigma": 5.0,
    "r_amplitude": 1.0, "r_sigma": 20.0,  # wide
    "s_offset": 10, "s_amplitude": -0.25, "s_sigma": 6.0,
    "t_amplitude": 0.18, "t_sigma": 18.0,
    "noise_mv": 0.02,
    # capture / fusion beats
    "capture_interval_cycles": (8, 16), "capture_probability": 0.5,
    "capture_width_scale": 0.55,
    "capture_spike_amplitude": 0.3, "capture_spike_sigma": 3.0,
}
VT_PULSE_PARAMS = VT_PARAMS.copy()
VT_PULSE_PARAMS.update({"heart_rate_bpm": 160.0})
PVT_PARAMS = VT_PARAMS.copy()

VF_PARAMS = {
    "frequency_bands_hz": ((3.0, 6.0), (6.0, 9.0), (9.0, 12.0)),
    "initial_amplitudes": ((0.5, 1.0), (0.2, 0.6), (0.1, 0.4)),
    "amplitude_bounds": ((0.3, 1.1), (0.1, 0.8), (0.05, 0.6)),
    "frequency_jitter": 0.05,
    "amplitude_jitter": (0.08, 0.10, 0.12),
    "wander_every_samples": 500,
    "noise_mv": 0.05,
}
