# /backend/defib_simulator/playback.py
import logging
import math
from typing import List, Optional, Tuple

import numpy as np

from .constants import VISIBLE_SECONDS_BY_SPEED
from .models import WaveformBuffer

logger = logging.getLogger(__name__)


def visible_seconds_for_speed(sweep_speed_mm_s: int) -> float:
    if sweep_speed_mm_s not in VISIBLE_SECONDS_BY_SPEED:
        raise ValueError(f"Unsupported sweep speed {sweep_speed_mm_s} mm/s; expected one of {sorted(VISIBLE_SECONDS_BY_SPEED)}")
    return VISIBLE_SECONDS_BY_SPEED[sweep_speed_mm_s]


def extract_window(
    buffer: WaveformBuffer, position: float, visible_seconds: float, columns: int,
    include_markers: bool = True,
) -> Tuple[np.ndarray, List[float]]:
    """
    Maps `columns` display columns across `visible_seconds` of the circular buffer,
    starting at `position`.

    Returns the amplitude per column and the fractional column of every
    depolarization mark inside the window (the window may wrap past the end of the
    buffer). Pure: identical arguments always give identical output.
    """
    if columns <= 0:
        raise ValueError(f"columns must be positive, got {columns}")
    if visible_seconds <= 0:
        raise ValueError(f"visible_seconds must be positive, got {visible_seconds}")
    num_samples = len(buffer.samples)
    visible_samples = int(math.floor(visible_seconds * buffer.sample_rate))
    if visible_samples <= 0:
        raise ValueError(f"visible window of {visible_seconds}s is shorter than one sample")
    if visible_samples >= num_samples:
        raise ValueError(f"visible window of {visible_seconds}s does not fit in a {buffer.duration_sec:.0f}s buffer")

    start_idx = int(math.floor(position)) % num_samples
    # floor(column / columns * visible_samples), in integers
    sample_offsets = np.arange(columns, dtype=np.int64) * visible_samples // columns
    amplitudes = buffer.samples[(start_idx + sample_offsets) % num_samples]

    marker_columns: List[float] = []
    if include_markers and buffer.depolarization_marks.size:
        # distance from window start, measured forward around the loop
        delta = (buffer.depolarization_marks - start_idx) % num_samples
        in_window = np.sort(delta[delta <= visible_samples])
        marker_columns = (in_window / visible_samples * columns).tolist()
    return amplitudes, marker_columns


class PlaybackClock:
    """Advances a circular read position at exactly sample_rate samples per wall-clock second."""

    def __init__(self, buffer: WaveformBuffer):
        self.buffer = buffer
        self.position = 0.0
        self._last_timestamp: Optional[float] = None

    def load(self, buffer: WaveformBuffer) -> None:
        self.buffer = buffer
        self.position = 0.0

    def advance(self, elapsed_seconds: float) -> float:
        if elapsed_seconds > 0:
            self.position = (self.position + elapsed_seconds * self.buffer.sample_rate) % len(self.buffer.samples)
        return self.position

    def tick(self, now: float) -> float:
        # first tick after start only records the timestamp
        if self._last_timestamp is None:
            self._last_timestamp = now
        elapsed = now - self._last_timestamp
        # never rewind the reference, or the skipped interval is counted twice
        self._last_timestamp = max(self._last_timestamp, now)
        if elapsed < 0:
            logger.warning(f"Clock went backwards by {-elapsed:.3f}s; holding position")
        return self.advance(elapsed)

    def window(self, visible_seconds: float, columns: int, show_sync: bool = False) -> Tuple[np.ndarray, List[float]]:
        return extract_window(self.buffer, self.position, visible_seconds, columns, include_markers=show_sync)
