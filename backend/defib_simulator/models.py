# /backend/defib_simulator/models.py
# Core value types shared by the synthesizers, the catalog and the therapy model
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np

from .constants import SAMPLE_RATE


class UnknownRhythmError(ValueError):
    pass


class RhythmClass(str, Enum):
    SINUS = "sinus"
    SVT = "svt"
    AFIB_RVR = "afib_rvr"
    VT_PULSE = "vt_pulse"
    PVT = "pvt"
    VF = "vf"
    ASYSTOLE = "asystole"
    PEA_NARROW = "pea_narrow"

    @classmethod
    def parse(cls, value) -> "RhythmClass":
        if isinstance(value, cls): return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownRhythmError(f"Unknown rhythm: {value!r}") from None


@dataclass(frozen=True, eq=False)
class WaveformBuffer:
    """
    Pre-generated, loopable trace for one rhythm.

    Both arrays are flagged read-only on construction: a buffer is written once by
    its synthesizer and can then be read by a renderer while the next one is built.
    """
    rhythm: RhythmClass
    samples: np.ndarray
    depolarization_marks: np.ndarray
    sample_rate: int = SAMPLE_RATE

    def __post_init__(self):
        samples = np.asarray(self.samples, dtype=np.float64)
        marks = np.asarray(self.depolarization_marks, dtype=np.int64)
        if len(samples) == 0:
            raise ValueError("Waveform buffer must contain at least one sample")
        if marks.size:
            if marks[0] < 0 or marks[-1] >= len(samples):
                raise ValueError("Depolarization mark outside of buffer")
            if np.any(np.diff(marks) <= 0):
                raise ValueError("Depolarization marks must be strictly increasing")
        samples.flags.writeable = False
        marks.flags.writeable = False
        object.__setattr__(self, "samples", samples)
        object.__setattr__(self, "depolarization_marks", marks)

    def __len__(self): return len(self.samples)

    @property
    def duration_sec(self) -> float:
        return len(self.samples) / self.sample_rate


@dataclass(frozen=True)
class RhythmProfile:
    rhythm: RhythmClass
    label: str
    description: str
    shockable: bool  # unsynchronized defib indicated
    sync_recommended: bool  # synchronized cardioversion indicated
    syncable: bool  # has R-peaks for sync markers
    generator: Callable[[Optional[np.random.Generator]], WaveformBuffer]


@dataclass(frozen=True)
class TherapyResult:
    appropriate: bool
    converted: bool
    next_rhythm: RhythmClass
    message: str
    energy_j: float
    synchronized: bool
