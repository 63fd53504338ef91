# /backend/defib_simulator/api_models.py
from typing import List, Optional

from pydantic import BaseModel, Field

from .constants import MAX_COLUMNS, VISIBLE_SECONDS_BY_SPEED
from .models import RhythmClass


class RhythmInfo(BaseModel):
    id: RhythmClass
    label: str
    description: str
    shockable: bool
    sync_recommended: bool
    syncable: bool


class SynthesizeParams(BaseModel):
    rhythm: RhythmClass
    seed: Optional[int] = Field(None, ge=0, description="Seed for a reproducible buffer; random if omitted.")


class WaveformData(BaseModel):
    rhythm: RhythmClass
    sample_rate: int
    duration_sec: float
    samples: List[float]
    depolarization_marks: List[int]


class WindowParams(SynthesizeParams):
    position: float = Field(0.0, ge=0, description="Read position in samples.")
    visible_seconds: float = Field(VISIBLE_SECONDS_BY_SPEED[25], gt=0)
    columns: int = Field(900, gt=0, le=MAX_COLUMNS)
    include_markers: bool = Field(True)


class WindowData(BaseModel):
    amplitudes: List[float]
    marker_columns: List[float]


class ShockParams(BaseModel):
    rhythm: RhythmClass
    energy_j: float = Field(200.0, description="Clamped to 0-360 J.")
    synchronized: bool = Field(False)
    seed: Optional[int] = Field(None, ge=0)


class TherapyOutcome(BaseModel):
    appropriate: bool
    converted: bool
    next_rhythm: RhythmClass
    message: str
    energy_j: float
    synchronized: bool


# --- Session requests ---
class LoadRhythmParams(BaseModel):
    rhythm: RhythmClass


class ToggleParams(BaseModel):
    enabled: bool


class EnergyParams(BaseModel):
    energy_j: float = Field(..., ge=10, le=360)


class SweepSpeedParams(BaseModel):
    sweep_speed: int = Field(25, description="25 or 50 mm/s")


class GainParams(BaseModel):
    gain: int = Field(10, description="5, 10 or 20 mm/mV")


class SessionState(BaseModel):
    rhythm: RhythmInfo
    power_on: bool
    pads_on: bool
    sync_mode: bool
    energy_j: float
    sweep_speed: int
    gain: int
    charging: bool
    charged: bool
    status: str
    last_result: Optional[TherapyOutcome] = None


class FrameData(BaseModel):
    rhythm: RhythmClass
    amplitudes: List[float]
    marker_columns: List[float]
    visible_seconds: float
    gain_scale: float
    position: float
