# /backend/defib_simulator/catalog.py
# Library of scenarios: one profile per rhythm class
from typing import List, Optional, Union

import numpy as np

from .models import RhythmClass, RhythmProfile, WaveformBuffer
from .rhythm_logic import (
    generate_sinus, generate_svt, generate_afib_rvr, generate_vt_pulse,
    generate_pvt, generate_vf, generate_asystole, generate_pea_narrow,
)
from .waveform_primitives import ensure_rng

RHYTHM_CATALOG = {
    RhythmClass.SINUS: RhythmProfile(
        RhythmClass.SINUS, "Normal Sinus (75 bpm)", "Baseline for comparison.",
        shockable=False, sync_recommended=False, syncable=True, generator=generate_sinus,
    ),
    RhythmClass.SVT: RhythmProfile(
        RhythmClass.SVT, "SVT ~180", "Regular narrow-complex tachycardia.",
        shockable=False, sync_recommended=True, syncable=True, generator=generate_svt,
    ),
    RhythmClass.AFIB_RVR: RhythmProfile(
        RhythmClass.AFIB_RVR, "Atrial Fibrillation (RVR)", "Irregularly irregular narrow-complex.",
        shockable=False, sync_recommended=True, syncable=True, generator=generate_afib_rvr,
    ),
    RhythmClass.VT_PULSE: RhythmProfile(
        RhythmClass.VT_PULSE, "Monomorphic VT (with pulse)",
        "Wide-complex tachycardia, unstable → synchronized cardioversion.",
        shockable=False, sync_recommended=True, syncable=True, generator=generate_vt_pulse,
    ),
    RhythmClass.PVT: RhythmProfile(
        RhythmClass.PVT, "Pulseless VT", "Shockable rhythm (unsynchronized defib).",
        shockable=True, sync_recommended=False, syncable=True, generator=generate_pvt,
    ),
    RhythmClass.VF: RhythmProfile(
        RhythmClass.VF, "Ventricular Fibrillation", "Coarse → fine VF; shockable.",
        shockable=True, sync_recommended=False, syncable=False, generator=generate_vf,
    ),
    RhythmClass.ASYSTOLE: RhythmProfile(
        RhythmClass.ASYSTOLE, "Asystole", "Flatline (confirm in 2 leads). Not shockable.",
        shockable=False, sync_recommended=False, syncable=False, generator=generate_asystole,
    ),
    RhythmClass.PEA_NARROW: RhythmProfile(
        RhythmClass.PEA_NARROW, "PEA (narrow)", "Electrical activity, no pulse. Not shockable.",
        shockable=False, sync_recommended=False, syncable=True, generator=generate_pea_narrow,
    ),
}

_missing = set(RhythmClass) - set(RHYTHM_CATALOG)
if _missing:
    raise RuntimeError(f"Rhythm catalog is missing profiles for: {sorted(r.value for r in _missing)}")

# Sinus is the goal state, never a starting case
RANDOM_CASE_POOL = [
    RhythmClass.VF, RhythmClass.PVT, RhythmClass.SVT, RhythmClass.AFIB_RVR,
    RhythmClass.VT_PULSE, RhythmClass.ASYSTOLE, RhythmClass.PEA_NARROW,
]


def select(rhythm: Union[RhythmClass, str]) -> RhythmProfile:
    return RHYTHM_CATALOG[RhythmClass.parse(rhythm)]


def synthesize(rhythm: Union[RhythmClass, str], rng: Optional[np.random.Generator] = None) -> WaveformBuffer:
    """Builds a fresh buffer for `rhythm`; successive calls differ unless `rng` is seeded identically."""
    return select(rhythm).generator(rng)


def list_profiles() -> List[RhythmProfile]:
    return list(RHYTHM_CATALOG.values())


def random_case(rng: Optional[np.random.Generator] = None) -> RhythmClass:
    rng = ensure_rng(rng)
    return RANDOM_CASE_POOL[int(rng.integers(len(RANDOM_CASE_POOL)))]
