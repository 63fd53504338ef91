# /backend/defib_simulator/therapy.py
# Outcome model for shocks / cardioversion (toy probabilities)
import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from .models import RhythmClass, TherapyResult
from .waveform_primitives import ensure_rng

logger = logging.getLogger(__name__)

MIN_ENERGY_J = 0.0
MAX_ENERGY_J = 360.0

NOT_SHOCKABLE_TEXT = "Not a shockable rhythm. Focus on high-quality CPR/epinephrine & reversible causes."


@dataclass(frozen=True)
class ShockRule:
    """
    Conversion probability is clamp((E - energy_offset_j) / energy_span_j, min_probability, max_probability).

    `requires_sync=False` means unsynchronized defibrillation, appropriate whatever the
    sync flag says (there is nothing organized to synchronize to).
    """
    requires_sync: bool
    energy_offset_j: float
    energy_span_j: float
    min_probability: float
    max_probability: float
    degrade_probability: float
    success_text: str
    failure_text: str
    inappropriate_text: str = ""
    degraded_text: str = ""

    def conversion_probability(self, energy_j: float) -> float:
        ramp = (energy_j - self.energy_offset_j) / self.energy_span_j
        return max(self.min_probability, min(self.max_probability, ramp))


_DEFIBRILLATION = ShockRule(
    requires_sync=False, energy_offset_j=80, energy_span_j=160,  # ~0% at 80J -> 88% cap at 240J
    min_probability=0.15, max_probability=0.88, degrade_probability=0.0,
    success_text="Defibrillation at {e}J converted the rhythm → Normal Sinus.",
    failure_text="Shock at {e}J unsuccessful. Continue high-quality CPR and escalate energy.",
)

SHOCK_RULES = {
    RhythmClass.VF: _DEFIBRILLATION,
    RhythmClass.PVT: _DEFIBRILLATION,
    RhythmClass.SVT: ShockRule(
        requires_sync=True, energy_offset_j=40, energy_span_j=120,  # 50-100J commonly effective
        min_probability=0.40, max_probability=0.95, degrade_probability=0.08,
        success_text="Synchronized cardioversion at {e}J successful → Normal Sinus.",
        failure_text="Cardioversion at {e}J failed. Consider higher energy or alternative maneuvers.",
        inappropriate_text="Unsynchronized shock in SVT is inappropriate. No conversion.",
        degraded_text="Unsynchronized shock delivered in SVT → degenerated to VF. Begin defibrillation.",
    ),
    RhythmClass.AFIB_RVR: ShockRule(
        requires_sync=True, energy_offset_j=90, energy_span_j=160,  # 120-200J typical
        min_probability=0.35, max_probability=0.85, degrade_probability=0.06,
        success_text="Synchronized cardioversion at {e}J → Normal Sinus.",
        failure_text="Cardioversion at {e}J failed. Consider higher energy or repeat.",
        inappropriate_text="Unsynchronized shock in AF is inappropriate.",
        degraded_text="Unsynchronized shock in AF with RVR → degenerated to VF.",
    ),
    RhythmClass.VT_PULSE: ShockRule(
        requires_sync=True, energy_offset_j=80, energy_span_j=160,  # 100-200J
        min_probability=0.35, max_probability=0.90, degrade_probability=0.12,
        success_text="Synchronized cardioversion at {e}J → Normal Sinus.",
        failure_text="Cardioversion at {e}J failed. Increase energy or reattempt.",
        inappropriate_text="Unsynchronized shock in VT with pulse is inappropriate.",
        degraded_text="Unsynchronized shock in VT with a pulse → degenerated to VF.",
    ),
}
# SINUS, ASYSTOLE and PEA_NARROW have no rule: never appropriate, rhythm unchanged


def clamp_energy(energy_j: float) -> float:
    return max(MIN_ENERGY_J, min(MAX_ENERGY_J, float(energy_j)))


def format_energy(energy_j: float) -> str:
    return f"{round(energy_j)} J"


def conversion_probability(rhythm: Union[RhythmClass, str], energy_j: float) -> float:
    """Probability that an appropriately delivered shock converts `rhythm`; 0.0 where no shock is indicated."""
    rule = SHOCK_RULES.get(RhythmClass.parse(rhythm))
    if rule is None:
        return 0.0
    return rule.conversion_probability(clamp_energy(energy_j))


def deliver(
    rhythm: Union[RhythmClass, str], energy_j: float, synchronized: bool,
    rng: Optional[np.random.Generator] = None,
) -> TherapyResult:
    rhythm = RhythmClass.parse(rhythm)
    e = clamp_energy(energy_j)
    energy_text = f"{e:g}"
    rule = SHOCK_RULES.get(rhythm)

    appropriate = False
    converted = False
    next_rhythm = rhythm
    if rule is None:
        detail = NOT_SHOCKABLE_TEXT
    else:
        rng = ensure_rng(rng)
        appropriate = synchronized or not rule.requires_sync
        if appropriate:
            converted = bool(rng.random() < rule.conversion_probability(e))
            next_rhythm = RhythmClass.SINUS if converted else rhythm
            detail = (rule.success_text if converted else rule.failure_text).format(e=energy_text)
        elif rng.random() < rule.degrade_probability:
            next_rhythm = RhythmClass.VF
            detail = rule.degraded_text
        else:
            detail = rule.inappropriate_text

    modality = "SYNCHRONIZED" if synchronized else "UNSYNCHRONIZED"
    verdict = "[Appropriate]" if appropriate else "[Inappropriate]"
    message = f"{modality} SHOCK {format_energy(e)} → {detail} {verdict}"
    logger.info(f"Shock delivered: rhythm={rhythm.value} energy={e:g}J sync={synchronized} "
                f"appropriate={appropriate} converted={converted} next={next_rhythm.value}")
    return TherapyResult(
        appropriate=appropriate, converted=converted, next_rhythm=next_rhythm,
        message=message, energy_j=e, synchronized=synchronized,
    )
