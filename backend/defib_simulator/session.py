# /backend/defib_simulator/session.py
import logging
from dataclasses import dataclass
from typing import List, Optional, Union

import numpy as np

from .catalog import random_case, select
from .config import DEFAULT_CHARGE_DELAY_SEC
from .constants import DEFAULT_GAIN, DEFAULT_SWEEP_SPEED, GAIN_SCALE_BY_GAIN
from .models import RhythmClass, RhythmProfile, TherapyResult
from .playback import PlaybackClock, visible_seconds_for_speed
from .therapy import MAX_ENERGY_J, deliver, format_energy
from .waveform_primitives import ensure_rng

logger = logging.getLogger(__name__)

MIN_SELECTABLE_ENERGY_J = 10.0


@dataclass(frozen=True, eq=False)
class MonitorFrame:
    rhythm: RhythmClass
    amplitudes: np.ndarray
    marker_columns: List[float]
    visible_seconds: float
    gain_scale: float
    position: float


class SimulationSession:
    """
    Monitor/defibrillator device state around the synthesis and therapy core.

    Timestamps are caller-supplied seconds from a monotonic clock; nothing here
    sleeps or blocks. Charging completes once `charge_delay_sec` has elapsed.
    """

    def __init__(
        self, rhythm: Union[RhythmClass, str] = RhythmClass.VF, energy_j: float = 200.0,
        rng: Optional[np.random.Generator] = None,
        charge_delay_sec: float = DEFAULT_CHARGE_DELAY_SEC,
    ):
        self.rng = ensure_rng(rng)
        self.charge_delay_sec = charge_delay_sec
        self.power_on = True
        self.pads_on = True
        self.sync_mode = False
        self.energy_j = energy_j
        self.sweep_speed = DEFAULT_SWEEP_SPEED
        self.gain = DEFAULT_GAIN
        self.charged = False
        self.charge_started_at: Optional[float] = None
        self.last_result: Optional[TherapyResult] = None

        self.rhythm = RhythmClass.parse(rhythm)
        self.clock = PlaybackClock(select(self.rhythm).generator(self.rng))
        self.status = "Press CHARGE, then SHOCK. Use SYNC for cardioversion."

    @property
    def profile(self) -> RhythmProfile:
        return select(self.rhythm)

    @property
    def charging(self) -> bool:
        return self.charge_started_at is not None

    # --- Rhythm loading ---
    def _swap_rhythm(self, rhythm: RhythmClass) -> None:
        self.rhythm = rhythm
        # old buffer stays valid until the new one is complete
        self.clock.load(select(rhythm).generator(self.rng))

    def _reset_charge(self) -> None:
        self.charged = False
        self.charge_started_at = None

    def load(self, rhythm: Union[RhythmClass, str]) -> RhythmProfile:
        self._swap_rhythm(RhythmClass.parse(rhythm))
        self._reset_charge()
        profile = self.profile
        self.status = f"Loaded: {profile.label}. {profile.description}"
        return profile

    def random_case(self) -> RhythmProfile:
        self._swap_rhythm(random_case(self.rng))
        self._reset_charge()
        profile = self.profile
        self.status = f"Case loaded: {profile.label}. {profile.description}"
        return profile

    # --- Device controls ---
    def toggle_power(self) -> bool:
        self.power_on = not self.power_on
        return self.power_on

    def set_pads(self, attached: bool) -> None:
        self.pads_on = attached

    def set_sync(self, enabled: bool) -> None:
        self.sync_mode = enabled

    def set_energy(self, energy_j: float) -> float:
        self.energy_j = max(MIN_SELECTABLE_ENERGY_J, min(MAX_ENERGY_J, float(energy_j)))
        return self.energy_j

    def set_sweep_speed(self, sweep_speed: int) -> None:
        visible_seconds_for_speed(sweep_speed)
        self.sweep_speed = sweep_speed

    def set_gain(self, gain: int) -> None:
        if gain not in GAIN_SCALE_BY_GAIN:
            raise ValueError(f"Unsupported gain {gain} mm/mV; expected one of {sorted(GAIN_SCALE_BY_GAIN)}")
        self.gain = gain

    def _refuse(self, status: str) -> None:
        logger.info(f"Request refused: {status}")
        self.status = status

    # --- Charge / Shock ---
    def update(self, now: float) -> None:
        if self.charging and now - self.charge_started_at >= self.charge_delay_sec:
            self.charge_started_at = None
            self.charged = True
            self.status = f"Charged: {format_energy(self.energy_j)}. Ready to shock."

    def charge(self, now: float) -> bool:
        if not self.power_on:
            self._refuse("Power is OFF.")
            return False
        if not self.pads_on:
            self._refuse("Attach pads first.")
            return False
        if self.charging:
            return False
        self.charged = False
        self.charge_started_at = now
        self.status = f"Charging to {format_energy(self.energy_j)}..."
        return True

    def shock(self, now: float) -> Optional[TherapyResult]:
        self.update(now)
        if not self.power_on:
            self._refuse("Power is OFF.")
            return None
        if not self.pads_on:
            self._refuse("Attach pads to patient first.")
            return None
        if not self.charged:
            self._refuse("Not charged.")
            return None

        self.charged = False
        result = deliver(self.rhythm, self.energy_j, self.sync_mode, self.rng)
        self.last_result = result
        self.status = result.message
        # an unchanged rhythm keeps its running trace
        if result.next_rhythm != self.rhythm:
            self._swap_rhythm(result.next_rhythm)
        return result

    # --- Display ---
    def frame(self, now: float, columns: int) -> Optional[MonitorFrame]:
        self.update(now)
        if not self.power_on:
            return None
        self.clock.tick(now)
        visible_seconds = visible_seconds_for_speed(self.sweep_speed)
        show_sync = self.sync_mode and self.profile.syncable
        amplitudes, marker_columns = self.clock.window(visible_seconds, columns, show_sync)
        return MonitorFrame(
            rhythm=self.rhythm, amplitudes=amplitudes, marker_columns=marker_columns,
            visible_seconds=visible_seconds, gain_scale=GAIN_SCALE_BY_GAIN[self.gain],
            position=self.clock.position,
        )
