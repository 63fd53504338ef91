import logging
import time
from typing import List

import numpy as np
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from defib_simulator import config
from defib_simulator.api_models import (
    RhythmInfo, SynthesizeParams, WaveformData, WindowParams, WindowData,
    ShockParams, TherapyOutcome, LoadRhythmParams, ToggleParams, EnergyParams,
    SweepSpeedParams, GainParams, SessionState, FrameData,
)
from defib_simulator.catalog import list_profiles, synthesize
from defib_simulator.constants import MAX_COLUMNS
from defib_simulator.models import RhythmProfile, TherapyResult
from defib_simulator.playback import extract_window
from defib_simulator.session import SimulationSession
from defib_simulator.therapy import deliver

logging.basicConfig(level=config.log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Cardiac Monitor & Defibrillator Simulator")

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Single in-process monitor; session state is never persisted
_seed = config.simulation_seed()
session = SimulationSession(
    rng=np.random.default_rng(_seed),
    charge_delay_sec=config.charge_delay_sec(),
)


def _rng(seed):
    return np.random.default_rng(seed)


def _rhythm_info(profile: RhythmProfile) -> RhythmInfo:
    return RhythmInfo(
        id=profile.rhythm, label=profile.label, description=profile.description,
        shockable=profile.shockable, sync_recommended=profile.sync_recommended, syncable=profile.syncable,
    )


def _outcome(result: TherapyResult) -> TherapyOutcome:
    return TherapyOutcome(
        appropriate=result.appropriate, converted=result.converted, next_rhythm=result.next_rhythm,
        message=result.message, energy_j=result.energy_j, synchronized=result.synchronized,
    )


def _session_state() -> SessionState:
    return SessionState(
        rhythm=_rhythm_info(session.profile),
        power_on=session.power_on, pads_on=session.pads_on, sync_mode=session.sync_mode,
        energy_j=session.energy_j, sweep_speed=session.sweep_speed, gain=session.gain,
        charging=session.charging, charged=session.charged, status=session.status,
        last_result=_outcome(session.last_result) if session.last_result else None,
    )


# --- Core Endpoints ---
@app.get("/api/rhythms", response_model=List[RhythmInfo])
async def get_rhythms():
    return [_rhythm_info(p) for p in list_profiles()]


@app.post("/api/synthesize", response_model=WaveformData)
async def post_synthesize(params: SynthesizeParams):
    buffer = synthesize(params.rhythm, _rng(params.seed))
    return WaveformData(
        rhythm=buffer.rhythm, sample_rate=buffer.sample_rate, duration_sec=buffer.duration_sec,
        samples=buffer.samples.tolist(), depolarization_marks=buffer.depolarization_marks.tolist(),
    )


@app.post("/api/window", response_model=WindowData)
async def post_window(params: WindowParams):
    buffer = synthesize(params.rhythm, _rng(params.seed))
    try:
        amplitudes, marker_columns = extract_window(
            buffer, params.position, params.visible_seconds, params.columns, params.include_markers,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return WindowData(amplitudes=amplitudes.tolist(), marker_columns=marker_columns)


@app.post("/api/deliver", response_model=TherapyOutcome)
async def post_deliver(params: ShockParams):
    return _outcome(deliver(params.rhythm, params.energy_j, params.synchronized, _rng(params.seed)))


# --- Session Endpoints ---
@app.get("/api/session", response_model=SessionState)
async def get_session():
    session.update(time.monotonic())
    return _session_state()


@app.post("/api/session/load", response_model=SessionState)
async def post_session_load(params: LoadRhythmParams):
    session.load(params.rhythm)
    return _session_state()


@app.post("/api/session/random", response_model=SessionState)
async def post_session_random():
    session.random_case()
    return _session_state()


@app.post("/api/session/power", response_model=SessionState)
async def post_session_power():
    session.toggle_power()
    return _session_state()


@app.post("/api/session/pads", response_model=SessionState)
async def post_session_pads(params: ToggleParams):
    session.set_pads(params.enabled)
    return _session_state()


@app.post("/api/session/sync", response_model=SessionState)
async def post_session_sync(params: ToggleParams):
    session.set_sync(params.enabled)
    return _session_state()


@app.post("/api/session/energy", response_model=SessionState)
async def post_session_energy(params: EnergyParams):
    session.set_energy(params.energy_j)
    return _session_state()


@app.post("/api/session/speed", response_model=SessionState)
async def post_session_speed(params: SweepSpeedParams):
    try:
        session.set_sweep_speed(params.sweep_speed)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _session_state()


@app.post("/api/session/gain", response_model=SessionState)
async def post_session_gain(params: GainParams):
    try:
        session.set_gain(params.gain)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _session_state()


@app.post("/api/session/charge", response_model=SessionState)
async def post_session_charge():
    session.charge(time.monotonic())
    return _session_state()


@app.post("/api/session/shock", response_model=SessionState)
async def post_session_shock():
    session.shock(time.monotonic())
    return _session_state()


@app.get("/api/session/frame", response_model=FrameData)
async def get_session_frame(columns: int = Query(900, gt=0, le=MAX_COLUMNS)):
    try:
        frame = session.frame(time.monotonic(), columns)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if frame is None:
        raise HTTPException(status_code=409, detail="Monitor power is OFF.")
    return FrameData(
        rhythm=frame.rhythm, amplitudes=frame.amplitudes.tolist(), marker_columns=frame.marker_columns,
        visible_seconds=frame.visible_seconds, gain_scale=frame.gain_scale, position=frame.position,
    )
