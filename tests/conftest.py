import numpy as np
import pytest

from defib_simulator import catalog
from defib_simulator.models import RhythmClass


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture(scope="session")
def buffers():
    # one seeded buffer per rhythm, shared because synthesis is the slow part
    gen = np.random.default_rng(42)
    return {rhythm: catalog.synthesize(rhythm, gen) for rhythm in RhythmClass}


@pytest.fixture
def client(monkeypatch):
    from fastapi.testclient import TestClient

    import main
    from defib_simulator.session import SimulationSession

    monkeypatch.setattr(main, "session", SimulationSession(rng=np.random.default_rng(7), charge_delay_sec=0.0))
    return TestClient(main.app)
