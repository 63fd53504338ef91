# /backend/defib_simulator/config.py
import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_ALLOWED_ORIGINS = "http://localhost:3001"
DEFAULT_CHARGE_DELAY_SEC = 1.8


def allowed_origins() -> List[str]:
    raw = os.getenv("ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS)
    # Drop blanks left by trailing commas
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def simulation_seed() -> Optional[int]:
    raw = os.getenv("SIM_SEED")
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


def charge_delay_sec() -> float:
    return float(os.getenv("CHARGE_DELAY_SEC", DEFAULT_CHARGE_DELAY_SEC))
