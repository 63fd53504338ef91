from .catalog import RHYTHM_CATALOG, list_profiles, random_case, select, synthesize
from .models import RhythmClass, RhythmProfile, TherapyResult, UnknownRhythmError, WaveformBuffer
from .playback import PlaybackClock, extract_window
from .session import SimulationSession
from .therapy import conversion_probability, deliver
