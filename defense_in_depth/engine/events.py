"""Events accepted by the primary-loop reducer."""

from dataclasses import dataclass
from typing import Optional

from defense_in_depth.core.models import ThreatScenario
from defense_in_depth.engine.state import ViewMode


@dataclass(frozen=True)
class Tick:
    # Used only if the tick wraps around into a new loop.
    candidate_threat: Optional[ThreatScenario] = None


@dataclass(frozen=True)
class ClearThreat:
    # Fills the slot the cleared threat leaves behind.
    candidate_threat: Optional[ThreatScenario] = None


@dataclass(frozen=True)
class EnsureThreat:
    candidate_threat: Optional[ThreatScenario]


@dataclass(frozen=True)
class SelectLayer:
    layer_id: int


@dataclass(frozen=True)
class Reset:
    restart: bool = True
    candidate_threat: Optional[ThreatScenario] = None


@dataclass(frozen=True)
class SetPlaying:
    is_playing: bool


@dataclass(frozen=True)
class SetSpeed:
    speed_multiplier: float


@dataclass(frozen=True)
class ToggleLayer:
    layer_id: int


@dataclass(frozen=True)
class SetMode:
    mode: ViewMode
    candidate_threat: Optional[ThreatScenario] = None
