from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Tuple

from defense_in_depth.core.models import AnimationDefaults, ThreatScenario

BASE_INTERVAL_MS = 2000
THREAT_CLEAR_DELAY_MS = 1500
MIN_SPEED = 0.5
MAX_SPEED = 2.0
SPEED_STEP = 0.25
DEFAULT_SPEED = 1.0

ANIMATION_DEFAULTS = AnimationDefaults(
    base_interval=BASE_INTERVAL_MS,
    min_speed=MIN_SPEED,
    max_speed=MAX_SPEED,
    default_speed=DEFAULT_SPEED,
)


class ViewMode(str, Enum):
    VISUALIZATION = "visualization"
    THREAT_SIMULATION = "threat_simulation"
    COMPARISON = "comparison"
    QUIZ = "quiz"


@dataclass(frozen=True)
class EngineState:
    """
    Immutable snapshot of the primary loop.

    ``layer_ids`` is the static traversal order; everything else changes
    only through ``reducer.reduce``.
    """
    layer_ids: Tuple[int, ...]
    current_layer_id: int
    enabled_layer_ids: Tuple[int, ...]
    completed_layer_ids: Tuple[int, ...] = ()
    is_playing: bool = True
    speed_multiplier: float = DEFAULT_SPEED
    loop_count: int = 1
    active_threat: Optional[ThreatScenario] = None
    threat_blocked_at_layer_id: Optional[int] = None
    mode: ViewMode = ViewMode.VISUALIZATION

    @property
    def first_layer_id(self) -> int:
        return self.layer_ids[0] if self.layer_ids else 1

    @property
    def last_layer_id(self) -> int:
        return self.layer_ids[-1] if self.layer_ids else 1

    @property
    def first_enabled_layer_id(self) -> int:
        # With nothing enabled the loop parks on ordinal 1.
        return self.enabled_layer_ids[0] if self.enabled_layer_ids else 1

    @property
    def tick_interval_ms(self) -> float:
        return BASE_INTERVAL_MS / self.speed_multiplier

    @property
    def is_advancing(self) -> bool:
        """True while the primary timer should be running."""
        return self.is_playing and self.mode == ViewMode.VISUALIZATION


def initial_state(layer_ids: Sequence[int]) -> EngineState:
    ordered = tuple(sorted(layer_ids))
    return EngineState(
        layer_ids=ordered,
        current_layer_id=ordered[0] if ordered else 1,
        enabled_layer_ids=ordered,
    )
