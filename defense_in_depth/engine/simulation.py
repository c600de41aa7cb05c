import logging
import random
from typing import Callable, List, Optional, Sequence

from defense_in_depth.core.models import Layer, ThreatScenario
from defense_in_depth.engine.events import (
    ClearThreat,
    EnsureThreat,
    Reset,
    SelectLayer,
    SetMode,
    SetPlaying,
    SetSpeed,
    Tick,
    ToggleLayer,
)
from defense_in_depth.engine.reducer import reduce
from defense_in_depth.engine.scheduler import Scheduler, TimerHandle
from defense_in_depth.engine.state import THREAT_CLEAR_DELAY_MS, EngineState, ViewMode, initial_state

logger = logging.getLogger(__name__)

StateListener = Callable[[EngineState], None]


class SimulationEngine:
    """
    Owns one EngineState and the timers that drive it.

    Every timer callback and user intent becomes an event that is run through
    the pure reducer, so each transition is applied atomically. Two timer
    chains belong to the engine: the primary autoplay tick (running only
    while playing in visualization mode) and the one-shot "threat cleared"
    timer started whenever a threat is blocked, which runs on wall-clock time
    regardless of speed, play state or mode.
    """

    def __init__(
        self,
        layers: Sequence[Layer],
        threats: Sequence[ThreatScenario],
        scheduler: Scheduler,
        rng: Optional[random.Random] = None,
    ):
        self._threats = list(threats)
        self._scheduler = scheduler
        self._rng = rng or random.Random()
        self._state = initial_state([layer.id for layer in layers])
        self._listeners: List[StateListener] = []
        self._tick_handle: Optional[TimerHandle] = None
        self._clear_handle: Optional[TimerHandle] = None
        self._started = False
        self._closed = False

    # --- Lifecycle ---

    def start(self) -> "SimulationEngine":
        """Mounts the engine: picks the first threat and starts autoplay."""
        self._check_open()
        if not self._started:
            self._started = True
            self.dispatch(EnsureThreat(self._pick_threat()))
            logger.info(f"Simulation started with {len(self._state.layer_ids)} layers and {len(self._threats)} threats.")
        return self

    def close(self):
        """Cancels every pending timer; the engine accepts no events afterwards."""
        if self._closed:
            return
        self._closed = True
        self._cancel_tick()
        if self._clear_handle is not None:
            self._clear_handle.cancel()
            self._clear_handle = None
        self._listeners.clear()
        logger.debug("Simulation engine closed.")

    def __enter__(self) -> "SimulationEngine":
        return self.start()

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    # --- State access ---

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def threats(self) -> List[ThreatScenario]:
        return list(self._threats)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Registers a listener called with every new snapshot.
        :return: A function that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- User intents ---

    def play(self):
        self.dispatch(SetPlaying(True))

    def pause(self):
        self.dispatch(SetPlaying(False))

    def toggle_play(self):
        self.dispatch(SetPlaying(not self._state.is_playing))

    def set_speed(self, speed_multiplier: float):
        self.dispatch(SetSpeed(speed_multiplier))

    def select_layer(self, layer_id: int):
        self.dispatch(SelectLayer(layer_id))

    def reset(self):
        self.dispatch(Reset(restart=True, candidate_threat=self._pick_threat()))

    def toggle_layer(self, layer_id: int):
        self.dispatch(ToggleLayer(layer_id))

    def set_mode(self, mode: ViewMode):
        self.dispatch(SetMode(ViewMode(mode), candidate_threat=self._pick_threat()))

    # --- Dispatch ---

    def dispatch(self, event: object) -> EngineState:
        self._check_open()
        previous = self._state
        self._state = reduce(previous, event)
        self._after_transition(previous, event)
        return self._state

    def _after_transition(self, previous: EngineState, event: object):
        state = self._state

        if state.loop_count > previous.loop_count:
            threat_name = state.active_threat.name if state.active_threat else "none"
            logger.info(f"Loop {state.loop_count} started at layer {state.current_layer_id}; next threat: {threat_name}.")
        if state.mode != previous.mode:
            logger.info(f"Switched to {state.mode.value} mode.")

        if previous.threat_blocked_at_layer_id is None and state.threat_blocked_at_layer_id is not None:
            logger.info(f"Threat '{state.active_threat.name}' blocked at layer {state.threat_blocked_at_layer_id}.")
            if self._clear_handle is not None:
                self._clear_handle.cancel()
            self._clear_handle = self._scheduler.call_later(THREAT_CLEAR_DELAY_MS, self._on_threat_cleared)

        if isinstance(event, SetSpeed) and state.speed_multiplier != previous.speed_multiplier:
            self._cancel_tick()
        self._sync_tick()

        if state is not previous:
            for listener in list(self._listeners):
                try:
                    listener(state)
                except Exception as e:
                    logger.error(f"State listener {listener!r} failed: {e}")

    # --- Timers ---

    def _sync_tick(self):
        if not self._started:
            return
        if not self._state.is_advancing:
            self._cancel_tick()
        elif self._tick_handle is None:
            self._tick_handle = self._scheduler.call_later(self._state.tick_interval_ms, self._on_tick)

    def _cancel_tick(self):
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def _on_tick(self):
        self._tick_handle = None
        if self._closed:
            return
        state = self.dispatch(Tick(candidate_threat=self._pick_threat()))
        logger.debug(f"Tick: layer {state.current_layer_id}, completed {list(state.completed_layer_ids)}.")

    def _on_threat_cleared(self):
        self._clear_handle = None
        if self._closed:
            return
        self.dispatch(ClearThreat(candidate_threat=self._pick_threat()))

    def _pick_threat(self) -> Optional[ThreatScenario]:
        if not self._threats:
            return None
        return self._rng.choice(self._threats)

    def _check_open(self):
        if self._closed:
            raise RuntimeError("Simulation engine is closed.")
