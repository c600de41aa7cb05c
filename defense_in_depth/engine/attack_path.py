import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional

from defense_in_depth.core.models import ThreatScenario
from defense_in_depth.engine.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

STEP_INTERVAL_MS = 1000
RESET_DELAY_MS = 1500


@dataclass(frozen=True)
class AttackPathState:
    selected_threat: Optional[ThreatScenario] = None
    step: int = 0
    is_simulating: bool = False

    @property
    def reached_layer_ids(self) -> List[int]:
        """Layers of the attack path the animation has already walked through."""
        if self.selected_threat is None:
            return []
        return list(self.selected_threat.attack_path[:self.step])


class AttackPathSimulator:
    """
    Steps a selected threat scenario through its attack path.

    One path index per second; once the last layer is reached the simulator
    waits another 1.5 seconds and returns to idle. It has its own timer chain
    and never touches the primary loop.
    """

    def __init__(self, scheduler: Scheduler):
        self._scheduler = scheduler
        self._state = AttackPathState()
        self._handle: Optional[TimerHandle] = None
        self._listeners: List[Callable[[AttackPathState], None]] = []
        self._closed = False

    @property
    def state(self) -> AttackPathState:
        return self._state

    def subscribe(self, listener: Callable[[AttackPathState], None]) -> Callable[[], None]:
        """
        Registers a listener called with every new attack-path state.
        :return: A function that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def select(self, threat: Optional[ThreatScenario]):
        """Selects a threat; any simulation in progress is abandoned."""
        self._cancel()
        self._set_state(AttackPathState(selected_threat=threat))

    def simulate(self) -> bool:
        """
        Starts walking the selected threat's attack path.
        :return: False when nothing is selected or a simulation is already running.
        """
        if self._closed:
            raise RuntimeError("Attack path simulator is closed.")
        if self._state.selected_threat is None:
            logger.debug("Simulate requested with no threat selected; ignoring.")
            return False
        if self._state.is_simulating:
            return False
        logger.info(f"Simulating attack path of '{self._state.selected_threat.name}'.")
        self._set_state(replace(self._state, step=0, is_simulating=True))
        self._schedule_next()
        return True

    def close(self):
        self._closed = True
        self._cancel()
        self._listeners.clear()

    def _schedule_next(self):
        path_length = len(self._state.selected_threat.attack_path)
        if self._state.step < path_length:
            self._handle = self._scheduler.call_later(STEP_INTERVAL_MS, self._on_step)
        else:
            self._handle = self._scheduler.call_later(RESET_DELAY_MS, self._on_finished)

    def _on_step(self):
        self._handle = None
        if self._closed:
            return
        self._set_state(replace(self._state, step=self._state.step + 1))
        self._schedule_next()

    def _on_finished(self):
        self._handle = None
        if self._closed:
            return
        self._set_state(replace(self._state, step=0, is_simulating=False))

    def _cancel(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _set_state(self, state: AttackPathState):
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"Attack path listener {listener!r} failed: {e}")
