"""
Pure transition functions for the primary loop.

Every function takes the current EngineState and an event and returns the
next EngineState; nothing here touches timers, randomness or I/O. Anything
random (the next threat scenario) arrives on the event.
"""

from dataclasses import replace
from typing import Callable, Dict, Optional, Type

from defense_in_depth.core.models import ThreatScenario
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
from defense_in_depth.engine.state import MAX_SPEED, MIN_SPEED, SPEED_STEP, EngineState


def validate_speed(speed_multiplier: float) -> float:
    if not MIN_SPEED <= speed_multiplier <= MAX_SPEED:
        raise ValueError(f"Speed must be between {MIN_SPEED} and {MAX_SPEED}, got {speed_multiplier}.")
    steps = (speed_multiplier - MIN_SPEED) / SPEED_STEP
    if abs(steps - round(steps)) > 1e-9:
        raise ValueError(f"Speed must be a multiple of {SPEED_STEP}, got {speed_multiplier}.")
    return float(speed_multiplier)


def _require_layer(state: EngineState, layer_id: int):
    if layer_id not in state.layer_ids:
        raise ValueError(f"Unknown layer id: {layer_id}")


def _ensure_threat(state: EngineState, candidate: Optional[ThreatScenario]) -> EngineState:
    # The only place a threat is ever assigned, and only into an empty slot.
    if state.active_threat is None and candidate is not None:
        return replace(state, active_threat=candidate)
    return state


def _tick(state: EngineState, event: Tick) -> EngineState:
    enabled = set(state.enabled_layer_ids)
    next_layer_id = state.current_layer_id + 1
    while next_layer_id <= state.last_layer_id and next_layer_id not in enabled:
        next_layer_id += 1

    if next_layer_id > state.last_layer_id:
        wrapped = replace(
            state,
            loop_count=state.loop_count + 1,
            completed_layer_ids=(),
            active_threat=None,
            threat_blocked_at_layer_id=None,
            current_layer_id=state.first_enabled_layer_id,
        )
        return _ensure_threat(wrapped, event.candidate_threat)

    completed = set(state.completed_layer_ids)
    if state.current_layer_id in enabled:
        completed.add(state.current_layer_id)

    blocked_at = state.threat_blocked_at_layer_id
    threat = state.active_threat
    if threat is not None and threat.blocked_at_layer == next_layer_id:
        blocked_at = next_layer_id

    return replace(
        state,
        completed_layer_ids=tuple(sorted(completed)),
        threat_blocked_at_layer_id=blocked_at,
        current_layer_id=next_layer_id,
    )


def _clear_threat(state: EngineState, event: ClearThreat) -> EngineState:
    # A clear that outlived its block (a wrap or reset happened first) is stale.
    if state.threat_blocked_at_layer_id is None:
        return state
    cleared = replace(state, active_threat=None, threat_blocked_at_layer_id=None)
    return _ensure_threat(cleared, event.candidate_threat)


def _ensure_threat_event(state: EngineState, event: EnsureThreat) -> EngineState:
    return _ensure_threat(state, event.candidate_threat)


def _select_layer(state: EngineState, event: SelectLayer) -> EngineState:
    _require_layer(state, event.layer_id)
    return replace(
        state,
        is_playing=False,
        current_layer_id=event.layer_id,
        completed_layer_ids=tuple(layer_id for layer_id in state.enabled_layer_ids if layer_id < event.layer_id),
    )


def _reset(state: EngineState, event: Reset) -> EngineState:
    cleared = replace(
        state,
        current_layer_id=state.first_layer_id,
        completed_layer_ids=(),
        active_threat=None,
        threat_blocked_at_layer_id=None,
    )
    if event.restart:
        cleared = replace(cleared, loop_count=1, is_playing=True)
    return _ensure_threat(cleared, event.candidate_threat)


def _set_playing(state: EngineState, event: SetPlaying) -> EngineState:
    return replace(state, is_playing=event.is_playing)


def _set_speed(state: EngineState, event: SetSpeed) -> EngineState:
    return replace(state, speed_multiplier=validate_speed(event.speed_multiplier))


def _toggle_layer(state: EngineState, event: ToggleLayer) -> EngineState:
    _require_layer(state, event.layer_id)
    enabled = set(state.enabled_layer_ids)
    if event.layer_id in enabled:
        enabled.discard(event.layer_id)
    else:
        enabled.add(event.layer_id)
    return replace(
        state,
        enabled_layer_ids=tuple(sorted(enabled)),
        completed_layer_ids=tuple(layer_id for layer_id in state.completed_layer_ids if layer_id in enabled),
    )


def _set_mode(state: EngineState, event: SetMode) -> EngineState:
    if event.mode == state.mode:
        return state
    return _reset(replace(state, mode=event.mode), Reset(restart=False, candidate_threat=event.candidate_threat))


_HANDLERS: Dict[Type, Callable[[EngineState, object], EngineState]] = {
    Tick: _tick,
    ClearThreat: _clear_threat,
    EnsureThreat: _ensure_threat_event,
    SelectLayer: _select_layer,
    Reset: _reset,
    SetPlaying: _set_playing,
    SetSpeed: _set_speed,
    ToggleLayer: _toggle_layer,
    SetMode: _set_mode,
}


def reduce(state: EngineState, event: object) -> EngineState:
    """
    Applies one event to the state.
    :param state: The current snapshot.
    :param event: One of the dataclasses in ``engine.events``.
    :return: The next snapshot (the same object when nothing changed).
    """
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unsupported engine event: {event!r}")
    return handler(state, event)
