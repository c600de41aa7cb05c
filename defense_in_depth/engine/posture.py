"""Security posture comparison: what changes when layers are switched off."""

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence

from defense_in_depth.core.models import Layer, ThreatScenario


@dataclass(frozen=True)
class ThreatOutcome:
    threat: ThreatScenario
    blocked: bool


@dataclass(frozen=True)
class PostureReport:
    enabled_layer_ids: List[int]
    security_score: int
    vulnerabilities: List[str]
    outcomes: List[ThreatOutcome]

    @property
    def blocked_threats(self) -> List[ThreatScenario]:
        return [outcome.threat for outcome in self.outcomes if outcome.blocked]

    @property
    def unblocked_threats(self) -> List[ThreatScenario]:
        return [outcome.threat for outcome in self.outcomes if not outcome.blocked]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def security_score(enabled_layer_ids: Iterable[int], total_layers: int) -> int:
    """Percentage of layers switched on, rounded half up."""
    if total_layers <= 0:
        return 0
    return round_half_up(100 * len(set(enabled_layer_ids)) / total_layers)


def vulnerabilities(layers: Sequence[Layer], enabled_layer_ids: Iterable[int]) -> List[str]:
    enabled = set(enabled_layer_ids)
    return [threat for layer in layers if layer.id not in enabled for threat in layer.threats]


def is_blocked(threat: ThreatScenario, enabled_layer_ids: Iterable[int]) -> bool:
    return threat.blocked_at_layer in set(enabled_layer_ids)


def assess_posture(
    layers: Sequence[Layer],
    threats: Sequence[ThreatScenario],
    enabled_layer_ids: Iterable[int],
) -> PostureReport:
    enabled = sorted(set(enabled_layer_ids))
    return PostureReport(
        enabled_layer_ids=enabled,
        security_score=security_score(enabled, len(layers)),
        vulnerabilities=vulnerabilities(layers, enabled),
        outcomes=[ThreatOutcome(threat=threat, blocked=is_blocked(threat, enabled)) for threat in threats],
    )
