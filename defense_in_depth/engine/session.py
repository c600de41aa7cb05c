import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

from defense_in_depth.core.models import Layer, LayerDetail, QuizQuestion, ThreatScenario
from defense_in_depth.core.repository import ReferenceDataStore
from defense_in_depth.engine.attack_path import AttackPathSimulator
from defense_in_depth.engine.posture import PostureReport, assess_posture
from defense_in_depth.engine.quiz import QuizSession
from defense_in_depth.engine.scheduler import Scheduler
from defense_in_depth.engine.simulation import SimulationEngine
from defense_in_depth.engine.state import ViewMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Drilldown:
    layer: Layer
    details: Optional[LayerDetail]


class VisualizationSession:
    """
    Everything one open page owns: the primary-loop engine, the attack-path
    simulator, the quiz and the drill-down selection.

    The session reads the reference data once at construction. ``close``
    tears down every timer chain.
    """

    def __init__(
        self,
        layers: Sequence[Layer],
        threats: Sequence[ThreatScenario],
        questions: Sequence[QuizQuestion],
        scheduler: Scheduler,
        layer_details: Sequence[LayerDetail] = (),
        rng: Optional[random.Random] = None,
    ):
        self.layers: List[Layer] = sorted(layers, key=lambda layer: layer.id)
        self.threats: List[ThreatScenario] = list(threats)
        self._details = {detail.id: detail for detail in layer_details}
        self.engine = SimulationEngine(self.layers, self.threats, scheduler, rng=rng)
        self.attack_path = AttackPathSimulator(scheduler)
        self.quiz: Optional[QuizSession] = QuizSession(questions) if questions else None
        self.drilldown: Optional[Drilldown] = None

    @classmethod
    def from_store(
        cls,
        store: ReferenceDataStore,
        scheduler: Scheduler,
        difficulty: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ) -> "VisualizationSession":
        questions = store.questions_by_difficulty(difficulty) if difficulty else store.quiz_questions
        details = [store.get_layer_details(layer_id) for layer_id in store.layer_ids]
        return cls(
            layers=store.layers,
            threats=store.threats,
            questions=questions,
            scheduler=scheduler,
            layer_details=[detail for detail in details if detail is not None],
            rng=rng,
        )

    def start(self) -> "VisualizationSession":
        self.engine.start()
        return self

    def close(self):
        self.engine.close()
        self.attack_path.close()
        logger.debug("Visualization session closed.")

    def __enter__(self) -> "VisualizationSession":
        return self.start()

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    @property
    def mode(self) -> ViewMode:
        return self.engine.state.mode

    def switch_mode(self, mode: ViewMode):
        """Switching modes resets the primary loop without touching the loop count."""
        self.engine.set_mode(mode)

    def get_layer(self, layer_id: int) -> Optional[Layer]:
        return next((layer for layer in self.layers if layer.id == layer_id), None)

    def open_drilldown(self, layer_id: int) -> Drilldown:
        layer = self.get_layer(layer_id)
        if layer is None:
            raise ValueError(f"Unknown layer id: {layer_id}")
        self.drilldown = Drilldown(layer=layer, details=self._details.get(layer_id))
        return self.drilldown

    def close_drilldown(self):
        self.drilldown = None

    def select_threat(self, threat_id: int) -> ThreatScenario:
        threat = next((threat for threat in self.threats if threat.id == threat_id), None)
        if threat is None:
            raise ValueError(f"Unknown threat id: {threat_id}")
        self.attack_path.select(threat)
        return threat

    def posture(self) -> PostureReport:
        return assess_posture(self.layers, self.threats, self.engine.state.enabled_layer_ids)
