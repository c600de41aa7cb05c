import logging
import random
from pathlib import Path
from typing import Any, List, Optional, Type, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from defense_in_depth.config import DEFAULT_DATA_DIR
from defense_in_depth.core.models import (
    DefenseLayer,
    Layer,
    LayerDetail,
    QuizQuestion,
    ThreatScenario,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ReferenceDataError(Exception):
    """Raised when the reference data files are missing or inconsistent."""


class ReferenceDataStore:
    """
    Immutable, in-memory collections of the reference data served by the API
    and read by the simulation engine.

    The data is loaded from YAML files once and validated as a whole; any
    inconsistency is a packaging error and fails the load.
    """

    LAYERS_FILE = "layers.yaml"
    THREATS_FILE = "threats.yaml"
    QUIZ_FILE = "quiz.yaml"
    LAYER_DETAILS_FILE = "layer_details.yaml"
    DEFENSE_LAYERS_FILE = "defense_layers.yaml"

    def __init__(
        self,
        layers: List[Layer],
        threats: List[ThreatScenario],
        quiz_questions: List[QuizQuestion],
        layer_details: List[LayerDetail],
        defense_layers: List[DefenseLayer],
    ):
        self._layers = sorted(layers, key=lambda layer: layer.id)
        self._threats = list(threats)
        self._quiz_questions = list(quiz_questions)
        self._layer_details = {detail.id: detail for detail in layer_details}
        self._defense_layers = sorted(defense_layers, key=lambda layer: layer.order)
        self._validate()

    @classmethod
    def load(cls, data_dir: Optional[Path] = None) -> "ReferenceDataStore":
        """
        Loads and validates every reference data file.
        :param data_dir: Directory holding the YAML files. Defaults to the packaged data.
        :return: A validated ReferenceDataStore.
        """
        data_dir = Path(data_dir or DEFAULT_DATA_DIR)
        store = cls(
            layers=_load_records(data_dir / cls.LAYERS_FILE, Layer),
            threats=_load_records(data_dir / cls.THREATS_FILE, ThreatScenario),
            quiz_questions=_load_records(data_dir / cls.QUIZ_FILE, QuizQuestion),
            layer_details=_load_records(data_dir / cls.LAYER_DETAILS_FILE, LayerDetail),
            defense_layers=_load_records(data_dir / cls.DEFENSE_LAYERS_FILE, DefenseLayer),
        )
        logger.info(
            f"Loaded reference data from {data_dir}: {len(store.layers)} layers, "
            f"{len(store.threats)} threats, {len(store.quiz_questions)} quiz questions."
        )
        return store

    def _validate(self):
        layer_ids = [layer.id for layer in self._layers]
        if not layer_ids:
            raise ReferenceDataError("At least one security layer is required.")
        if layer_ids != list(range(1, len(layer_ids) + 1)):
            raise ReferenceDataError(f"Layer ids must be unique, contiguous and start at 1, got {layer_ids}.")

        known = set(layer_ids)
        for threat in self._threats:
            if threat.blocked_at_layer not in known:
                raise ReferenceDataError(f"Threat {threat.id} is blocked at unknown layer {threat.blocked_at_layer}.")
            unknown = [layer_id for layer_id in threat.attack_path if layer_id not in known]
            if unknown:
                raise ReferenceDataError(f"Threat {threat.id} has unknown layers {unknown} in its attack path.")
            if not threat.attack_path or threat.attack_path[-1] != threat.blocked_at_layer:
                raise ReferenceDataError(
                    f"Threat {threat.id} attack path must end at its blocking layer {threat.blocked_at_layer}."
                )

        for question in self._quiz_questions:
            if not 0 <= question.correct_answer < len(question.options):
                raise ReferenceDataError(f"Quiz question {question.id} has an out-of-range correct answer.")
            if question.related_layer is not None and question.related_layer not in known:
                raise ReferenceDataError(f"Quiz question {question.id} refers to unknown layer {question.related_layer}.")

        orphans = sorted(set(self._layer_details) - known)
        if orphans:
            raise ReferenceDataError(f"Layer details exist for unknown layers {orphans}.")

    # --- Layers ---

    @property
    def layers(self) -> List[Layer]:
        return list(self._layers)

    @property
    def layer_ids(self) -> List[int]:
        return [layer.id for layer in self._layers]

    def get_layer(self, layer_id: int) -> Optional[Layer]:
        return next((layer for layer in self._layers if layer.id == layer_id), None)

    def get_layer_details(self, layer_id: int) -> Optional[LayerDetail]:
        return self._layer_details.get(layer_id)

    # --- Threats ---

    @property
    def threats(self) -> List[ThreatScenario]:
        return list(self._threats)

    def get_threat(self, threat_id: int) -> Optional[ThreatScenario]:
        return next((threat for threat in self._threats if threat.id == threat_id), None)

    def random_threat(self, rng: Optional[random.Random] = None) -> ThreatScenario:
        """Picks one threat scenario uniformly at random."""
        return (rng or random).choice(self._threats)

    # --- Quiz ---

    @property
    def quiz_questions(self) -> List[QuizQuestion]:
        return list(self._quiz_questions)

    def questions_by_difficulty(self, difficulty: str) -> List[QuizQuestion]:
        """Unknown difficulties simply match nothing."""
        return [question for question in self._quiz_questions if question.difficulty.value == difficulty]

    # --- Alternate presentation dataset ---

    @property
    def defense_layers(self) -> List[DefenseLayer]:
        return list(self._defense_layers)

    def get_defense_layer(self, layer_id: str) -> Optional[DefenseLayer]:
        return next((layer for layer in self._defense_layers if layer.id == layer_id), None)


def _load_records(path: Path, model: Type[ModelT]) -> List[ModelT]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            raw_records: Any = yaml.safe_load(f)
    except FileNotFoundError:
        raise ReferenceDataError(f"Reference data file not found: {path}")
    except yaml.YAMLError as e:
        raise ReferenceDataError(f"Could not parse {path}: {e}")

    if not isinstance(raw_records, list):
        raise ReferenceDataError(f"{path} must contain a list of records.")

    try:
        return [model.model_validate(record) for record in raw_records]
    except ValidationError as e:
        raise ReferenceDataError(f"Invalid record in {path}: {e}")

