from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ThreatType(str, Enum):
    MALWARE = "malware"
    INTRUSION = "intrusion"
    DATA_THEFT = "data_theft"
    DDOS = "ddos"
    PHISHING = "phishing"
    RANSOMWARE = "ransomware"
    INSIDER = "insider"
    APT = "apt"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ReferenceModel(BaseModel):
    """
    Base for all reference data records.
    Fields are snake_case in Python and camelCase on the wire.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Layer(ReferenceModel):
    id: int = Field(ge=1)
    name: str
    short_name: str
    icon: str
    color: str
    description: str
    role: str
    protection_mechanisms: List[str]
    threats: List[str]


class ThreatScenario(ReferenceModel):
    id: int
    name: str
    type: ThreatType
    blocked_at_layer: int
    description: str
    attack_path: List[int]
    severity: Severity
    detection_method: str
    real_world_example: str
    icon: str


class QuizQuestion(ReferenceModel):
    id: int
    question: str
    options: List[str] = Field(min_length=2)
    correct_answer: int
    explanation: str
    related_layer: Optional[int] = None
    difficulty: Difficulty


class RealWorldExample(ReferenceModel):
    name: str
    description: str
    year: int
    impact: str


class SecurityTool(ReferenceModel):
    name: str
    category: str
    description: str


class LayerDetail(ReferenceModel):
    id: int
    real_world_examples: List[RealWorldExample]
    best_practices: List[str]
    tools: List[SecurityTool]


class DefenseTool(ReferenceModel):
    id: str
    name: str
    category: str
    description: str


class DefenseLayer(ReferenceModel):
    """A ring of the alternate presentation dataset, keyed by a string id."""
    id: str
    name: str
    order: int
    color: str
    hover_color: str
    purpose: str
    description: str
    tools: List[DefenseTool]


class AnimationDefaults(ReferenceModel):
    base_interval: int
    min_speed: float
    max_speed: float
    default_speed: float


class LayerSummary(ReferenceModel):
    id: int
    name: str
    short_name: str
    color: str


class ThreatSummary(ReferenceModel):
    id: int
    name: str
    type: ThreatType
    severity: Severity
    blocked_at_layer: int


class VisualizationConfig(ReferenceModel):
    total_layers: int
    total_threats: int
    total_questions: int
    animation_defaults: AnimationDefaults
    layer_summary: List[LayerSummary]
    threat_summary: List[ThreatSummary]
