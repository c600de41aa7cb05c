from fastapi import APIRouter, Depends

from defense_in_depth.api.dependencies import get_store
from defense_in_depth.core.models import LayerSummary, ThreatSummary, VisualizationConfig
from defense_in_depth.core.repository import ReferenceDataStore
from defense_in_depth.engine.state import ANIMATION_DEFAULTS

router = APIRouter(
    prefix="/api/config",
    tags=["Visualization Config"],
)


def build_visualization_config(store: ReferenceDataStore) -> VisualizationConfig:
    return VisualizationConfig(
        total_layers=len(store.layers),
        total_threats=len(store.threats),
        total_questions=len(store.quiz_questions),
        animation_defaults=ANIMATION_DEFAULTS,
        layer_summary=[
            LayerSummary(id=layer.id, name=layer.name, short_name=layer.short_name, color=layer.color)
            for layer in store.layers
        ],
        threat_summary=[
            ThreatSummary(
                id=threat.id,
                name=threat.name,
                type=threat.type,
                severity=threat.severity,
                blocked_at_layer=threat.blocked_at_layer,
            )
            for threat in store.threats
        ],
    )


@router.get("", response_model=VisualizationConfig, summary="Counts, summaries and animation defaults")
async def get_config(store: ReferenceDataStore = Depends(get_store)):
    return build_visualization_config(store)
