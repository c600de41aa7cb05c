from fastapi import APIRouter, Depends, HTTPException
from typing import List

from defense_in_depth.api.dependencies import get_store
from defense_in_depth.core.models import DefenseLayer
from defense_in_depth.core.repository import ReferenceDataStore

router = APIRouter(
    prefix="/api/defense-layers",
    tags=["Defense Rings"],
)


@router.get("", response_model=List[DefenseLayer], summary="List the defense rings, outermost first")
async def list_defense_layers(store: ReferenceDataStore = Depends(get_store)):
    return store.defense_layers


@router.get("/{layer_id}", response_model=DefenseLayer, summary="Get one defense ring")
async def get_defense_layer(layer_id: str, store: ReferenceDataStore = Depends(get_store)):
    layer = store.get_defense_layer(layer_id)
    if not layer:
        raise HTTPException(status_code=404, detail="Defense layer not found")
    return layer
