from fastapi import APIRouter, Depends, HTTPException
from typing import List

from defense_in_depth.api.dependencies import get_store, parse_id
from defense_in_depth.core.models import Layer, LayerDetail
from defense_in_depth.core.repository import ReferenceDataStore

router = APIRouter(
    prefix="/api/layers",
    tags=["Security Layers"],
)


@router.get("", response_model=List[Layer], summary="List all security layers in traversal order")
async def list_layers(store: ReferenceDataStore = Depends(get_store)):
    return store.layers


@router.get("/{layer_id}", response_model=Layer, summary="Get one security layer")
async def get_layer(layer_id: str, store: ReferenceDataStore = Depends(get_store)):
    parsed_id = parse_id(layer_id)
    layer = store.get_layer(parsed_id) if parsed_id is not None else None
    if not layer:
        raise HTTPException(status_code=404, detail="Layer not found")
    return layer


@router.get("/{layer_id}/details", response_model=LayerDetail, summary="Get drill-down details for a layer")
async def get_layer_details(layer_id: str, store: ReferenceDataStore = Depends(get_store)):
    """
    Real-world examples, best practices and tools for one layer.
    """
    parsed_id = parse_id(layer_id)
    details = store.get_layer_details(parsed_id) if parsed_id is not None else None
    if not details:
        raise HTTPException(status_code=404, detail="Layer details not found")
    return details
