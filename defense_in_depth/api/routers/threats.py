from fastapi import APIRouter, Depends, HTTPException
from typing import List

from defense_in_depth.api.dependencies import get_store, parse_id
from defense_in_depth.core.models import ThreatScenario
from defense_in_depth.core.repository import ReferenceDataStore

router = APIRouter(
    prefix="/api/threats",
    tags=["Threat Scenarios"],
)


@router.get("", response_model=List[ThreatScenario], summary="List all threat scenarios")
async def list_threats(store: ReferenceDataStore = Depends(get_store)):
    return store.threats


# Declared before /{threat_id} so "random" is not read as an id.
@router.get("/random", response_model=ThreatScenario, summary="Pick a threat scenario at random")
async def random_threat(store: ReferenceDataStore = Depends(get_store)):
    return store.random_threat()


@router.get("/{threat_id}", response_model=ThreatScenario, summary="Get one threat scenario")
async def get_threat(threat_id: str, store: ReferenceDataStore = Depends(get_store)):
    parsed_id = parse_id(threat_id)
    threat = store.get_threat(parsed_id) if parsed_id is not None else None
    if not threat:
        raise HTTPException(status_code=404, detail="Threat not found")
    return threat
