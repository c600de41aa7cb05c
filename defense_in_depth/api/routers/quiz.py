from fastapi import APIRouter, Depends
from typing import List

from defense_in_depth.api.dependencies import get_store
from defense_in_depth.core.models import QuizQuestion
from defense_in_depth.core.repository import ReferenceDataStore

router = APIRouter(
    prefix="/api/quiz",
    tags=["Quiz"],
)


@router.get("", response_model=List[QuizQuestion], summary="List all quiz questions")
async def list_questions(store: ReferenceDataStore = Depends(get_store)):
    return store.quiz_questions


@router.get("/{difficulty}", response_model=List[QuizQuestion], summary="List quiz questions of one difficulty")
async def list_questions_by_difficulty(difficulty: str, store: ReferenceDataStore = Depends(get_store)):
    """
    Returns an empty list when no question has the requested difficulty.
    """
    return store.questions_by_difficulty(difficulty)
