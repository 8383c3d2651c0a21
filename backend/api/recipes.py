from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.schemas import RecipeResponse, RecipeSearchResponse
from db.database import get_db
from services.recipe_service import search_recipes

router = APIRouter(prefix="/recipes", tags=["recipes"])


@router.get("", response_model=RecipeSearchResponse)
def list_recipes(q: Optional[str] = Query(default=None), db: Session = Depends(get_db)):
    search = (q or "").strip()
    recipes = search_recipes(db, search)
    return RecipeSearchResponse(
        search=search,
        recipes=[RecipeResponse.model_validate(r) for r in recipes],
    )
