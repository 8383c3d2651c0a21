from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator


class CheckInRequest(BaseModel):
    log_date: Optional[str] = None
    sleep_hours: Optional[float] = None
    movement_minutes: Optional[int] = None
    mood_score: Optional[int] = None
    energy_score: Optional[int] = None
    craving_level: Optional[int] = None
    cycle_day: Optional[int] = None
    notes: Optional[str] = None

    @field_validator(
        "sleep_hours", "movement_minutes", "mood_score", "energy_score", "craving_level", "cycle_day",
        mode="before",
    )
    @classmethod
    def _check_numeric_input(cls, value):
        if isinstance(value, bool):
            raise ValueError("must be a number, not a boolean")
        # HTML forms post "" for untouched number inputs
        if isinstance(value, str) and not value.strip():
            return None
        return value


class DailyLogResponse(BaseModel):
    id: int
    user_id: int
    log_date: date
    sleep_hours: Optional[float] = None
    movement_minutes: Optional[int] = None
    mood_score: Optional[int] = None
    energy_score: Optional[int] = None
    craving_level: Optional[int] = None
    cycle_day: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CheckInSavedResponse(BaseModel):
    status: str = "saved"
    created: bool
    log: DailyLogResponse


class CheckInFormResponse(BaseModel):
    log_date: date
    log: Optional[DailyLogResponse] = None


class RecipeResponse(BaseModel):
    id: int
    title: str
    summary: Optional[str] = None
    main_tag: Optional[str] = None
    image_url: Optional[str] = None
    ingredients: Optional[str] = None
    instructions: Optional[str] = None
    prep_minutes: Optional[int] = None

    model_config = {"from_attributes": True}


class RecipeSearchResponse(BaseModel):
    search: str
    recipes: list[RecipeResponse]
