from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from api.schemas import DailyLogResponse
from auth.models import IdentityResponse
from auth.sessions import SessionIdentity
from auth.utils import get_optional_identity
from config import settings
from db.database import get_db
from services.checkin_service import list_recent_logs

router = APIRouter(tags=["home"])


class HomeResponse(BaseModel):
    current_user: Optional[IdentityResponse] = None
    logs: list[DailyLogResponse]


@router.get("/", response_model=HomeResponse)
def home(
    identity: Optional[SessionIdentity] = Depends(get_optional_identity),
    db: Session = Depends(get_db),
):
    logs = list_recent_logs(db, identity)
    return HomeResponse(
        current_user=IdentityResponse.model_validate(identity) if identity else None,
        logs=[DailyLogResponse.model_validate(row) for row in logs],
    )


@router.get("/about")
def about():
    return {
        "app": settings.APP_NAME,
        "description": (
            "A lifestyle coach for people managing PCOS: log sleep, movement, mood, "
            "energy, cravings and cycle day once a day, and browse recipes."
        ),
    }


@router.get("/health")
def health_check():
    return {"status": "ok", "app": settings.APP_NAME}
