from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.schemas import CheckInFormResponse, CheckInRequest, CheckInSavedResponse, DailyLogResponse
from auth.sessions import SessionIdentity
from auth.utils import require_identity
from db.database import get_db
from services.checkin_service import CHECKIN_FIELDS, get_checkin, parse_log_date, submit_checkin
from utils.datetime_utils import today_utc

router = APIRouter(prefix="/daily-check-in", tags=["check-in"])


@router.get("", response_model=CheckInFormResponse)
def checkin_form(
    log_date: Optional[str] = Query(default=None),
    identity: SessionIdentity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    target = parse_log_date(log_date) if log_date and log_date.strip() else today_utc()
    existing = get_checkin(db, identity, target)
    return CheckInFormResponse(
        log_date=target,
        log=DailyLogResponse.model_validate(existing) if existing else None,
    )


@router.post("", response_model=CheckInSavedResponse)
def checkin_submit(
    req: CheckInRequest,
    identity: SessionIdentity = Depends(require_identity),
    db: Session = Depends(get_db),
):
    values = req.model_dump(include=set(CHECKIN_FIELDS))
    result = submit_checkin(db, identity, req.log_date, values)
    return CheckInSavedResponse(created=result.created, log=DailyLogResponse.model_validate(result.log))
