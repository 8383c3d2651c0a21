"""Daily check-in storage: one DailyLog row per user per calendar date."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from auth.sessions import SessionIdentity
from db.models import DailyLog
from services.errors import StorageError, ValidationError
from utils.datetime_utils import parse_calendar_date

logger = logging.getLogger(__name__)

RECENT_LOG_LIMIT = 7

FLOAT_FIELDS = ("sleep_hours",)
INT_FIELDS = ("movement_minutes", "mood_score", "energy_score", "craving_level", "cycle_day")
TEXT_FIELDS = ("notes",)
CHECKIN_FIELDS = FLOAT_FIELDS + INT_FIELDS + TEXT_FIELDS


@dataclass(frozen=True)
class CheckInResult:
    log: DailyLog
    created: bool


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _to_float(value: Any, field: str) -> float | None:
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"`{field}` must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"`{field}` must be a number") from exc
    if not math.isfinite(number):
        raise ValidationError(f"`{field}` must be a number")
    return number


def _to_int(value: Any, field: str) -> int | None:
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"`{field}` must be an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"`{field}` must be an integer")
        return int(value)
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"`{field}` must be an integer") from exc


def _to_text(value: Any) -> str | None:
    if _is_blank(value):
        return None
    return str(value)


def normalize_checkin_values(values: dict[str, Any] | None) -> dict[str, Any]:
    """Every check-in field, present or not. Absent and blank values become None; 0 stays 0."""
    values = values or {}
    out: dict[str, Any] = {}
    for field in FLOAT_FIELDS:
        out[field] = _to_float(values.get(field), field)
    for field in INT_FIELDS:
        out[field] = _to_int(values.get(field), field)
    for field in TEXT_FIELDS:
        out[field] = _to_text(values.get(field))
    return out


def _require_identity(identity: SessionIdentity | None) -> SessionIdentity:
    if identity is None:
        raise ValidationError("A signed-in user is required.")
    return identity


def parse_log_date(log_date: Any) -> date:
    if _is_blank(log_date):
        raise ValidationError("`log_date` is required")
    try:
        return parse_calendar_date(log_date)
    except ValueError as exc:
        raise ValidationError("`log_date` must be a date in YYYY-MM-DD format") from exc


def _load(db: Session, user_id: int, log_date: date) -> DailyLog | None:
    return db.query(DailyLog).filter(DailyLog.user_id == user_id, DailyLog.log_date == log_date).first()


def _apply(row: DailyLog, payload: dict[str, Any]) -> None:
    # Full replace: fields missing from this submission are cleared.
    for field in CHECKIN_FIELDS:
        setattr(row, field, payload.get(field))


def submit_checkin(
    db: Session,
    identity: SessionIdentity | None,
    log_date: Any,
    values: dict[str, Any] | None = None,
) -> CheckInResult:
    identity = _require_identity(identity)
    target_date = parse_log_date(log_date)
    payload = normalize_checkin_values(values)

    try:
        row = _load(db, identity.user_id, target_date)
        created = row is None
        if created:
            row = DailyLog(user_id=identity.user_id, log_date=target_date)
            db.add(row)
        _apply(row, payload)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent check-in inserted the row first; update that one instead.
            db.rollback()
            row = _load(db, identity.user_id, target_date)
            if row is None:
                raise
            logger.info("Check-in insert conflict for user_id=%s date=%s, updating", identity.user_id, target_date)
            created = False
            _apply(row, payload)
            db.commit()
        db.refresh(row)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Check-in save failed for user_id={identity.user_id}: {e}")
        raise StorageError("Could not save log.") from e

    logger.info(
        "Check-in %s for user_id=%s date=%s",
        "created" if created else "updated",
        identity.user_id,
        target_date.isoformat(),
    )
    return CheckInResult(log=row, created=created)


def get_checkin(db: Session, identity: SessionIdentity | None, log_date: Any) -> DailyLog | None:
    identity = _require_identity(identity)
    target_date = parse_log_date(log_date)
    try:
        return _load(db, identity.user_id, target_date)
    except SQLAlchemyError as e:
        logger.exception(f"Check-in lookup failed for user_id={identity.user_id}: {e}")
        raise StorageError("Could not load log.") from e


def list_recent_logs(db: Session, identity: SessionIdentity | None) -> list[DailyLog]:
    if identity is None:
        return []
    try:
        return (
            db.query(DailyLog)
            .filter(DailyLog.user_id == identity.user_id)
            .order_by(DailyLog.log_date.desc(), DailyLog.id.desc())
            .limit(RECENT_LOG_LIMIT)
            .all()
        )
    except SQLAlchemyError as e:
        logger.exception(f"Recent logs query failed for user_id={identity.user_id}: {e}")
        raise StorageError("Database error") from e
