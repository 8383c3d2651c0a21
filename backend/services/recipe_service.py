from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from db.database import SessionLocal
from db.models import Recipe
from services.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

RECIPE_FIELDS = ("title", "summary", "main_tag", "image_url", "ingredients", "instructions", "prep_minutes")


def search_recipes(db: Session, query: str | None = None) -> list[Recipe]:
    """Recipes whose title, summary or main tag contain ``query`` (case-insensitive), by title.

    An empty query lists every recipe. ``%`` and ``_`` match literally.
    """
    needle = (query or "").strip()
    stmt = db.query(Recipe)
    if needle:
        stmt = stmt.filter(
            or_(
                Recipe.title.icontains(needle, autoescape=True),
                Recipe.summary.icontains(needle, autoescape=True),
                Recipe.main_tag.icontains(needle, autoescape=True),
            )
        )
    try:
        return stmt.order_by(Recipe.title.asc(), Recipe.id.asc()).all()
    except SQLAlchemyError as e:
        logger.exception(f"Recipe search failed for q={needle!r}: {e}")
        raise StorageError("Recipe error") from e


def seed_recipes(db: Session, rows: Iterable[dict[str, Any]]) -> int:
    added = 0
    for raw in rows:
        if not isinstance(raw, dict):
            raise ValidationError("Each recipe must be an object")
        title = str(raw.get("title") or "").strip()
        if not title:
            raise ValidationError("Each recipe needs a title")
        fields = {key: raw.get(key) for key in RECIPE_FIELDS if key in raw}
        fields["title"] = title
        db.add(Recipe(**fields))
        added += 1
    db.commit()
    return added


def ensure_recipes_seeded(seed_file: Path | None = None) -> int:
    """Load the configured recipe file when the recipe table is empty."""
    path = seed_file or settings.RECIPE_SEED_FILE
    if not path:
        return 0
    path = Path(path)
    if not path.exists():
        logger.warning("Recipe seed file not found: %s", path)
        return 0

    db = SessionLocal()
    try:
        if db.query(Recipe.id).first() is not None:
            return 0
        rows = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(rows, list):
            raise ValidationError("Recipe seed file must contain a JSON list")
        added = seed_recipes(db, rows)
        logger.info("Seeded %s recipes from %s", added, path)
        return added
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
