import logging

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from config import settings

logger = logging.getLogger(__name__)

_IS_SQLITE = settings.DATABASE_URL.startswith("sqlite")

engine_args: dict = {}
if _IS_SQLITE:
    engine_args["connect_args"] = {
        "check_same_thread": False,
        "timeout": settings.DB_TIMEOUT_SECONDS,
    }
else:
    engine_args.update({
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": settings.DB_TIMEOUT_SECONDS,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    })

engine = create_engine(settings.DATABASE_URL, echo=False, **engine_args)


if _IS_SQLITE:
    # Enable WAL mode for better concurrent read performance
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def run_startup_migrations(bind=None) -> None:
    """Bring daily_logs created by the old insert-only check-in up to the one-row-per-day schema."""
    bind = bind if bind is not None else engine
    inspector = inspect(bind)
    if not inspector.has_table("daily_logs"):
        # Tables may not exist yet on first boot.
        return

    def _covers_user_date(columns) -> bool:
        return set(columns or []) == {"user_id", "log_date"}

    has_unique = any(
        _covers_user_date(uc.get("column_names")) for uc in inspector.get_unique_constraints("daily_logs")
    ) or any(
        idx.get("unique") and _covers_user_date(idx.get("column_names")) for idx in inspector.get_indexes("daily_logs")
    )
    if has_unique:
        return

    with bind.begin() as conn:
        removed = conn.execute(text(
            """
            DELETE FROM daily_logs
            WHERE id NOT IN (
                SELECT keep_id FROM (
                    SELECT MAX(id) AS keep_id FROM daily_logs GROUP BY user_id, log_date
                ) AS latest
            )
            """
        )).rowcount
        conn.execute(text(
            "CREATE UNIQUE INDEX uq_daily_logs_user_date ON daily_logs (user_id, log_date)"
        ))
    logger.info("daily_logs migrated to unique (user_id, log_date); removed %s duplicate rows", removed)
