import logging

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from config import settings

logger = logging.getLogger(__name__)

_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
    echo=False,
)


if _is_sqlite:
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


def run_startup_migrations() -> None:
    """Apply lightweight schema fixes for existing SQLite databases."""
    inspector = inspect(engine)

    def _table_columns(table_name: str) -> set[str]:
        try:
            return {col["name"] for col in inspector.get_columns(table_name)}
        except Exception:
            return set()

    user_columns = _table_columns("users")
    if not user_columns:
        # Tables may not exist yet on first boot.
        return

    alter_statements: list[str] = []
    if "wallet_address_normalized" not in user_columns:
        alter_statements.append("ALTER TABLE users ADD COLUMN wallet_address_normalized TEXT")
    if "allergies" not in user_columns:
        alter_statements.append("ALTER TABLE users ADD COLUMN allergies TEXT")
    if "past_diseases" not in user_columns:
        alter_statements.append("ALTER TABLE users ADD COLUMN past_diseases TEXT")
    if "current_conditions" not in user_columns:
        alter_statements.append("ALTER TABLE users ADD COLUMN current_conditions TEXT")
    if "points" not in user_columns:
        alter_statements.append("ALTER TABLE users ADD COLUMN points INTEGER DEFAULT 0")
    if "current_streak" not in user_columns:
        alter_statements.append("ALTER TABLE users ADD COLUMN current_streak INTEGER DEFAULT 0")
    if "last_task_date" not in user_columns:
        alter_statements.append("ALTER TABLE users ADD COLUMN last_task_date DATE")
    if "referral_code" not in user_columns:
        alter_statements.append("ALTER TABLE users ADD COLUMN referral_code TEXT")
    if "referred_by" not in user_columns:
        alter_statements.append("ALTER TABLE users ADD COLUMN referred_by TEXT")

    task_columns = _table_columns("tasks")
    add_reward_paid = bool(task_columns) and "reward_paid" not in task_columns

    with engine.begin() as conn:
        for stmt in alter_statements:
            conn.execute(text(stmt))
        if add_reward_paid:
            conn.execute(text("ALTER TABLE tasks ADD COLUMN reward_paid BOOLEAN NOT NULL DEFAULT 0"))
            # Completed rows were paid when they completed.
            conn.execute(text("UPDATE tasks SET reward_paid = completed"))
        if "wallet_address_normalized" not in user_columns:
            conn.execute(
                text(
                    "UPDATE users SET wallet_address_normalized = lower(trim(wallet_address)) "
                    "WHERE wallet_address_normalized IS NULL"
                )
            )
        conn.execute(
            text(
                "CREATE UNIQUE INDEX IF NOT EXISTS ix_users_wallet_address_normalized "
                "ON users (wallet_address_normalized)"
            )
        )
        conn.execute(
            text("CREATE UNIQUE INDEX IF NOT EXISTS ix_users_referral_code ON users (referral_code)")
        )
    if alter_statements:
        logger.info("Applied %d startup schema migrations to users", len(alter_statements))
    if add_reward_paid:
        logger.info("Added tasks.reward_paid column")
