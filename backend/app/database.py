from pathlib import Path
from typing import Generator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from app.config import get_settings

settings = get_settings()

DATABASE_URL = settings.database_url

_is_sqlite = DATABASE_URL.startswith("sqlite")
_connect_args = {"check_same_thread": False} if _is_sqlite else {}

if _is_sqlite and ":memory:" not in DATABASE_URL:
    db_path = DATABASE_URL.replace("sqlite:///", "", 1)
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

engine: Engine = create_engine(
    DATABASE_URL,
    echo=settings.sql_echo,
    connect_args=_connect_args,
)


def get_session() -> Generator[Session, None, None]:
    """Get database session"""
    with Session(engine) as session:
        yield session


def init_db(target: Engine = engine) -> None:
    """Initialize database - create all tables and seed reference data"""
    # Import all models to ensure they're registered with SQLModel metadata
    import app.models  # noqa: F401
    from app.seed import seed_reference_data

    SQLModel.metadata.create_all(target)
    with Session(target) as session:
        seed_reference_data(session)
