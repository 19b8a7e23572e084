import os
from pathlib import Path
from typing import Generator, Optional

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tournament.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")


def create_db_engine(url: str = DATABASE_URL, echo: Optional[bool] = None) -> Engine:
    """Engine for a database URL; SQLite files get their parent directory created."""
    is_sqlite = url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}

    if is_sqlite and ":memory:" not in url:
        db_path = url.replace("sqlite:///", "", 1)
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    return create_engine(
        url,
        echo=SQL_ECHO if echo is None else echo,
        connect_args=connect_args,
    )


engine: Engine = create_db_engine()


def get_session() -> Generator[Session, None, None]:
    """Get database session"""
    with Session(engine) as session:
        yield session


def init_db(target: Optional[Engine] = None) -> None:
    """Create all tables on the given engine (default: the app engine)"""
    # Import all models to ensure they're registered with SQLModel metadata
    from pingpong.models.match import Match  # noqa: F401
    from pingpong.models.player import Player  # noqa: F401
    from pingpong.models.portfolio_entry import PortfolioEntry  # noqa: F401
    from pingpong.models.tournament import Tournament  # noqa: F401

    SQLModel.metadata.create_all(target or engine)
