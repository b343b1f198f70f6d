# File location: src/portal/db/session.py
import logging
from typing import Generator

from sqlmodel import Session, SQLModel, create_engine

from src.portal.config.settings import DATABASE_URL, SQL_ECHO

logger = logging.getLogger(__name__)

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=SQL_ECHO, connect_args=connect_args, pool_pre_ping=True)


def create_db_and_tables():
    # Importing the package registers every table on SQLModel.metadata
    import src.portal.models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables created")


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
