import logging
from typing import Callable, Iterator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from coffeeshop.core.config import Settings
from coffeeshop.models.database import Base
from coffeeshop.repositories.base import UnitOfWork
from coffeeshop.repositories.json_file import JsonFileStore, JsonUnitOfWork
from coffeeshop.repositories.sql import SqlUnitOfWork

logger = logging.getLogger(__name__)

UnitOfWorkFactory = Callable[[], UnitOfWork]


def create_session_factory(database_url: str) -> sessionmaker:
    """Connect, create missing tables and return a session factory"""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    engine = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def build_unit_of_work_factory(settings: Settings) -> UnitOfWorkFactory:
    """
    Pick the persistence backend once for the lifetime of the process.

    The database is used when DATABASE_URL is set and reachable; otherwise
    every unit of work reads and writes the JSON files.
    """
    if settings.database_url:
        try:
            session_factory = create_session_factory(settings.database_url)
            logger.info("Connected to database, using SQL persistence")
            return lambda: SqlUnitOfWork(session_factory)
        except SQLAlchemyError as e:
            logger.error(f"Database connection error: {str(e)}")
            logger.warning("Will use JSON file fallback for data")
    else:
        logger.info("No DATABASE_URL found, using JSON file fallback")

    store = JsonFileStore(settings.data_file, settings.users_file)
    return lambda: JsonUnitOfWork(store)


def get_uow(request: Request) -> Iterator[UnitOfWork]:
    """Unit of work dependency for FastAPI"""
    uow = request.app.state.uow_factory()
    with uow:
        yield uow
