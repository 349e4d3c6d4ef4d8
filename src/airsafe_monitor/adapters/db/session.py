import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

log = logging.getLogger(__name__)

Base = declarative_base()


def create_session_factory(database_url: str):
    """Create the engine, ensure the schema exists and return a session factory."""
    # model classes must be registered on Base before create_all
    from airsafe_monitor.adapters.db import sqlalchemy_models  # noqa: F401

    log.info("Initializing storage at %s", database_url)

    kwargs = {}
    if database_url.startswith("sqlite"):
        # Writes come from the background writer thread, reads from callers.
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, future=True, echo=False, **kwargs)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)
