import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from airsafe_monitor.adapters.db.session import create_session_factory
from airsafe_monitor.adapters.db.uow import SqlAlchemyUoW
from airsafe_monitor.domain.ports import KeyValueStore, StorageError

log = logging.getLogger(__name__)


class SqlAlchemyKeyValueStore(KeyValueStore):
    """Key-value capability backed by a single SQL table."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str) -> "SqlAlchemyKeyValueStore":
        return cls(create_session_factory(database_url))

    def get(self, key: str) -> Optional[str]:
        try:
            with SqlAlchemyUoW(self._session_factory) as uow:
                return uow.kv_repo().get(key)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read {key!r}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        log.debug("Writing %s (%d bytes)", key, len(value))
        try:
            with SqlAlchemyUoW(self._session_factory) as uow:
                uow.kv_repo().set(key, value)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to write {key!r}: {exc}") from exc

    def keys(self) -> List[str]:
        try:
            with SqlAlchemyUoW(self._session_factory) as uow:
                return uow.kv_repo().keys()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to list keys: {exc}") from exc
