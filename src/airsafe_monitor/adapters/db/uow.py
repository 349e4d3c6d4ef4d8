from contextlib import AbstractContextManager

from sqlalchemy.orm import Session


class SqlAlchemyUoW(AbstractContextManager):
    def __init__(self, session_factory=None, session: Session | None = None):
        self._external = session is not None
        if session is None:
            if session_factory is None:
                raise ValueError("Either a session or a session factory is required")
            session = session_factory()
        self.session: Session = session

    def __enter__(self):
        return self

    def __exit__(self, exc_type, *_):
        if self._external:
            return
        if exc_type:
            self.session.rollback()
        else:
            self.session.commit()
        self.session.close()

    def kv_repo(self):
        from airsafe_monitor.adapters.db.repository import SqlAlchemyKeyValueRepository

        return SqlAlchemyKeyValueRepository(self.session)
