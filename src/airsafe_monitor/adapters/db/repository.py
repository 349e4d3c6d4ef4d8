import time
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from airsafe_monitor.adapters.db.sqlalchemy_models import KeyValueORM


class SqlAlchemyKeyValueRepository:
    def __init__(self, session: Session):
        self.session = session

    # READ side
    def get(self, key: str) -> Optional[str]:
        stmt = select(KeyValueORM.value).where(KeyValueORM.key == key)
        return self.session.scalars(stmt).first()

    def keys(self) -> list[str]:
        stmt = select(KeyValueORM.key).order_by(KeyValueORM.key)
        return list(self.session.scalars(stmt).all())

    # WRITE side
    def set(self, key: str, value: str) -> None:
        row = self.session.get(KeyValueORM, key)
        if row is None:
            row = KeyValueORM()
            row.key = key
            self.session.add(row)
        row.value = value
        row.updated_at = time.time()
