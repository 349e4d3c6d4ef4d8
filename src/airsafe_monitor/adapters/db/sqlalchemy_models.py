__all__ = ["KeyValueORM"]

from sqlalchemy import Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from airsafe_monitor.adapters.db.session import Base


class KeyValueORM(Base):
    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[float] = mapped_column(Float, index=True, nullable=False)
