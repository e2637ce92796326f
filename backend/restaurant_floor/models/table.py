from typing import Optional
from sqlalchemy import Boolean, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restaurant_floor.core.database import Base


class Table(Base):
    """Стол зала. Неактивный стол никогда не закреплён за официантом."""
    __tablename__ = "dining_tables"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Слабая ссылка: только для проверки, кто обслуживает стол
    worker_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("workers.id", ondelete="SET NULL"), nullable=True
    )

    worker = relationship("Worker")
    orders = relationship("Order", back_populates="table")
