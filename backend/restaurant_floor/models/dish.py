"""Блюда меню: цена, категория печати, остаток на кухне."""
import enum
from datetime import datetime
from decimal import Decimal
from sqlalchemy import CheckConstraint, DateTime, Enum, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from restaurant_floor.core.database import Base


class DishCategory(str, enum.Enum):
    FOOD = "food"
    SHASHLIK = "shashlik"
    SALAD = "salad"
    DRINK = "drink"
    DESSERT = "dessert"
    OTHER = "other"


class Dish(Base):
    """Остаток (quantity) меняется только резервированием под заказ и пополнением поваром."""
    __tablename__ = "dishes"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_dishes_quantity_non_negative"),
        CheckConstraint("price >= 0", name="ck_dishes_price_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    category: Mapped[DishCategory] = mapped_column(
        Enum(DishCategory), default=DishCategory.FOOD, nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
