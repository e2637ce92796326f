from restaurant_floor.core.database import Base
from restaurant_floor.models.dish import Dish, DishCategory
from restaurant_floor.models.order import Order, OrderItem, OrderStatus
from restaurant_floor.models.table import Table
from restaurant_floor.models.worker import Worker, WorkerRole

__all__ = [
    "Base",
    "Dish",
    "DishCategory",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Table",
    "Worker",
    "WorkerRole",
]
