"""Блюда меню и остатки на кухне."""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_floor.api.auth import UserInfo, current_worker, require_operation
from restaurant_floor.core.database import get_db
from restaurant_floor.core.permissions import Operation
from restaurant_floor.models import Dish, DishCategory, Worker
from restaurant_floor.schemas.dish import DishQuantityUpdate, DishResponse
from restaurant_floor.services import events
from restaurant_floor.services.events import EventBus, get_event_bus
from restaurant_floor.services.reservation import set_dish_quantity

router = APIRouter(prefix="/dishes", tags=["dishes"])


@router.get("", response_model=List[DishResponse])
async def list_dishes(
    category: Optional[DishCategory] = None,
    available: bool = False,
    db: AsyncSession = Depends(get_db),
    _user: UserInfo = Depends(require_operation(Operation.VIEW_DISHES)),
):
    """Меню с остатками. available=true: только то, что ещё можно заказать."""
    q = select(Dish).order_by(Dish.id)
    if category is not None:
        q = q.where(Dish.category == category)
    if available:
        q = q.where(Dish.quantity > 0)
    dishes = (await db.execute(q)).scalars().all()
    return [
        DishResponse(id=d.id, name=d.name, price=d.price, category=d.category.value, quantity=d.quantity)
        for d in dishes
    ]


@router.put("/{dish_id}/quantity", response_model=DishResponse)
async def put_dish_quantity(
    dish_id: int,
    body: DishQuantityUpdate,
    _user: UserInfo = Depends(require_operation(Operation.RESTOCK_DISH)),
    worker: Worker = Depends(current_worker),
    db: AsyncSession = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
):
    dish = await set_dish_quantity(db, worker, dish_id, body.quantity)
    await db.commit()
    await bus.publish(events.DISH_QUANTITY_UPDATED, {"dish_id": dish.id, "quantity": dish.quantity})
    return DishResponse(
        id=dish.id, name=dish.name, price=dish.price, category=dish.category.value, quantity=dish.quantity
    )
