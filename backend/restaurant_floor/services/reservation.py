"""
Резервирование остатков под заказ.
Всё в одной транзакции: проверка и списание по каждому блюду (сумма всех его строк) делаются одним условным UPDATE,
при любой ошибке вызывающий откатывает транзакцию целиком (частичных списаний нет).
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_floor.core.logging_config import get_logger
from restaurant_floor.core.permissions import Operation, ensure_can_perform
from restaurant_floor.exceptions.order_exceptions import (
    InsufficientStockError,
    InvalidQuantityError,
    NotFoundError,
    TableOwnershipConflictError,
)
from restaurant_floor.models import Dish, Order, OrderItem, OrderStatus, Table, Worker
from restaurant_floor.schemas.order import OrderCreate
from restaurant_floor.services.lookups import get_table, worker_name

logger = get_logger(__name__)


@dataclass
class Reservation:
    order: Order
    table: Table
    # dish_id → остаток после списания
    dish_quantities: Dict[int, int] = field(default_factory=dict)


async def _take_stock(db: AsyncSession, dish: Dish, quantity: int) -> None:
    """Атомарное «проверить и списать»: два запроса на последнюю порцию не пройдут оба."""
    r = await db.execute(
        update(Dish)
        .where(Dish.id == dish.id, Dish.quantity >= quantity)
        .values(quantity=Dish.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if r.rowcount == 0:
        remaining = await db.scalar(select(Dish.quantity).where(Dish.id == dish.id))
        logger.warning(
            "Недостаточно остатка: блюдо id=%s «%s», осталось %s, запрошено %s",
            dish.id, dish.name, remaining, quantity,
        )
        raise InsufficientStockError(dish.name, remaining or 0, quantity)


async def _assign_table(db: AsyncSession, table: Table, worker: Worker) -> None:
    """Стол активен и закреплён за официантом, если свободен или уже его."""
    r = await db.execute(
        update(Table)
        .where(
            Table.id == table.id,
            or_(Table.worker_id.is_(None), Table.worker_id == worker.id),
        )
        .values(is_active=True, worker_id=worker.id)
        .execution_options(synchronize_session=False)
    )
    if r.rowcount == 0:
        current = await db.scalar(select(Table.worker_id).where(Table.id == table.id))
        raise TableOwnershipConflictError(table.number, await worker_name(db, current))


async def reserve_order(db: AsyncSession, worker: Worker, data: OrderCreate) -> Reservation:
    ensure_can_perform(worker.role, Operation.CREATE_ORDER)
    table = await get_table(db, data.table_id, lock=True)
    if table.worker_id is not None and table.worker_id != worker.id:
        raise TableOwnershipConflictError(table.number, await worker_name(db, table.worker_id))

    order = Order(
        table_id=table.id,
        worker_id=worker.id,
        status=OrderStatus.OPEN,
        total_price=Decimal("0"),
    )
    dishes: Dict[int, Dish] = {}
    requested: Dict[int, int] = {}
    for line in data.items:
        if line.dish_id not in dishes:
            dish = await db.get(Dish, line.dish_id)
            if dish is None:
                raise NotFoundError(f"Блюдо {line.dish_id} не найдено")
            dishes[dish.id] = dish
        requested[line.dish_id] = requested.get(line.dish_id, 0) + line.quantity

    # Строки блюд блокируются по возрастанию id: встречные заказы не ждут друг друга по кругу
    for dish_id in sorted(requested):
        await _take_stock(db, dishes[dish_id], requested[dish_id])

    total = Decimal("0")
    for position, line in enumerate(data.items):
        dish = dishes[line.dish_id]
        total += dish.price * line.quantity
        order.items.append(
            OrderItem(
                position=position,
                dish_id=dish.id,
                name=dish.name,
                quantity=line.quantity,
                unit_price=dish.price,
                category=dish.category,
            )
        )
    order.total_price = total
    db.add(order)
    await db.flush()

    await _assign_table(db, table, worker)
    table = await get_table(db, table.id)

    rows = await db.execute(select(Dish.id, Dish.quantity).where(Dish.id.in_(sorted(requested))))
    return Reservation(order=order, table=table, dish_quantities={i: q for i, q in rows.all()})


async def set_dish_quantity(db: AsyncSession, worker: Worker, dish_id: int, quantity: int) -> Dish:
    """Пополнение/инвентаризация: повар задаёт фактический остаток."""
    ensure_can_perform(worker.role, Operation.RESTOCK_DISH)
    dish = await db.get(Dish, dish_id)
    if dish is None:
        raise NotFoundError(f"Блюдо {dish_id} не найдено")
    if quantity < 0:
        raise InvalidQuantityError(quantity)
    dish.quantity = quantity
    db.add(dish)
    await db.flush()
    logger.info("Остаток блюда id=%s «%s» установлен: %s", dish.id, dish.name, quantity)
    return dish
