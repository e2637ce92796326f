"""
Жизненный цикл заказа: open → closed (терминальное состояние, переоткрытия нет).
Строка стола блокируется первой, поэтому закрытия заказов одного стола выполняются по очереди
и проверка «остались ли открытые заказы» не гоняется.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from restaurant_floor.core.logging_config import get_logger
from restaurant_floor.core.permissions import Operation, ensure_can_perform
from restaurant_floor.exceptions.order_exceptions import (
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from restaurant_floor.models import Order, OrderStatus, Table, Worker, WorkerRole
from restaurant_floor.services.lookups import (
    get_order,
    get_orders,
    get_table,
    open_orders_for_table,
)
from restaurant_floor.services.receipt import ReceiptLine

logger = get_logger(__name__)

ALLOWED_TRANSITIONS: dict[OrderStatus, list[OrderStatus]] = {
    OrderStatus.OPEN: [OrderStatus.CLOSED],
    OrderStatus.CLOSED: [],
}


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, [])


@dataclass
class ClosedOrder:
    order: Order
    table: Table
    table_released: bool


@dataclass
class TableBill:
    table: Table
    orders: List[Order]
    total: Decimal


def receipt_lines(orders) -> List[ReceiptLine]:
    return [
        ReceiptLine(item.dish_id, item.name, item.unit_price, item.quantity)
        for order in orders
        for item in order.items
    ]


async def _release_if_idle(db: AsyncSession, table_id: int) -> bool:
    """Снять стол с официанта, если открытых заказов на нём не осталось."""
    still_open = select(Order.id).where(
        Order.table_id == table_id, Order.status == OrderStatus.OPEN
    )
    r = await db.execute(
        update(Table)
        .where(Table.id == table_id, Table.is_active == True, ~still_open.exists())
        .values(is_active=False, worker_id=None)
        .execution_options(synchronize_session=False)
    )
    return r.rowcount > 0


async def close_order(db: AsyncSession, worker: Worker, order_id: int) -> ClosedOrder:
    ensure_can_perform(worker.role, Operation.CLOSE_ORDER)
    order = await get_order(db, order_id)
    await get_table(db, order.table_id, lock=True)
    if not can_transition(order.status, OrderStatus.CLOSED):
        raise InvalidStateError("Заказ уже закрыт")

    r = await db.execute(
        update(Order)
        .where(Order.id == order.id, Order.status == OrderStatus.OPEN)
        .values(status=OrderStatus.CLOSED, closed_at=datetime.utcnow(), closed_by_id=worker.id)
        .execution_options(synchronize_session=False)
    )
    if r.rowcount == 0:
        raise InvalidStateError("Заказ уже закрыт")

    released = await _release_if_idle(db, order.table_id)
    order = await get_order(db, order.id)
    table = await get_table(db, order.table_id)
    logger.info(
        "Заказ id=%s закрыт сотрудником id=%s, стол %s %s",
        order.id, worker.id, table.number, "освобождён" if released else "остаётся активным",
    )
    return ClosedOrder(order=order, table=table, table_released=released)


async def settle_table(db: AsyncSession, worker: Worker, table_id: int) -> TableBill:
    """Общий счёт: закрыть все открытые заказы стола и освободить стол."""
    ensure_can_perform(worker.role, Operation.SETTLE_TABLE)
    table = await get_table(db, table_id, lock=True)
    orders = await open_orders_for_table(db, table.id)
    if not orders:
        raise NotFoundError(f"Открытых заказов на столе {table.number} нет")

    order_ids = [o.id for o in orders]
    await db.execute(
        update(Order)
        .where(Order.id.in_(order_ids), Order.status == OrderStatus.OPEN)
        .values(status=OrderStatus.CLOSED, closed_at=datetime.utcnow(), closed_by_id=worker.id)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(Table)
        .where(Table.id == table.id)
        .values(is_active=False, worker_id=None)
        .execution_options(synchronize_session=False)
    )
    orders = await get_orders(db, order_ids)
    table = await get_table(db, table.id)
    total = sum((o.total_price for o in orders), Decimal("0"))
    logger.info("Счёт стола %s: заказов %s, сумма %s", table.number, len(orders), total)
    return TableBill(table=table, orders=orders, total=total)


async def release_table(db: AsyncSession, worker: Worker, table_id: int) -> Table:
    """Освободить стол вручную, если открытых заказов нет."""
    ensure_can_perform(worker.role, Operation.RELEASE_TABLE)
    table = await get_table(db, table_id, lock=True)
    open_count = await db.scalar(
        select(func.count(Order.id)).where(
            Order.table_id == table.id, Order.status == OrderStatus.OPEN
        )
    )
    if open_count:
        raise InvalidStateError(f"На столе {table.number} есть открытые заказы ({open_count})")
    table.is_active = False
    table.worker_id = None
    db.add(table)
    await db.flush()
    return table


async def table_orders_for(db: AsyncSession, worker: Worker, table_id: int) -> List[Order]:
    """Открытые заказы стола; официант видит стол, только если все заказы его."""
    ensure_can_perform(worker.role, Operation.VIEW_TABLE_ORDERS)
    table = await get_table(db, table_id)
    orders = await open_orders_for_table(db, table.id)
    if worker.role == WorkerRole.WAITER and any(o.worker_id != worker.id for o in orders):
        raise UnauthorizedError("Этот стол обслуживает другой официант")
    return orders


async def open_orders(db: AsyncSession, worker: Worker) -> List[Order]:
    ensure_can_perform(worker.role, Operation.VIEW_ORDERS)
    q = (
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.status == OrderStatus.OPEN)
        .order_by(Order.created_at, Order.id)
    )
    return list((await db.execute(q)).scalars().all())


async def read_order(db: AsyncSession, worker: Worker, order_id: int) -> Order:
    """Чтение заказа состояние не меняет: закрытый заказ остаётся закрытым."""
    ensure_can_perform(worker.role, Operation.VIEW_ORDERS)
    return await get_order(db, order_id)


async def list_orders(
    db: AsyncSession,
    worker: Worker,
    status: Optional[OrderStatus] = None,
    limit: int = 100,
) -> List[Order]:
    """История заказов, новые первыми; можно отфильтровать по статусу."""
    ensure_can_perform(worker.role, Operation.VIEW_ORDERS)
    q = select(Order).options(selectinload(Order.items))
    if status is not None:
        q = q.where(Order.status == status)
    q = q.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit)
    return list((await db.execute(q)).scalars().all())
