from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from restaurant_floor.exceptions.order_exceptions import NotFoundError
from restaurant_floor.models import Order, OrderStatus, Table, Worker


async def get_worker(db: AsyncSession, worker_id: int) -> Worker:
    """Сотрудник из хранилища; уволенный (is_active=False) считается отсутствующим."""
    worker = await db.get(Worker, worker_id)
    if worker is None or not worker.is_active:
        raise NotFoundError("Сотрудник не найден")
    return worker


async def worker_name(db: AsyncSession, worker_id: Optional[int]) -> str:
    if worker_id is None:
        return "—"
    name = await db.scalar(select(Worker.fullname).where(Worker.id == worker_id))
    return name or f"#{worker_id}"


async def get_table(db: AsyncSession, table_id: int, lock: bool = False) -> Table:
    """Стол по id. С lock=True строка блокируется (SELECT ... FOR UPDATE) до конца транзакции."""
    q = select(Table).where(Table.id == table_id).execution_options(populate_existing=True)
    if lock:
        q = q.with_for_update()
    table = (await db.execute(q)).scalar_one_or_none()
    if table is None:
        raise NotFoundError("Стол не найден")
    return table


async def get_order(db: AsyncSession, order_id: int) -> Order:
    q = (
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    order = (await db.execute(q)).scalar_one_or_none()
    if order is None:
        raise NotFoundError("Заказ не найден")
    return order


async def get_orders(db: AsyncSession, order_ids: Sequence[int]) -> List[Order]:
    if not order_ids:
        return []
    q = (
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.id.in_(order_ids))
        .order_by(Order.id)
        .execution_options(populate_existing=True)
    )
    return list((await db.execute(q)).scalars().all())


async def open_orders_for_table(db: AsyncSession, table_id: int) -> List[Order]:
    q = (
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.table_id == table_id, Order.status == OrderStatus.OPEN)
        .order_by(Order.id)
    )
    return list((await db.execute(q)).scalars().all())
