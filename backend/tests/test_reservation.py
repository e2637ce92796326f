"""Резерв и закрытие на уровне сервисов: порядок списаний, параллельные сессии, инвентаризация."""
import asyncio

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from restaurant_floor.exceptions.order_exceptions import (
    InsufficientStockError,
    InvalidQuantityError,
)
from restaurant_floor.models import Worker
from restaurant_floor.schemas.order import OrderCreate, OrderLineIn
from restaurant_floor.services import reservation
from restaurant_floor.services.order_lifecycle import close_order
from restaurant_floor.services.reservation import reserve_order, set_dish_quantity


def floor_sessions(tmp_path):
    # Второй писатель ждёт блокировку sqlite, а не падает с "database is locked"
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'floor.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    return engine, async_sessionmaker(engine, expire_on_commit=False)


def order_body(table, *lines):
    return OrderCreate(
        table_id=table.id,
        items=[OrderLineIn(dish_id=dish.id, quantity=q) for dish, q in lines],
    )


async def place(session_maker, worker_id, body):
    """Один запрос официанта: своя сессия, commit или rollback."""
    async with session_maker() as session:
        try:
            worker = await session.get(Worker, worker_id)
            result = await reserve_order(session, worker, body)
            await session.commit()
            return result
        except Exception:
            await session.rollback()
            raise


async def close(session_maker, worker_id, order_id):
    async with session_maker() as session:
        try:
            worker = await session.get(Worker, worker_id)
            closed = await close_order(session, worker, order_id)
            await session.commit()
            return closed
        except Exception:
            await session.rollback()
            raise


def test_stock_is_taken_in_dish_id_order(tmp_path, floor, db, monkeypatch):
    calls = []
    take_stock = reservation._take_stock

    async def recording_take_stock(session, dish, quantity):
        calls.append((dish.id, quantity))
        await take_stock(session, dish, quantity)

    monkeypatch.setattr(reservation, "_take_stock", recording_take_stock)
    engine, session_maker = floor_sessions(tmp_path)

    async def scenario():
        try:
            body = order_body(floor.table1, (floor.cola, 1), (floor.osh, 1), (floor.cola, 2))
            return await place(session_maker, floor.waiter.id, body)
        finally:
            await engine.dispose()

    result = asyncio.run(scenario())

    # одно списание на блюдо, по возрастанию id
    assert calls == sorted([(floor.osh.id, 1), (floor.cola.id, 3)])
    # позиции заказа в порядке запроса
    assert [(i.name, i.quantity, i.position) for i in result.order.items] == [
        ("Cola", 1, 0), ("Osh", 1, 1), ("Cola", 2, 2),
    ]
    assert result.dish_quantities == {floor.osh.id: 9, floor.cola.id: 17}
    assert db.stock(floor.cola.id) == 17
    assert db.stock(floor.osh.id) == 9


def test_repeated_dish_lines_are_checked_together(tmp_path, floor, db):
    """Две строки по 2 «Наполеона» при остатке 3: отказ целиком, остаток не тронут."""
    engine, session_maker = floor_sessions(tmp_path)

    async def scenario():
        try:
            body = order_body(floor.table1, (floor.napoleon, 2), (floor.napoleon, 2))
            return await place(session_maker, floor.waiter.id, body)
        finally:
            await engine.dispose()

    with pytest.raises(InsufficientStockError) as e:
        asyncio.run(scenario())
    assert e.value.requested == 4
    assert e.value.remaining == 3
    assert db.stock(floor.napoleon.id) == 3
    assert db.order_count() == 0


def test_concurrent_orders_for_last_units(tmp_path, floor, db):
    engine, session_maker = floor_sessions(tmp_path)

    async def scenario():
        try:
            return await asyncio.gather(
                place(session_maker, floor.waiter.id, order_body(floor.table1, (floor.napoleon, 3))),
                place(session_maker, floor.waiter2.id, order_body(floor.table2, (floor.napoleon, 3))),
                return_exceptions=True,
            )
        finally:
            await engine.dispose()

    outcomes = asyncio.run(scenario())

    failed = [o for o in outcomes if isinstance(o, Exception)]
    assert len(failed) == 1
    assert isinstance(failed[0], InsufficientStockError)
    assert db.stock(floor.napoleon.id) == 0
    assert db.order_count() == 1
    # стол проигравшего запроса не занят
    tables = [db.table(floor.table1.id), db.table(floor.table2.id)]
    assert sorted(t.is_active for t in tables) == [False, True]


def test_concurrent_close_of_sibling_orders_releases_table(tmp_path, floor, db):
    engine, session_maker = floor_sessions(tmp_path)

    async def scenario():
        try:
            first = await place(session_maker, floor.waiter.id, order_body(floor.table1, (floor.osh, 1)))
            second = await place(session_maker, floor.waiter.id, order_body(floor.table1, (floor.cola, 1)))
            return await asyncio.gather(
                close(session_maker, floor.waiter.id, first.order.id),
                close(session_maker, floor.waiter.id, second.order.id),
            )
        finally:
            await engine.dispose()

    closed = asyncio.run(scenario())

    assert [c.order.status.value for c in closed] == ["closed", "closed"]
    assert sorted(c.table_released for c in closed) == [False, True]
    table = db.table(floor.table1.id)
    assert not table.is_active
    assert table.worker_id is None


def test_negative_restock_is_a_floor_error(tmp_path, floor, db):
    engine, session_maker = floor_sessions(tmp_path)

    async def scenario():
        try:
            async with session_maker() as session:
                chef = await session.get(Worker, floor.chef.id)
                await set_dish_quantity(session, chef, floor.osh.id, -1)
        finally:
            await engine.dispose()

    with pytest.raises(InvalidQuantityError) as e:
        asyncio.run(scenario())
    assert e.value.code == "invalid_quantity"
    assert e.value.status_code == 422
    assert e.value.quantity == -1
    assert db.stock(floor.osh.id) == 10
