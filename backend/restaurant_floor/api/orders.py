from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_floor.api.auth import UserInfo, current_worker, require_operation
from restaurant_floor.config import settings
from restaurant_floor.core.database import get_db
from restaurant_floor.core.logging_config import get_logger
from restaurant_floor.core.permissions import Operation
from restaurant_floor.exceptions.printer_exceptions import PrintDispatchFailedError
from restaurant_floor.models import Order, OrderStatus, Table, Worker
from restaurant_floor.schemas.order import (
    BillResponse,
    OrderCloseResponse,
    OrderCreate,
    OrderCreateResponse,
    OrderItemResponse,
    OrderResponse,
    PrintResult,
)
from restaurant_floor.services import events
from restaurant_floor.services.events import EventBus, get_event_bus
from restaurant_floor.services.order_lifecycle import (
    close_order,
    list_orders,
    open_orders,
    read_order,
    receipt_lines,
    settle_table,
    table_orders_for,
)
from restaurant_floor.services.print_dispatch import PrintDispatcher, get_dispatcher
from restaurant_floor.services.reservation import reserve_order

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


def order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        public_id=order.public_id,
        status=order.status.value,
        table_id=order.table_id,
        worker_id=order.worker_id,
        total_price=order.total_price,
        items=[
            OrderItemResponse(
                dish_id=item.dish_id,
                name=item.name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                category=item.category.value,
                amount=item.amount,
            )
            for item in order.items
        ],
        created_at=order.created_at.isoformat() if order.created_at else "",
        closed_at=order.closed_at.isoformat() if order.closed_at else None,
        closed_by_id=order.closed_by_id,
    )


def table_payload(table: Table) -> dict:
    return {"table_id": table.id, "number": table.number, "is_active": table.is_active, "worker_id": table.worker_id}


def _order_payload(order: Order) -> dict:
    return {
        "order_id": order.id,
        "table_id": order.table_id,
        "worker_id": order.worker_id,
        "total_price": str(order.total_price),
    }


@router.post("", response_model=OrderCreateResponse, status_code=201)
async def post_order(
    data: OrderCreate,
    _user: UserInfo = Depends(require_operation(Operation.CREATE_ORDER)),
    worker: Worker = Depends(current_worker),
    db: AsyncSession = Depends(get_db),
    dispatcher: PrintDispatcher = Depends(get_dispatcher),
    bus: EventBus = Depends(get_event_bus),
):
    """Резерв остатков и стола → commit → события → печать по станциям."""
    reservation = await reserve_order(db, worker, data)
    await db.commit()
    order, table = reservation.order, reservation.table
    logger.info("Создан заказ id=%s, стол %s, сумма %s", order.id, table.number, order.total_price)

    await bus.publish(events.ORDER_CREATED, _order_payload(order))
    await bus.publish(events.TABLE_STATUS_CHANGED, table_payload(table))
    for dish_id, quantity in reservation.dish_quantities.items():
        await bus.publish(events.DISH_QUANTITY_UPDATED, {"dish_id": dish_id, "quantity": quantity})

    report = await dispatcher.dispatch(order, table.number, worker.fullname)
    if not report.ok and settings.print_failure_policy == "raise":
        raise PrintDispatchFailedError(report)
    return OrderCreateResponse(
        order=order_response(order),
        print_report=[PrintResult(**asdict(r)) for r in report.results],
        message="Заказ создан" if report.ok else "Заказ создан, но печать прошла не полностью",
    )


@router.get("", response_model=List[OrderResponse])
async def get_orders(
    status: Optional[OrderStatus] = None,
    limit: int = 100,
    _user: UserInfo = Depends(require_operation(Operation.VIEW_ORDERS)),
    worker: Worker = Depends(current_worker),
    db: AsyncSession = Depends(get_db),
):
    """История заказов: открытые и закрытые, новые первыми."""
    return [order_response(o) for o in await list_orders(db, worker, status=status, limit=limit)]


@router.get("/open", response_model=List[OrderResponse])
async def get_open_orders(
    _user: UserInfo = Depends(require_operation(Operation.VIEW_ORDERS)),
    worker: Worker = Depends(current_worker),
    db: AsyncSession = Depends(get_db),
):
    return [order_response(o) for o in await open_orders(db, worker)]


@router.get("/table/{table_id}", response_model=List[OrderResponse])
async def get_table_orders(
    table_id: int,
    _user: UserInfo = Depends(require_operation(Operation.VIEW_TABLE_ORDERS)),
    worker: Worker = Depends(current_worker),
    db: AsyncSession = Depends(get_db),
):
    """Открытые заказы стола. Официант видит только свой стол."""
    return [order_response(o) for o in await table_orders_for(db, worker, table_id)]


@router.post("/bill/{table_id}", response_model=BillResponse)
async def post_table_bill(
    table_id: int,
    _user: UserInfo = Depends(require_operation(Operation.SETTLE_TABLE)),
    worker: Worker = Depends(current_worker),
    db: AsyncSession = Depends(get_db),
    dispatcher: PrintDispatcher = Depends(get_dispatcher),
    bus: EventBus = Depends(get_event_bus),
):
    """Общий счёт: закрыть все открытые заказы стола, один чек на всё."""
    bill = await settle_table(db, worker, table_id)
    await db.commit()
    receipt = await dispatcher.print_receipt(receipt_lines(bill.orders), bill.total)

    await bus.publish(events.TABLE_STATUS_CHANGED, table_payload(bill.table))
    await bus.publish(
        events.BILL_GENERATED,
        {
            "table_id": bill.table.id,
            "order_ids": [o.id for o in bill.orders],
            "total_bill": str(bill.total),
        },
    )
    return BillResponse(
        table_id=bill.table.id,
        total_bill=bill.total,
        orders=[order_response(o) for o in bill.orders],
        receipt=PrintResult(**asdict(receipt)),
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    _user: UserInfo = Depends(require_operation(Operation.VIEW_ORDERS)),
    worker: Worker = Depends(current_worker),
    db: AsyncSession = Depends(get_db),
):
    return order_response(await read_order(db, worker, order_id))


@router.post("/{order_id}/close", response_model=OrderCloseResponse)
async def post_close_order(
    order_id: int,
    _user: UserInfo = Depends(require_operation(Operation.CLOSE_ORDER)),
    worker: Worker = Depends(current_worker),
    db: AsyncSession = Depends(get_db),
    dispatcher: PrintDispatcher = Depends(get_dispatcher),
    bus: EventBus = Depends(get_event_bus),
):
    """Закрыть заказ; стол освобождается, если это был последний открытый заказ."""
    closed = await close_order(db, worker, order_id)
    await db.commit()
    order = closed.order
    # Чек только по позициям этого заказа, не по истории стола
    receipt = await dispatcher.print_receipt(receipt_lines([order]), order.total_price)

    await bus.publish(events.ORDER_CLOSED, {**_order_payload(order), "closed_by_id": worker.id})
    if closed.table_released:
        await bus.publish(events.TABLE_STATUS_CHANGED, table_payload(closed.table))
    return OrderCloseResponse(
        order=order_response(order),
        table_released=closed.table_released,
        receipt=PrintResult(**asdict(receipt)),
    )
