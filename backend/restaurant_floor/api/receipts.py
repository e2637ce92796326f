"""Разовая печать чека по набору позиций (например, разделённый счёт)."""
from dataclasses import asdict
from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_floor.api.auth import UserInfo, require_operation
from restaurant_floor.core.database import get_db
from restaurant_floor.core.permissions import Operation
from restaurant_floor.exceptions.order_exceptions import NotFoundError
from restaurant_floor.exceptions.printer_exceptions import PrintDispatchFailedError
from restaurant_floor.models import Dish
from restaurant_floor.schemas.order import PrintResult
from restaurant_floor.schemas.receipt import ReceiptPrintRequest
from restaurant_floor.services.print_dispatch import DispatchReport, PrintDispatcher, get_dispatcher
from restaurant_floor.services.receipt import ReceiptLine

router = APIRouter(prefix="/receipts", tags=["receipts"])


@router.post("/print", response_model=PrintResult)
async def print_receipt(
    body: ReceiptPrintRequest,
    db: AsyncSession = Depends(get_db),
    _user: UserInfo = Depends(require_operation(Operation.PRINT_RECEIPT)),
    dispatcher: PrintDispatcher = Depends(get_dispatcher),
):
    lines = []
    for item in body.items:
        dish = await db.get(Dish, item.dish_id)
        if dish is None:
            raise NotFoundError(f"Блюдо {item.dish_id} не найдено")
        lines.append(ReceiptLine(dish.id, dish.name, dish.price, item.quantity))
    total = body.total if body.total is not None else sum((l.amount for l in lines), Decimal("0"))
    result = await dispatcher.print_receipt(lines, total)
    # Не напечатали: ошибка всего запроса
    if not result.ok:
        raise PrintDispatchFailedError(DispatchReport(results=[result]))
    return PrintResult(**asdict(result))
