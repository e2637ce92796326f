from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field


class OrderLineIn(BaseModel):
    """Позиция заказа в запросе официанта."""
    dish_id: int
    quantity: int = Field(..., gt=0)


class OrderCreate(BaseModel):
    table_id: int
    items: List[OrderLineIn] = Field(..., min_length=1)


class OrderItemResponse(BaseModel):
    dish_id: int
    name: str
    quantity: int
    unit_price: Decimal
    category: str
    amount: Decimal


class OrderResponse(BaseModel):
    id: int
    public_id: str
    status: str
    table_id: int
    worker_id: int
    total_price: Decimal
    items: List[OrderItemResponse]
    created_at: str
    closed_at: Optional[str] = None
    closed_by_id: Optional[int] = None

    class Config:
        from_attributes = True


class PrintResult(BaseModel):
    category: str
    endpoint: Optional[str] = None
    items: int
    ok: bool
    error: Optional[str] = None
    message: Optional[str] = None


class OrderCreateResponse(BaseModel):
    order: OrderResponse
    print_report: List[PrintResult]
    message: str = "Заказ создан"


class OrderCloseResponse(BaseModel):
    order: OrderResponse
    table_released: bool
    receipt: PrintResult
    message: str = "Заказ закрыт"


class BillResponse(BaseModel):
    """Общий счёт по столу."""
    table_id: int
    total_bill: Decimal
    orders: List[OrderResponse]
    receipt: PrintResult
    message: str = "Счёт готов"
