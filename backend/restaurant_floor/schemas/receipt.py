from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from restaurant_floor.schemas.order import OrderLineIn


class ReceiptPrintRequest(BaseModel):
    """Печать чека по произвольному набору позиций (например, разделённый счёт)."""
    items: List[OrderLineIn] = Field(..., min_length=1)
    # Не задано: сумма по текущим ценам блюд
    total: Optional[Decimal] = Field(default=None, ge=0)
