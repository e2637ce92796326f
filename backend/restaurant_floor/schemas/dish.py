from decimal import Decimal
from pydantic import BaseModel, Field


class DishResponse(BaseModel):
    id: int
    name: str
    price: Decimal
    category: str
    quantity: int

    class Config:
        from_attributes = True


class DishQuantityUpdate(BaseModel):
    quantity: int = Field(..., ge=0)
