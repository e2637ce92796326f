from typing import Optional

from pydantic import BaseModel


class TableResponse(BaseModel):
    id: int
    number: int
    is_active: bool
    worker_id: Optional[int] = None

    class Config:
        from_attributes = True
