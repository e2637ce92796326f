"""Столы зала: состояние и ручное освобождение."""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_floor.api.auth import RequireAnyAuth, UserInfo, current_worker, require_operation
from restaurant_floor.api.orders import table_payload
from restaurant_floor.core.database import get_db
from restaurant_floor.core.permissions import Operation
from restaurant_floor.models import Table, Worker
from restaurant_floor.schemas.table import TableResponse
from restaurant_floor.services import events
from restaurant_floor.services.events import EventBus, get_event_bus
from restaurant_floor.services.lookups import get_table
from restaurant_floor.services.order_lifecycle import release_table

router = APIRouter(prefix="/tables", tags=["tables"])


@router.get("", response_model=List[TableResponse])
async def list_tables(
    db: AsyncSession = Depends(get_db),
    _user: UserInfo = Depends(RequireAnyAuth),
):
    tables = (await db.execute(select(Table).order_by(Table.number))).scalars().all()
    return [TableResponse.model_validate(t) for t in tables]


@router.get("/{table_id}", response_model=TableResponse)
async def get_table_state(
    table_id: int,
    db: AsyncSession = Depends(get_db),
    _user: UserInfo = Depends(RequireAnyAuth),
):
    return TableResponse.model_validate(await get_table(db, table_id))


@router.post("/{table_id}/release", response_model=TableResponse)
async def post_release_table(
    table_id: int,
    _user: UserInfo = Depends(require_operation(Operation.RELEASE_TABLE)),
    worker: Worker = Depends(current_worker),
    db: AsyncSession = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
):
    """Снять стол с официанта. Стол с открытыми заказами освободить нельзя (409)."""
    table = await release_table(db, worker, table_id)
    await db.commit()
    await bus.publish(events.TABLE_STATUS_CHANGED, table_payload(table))
    return TableResponse.model_validate(table)
