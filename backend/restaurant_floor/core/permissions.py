"""
RBAC: роль × операция.
Политика декларативная: машина состояний заказа ролей не знает, роль проверяется до перехода.
"""
from enum import Enum
from typing import List, Optional

from restaurant_floor.exceptions.order_exceptions import UnauthorizedError
from restaurant_floor.models.worker import WorkerRole


class Operation(str, Enum):
    """Операции, доступ к которым проверяется."""
    CREATE_ORDER = "create_order"
    CLOSE_ORDER = "close_order"
    SETTLE_TABLE = "settle_table"          # общий счёт по столу
    VIEW_TABLE_ORDERS = "view_table_orders"
    VIEW_ORDERS = "view_orders"
    RELEASE_TABLE = "release_table"
    RESTOCK_DISH = "restock_dish"          # остатки на кухне
    VIEW_DISHES = "view_dishes"
    PRINT_RECEIPT = "print_receipt"


# Операция → роли, которым она разрешена
OPERATION_ROLES = {
    Operation.CREATE_ORDER: [WorkerRole.WAITER],
    Operation.CLOSE_ORDER: [WorkerRole.ADMIN, WorkerRole.WAITER],
    Operation.SETTLE_TABLE: [WorkerRole.ADMIN],
    Operation.VIEW_TABLE_ORDERS: [WorkerRole.WAITER, WorkerRole.ADMIN],
    Operation.VIEW_ORDERS: [WorkerRole.ADMIN, WorkerRole.WAITER, WorkerRole.CHEF],
    Operation.RELEASE_TABLE: [WorkerRole.ADMIN, WorkerRole.WAITER],
    Operation.RESTOCK_DISH: [WorkerRole.CHEF, WorkerRole.ADMIN],
    Operation.VIEW_DISHES: [WorkerRole.CHEF, WorkerRole.ADMIN, WorkerRole.WAITER],
    Operation.PRINT_RECEIPT: [WorkerRole.ADMIN, WorkerRole.WAITER],
}

DENIED_MESSAGES = {
    Operation.CREATE_ORDER: "Только официанты могут принимать заказы",
    Operation.CLOSE_ORDER: "Закрыть заказ может только админ или официант",
    Operation.SETTLE_TABLE: "Закрыть счёт стола может только админ",
    Operation.RESTOCK_DISH: "Менять остатки блюд может только повар",
}


def _parse_role(role) -> Optional[WorkerRole]:
    try:
        return WorkerRole(role)
    except ValueError:
        return None


def allowed_roles(operation: Operation) -> List[WorkerRole]:
    return list(OPERATION_ROLES.get(operation, []))


def can_perform(role, operation: Operation) -> bool:
    """Проверка: разрешена ли роли операция."""
    r = _parse_role(role)
    if r is None:
        return False
    return r in OPERATION_ROLES.get(operation, [])


def ensure_can_perform(role, operation: Operation) -> None:
    if not can_perform(role, operation):
        raise UnauthorizedError(DENIED_MESSAGES.get(operation, "Недостаточно прав"))


def allowed_operations(role) -> List[str]:
    """Список операций роли (для /auth/me)."""
    return [op.value for op in Operation if can_perform(role, op)]
