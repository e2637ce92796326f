class FloorError(Exception):
    """Базовая ошибка зала: заказы, столы, остатки."""

    code = "floor_error"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(FloorError):
    """Сущность с таким id не найдена."""

    code = "not_found"
    status_code = 404

    def __init__(self, message: str):
        super().__init__(message)


class UnauthorizedError(FloorError):
    """Роль сотрудника не допускает операцию."""

    code = "unauthorized"
    status_code = 403

    def __init__(self, message: str = "Недостаточно прав"):
        super().__init__(message)


class InsufficientStockError(FloorError):
    """Остатка блюда меньше, чем запрошено."""

    code = "insufficient_stock"
    status_code = 409

    def __init__(self, dish_name: str, remaining: int, requested: int):
        self.dish_name = dish_name
        self.remaining = remaining
        self.requested = requested
        super().__init__(
            f"Недостаточно остатка для «{dish_name}»: осталось {remaining}, запрошено {requested}"
        )


class TableOwnershipConflictError(FloorError):
    """Стол уже обслуживает другой официант."""

    code = "table_ownership_conflict"
    status_code = 409

    def __init__(self, table_number: int, worker_name: str):
        self.table_number = table_number
        self.worker_name = worker_name
        super().__init__(
            f"За стол {table_number} отвечает официант {worker_name}, оформить заказ нельзя"
        )


class InvalidStateError(FloorError):
    """Операция над заказом или столом в неподходящем состоянии."""

    code = "invalid_state"
    status_code = 409

    def __init__(self, message: str):
        super().__init__(message)


class InvalidQuantityError(FloorError):
    """Остаток блюда не может быть отрицательным."""

    code = "invalid_quantity"
    status_code = 422

    def __init__(self, quantity: int):
        self.quantity = quantity
        super().__init__(f"Остаток не может быть отрицательным: {quantity}")
