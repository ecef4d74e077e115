"""Исключения складского учёта."""


class WarehouseError(Exception):
    """Базовое исключение складского учёта."""


class QueryFailure(WarehouseError):
    """
    Запрос к журналу движения не выполнился (БД недоступна, кривой фильтр).

    Отличается от "строк нет": пустой склад и неизвестное состояние —
    разные вещи, поэтому такой сбой никогда не превращается в нулевой остаток.
    """

    def __init__(self, query_name: str, original: Exception | None = None):
        self.query_name = query_name
        self.original = original
        message = f"Ledger query '{query_name}' failed"
        if original is not None:
            message = f"{message}: {original}"
        super().__init__(message)


class InsufficientStock(WarehouseError):
    """Списание запрашивает больше, чем есть на складе (ошибка валидации для пользователя)."""

    def __init__(self, warehouse_id: int, product_type: str, product_id: int, requested, available):
        self.warehouse_id = warehouse_id
        self.product_type = product_type
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {product_type} {product_id} in warehouse {warehouse_id}: "
            f"requested {requested}, available {available}"
        )


class DocumentValidationError(WarehouseError):
    """Документ заполнен некорректно (пустые строки, qty <= 0, один и тот же склад и т.д.)."""


class DocumentNotFound(DocumentValidationError):
    """Склад, товар или документ не найден."""


class SagaStepFailed(WarehouseError):
    """
    Шаг многошаговой записи упал.
    compensated=False означает, что откат предыдущих шагов тоже не удался
    и в БД мог остаться частично созданный документ.
    """

    def __init__(self, saga_name: str, step: str, original: Exception, compensated: bool = True):
        self.saga_name = saga_name
        self.step = step
        self.original = original
        self.compensated = compensated
        state = "rolled back" if compensated else "rollback incomplete"
        super().__init__(f"{saga_name}: step '{step}' failed ({state}): {original}")
