class PrinterError(Exception):
    """Базовая ошибка печати."""

    code = "printer_error"
    status_code = 502

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PrinterNotConfiguredError(PrinterError):
    """Для категории не задан принтер."""

    code = "printer_not_configured"
    status_code = 503

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"Для категории {category} принтер не настроен")


class PrinterUnreachableError(PrinterError):
    """Не удалось подключиться к принтеру после всех попыток."""

    code = "printer_unreachable"
    status_code = 503

    def __init__(self, endpoint, cause: Exception):
        self.endpoint = endpoint
        self.cause = cause
        super().__init__(f"Не удалось подключиться к принтеру {endpoint}: {cause}")


class PrinterWriteFailedError(PrinterError):
    """Соединение открыто, но запись на принтер упала."""

    code = "printer_write_failed"
    status_code = 502

    def __init__(self, endpoint, cause: Exception):
        self.endpoint = endpoint
        self.cause = cause
        super().__init__(f"Ошибка печати на {endpoint}: {cause}")


class PrintDispatchFailedError(PrinterError):
    """Часть заданий на печать не выполнена; уже сохранённые данные не откатываются."""

    code = "print_dispatch_failed"
    status_code = 502

    def __init__(self, report):
        self.report = report
        failed = ", ".join(r.category for r in report.failed)
        super().__init__(f"Не напечатаны категории: {failed}")
