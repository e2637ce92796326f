"""
Клиент сетевого ESC/POS-принтера (python-escpos, Network).
Подключение с повторами, запись заголовка/тела/подвала, отрезка бумаги, закрытие на любом выходе.
Блокирующий сокетный ввод-вывод выполняется в отдельном потоке.
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from escpos.exceptions import Error as EscposError
from escpos.printer import Network

from restaurant_floor.config import settings
from restaurant_floor.core.logging_config import get_logger
from restaurant_floor.core.printers import PrinterEndpoint
from restaurant_floor.exceptions.printer_exceptions import (
    PrinterUnreachableError,
    PrinterWriteFailedError,
)

logger = get_logger(__name__)

DEVICE_ERRORS = (OSError, EscposError)


@dataclass
class PrintDocument:
    title: str
    body: str
    footer: str = ""


class PrinterClient:
    def __init__(
        self,
        connect_timeout: float = 5.0,
        attempts: int = 3,
        retry_delay: float = 2.0,
        device_factory: Optional[Callable[..., Any]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.connect_timeout = connect_timeout
        self.attempts = max(1, attempts)
        self.retry_delay = retry_delay
        self.device_factory = device_factory or Network
        self._sleep = sleep

    async def print_document(self, endpoint: PrinterEndpoint, document: PrintDocument) -> None:
        device = await self._connect(endpoint)
        try:
            await asyncio.to_thread(self._write, device, document)
        except DEVICE_ERRORS as e:
            logger.error("Принтер %s: ошибка записи: %s", endpoint, e)
            raise PrinterWriteFailedError(endpoint, e) from e
        except Exception as e:
            # Любой сбой драйвера считается ошибкой записи этого задания
            logger.exception("Принтер %s: непредвиденная ошибка записи", endpoint)
            raise PrinterWriteFailedError(endpoint, e) from e
        finally:
            await asyncio.to_thread(self._close_quietly, device, endpoint)
        logger.info("Принтер %s: напечатано «%s»", endpoint, document.title)

    async def _connect(self, endpoint: PrinterEndpoint):
        last_error: Optional[Exception] = None
        for attempt in range(1, self.attempts + 1):
            device = self.device_factory(endpoint.host, endpoint.port, timeout=self.connect_timeout)
            try:
                await asyncio.to_thread(device.open)
                return device
            except Exception as e:
                last_error = e
                await asyncio.to_thread(self._close_quietly, device, endpoint)
                logger.warning(
                    "Принтер %s: ошибка подключения (%s/%s): %s",
                    endpoint, attempt, self.attempts, e,
                )
            if attempt < self.attempts:
                await self._sleep(self.retry_delay)
        raise PrinterUnreachableError(endpoint, last_error)

    @staticmethod
    def _write(device, document: PrintDocument) -> None:
        device.set(align="center", bold=True)
        device.text(f"{document.title}\n")
        device.set(align="left", bold=False)
        device.text(document.body)
        if document.footer:
            device.text(document.footer)
        device.cut()

    @staticmethod
    def _close_quietly(device, endpoint: PrinterEndpoint) -> None:
        try:
            device.close()
        except Exception as e:
            logger.warning("Принтер %s: ошибка при закрытии соединения: %s", endpoint, e)


def get_printer_client() -> PrinterClient:
    return PrinterClient(
        connect_timeout=settings.printer_connect_timeout,
        attempts=settings.printer_retry_attempts,
        retry_delay=settings.printer_retry_delay,
    )
