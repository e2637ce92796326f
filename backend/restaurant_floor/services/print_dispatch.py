"""
Раздача заказа по принтерам станций: одна задача печати на категорию.
Шашлычные блюда из категории food уходят на принтер shashlik (по ключевым словам в названии).
Ошибка одной категории не влияет на остальные и на уже созданный заказ.
"""
import asyncio
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional

from fastapi import Depends

from restaurant_floor.config import settings
from restaurant_floor.core.logging_config import get_logger
from restaurant_floor.core.printers import PrinterConfig, PrinterEndpoint
from restaurant_floor.exceptions.printer_exceptions import (
    PrinterError,
    PrinterNotConfiguredError,
)
from restaurant_floor.services.printer_client import PrintDocument, PrinterClient, get_printer_client
from restaurant_floor.services.receipt import (
    ReceiptLine,
    format_kitchen_ticket,
    format_receipt,
    unit_label,
)

logger = get_logger(__name__)

SHASHLIK_KEYWORDS = ("shashlik", "kabob", "kebab")
RECEIPT_CATEGORY = "receipt"


def is_shashlik(dish_name: str) -> bool:
    name = dish_name.lower()
    return any(keyword in name for keyword in SHASHLIK_KEYWORDS)


def effective_category(dish_name: str, category) -> str:
    base = getattr(category, "value", category)
    if base == "food" and is_shashlik(dish_name):
        return "shashlik"
    return base


@dataclass
class PrintLine:
    name: str
    quantity: int
    unit: str


@dataclass
class PrintJob:
    category: str
    endpoint: Optional[PrinterEndpoint]
    lines: List[PrintLine] = field(default_factory=list)


@dataclass
class JobResult:
    category: str
    endpoint: Optional[str]
    items: int
    ok: bool
    error: Optional[str] = None
    message: Optional[str] = None


@dataclass
class DispatchReport:
    results: List[JobResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failed(self) -> List[JobResult]:
        return [r for r in self.results if not r.ok]


def build_jobs(items: Iterable, config: PrinterConfig) -> List[PrintJob]:
    """Группы по эффективной категории в порядке первого появления позиций."""
    jobs: dict[str, PrintJob] = {}
    for item in items:
        category = effective_category(item.name, item.category)
        job = jobs.get(category)
        if job is None:
            job = PrintJob(category=category, endpoint=config.endpoint_for(category))
            jobs[category] = job
        job.lines.append(PrintLine(item.name, item.quantity, unit_label(category)))
    return list(jobs.values())


class PrintDispatcher:
    def __init__(
        self,
        config: PrinterConfig,
        client: PrinterClient,
        max_parallel: int = 4,
        receipt_title: str = "Restaurant",
        currency: str = "UZS",
        closing_message: str = "Thank you for your visit",
    ):
        self.config = config
        self.client = client
        self.max_parallel = max(1, max_parallel)
        self.receipt_title = receipt_title
        self.currency = currency
        self.closing_message = closing_message

    async def dispatch(self, order, table_number: int, waiter_name: str) -> DispatchReport:
        jobs = build_jobs(order.items, self.config)
        semaphore = asyncio.Semaphore(self.max_parallel)

        async def run(job: PrintJob) -> JobResult:
            async with semaphore:
                return await self._run_job(job, order.id, table_number, waiter_name)

        results = await asyncio.gather(*(run(job) for job in jobs))
        report = DispatchReport(results=list(results))
        if report.ok:
            logger.info("Заказ id=%s отправлен на печать: %s", order.id, [r.category for r in results])
        else:
            logger.error(
                "Заказ id=%s: не напечатаны категории %s",
                order.id, [r.category for r in report.failed],
            )
        return report

    async def _run_job(self, job: PrintJob, order_id: int, table_number: int, waiter_name: str) -> JobResult:
        endpoint = str(job.endpoint) if job.endpoint else None
        try:
            if job.endpoint is None:
                raise PrinterNotConfiguredError(job.category)
            document = PrintDocument(
                title=f"Order #{order_id}",
                body=format_kitchen_ticket(table_number, waiter_name, job.lines),
            )
            await self.client.print_document(job.endpoint, document)
        except PrinterError as e:
            logger.error("Печать категории %s (заказ id=%s): %s", job.category, order_id, e)
            return JobResult(job.category, endpoint, len(job.lines), ok=False, error=e.code, message=e.message)
        return JobResult(job.category, endpoint, len(job.lines), ok=True)

    async def print_receipt(self, lines: Iterable[ReceiptLine], total: Decimal) -> JobResult:
        """Итоговый чек на принтер кассы."""
        lines = list(lines)
        endpoint = self.config.receipt
        try:
            if endpoint is None:
                raise PrinterNotConfiguredError(RECEIPT_CATEGORY)
            body = format_receipt(lines, total, currency=self.currency, closing_message=self.closing_message)
            await self.client.print_document(endpoint, PrintDocument(title=self.receipt_title, body=body))
        except PrinterError as e:
            logger.error("Печать чека на сумму %s: %s", total, e)
            return JobResult(
                RECEIPT_CATEGORY, str(endpoint) if endpoint else None, len(lines),
                ok=False, error=e.code, message=e.message,
            )
        logger.info("Чек на сумму %s напечатан", total)
        return JobResult(RECEIPT_CATEGORY, str(endpoint), len(lines), ok=True)


def get_dispatcher(client: PrinterClient = Depends(get_printer_client)) -> PrintDispatcher:
    return PrintDispatcher(
        settings.printer_config(),
        client,
        max_parallel=settings.printer_max_parallel,
        receipt_title=settings.restaurant_name,
        currency=settings.receipt_currency,
        closing_message=settings.receipt_footer,
    )
