"""
Тексты для термопринтера: итоговый чек и тикет станции кухни.
Ширина фиксированная, переносов нет: имя блюда обрезается до NAME_WIDTH символов.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

NAME_WIDTH = 10
QTY_WIDTH = 2
RULE = "-" * 31
TICKET_RULE = "-" * 15


@dataclass
class ReceiptLine:
    dish_id: int
    name: str
    unit_price: Decimal
    quantity: int

    @property
    def amount(self) -> Decimal:
        return self.unit_price * self.quantity


def aggregate_lines(lines: Iterable[ReceiptLine]) -> List[ReceiptLine]:
    """Склеивает повторы одного блюда (по id и цене) в порядке первого появления."""
    merged: dict[tuple[int, Decimal], ReceiptLine] = {}
    for line in lines:
        key = (line.dish_id, Decimal(line.unit_price))
        existing = merged.get(key)
        if existing is not None:
            existing.quantity += line.quantity
            continue
        merged[key] = ReceiptLine(line.dish_id, line.name, Decimal(line.unit_price), line.quantity)
    return list(merged.values())


def format_amount(amount: Decimal) -> str:
    """45000 → '45,000'; 1234.5 → '1,234.50'."""
    amount = Decimal(amount)
    if amount == amount.to_integral_value():
        return f"{int(amount):,}"
    return f"{amount:,.2f}"


def format_item_line(line: ReceiptLine, currency: str) -> str:
    name = line.name[:NAME_WIDTH].ljust(NAME_WIDTH)
    qty = str(line.quantity).rjust(QTY_WIDTH)
    return f"> {name}{qty} {format_amount(line.amount)}{currency}"


def format_receipt(
    lines: Iterable[ReceiptLine],
    total: Decimal,
    currency: str = "UZS",
    closing_message: str = "Thank you for your visit",
    now: Optional[datetime] = None,
) -> str:
    now = now or datetime.now()
    aggregated = aggregate_lines(lines)
    parts = [
        "",
        now.strftime("%m/%d/%y, %I:%M %p"),
        RULE,
        "Orders",
        "\n\n".join(format_item_line(line, currency) for line in aggregated),
        RULE,
        f"Total {format_amount(total)}{currency}",
        RULE,
        closing_message,
    ]
    return "\n".join(parts) + "\n\n\n\n"


def unit_label(category: str) -> str:
    return "liter" if category == "drink" else "piece"


def format_kitchen_ticket(table_number: int, waiter_name: str, items) -> str:
    """Тело тикета станции: стол, официант, позиции «2x Osh (piece)»."""
    out = [
        TICKET_RULE,
        f"Table: {table_number}",
        f"Waiter: {waiter_name}",
        "Dishes:",
    ]
    for item in items:
        out.append(f"{item.quantity}x {item.name} ({item.unit})")
    out.append(TICKET_RULE)
    return "\n".join(out) + "\n"
