from datetime import date
from decimal import Decimal
from typing import Any, Optional

from ledgerbook.ledger.calculations import to_day
from ledgerbook.utils import parse_money


BILL_OPEN_STATUS = "received"
INVOICE_OPEN_STATUS = "sent"


def classify_status(
    status: Optional[str],
    balance: Decimal | float | int | str | None,
    due_date: Any,
    today: Optional[date] = None,
    default: str = BILL_OPEN_STATUS,
) -> str:
    """Display status for a bill or invoice; ``overdue`` is derived on read and never stored."""
    stored = (status or default).lower()
    if stored == "paid" or parse_money(balance) <= 0:
        return stored

    due = to_day(due_date)
    if due is not None and due < (today or date.today()):
        return "overdue"
    return stored


def classify_bill_status(status, balance, due_date, today: Optional[date] = None) -> str:
    return classify_status(status, balance, due_date, today, default=BILL_OPEN_STATUS)


def classify_invoice_status(status, balance, due_date, today: Optional[date] = None) -> str:
    return classify_status(status, balance, due_date, today, default=INVOICE_OPEN_STATUS)


def stored_status_for(
    total_amount: Decimal,
    paid_amount: Decimal,
    current: Optional[str] = None,
    open_status: str = BILL_OPEN_STATUS,
) -> str:
    if current == "draft" and paid_amount <= 0:
        return "draft"
    if paid_amount <= 0:
        return open_status
    if paid_amount >= total_amount:
        return "paid"
    return "partial"
