"""Party ledgers: merge documents and payments, order them, carry a running balance.

A supplier ledger merges bills with bill payments; a client ledger merges
invoices with receipts. Both run the same ``merge -> sequence -> accumulate``
pipeline. Each step is a pure function over immutable rows so that a caller
can re-run any stage and get identical output. Exports and the API both
consume the accumulated rows; nothing downstream recomputes balances on its
own.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

from ledgerbook.utils import ZERO, parse_money


logger = logging.getLogger(__name__)

EPOCH = date(1970, 1, 1)


class LedgerRowKind(str, Enum):
    BILL = "Bill"
    INVOICE = "Invoice"
    PAYMENT = "Payment"


ROW_ID_PREFIXES = {
    LedgerRowKind.BILL: "bill",
    LedgerRowKind.INVOICE: "inv",
    LedgerRowKind.PAYMENT: "pay",
}


@dataclass(frozen=True)
class LedgerRowKey:
    kind: LedgerRowKind
    source_id: Any

    def __str__(self) -> str:
        return f"{ROW_ID_PREFIXES[self.kind]}-{self.source_id}"


@dataclass(frozen=True)
class LedgerRow:
    key: LedgerRowKey
    date: Optional[date]
    reference: Optional[str]
    description: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    balance: Optional[Decimal] = None
    voided: bool = False

    @property
    def id(self) -> str:
        return str(self.key)

    @property
    def type(self) -> str:
        return self.key.kind.value


@dataclass(frozen=True)
class BillRecord:
    id: Any
    supplier_id: Any
    bill_number: Optional[str]
    bill_date: Any
    total_amount: Any
    description: Optional[str] = None

    kind = LedgerRowKind.BILL

    @property
    def party_id(self) -> Any:
        return self.supplier_id

    @property
    def number(self) -> Optional[str]:
        return self.bill_number

    @property
    def document_date(self) -> Any:
        return self.bill_date


@dataclass(frozen=True)
class InvoiceRecord:
    id: Any
    client_id: Any
    invoice_number: Optional[str]
    invoice_date: Any
    total_amount: Any
    description: Optional[str] = None

    kind = LedgerRowKind.INVOICE

    @property
    def party_id(self) -> Any:
        return self.client_id

    @property
    def number(self) -> Optional[str]:
        return self.invoice_number

    @property
    def document_date(self) -> Any:
        return self.invoice_date


@dataclass(frozen=True)
class PaymentRecord:
    id: Any
    bill_id: Any
    amount: Any
    payment_date: Any
    voided_at: Any = None
    payment_number: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    # Set when the source embeds the parent bill; otherwise resolved by bill_id.
    bill_supplier_id: Any = None
    bill_number: Optional[str] = None

    @property
    def document_id(self) -> Any:
        return self.bill_id

    @property
    def document_party_id(self) -> Any:
        return self.bill_supplier_id

    @property
    def document_number(self) -> Optional[str]:
        return self.bill_number


@dataclass(frozen=True)
class ReceiptRecord:
    id: Any
    invoice_id: Any
    amount: Any
    payment_date: Any
    voided_at: Any = None
    payment_number: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    invoice_client_id: Any = None
    invoice_number: Optional[str] = None

    @property
    def document_id(self) -> Any:
        return self.invoice_id

    @property
    def document_party_id(self) -> Any:
        return self.invoice_client_id

    @property
    def document_number(self) -> Optional[str]:
        return self.invoice_number


@dataclass(frozen=True)
class LedgerTotals:
    total_billed: Decimal = ZERO
    total_paid: Decimal = ZERO
    outstanding_balance: Decimal = ZERO


@dataclass(frozen=True)
class PartyLedger:
    party_id: Any
    rows: list[LedgerRow] = field(default_factory=list)
    totals: LedgerTotals = field(default_factory=LedgerTotals)
    dropped_payment_ids: tuple = ()


def to_day(value: Any) -> Optional[date]:
    """Truncate a date-like value to a calendar day; None when it cannot be read."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def _same_id(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return False
    return str(left) == str(right)


def _document_row(document) -> LedgerRow:
    return LedgerRow(
        key=LedgerRowKey(document.kind, document.id),
        date=to_day(document.document_date),
        reference=document.number,
        description=document.description or f"{document.kind.value} {document.number or document.id}",
        debit=parse_money(document.total_amount),
        credit=ZERO,
    )


def _payment_row(payment, document_number: Optional[str]) -> LedgerRow:
    voided = bool(payment.voided_at)
    if payment.notes:
        description = payment.notes
    elif payment.reference_number:
        description = payment.reference_number
    elif document_number:
        description = f"Payment for {document_number}"
    else:
        description = "Payment"
    return LedgerRow(
        key=LedgerRowKey(LedgerRowKind.PAYMENT, payment.id),
        date=to_day(payment.payment_date),
        reference=payment.payment_number,
        description=description,
        debit=ZERO,
        credit=ZERO if voided else parse_money(payment.amount),
        voided=voided,
    )


def _merge_rows(party_id: Any, documents: Iterable, payments: Iterable) -> tuple[list[LedgerRow], tuple]:
    documents = list(documents)
    documents_by_id = {str(document.id): document for document in documents}

    rows = [_document_row(document) for document in documents if _same_id(document.party_id, party_id)]

    dropped = []
    for payment in payments:
        parent = documents_by_id.get(str(payment.document_id)) if payment.document_id is not None else None
        owner = payment.document_party_id
        if owner is None and parent is not None:
            owner = parent.party_id
        if owner is None:
            dropped.append(payment.id)
            continue
        if not _same_id(owner, party_id):
            continue
        document_number = payment.document_number or (parent.number if parent else None)
        rows.append(_payment_row(payment, document_number))

    if dropped:
        logger.warning(
            "Dropped %s payment(s) with no resolvable document from ledger of party %s: %s",
            len(dropped),
            party_id,
            dropped,
        )
    return rows, tuple(dropped)


def merge_supplier_ledger(
    supplier_id: Any,
    bills: Iterable[BillRecord],
    payments: Iterable[PaymentRecord],
) -> list[LedgerRow]:
    rows, _ = _merge_rows(supplier_id, bills, payments)
    return rows


def merge_client_ledger(
    client_id: Any,
    invoices: Iterable[InvoiceRecord],
    receipts: Iterable[ReceiptRecord],
) -> list[LedgerRow]:
    rows, _ = _merge_rows(client_id, invoices, receipts)
    return rows


def _sequence_key(row: LedgerRow) -> tuple[date, str]:
    return (row.date or EPOCH, row.id)


def sequence_rows(rows: Iterable[LedgerRow]) -> list[LedgerRow]:
    return sorted(rows, key=_sequence_key)


def accumulate_balances(rows: Sequence[LedgerRow]) -> list[LedgerRow]:
    balance = ZERO
    accumulated: list[LedgerRow] = []
    for row in rows:
        balance += row.debit - row.credit
        accumulated.append(replace(row, balance=balance))
    return accumulated


def summarize_ledger(rows: Sequence[LedgerRow]) -> LedgerTotals:
    total_billed = sum((row.debit for row in rows), ZERO)
    total_paid = sum((row.credit for row in rows), ZERO)
    return LedgerTotals(
        total_billed=total_billed,
        total_paid=total_paid,
        outstanding_balance=total_billed - total_paid,
    )


def build_party_ledger(party_id: Any, documents: Iterable, payments: Iterable) -> PartyLedger:
    merged, dropped = _merge_rows(party_id, documents, payments)
    rows = accumulate_balances(sequence_rows(merged))
    return PartyLedger(
        party_id=party_id,
        rows=rows,
        totals=summarize_ledger(rows),
        dropped_payment_ids=dropped,
    )


def build_supplier_ledger(
    supplier_id: Any,
    bills: Iterable[BillRecord],
    payments: Iterable[PaymentRecord],
) -> PartyLedger:
    return build_party_ledger(supplier_id, bills, payments)


def build_client_ledger(
    client_id: Any,
    invoices: Iterable[InvoiceRecord],
    receipts: Iterable[ReceiptRecord],
) -> PartyLedger:
    return build_party_ledger(client_id, invoices, receipts)
