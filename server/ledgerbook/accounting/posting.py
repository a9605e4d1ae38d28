from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List

from ledgerbook.accounting.validation import JournalEntryCandidate, JournalLineCandidate, validate_journal_entry
from ledgerbook.errors import UnbalancedEntryError


SOURCE_MANUAL = "manual"
SOURCE_BILL = "bill"
SOURCE_BILL_PAYMENT = "bill_payment"
SOURCE_PAYMENT_VOID = "bill_payment_void"
SOURCE_INVOICE = "invoice"
SOURCE_RECEIPT = "invoice_receipt"
SOURCE_RECEIPT_VOID = "invoice_receipt_void"


@dataclass(frozen=True)
class JournalLineInput:
    account_id: int
    debit: Decimal = Decimal("0.00")
    credit: Decimal = Decimal("0.00")
    description: str | None = None


@dataclass(frozen=True)
class JournalEntryInput:
    entry_date: date
    description: str
    source_type: str
    source_id: int | None
    lines: List[JournalLineInput]
    reference_number: str | None = None


def ensure_balanced(lines: List[JournalLineInput], description: str = "System posting") -> None:
    result = validate_journal_entry(
        JournalEntryCandidate(
            description=description,
            lines=[
                JournalLineCandidate(account_id=line.account_id, debit_amount=line.debit, credit_amount=line.credit)
                for line in lines
            ],
        )
    )
    if not result.is_valid:
        raise UnbalancedEntryError(
            f"Journal entry is unbalanced: debits={result.total_debit} credits={result.total_credit}"
            if not result.is_balanced
            else "; ".join(result.messages().values())
        )


def _two_line_entry(
    *,
    entry_date: date,
    debit_account_id: int,
    credit_account_id: int,
    amount: Decimal,
    description: str,
    source_type: str,
    source_id: int | None,
    reference_number: str | None,
) -> JournalEntryInput:
    lines = [
        JournalLineInput(account_id=debit_account_id, debit=amount, credit=Decimal("0.00")),
        JournalLineInput(account_id=credit_account_id, debit=Decimal("0.00"), credit=amount),
    ]
    ensure_balanced(lines, description)
    return JournalEntryInput(
        entry_date=entry_date,
        description=description,
        source_type=source_type,
        source_id=source_id,
        lines=lines,
        reference_number=reference_number,
    )


def build_bill_entry(
    *,
    entry_date: date,
    expense_account_id: int,
    accounts_payable_id: int,
    amount: Decimal,
    description: str,
    bill_number: str | None = None,
    source_id: int | None = None,
) -> JournalEntryInput:
    return _two_line_entry(
        entry_date=entry_date,
        debit_account_id=expense_account_id,
        credit_account_id=accounts_payable_id,
        amount=amount,
        description=description,
        source_type=SOURCE_BILL,
        source_id=source_id,
        reference_number=bill_number,
    )


def build_bill_payment_entry(
    *,
    entry_date: date,
    accounts_payable_id: int,
    cash_account_id: int,
    amount: Decimal,
    description: str,
    payment_number: str | None = None,
    source_id: int | None = None,
) -> JournalEntryInput:
    return _two_line_entry(
        entry_date=entry_date,
        debit_account_id=accounts_payable_id,
        credit_account_id=cash_account_id,
        amount=amount,
        description=description,
        source_type=SOURCE_BILL_PAYMENT,
        source_id=source_id,
        reference_number=payment_number,
    )


def build_payment_void_entry(
    *,
    entry_date: date,
    accounts_payable_id: int,
    cash_account_id: int,
    amount: Decimal,
    description: str,
    payment_number: str | None = None,
    source_id: int | None = None,
) -> JournalEntryInput:
    """Reversal of a bill payment: cash comes back, the payable is restored."""
    return _two_line_entry(
        entry_date=entry_date,
        debit_account_id=cash_account_id,
        credit_account_id=accounts_payable_id,
        amount=amount,
        description=description,
        source_type=SOURCE_PAYMENT_VOID,
        source_id=source_id,
        reference_number=payment_number,
    )


def build_invoice_entry(
    *,
    entry_date: date,
    accounts_receivable_id: int,
    income_account_id: int,
    amount: Decimal,
    description: str,
    invoice_number: str | None = None,
    source_id: int | None = None,
) -> JournalEntryInput:
    return _two_line_entry(
        entry_date=entry_date,
        debit_account_id=accounts_receivable_id,
        credit_account_id=income_account_id,
        amount=amount,
        description=description,
        source_type=SOURCE_INVOICE,
        source_id=source_id,
        reference_number=invoice_number,
    )


def build_receipt_entry(
    *,
    entry_date: date,
    cash_account_id: int,
    accounts_receivable_id: int,
    amount: Decimal,
    description: str,
    payment_number: str | None = None,
    source_id: int | None = None,
) -> JournalEntryInput:
    return _two_line_entry(
        entry_date=entry_date,
        debit_account_id=cash_account_id,
        credit_account_id=accounts_receivable_id,
        amount=amount,
        description=description,
        source_type=SOURCE_RECEIPT,
        source_id=source_id,
        reference_number=payment_number,
    )


def build_receipt_void_entry(
    *,
    entry_date: date,
    cash_account_id: int,
    accounts_receivable_id: int,
    amount: Decimal,
    description: str,
    payment_number: str | None = None,
    source_id: int | None = None,
) -> JournalEntryInput:
    """Reversal of a client receipt: the receivable is restored, cash goes back out."""
    return _two_line_entry(
        entry_date=entry_date,
        debit_account_id=accounts_receivable_id,
        credit_account_id=cash_account_id,
        amount=amount,
        description=description,
        source_type=SOURCE_RECEIPT_VOID,
        source_id=source_id,
        reference_number=payment_number,
    )
