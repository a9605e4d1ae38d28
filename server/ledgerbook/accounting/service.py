import logging
import os
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ledgerbook.accounting.posting import (
    SOURCE_BILL,
    SOURCE_INVOICE,
    SOURCE_MANUAL,
    SOURCE_RECEIPT,
    SOURCE_RECEIPT_VOID,
    JournalEntryInput,
)
from ledgerbook.accounting.validation import JournalEntryCandidate, validate_journal_entry
from ledgerbook.authorization import require_authorization
from ledgerbook.errors import EntryValidationError, NotFoundError, SourceDocumentLockedError
from ledgerbook.models import Account, Bill, Invoice, JournalEntry, JournalLine, Payment, Receipt
from ledgerbook.utils import ZERO, parse_money
from ledgerbook.views import ListViewState, Page, apply_view, date_sort_key, number_sort_key, text_sort_key


logger = logging.getLogger(__name__)

DEBIT_NORMAL_TYPES = {"ASSET", "EXPENSE", "COGS"}
CASH_ACCOUNT_CODES = {"1010", "1020", "1030"}
CASH_ACCOUNT_SUBTYPES = {"CASH", "BANK"}


def compute_account_balance(account_type: str, debit: Decimal, credit: Decimal) -> Decimal:
    """MVP balance rules by account type: debit-normal types increase on debit, others on credit."""
    if (account_type or "").upper() in DEBIT_NORMAL_TYPES:
        return debit - credit
    return credit - debit


def next_document_number(db: Session, model, prefix: str) -> str:
    last_id = db.query(func.max(model.id)).scalar() or 0
    return f"{prefix}-{int(last_id) + 1:06d}"


def get_account(db: Session, account_id: int) -> Account:
    account = db.query(Account).filter(Account.id == account_id).first()
    if not account:
        raise NotFoundError(f"Account {account_id} not found.")
    return account


def get_accounts_payable_account(db: Session) -> Account:
    code = os.getenv("AP_ACCOUNT_CODE", "2010")
    account = db.query(Account).filter(Account.code == code).first()
    if not account:
        raise ValueError(f"Accounts payable account {code} is not configured.")
    return account


def get_accounts_receivable_account(db: Session) -> Account:
    code = os.getenv("AR_ACCOUNT_CODE", "1200")
    account = db.query(Account).filter(Account.code == code).first()
    if not account:
        raise ValueError(f"Accounts receivable account {code} is not configured.")
    return account


def _ensure_accounts_exist(db: Session, account_ids: set[int]) -> None:
    found = {row[0] for row in db.query(Account.id).filter(Account.id.in_(account_ids)).all()}
    missing = sorted(account_ids - found)
    if missing:
        raise ValueError(f"Accounts not found: {', '.join(str(account_id) for account_id in missing)}.")


def _build_lines(candidate: JournalEntryCandidate) -> list[JournalLine]:
    return [
        JournalLine(
            account_id=int(line.account_id),
            debit_amount=parse_money(line.debit_amount),
            credit_amount=parse_money(line.credit_amount),
            description=(line.description or None),
        )
        for line in candidate.lines
    ]


def post_journal_entry(db: Session, entry_input: JournalEntryInput) -> JournalEntry:
    """Persist a system-built entry (bills, payments, voids); builders have already balanced it."""
    _ensure_accounts_exist(db, {line.account_id for line in entry_input.lines})
    entry = JournalEntry(
        entry_number=next_document_number(db, JournalEntry, "JE"),
        entry_date=entry_input.entry_date,
        description=entry_input.description,
        reference_number=entry_input.reference_number,
        source_type=entry_input.source_type,
        source_id=entry_input.source_id,
    )
    entry.lines = [
        JournalLine(
            account_id=line.account_id,
            debit_amount=line.debit,
            credit_amount=line.credit,
            description=line.description,
        )
        for line in entry_input.lines
    ]
    db.add(entry)
    db.flush()
    logger.info(
        "Posted %s entry %s for source_id=%s amount=%s",
        entry.source_type,
        entry.entry_number,
        entry.source_id,
        entry.total_debit,
    )
    return entry


def get_journal_entry(db: Session, entry_id: int) -> JournalEntry:
    entry = (
        db.query(JournalEntry)
        .options(selectinload(JournalEntry.lines).selectinload(JournalLine.account))
        .filter(JournalEntry.id == entry_id)
        .first()
    )
    if not entry:
        raise NotFoundError("Journal entry not found.")
    return entry


def source_edit_hint(db: Session, entry: JournalEntry) -> Optional[str]:
    if entry.source_type == SOURCE_MANUAL:
        return None
    if entry.source_type == SOURCE_BILL:
        bill = db.query(Bill).filter(Bill.id == entry.source_id).first()
        label = bill.bill_number if bill else f"#{entry.source_id}"
        return f"This entry was posted from bill {label}. Edit the bill in Suppliers & AP instead."
    if entry.source_type == SOURCE_INVOICE:
        invoice = db.query(Invoice).filter(Invoice.id == entry.source_id).first()
        label = invoice.invoice_number if invoice else f"#{entry.source_id}"
        return f"This entry was posted from invoice {label}. Edit the invoice in Clients & AR instead."
    if entry.source_type in (SOURCE_RECEIPT, SOURCE_RECEIPT_VOID):
        receipt = db.query(Receipt).filter(Receipt.id == entry.source_id).first()
        label = receipt.payment_number if receipt else f"#{entry.source_id}"
        return f"This entry was posted from receipt {label}. Void the receipt in Clients & AR instead."
    payment = db.query(Payment).filter(Payment.id == entry.source_id).first()
    label = payment.payment_number if payment else f"#{entry.source_id}"
    return f"This entry was posted from payment {label}. Void the payment in Suppliers & AP instead."


def _ensure_manual(db: Session, entry: JournalEntry) -> None:
    hint = source_edit_hint(db, entry)
    if hint:
        raise SourceDocumentLockedError("Entries posted from source documents cannot be changed here.", hint)


def _validated(db: Session, candidate: JournalEntryCandidate) -> None:
    result = validate_journal_entry(candidate)
    if not result.is_valid:
        raise EntryValidationError(result)
    _ensure_accounts_exist(db, {int(line.account_id) for line in candidate.lines})


def create_journal_entry(db: Session, candidate: JournalEntryCandidate) -> JournalEntry:
    _validated(db, candidate)
    entry = JournalEntry(
        entry_number=next_document_number(db, JournalEntry, "JE"),
        entry_date=candidate.entry_date or date.today(),
        description=candidate.description.strip(),
        reference_number=candidate.reference_number or None,
        source_type=SOURCE_MANUAL,
    )
    entry.lines = _build_lines(candidate)
    db.add(entry)
    db.flush()
    return entry


def update_journal_entry(db: Session, entry_id: int, candidate: JournalEntryCandidate) -> JournalEntry:
    entry = get_journal_entry(db, entry_id)
    _ensure_manual(db, entry)
    _validated(db, candidate)
    entry.entry_date = candidate.entry_date or entry.entry_date
    entry.description = candidate.description.strip()
    entry.reference_number = candidate.reference_number or None
    entry.lines = _build_lines(candidate)
    db.flush()
    return entry


def delete_journal_entry(
    db: Session,
    entry_id: int,
    *,
    authorization_code: Optional[str] = None,
    remarks: Optional[str] = None,
) -> None:
    entry = get_journal_entry(db, entry_id)
    _ensure_manual(db, entry)
    authorized_by = require_authorization(db, authorization_code, action="delete a journal entry")
    logger.info(
        "Deleting journal entry %s (authorization_code_id=%s remarks=%r)",
        entry.entry_number,
        authorized_by.id if authorized_by else None,
        remarks,
    )
    db.delete(entry)
    db.flush()


JOURNAL_SORT_KEYS = {
    "entry_date": lambda entry: (date_sort_key(entry.entry_date), entry.id),
    "created_at": lambda entry: (entry.created_at, entry.id),
    "description": lambda entry: text_sort_key(entry.description),
    "entry_number": lambda entry: text_sort_key(entry.entry_number),
    "total_debit": lambda entry: number_sort_key(entry.total_debit),
}


def _journal_search_fields(entry: JournalEntry):
    return (entry.description, entry.entry_number, entry.reference_number)


def list_journal_entries(db: Session, state: ListViewState) -> tuple[Page[JournalEntry], Decimal, Decimal]:
    entries = (
        db.query(JournalEntry)
        .options(selectinload(JournalEntry.lines).selectinload(JournalLine.account))
        .all()
    )
    page = apply_view(entries, state, search_fields=_journal_search_fields, sort_keys=JOURNAL_SORT_KEYS)
    total_debit = sum((entry.total_debit for entry in entries), ZERO)
    total_credit = sum((entry.total_credit for entry in entries), ZERO)
    return page, total_debit, total_credit


@dataclass(frozen=True)
class RegisterRow:
    line_id: int
    entry_id: int
    entry_number: str
    date: date
    description: str
    reference: Optional[str]
    debit: Decimal
    credit: Decimal
    balance: Decimal


def is_cash_account(account: Account) -> bool:
    return account.code in CASH_ACCOUNT_CODES or (account.subtype or "").upper() in CASH_ACCOUNT_SUBTYPES


def list_cash_bank_accounts(db: Session) -> list[tuple[Account, Decimal]]:
    accounts = [
        account
        for account in db.query(Account).filter(Account.is_active.is_(True)).order_by(Account.code.asc()).all()
        if is_cash_account(account)
    ]
    if not accounts:
        return []
    sums = {
        row.account_id: (Decimal(row.debit or 0), Decimal(row.credit or 0))
        for row in db.query(
            JournalLine.account_id.label("account_id"),
            func.coalesce(func.sum(JournalLine.debit_amount), 0).label("debit"),
            func.coalesce(func.sum(JournalLine.credit_amount), 0).label("credit"),
        )
        .filter(JournalLine.account_id.in_([account.id for account in accounts]))
        .group_by(JournalLine.account_id)
        .all()
    }
    results = []
    for account in accounts:
        debit, credit = sums.get(account.id, (ZERO, ZERO))
        results.append((account, compute_account_balance(account.type, debit, credit)))
    return results


def build_account_register(account: Account, lines: list[JournalLine]) -> list[RegisterRow]:
    """Running balance in posting order (date, entry, line), independent of how the list is later sorted."""
    ordered = sorted(lines, key=lambda line: (line.journal_entry.entry_date, line.journal_entry_id, line.id))
    balance = ZERO
    rows: list[RegisterRow] = []
    for line in ordered:
        debit = Decimal(line.debit_amount or 0)
        credit = Decimal(line.credit_amount or 0)
        balance += compute_account_balance(account.type, debit, credit)
        entry = line.journal_entry
        rows.append(
            RegisterRow(
                line_id=line.id,
                entry_id=entry.id,
                entry_number=entry.entry_number,
                date=entry.entry_date,
                description=line.description or entry.description,
                reference=entry.reference_number,
                debit=debit,
                credit=credit,
                balance=balance,
            )
        )
    return rows


REGISTER_SORT_KEYS = {
    "date": lambda row: (date_sort_key(row.date), row.entry_id, row.line_id),
    "description": lambda row: text_sort_key(row.description),
    "entry_number": lambda row: text_sort_key(row.entry_number),
    "reference": lambda row: text_sort_key(row.reference),
    "debit": lambda row: row.debit,
    "credit": lambda row: row.credit,
}


def get_account_register(db: Session, account_id: int, state: ListViewState) -> tuple[Account, Page[RegisterRow], list[RegisterRow]]:
    account = get_account(db, account_id)
    if not is_cash_account(account):
        raise ValueError("Registers are only available for cash and bank accounts.")
    lines = (
        db.query(JournalLine)
        .options(selectinload(JournalLine.journal_entry))
        .filter(JournalLine.account_id == account.id)
        .all()
    )
    rows = build_account_register(account, lines)
    page = apply_view(
        rows,
        state,
        search_fields=lambda row: (row.description, row.entry_number, row.reference),
        sort_keys=REGISTER_SORT_KEYS,
    )
    return account, page, rows
