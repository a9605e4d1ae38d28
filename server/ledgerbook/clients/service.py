import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ledgerbook.accounting.posting import (
    SOURCE_INVOICE,
    build_invoice_entry,
    build_receipt_entry,
    build_receipt_void_entry,
)
from ledgerbook.accounting.service import (
    get_account,
    get_accounts_receivable_account,
    is_cash_account,
    next_document_number,
    post_journal_entry,
)
from ledgerbook.errors import (
    ClientInUseError,
    InvoiceLockedError,
    NotFoundError,
    PaymentAlreadyVoidedError,
)
from ledgerbook.ledger.calculations import InvoiceRecord, PartyLedger, ReceiptRecord, build_client_ledger
from ledgerbook.ledger.status import INVOICE_OPEN_STATUS, classify_invoice_status, stored_status_for
from ledgerbook.models import Client, Invoice, JournalEntry, JournalLine, Receipt
from ledgerbook.utils import ZERO, quantize_money


logger = logging.getLogger(__name__)

REQUIRED_INVOICE_FIELDS = ("invoice_date", "income_account_id", "total_amount")


def get_client(db: Session, client_id: int) -> Client:
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise NotFoundError("Client not found.")
    return client


def list_clients(db: Session, search: Optional[str] = None, active_only: bool = False) -> Sequence[Client]:
    query = db.query(Client)
    if active_only:
        query = query.filter(Client.is_active.is_(True))
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(
            func.lower(Client.name).like(like)
            | func.lower(func.coalesce(Client.email, "")).like(like)
            | func.lower(func.coalesce(Client.contact_person, "")).like(like)
        )
    return query.order_by(Client.name).all()


def client_receivables(db: Session, client_ids: Iterable[int]) -> dict[int, Decimal]:
    client_ids = list(client_ids)
    if not client_ids:
        return {}
    rows = (
        db.query(
            Invoice.client_id.label("client_id"),
            func.coalesce(func.sum(Invoice.total_amount - Invoice.paid_amount), 0).label("outstanding"),
        )
        .filter(Invoice.client_id.in_(client_ids))
        .group_by(Invoice.client_id)
        .all()
    )
    receivables = {client_id: ZERO for client_id in client_ids}
    for row in rows:
        receivables[row.client_id] = quantize_money(row.outstanding)
    return receivables


def create_client(db: Session, payload: dict) -> Client:
    client = Client(**payload)
    db.add(client)
    db.flush()
    return client


def update_client(db: Session, client: Client, payload: dict) -> Client:
    for key, value in payload.items():
        setattr(client, key, value)
    client.updated_at = datetime.utcnow()
    db.flush()
    return client


def delete_client(db: Session, client: Client) -> None:
    if db.query(Invoice.id).filter(Invoice.client_id == client.id).first() is not None:
        raise ClientInUseError("Cannot delete client because it has invoices. Deactivate it instead.")
    db.delete(client)
    db.flush()


def get_invoice(db: Session, invoice_id: int) -> Invoice:
    invoice = (
        db.query(Invoice)
        .options(selectinload(Invoice.receipts), selectinload(Invoice.client))
        .filter(Invoice.id == invoice_id)
        .first()
    )
    if not invoice:
        raise NotFoundError("Invoice not found.")
    return invoice


def display_status(invoice: Invoice, today: Optional[date] = None) -> str:
    return classify_invoice_status(invoice.status, invoice.balance, invoice.due_date, today=today)


def list_invoices(
    db: Session,
    *,
    client_id: Optional[int] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    today: Optional[date] = None,
) -> list[Invoice]:
    query = db.query(Invoice).options(selectinload(Invoice.client))
    if client_id:
        query = query.filter(Invoice.client_id == client_id)
    if search:
        like = f"%{search.lower()}%"
        query = query.join(Client, Client.id == Invoice.client_id).filter(
            func.lower(Invoice.invoice_number).like(like)
            | func.lower(func.coalesce(Invoice.description, "")).like(like)
            | func.lower(Client.name).like(like)
        )
    invoices = query.order_by(Invoice.invoice_date.desc(), Invoice.id.desc()).all()
    if status:
        invoices = [invoice for invoice in invoices if display_status(invoice, today) == status]
    return invoices


def _invoice_entry_input(db: Session, invoice: Invoice):
    ar_account = get_accounts_receivable_account(db)
    return build_invoice_entry(
        entry_date=invoice.invoice_date,
        accounts_receivable_id=ar_account.id,
        income_account_id=invoice.income_account_id,
        amount=Decimal(invoice.total_amount),
        description=invoice.description or f"Invoice {invoice.invoice_number} - {invoice.client.name}",
        invoice_number=invoice.invoice_number,
        source_id=invoice.id,
    )


def _invoice_journal_entry(db: Session, invoice: Invoice) -> Optional[JournalEntry]:
    return (
        db.query(JournalEntry)
        .filter(JournalEntry.source_type == SOURCE_INVOICE, JournalEntry.source_id == invoice.id)
        .first()
    )


def create_invoice(db: Session, payload: dict) -> Invoice:
    client = get_client(db, payload["client_id"])
    if not client.is_active:
        raise ValueError("Invoices cannot be issued to an inactive client.")
    get_account(db, payload["income_account_id"])
    due_date = payload.get("due_date")
    if due_date and due_date < payload["invoice_date"]:
        raise ValueError("Due date cannot be before the invoice date.")

    invoice = Invoice(
        invoice_number=next_document_number(db, Invoice, "INV"),
        client_id=client.id,
        income_account_id=payload["income_account_id"],
        invoice_date=payload["invoice_date"],
        due_date=due_date,
        description=payload.get("description"),
        total_amount=quantize_money(payload["total_amount"]),
        paid_amount=ZERO,
        status=INVOICE_OPEN_STATUS,
    )
    invoice.client = client
    db.add(invoice)
    db.flush()
    post_journal_entry(db, _invoice_entry_input(db, invoice))
    logger.info("Issued invoice %s to client_id=%s total=%s", invoice.invoice_number, client.id, invoice.total_amount)
    return invoice


def _ensure_unpaid(invoice: Invoice, action: str) -> None:
    if Decimal(invoice.paid_amount or 0) > 0:
        raise InvoiceLockedError(f"Invoice {invoice.invoice_number} already has receipts and cannot be {action}.")


def update_invoice(db: Session, invoice: Invoice, payload: dict) -> Invoice:
    _ensure_unpaid(invoice, "edited")
    cleared = [field for field in REQUIRED_INVOICE_FIELDS if field in payload and payload[field] is None]
    if cleared:
        raise ValueError(f"Invoice fields cannot be cleared: {', '.join(cleared)}.")
    if payload.get("income_account_id") is not None:
        get_account(db, payload["income_account_id"])
    for field in ["invoice_date", "due_date", "income_account_id", "description"]:
        if field in payload:
            setattr(invoice, field, payload[field])
    if payload.get("total_amount") is not None:
        invoice.total_amount = quantize_money(payload["total_amount"])
    if invoice.due_date and invoice.due_date < invoice.invoice_date:
        raise ValueError("Due date cannot be before the invoice date.")
    invoice.updated_at = datetime.utcnow()

    entry = _invoice_journal_entry(db, invoice)
    entry_input = _invoice_entry_input(db, invoice)
    if entry is None:
        post_journal_entry(db, entry_input)
    else:
        entry.entry_date = entry_input.entry_date
        entry.description = entry_input.description
        entry.lines = [
            JournalLine(account_id=line.account_id, debit_amount=line.debit, credit_amount=line.credit)
            for line in entry_input.lines
        ]
    db.flush()
    return invoice


def delete_invoice(db: Session, invoice: Invoice) -> None:
    _ensure_unpaid(invoice, "deleted")
    if invoice.receipts:
        raise InvoiceLockedError(f"Invoice {invoice.invoice_number} has receipt history and cannot be deleted.")
    entry = _invoice_journal_entry(db, invoice)
    if entry is not None:
        db.delete(entry)
    db.delete(invoice)
    db.flush()


def recalculate_invoice_balance(invoice: Invoice) -> None:
    received = sum((Decimal(receipt.amount) for receipt in invoice.receipts if receipt.voided_at is None), ZERO)
    invoice.paid_amount = quantize_money(received)
    invoice.status = stored_status_for(
        Decimal(invoice.total_amount), invoice.paid_amount, invoice.status, open_status=INVOICE_OPEN_STATUS
    )


def get_receipt(db: Session, receipt_id: int) -> Receipt:
    receipt = (
        db.query(Receipt)
        .options(selectinload(Receipt.invoice).selectinload(Invoice.receipts))
        .filter(Receipt.id == receipt_id)
        .first()
    )
    if not receipt:
        raise NotFoundError("Receipt not found.")
    return receipt


def record_receipt(db: Session, payload: dict) -> Receipt:
    invoice = get_invoice(db, payload["invoice_id"])
    cash_account = get_account(db, payload["cash_account_id"])
    if not is_cash_account(cash_account):
        raise ValueError("Receipts must be deposited to a cash or bank account.")

    amount = quantize_money(payload["amount"])
    if amount <= 0:
        raise ValueError("Receipt amount must be greater than 0.")
    if amount > invoice.balance:
        raise ValueError("Receipt amount cannot exceed the invoice balance.")

    receipt = Receipt(
        payment_number=next_document_number(db, Receipt, "RCT"),
        invoice_id=invoice.id,
        cash_account_id=cash_account.id,
        payment_date=payload["payment_date"],
        amount=amount,
        payment_method=payload.get("payment_method") or "cash",
        reference_number=payload.get("reference_number"),
        notes=payload.get("notes"),
    )
    invoice.receipts.append(receipt)
    db.flush()
    recalculate_invoice_balance(invoice)

    ar_account = get_accounts_receivable_account(db)
    post_journal_entry(
        db,
        build_receipt_entry(
            entry_date=receipt.payment_date,
            cash_account_id=cash_account.id,
            accounts_receivable_id=ar_account.id,
            amount=amount,
            description=f"Receipt {receipt.payment_number} for {invoice.invoice_number}",
            payment_number=receipt.payment_number,
            source_id=receipt.id,
        ),
    )
    db.flush()
    logger.info("Recorded receipt %s of %s against invoice %s", receipt.payment_number, amount, invoice.invoice_number)
    return receipt


def void_receipt(db: Session, receipt_id: int, reason: Optional[str] = None) -> Receipt:
    receipt = get_receipt(db, receipt_id)
    if receipt.voided_at is not None:
        raise PaymentAlreadyVoidedError(f"Receipt {receipt.payment_number} is already voided.")

    receipt.voided_at = datetime.utcnow()
    receipt.void_reason = reason
    invoice = receipt.invoice
    recalculate_invoice_balance(invoice)

    ar_account = get_accounts_receivable_account(db)
    post_journal_entry(
        db,
        build_receipt_void_entry(
            entry_date=receipt.voided_at.date(),
            cash_account_id=receipt.cash_account_id,
            accounts_receivable_id=ar_account.id,
            amount=Decimal(receipt.amount),
            description=f"Void of receipt {receipt.payment_number} for {invoice.invoice_number}",
            payment_number=receipt.payment_number,
            source_id=receipt.id,
        ),
    )
    db.flush()
    logger.info("Voided receipt %s on invoice %s", receipt.payment_number, invoice.invoice_number)
    return receipt


def invoice_record(invoice: Invoice) -> InvoiceRecord:
    return InvoiceRecord(
        id=invoice.id,
        client_id=invoice.client_id,
        invoice_number=invoice.invoice_number,
        invoice_date=invoice.invoice_date,
        total_amount=invoice.total_amount,
        description=invoice.description,
    )


def receipt_record(receipt: Receipt) -> ReceiptRecord:
    invoice = receipt.invoice
    return ReceiptRecord(
        id=receipt.id,
        invoice_id=receipt.invoice_id,
        amount=receipt.amount,
        payment_date=receipt.payment_date,
        voided_at=receipt.voided_at,
        payment_number=receipt.payment_number,
        reference_number=receipt.reference_number,
        notes=receipt.notes,
        invoice_client_id=invoice.client_id if invoice else None,
        invoice_number=invoice.invoice_number if invoice else None,
    )


def get_client_ledger(db: Session, client_id: int) -> PartyLedger:
    invoices = db.query(Invoice).filter(Invoice.client_id == client_id).all()
    invoice_ids = [invoice.id for invoice in invoices]
    receipts = (
        db.query(Receipt).options(selectinload(Receipt.invoice)).filter(Receipt.invoice_id.in_(invoice_ids)).all()
        if invoice_ids
        else []
    )
    return build_client_ledger(
        client_id,
        [invoice_record(invoice) for invoice in invoices],
        [receipt_record(receipt) for receipt in receipts],
    )
