import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ledgerbook.accounting.posting import (
    SOURCE_BILL,
    build_bill_entry,
    build_bill_payment_entry,
    build_payment_void_entry,
)
from ledgerbook.accounting.service import (
    get_account,
    get_accounts_payable_account,
    is_cash_account,
    next_document_number,
    post_journal_entry,
)
from ledgerbook.errors import (
    BillLockedError,
    NotFoundError,
    PaymentAlreadyVoidedError,
    SupplierInUseError,
)
from ledgerbook.ledger.calculations import BillRecord, PartyLedger, PaymentRecord, build_supplier_ledger
from ledgerbook.models import Bill, JournalEntry, JournalLine, Payment, Supplier
from ledgerbook.ledger.status import classify_bill_status, stored_status_for
from ledgerbook.utils import ZERO, quantize_money


logger = logging.getLogger(__name__)


def get_supplier(db: Session, supplier_id: int) -> Supplier:
    supplier = db.query(Supplier).filter(Supplier.id == supplier_id).first()
    if not supplier:
        raise NotFoundError("Supplier not found.")
    return supplier


def list_suppliers(db: Session, search: Optional[str] = None, active_only: bool = False) -> Sequence[Supplier]:
    query = db.query(Supplier)
    if active_only:
        query = query.filter(Supplier.is_active.is_(True))
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(
            func.lower(Supplier.name).like(like)
            | func.lower(func.coalesce(Supplier.email, "")).like(like)
            | func.lower(func.coalesce(Supplier.contact_person, "")).like(like)
        )
    return query.order_by(Supplier.name).all()


def supplier_payables(db: Session, supplier_ids: Iterable[int]) -> dict[int, Decimal]:
    supplier_ids = list(supplier_ids)
    if not supplier_ids:
        return {}
    rows = (
        db.query(
            Bill.supplier_id.label("supplier_id"),
            func.coalesce(func.sum(Bill.total_amount - Bill.paid_amount), 0).label("outstanding"),
        )
        .filter(Bill.supplier_id.in_(supplier_ids))
        .group_by(Bill.supplier_id)
        .all()
    )
    payables = {supplier_id: ZERO for supplier_id in supplier_ids}
    for row in rows:
        payables[row.supplier_id] = quantize_money(row.outstanding)
    return payables


def create_supplier(db: Session, payload: dict) -> Supplier:
    supplier = Supplier(**payload)
    db.add(supplier)
    db.flush()
    return supplier


def update_supplier(db: Session, supplier: Supplier, payload: dict) -> Supplier:
    for key, value in payload.items():
        setattr(supplier, key, value)
    supplier.updated_at = datetime.utcnow()
    db.flush()
    return supplier


def delete_supplier(db: Session, supplier: Supplier) -> None:
    if db.query(Bill.id).filter(Bill.supplier_id == supplier.id).first() is not None:
        raise SupplierInUseError("Cannot delete supplier because it has bills. Deactivate it instead.")
    db.delete(supplier)
    db.flush()


def get_bill(db: Session, bill_id: int) -> Bill:
    bill = (
        db.query(Bill)
        .options(selectinload(Bill.payments), selectinload(Bill.supplier))
        .filter(Bill.id == bill_id)
        .first()
    )
    if not bill:
        raise NotFoundError("Bill not found.")
    return bill


def display_status(bill: Bill, today: Optional[date] = None) -> str:
    return classify_bill_status(bill.status, bill.balance, bill.due_date, today=today)


def list_bills(
    db: Session,
    *,
    supplier_id: Optional[int] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    today: Optional[date] = None,
) -> list[Bill]:
    query = db.query(Bill).options(selectinload(Bill.supplier))
    if supplier_id:
        query = query.filter(Bill.supplier_id == supplier_id)
    if search:
        like = f"%{search.lower()}%"
        query = query.join(Supplier, Supplier.id == Bill.supplier_id).filter(
            func.lower(Bill.bill_number).like(like)
            | func.lower(func.coalesce(Bill.description, "")).like(like)
            | func.lower(Supplier.name).like(like)
        )
    bills = query.order_by(Bill.bill_date.desc(), Bill.id.desc()).all()
    if status:
        bills = [bill for bill in bills if display_status(bill, today) == status]
    return bills


def _bill_entry_input(db: Session, bill: Bill):
    ap_account = get_accounts_payable_account(db)
    return build_bill_entry(
        entry_date=bill.bill_date,
        expense_account_id=bill.expense_account_id,
        accounts_payable_id=ap_account.id,
        amount=Decimal(bill.total_amount),
        description=bill.description or f"Bill {bill.bill_number} - {bill.supplier.name}",
        bill_number=bill.bill_number,
        source_id=bill.id,
    )


def _bill_journal_entry(db: Session, bill: Bill) -> Optional[JournalEntry]:
    return (
        db.query(JournalEntry)
        .filter(JournalEntry.source_type == SOURCE_BILL, JournalEntry.source_id == bill.id)
        .first()
    )


def create_bill(db: Session, payload: dict) -> Bill:
    supplier = get_supplier(db, payload["supplier_id"])
    if not supplier.is_active:
        raise ValueError("Bills cannot be recorded for an inactive supplier.")
    get_account(db, payload["expense_account_id"])
    due_date = payload.get("due_date")
    if due_date and due_date < payload["bill_date"]:
        raise ValueError("Due date cannot be before the bill date.")

    bill = Bill(
        bill_number=next_document_number(db, Bill, "BILL"),
        supplier_id=supplier.id,
        expense_account_id=payload["expense_account_id"],
        bill_date=payload["bill_date"],
        due_date=due_date,
        description=payload.get("description"),
        total_amount=quantize_money(payload["total_amount"]),
        paid_amount=ZERO,
        status="received",
    )
    bill.supplier = supplier
    db.add(bill)
    db.flush()
    post_journal_entry(db, _bill_entry_input(db, bill))
    logger.info("Recorded bill %s for supplier_id=%s total=%s", bill.bill_number, supplier.id, bill.total_amount)
    return bill


def _ensure_unpaid(bill: Bill, action: str) -> None:
    if Decimal(bill.paid_amount or 0) > 0:
        raise BillLockedError(f"Bill {bill.bill_number} already has payments and cannot be {action}.")


REQUIRED_BILL_FIELDS = ("bill_date", "expense_account_id", "total_amount")


def update_bill(db: Session, bill: Bill, payload: dict) -> Bill:
    _ensure_unpaid(bill, "edited")
    cleared = [field for field in REQUIRED_BILL_FIELDS if field in payload and payload[field] is None]
    if cleared:
        raise ValueError(f"Bill fields cannot be cleared: {', '.join(cleared)}.")
    if payload.get("expense_account_id") is not None:
        get_account(db, payload["expense_account_id"])
    for field in ["bill_date", "due_date", "expense_account_id", "description"]:
        if field in payload:
            setattr(bill, field, payload[field])
    if payload.get("total_amount") is not None:
        bill.total_amount = quantize_money(payload["total_amount"])
    if bill.due_date and bill.due_date < bill.bill_date:
        raise ValueError("Due date cannot be before the bill date.")
    bill.updated_at = datetime.utcnow()

    entry = _bill_journal_entry(db, bill)
    entry_input = _bill_entry_input(db, bill)
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
    return bill


def delete_bill(db: Session, bill: Bill) -> None:
    _ensure_unpaid(bill, "deleted")
    if bill.payments:
        raise BillLockedError(f"Bill {bill.bill_number} has payment history and cannot be deleted.")
    entry = _bill_journal_entry(db, bill)
    if entry is not None:
        db.delete(entry)
    db.delete(bill)
    db.flush()


def recalculate_bill_balance(bill: Bill) -> None:
    paid = sum((Decimal(payment.amount) for payment in bill.payments if payment.voided_at is None), ZERO)
    bill.paid_amount = quantize_money(paid)
    bill.status = stored_status_for(Decimal(bill.total_amount), bill.paid_amount, bill.status)


def get_payment(db: Session, payment_id: int) -> Payment:
    payment = (
        db.query(Payment)
        .options(selectinload(Payment.bill).selectinload(Bill.payments))
        .filter(Payment.id == payment_id)
        .first()
    )
    if not payment:
        raise NotFoundError("Payment not found.")
    return payment


def record_payment(db: Session, payload: dict) -> Payment:
    bill = get_bill(db, payload["bill_id"])
    cash_account = get_account(db, payload["cash_account_id"])
    if not is_cash_account(cash_account):
        raise ValueError("Payments must be drawn from a cash or bank account.")

    amount = quantize_money(payload["amount"])
    if amount <= 0:
        raise ValueError("Payment amount must be greater than 0.")
    if amount > bill.balance:
        raise ValueError("Payment amount cannot exceed the bill balance.")

    payment = Payment(
        payment_number=next_document_number(db, Payment, "PAY"),
        bill_id=bill.id,
        cash_account_id=cash_account.id,
        payment_date=payload["payment_date"],
        amount=amount,
        payment_method=payload.get("payment_method") or "cash",
        reference_number=payload.get("reference_number"),
        notes=payload.get("notes"),
    )
    bill.payments.append(payment)
    db.flush()
    recalculate_bill_balance(bill)

    ap_account = get_accounts_payable_account(db)
    post_journal_entry(
        db,
        build_bill_payment_entry(
            entry_date=payment.payment_date,
            accounts_payable_id=ap_account.id,
            cash_account_id=cash_account.id,
            amount=amount,
            description=f"Payment {payment.payment_number} for {bill.bill_number}",
            payment_number=payment.payment_number,
            source_id=payment.id,
        ),
    )
    db.flush()
    logger.info("Recorded payment %s of %s against bill %s", payment.payment_number, amount, bill.bill_number)
    return payment


def void_payment(db: Session, payment_id: int, reason: Optional[str] = None) -> Payment:
    payment = get_payment(db, payment_id)
    if payment.voided_at is not None:
        raise PaymentAlreadyVoidedError(f"Payment {payment.payment_number} is already voided.")

    payment.voided_at = datetime.utcnow()
    payment.void_reason = reason
    bill = payment.bill
    recalculate_bill_balance(bill)

    ap_account = get_accounts_payable_account(db)
    post_journal_entry(
        db,
        build_payment_void_entry(
            entry_date=payment.voided_at.date(),
            accounts_payable_id=ap_account.id,
            cash_account_id=payment.cash_account_id,
            amount=Decimal(payment.amount),
            description=f"Void of payment {payment.payment_number} for {bill.bill_number}",
            payment_number=payment.payment_number,
            source_id=payment.id,
        ),
    )
    db.flush()
    logger.info("Voided payment %s on bill %s", payment.payment_number, bill.bill_number)
    return payment


def bill_record(bill: Bill) -> BillRecord:
    return BillRecord(
        id=bill.id,
        supplier_id=bill.supplier_id,
        bill_number=bill.bill_number,
        bill_date=bill.bill_date,
        total_amount=bill.total_amount,
        description=bill.description,
    )


def payment_record(payment: Payment) -> PaymentRecord:
    bill = payment.bill
    return PaymentRecord(
        id=payment.id,
        bill_id=payment.bill_id,
        amount=payment.amount,
        payment_date=payment.payment_date,
        voided_at=payment.voided_at,
        payment_number=payment.payment_number,
        reference_number=payment.reference_number,
        notes=payment.notes,
        bill_supplier_id=bill.supplier_id if bill else None,
        bill_number=bill.bill_number if bill else None,
    )


def get_supplier_ledger(db: Session, supplier_id: int) -> PartyLedger:
    bills = db.query(Bill).filter(Bill.supplier_id == supplier_id).all()
    bill_ids = [bill.id for bill in bills]
    payments = (
        db.query(Payment).options(selectinload(Payment.bill)).filter(Payment.bill_id.in_(bill_ids)).all()
        if bill_ids
        else []
    )
    return build_supplier_ledger(
        supplier_id,
        [bill_record(bill) for bill in bills],
        [payment_record(payment) for payment in payments],
    )
