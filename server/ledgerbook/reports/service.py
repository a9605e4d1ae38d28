"""Financial statements and dashboard alerts derived from posted journal lines.

Every figure is recomputed from ``journal_lines`` on read; nothing here is
stored. Account balances follow ``compute_account_balance`` so the reports
agree with the cash/bank register and the chart of accounts.
"""
import logging
import os
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ledgerbook.accounting.service import DEBIT_NORMAL_TYPES, compute_account_balance, list_cash_bank_accounts
from ledgerbook.clients.service import display_status as invoice_display_status
from ledgerbook.models import Account, Bill, Invoice, JournalEntry, JournalLine
from ledgerbook.suppliers.service import display_status as bill_display_status
from ledgerbook.utils import ZERO, format_money, quantize_money


logger = logging.getLogger(__name__)

INCOME_SECTIONS = {"INCOME": "revenue", "COGS": "cogs", "EXPENSE": "expense"}
BALANCE_SECTIONS = {"ASSET": "asset", "LIABILITY": "liability", "EQUITY": "equity"}
BALANCE_TOLERANCE = Decimal("0.01")


def _check_period(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and start_date > end_date:
        raise ValueError("Start date cannot be after the end date.")


def account_activity(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> list[tuple[Account, Decimal, Decimal]]:
    """Debit and credit totals per account for entries dated inside the period."""
    _check_period(start_date, end_date)
    query = (
        db.query(
            JournalLine.account_id.label("account_id"),
            func.coalesce(func.sum(JournalLine.debit_amount), 0).label("debit"),
            func.coalesce(func.sum(JournalLine.credit_amount), 0).label("credit"),
        )
        .join(JournalEntry, JournalEntry.id == JournalLine.journal_entry_id)
    )
    if start_date:
        query = query.filter(JournalEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(JournalEntry.entry_date <= end_date)
    sums = {
        row.account_id: (quantize_money(row.debit), quantize_money(row.credit))
        for row in query.group_by(JournalLine.account_id).all()
    }
    if not sums:
        return []
    accounts = db.query(Account).filter(Account.id.in_(sums)).order_by(Account.code.asc()).all()
    return [(account, *sums[account.id]) for account in accounts]


def trial_balance(db: Session, start_date: Optional[date] = None, end_date: Optional[date] = None) -> dict:
    rows = []
    total_debit = ZERO
    total_credit = ZERO
    for account, debit, credit in account_activity(db, start_date, end_date):
        balance = compute_account_balance(account.type, debit, credit)
        debit_normal = (account.type or "").upper() in DEBIT_NORMAL_TYPES
        # A balance on the wrong side of its normal balance moves to the other column.
        if (balance >= 0) == debit_normal:
            debit_balance, credit_balance = abs(balance), ZERO
        else:
            debit_balance, credit_balance = ZERO, abs(balance)
        total_debit += debit_balance
        total_credit += credit_balance
        rows.append(
            {
                "account_id": account.id,
                "account_code": account.code,
                "account_name": account.name,
                "account_type": account.type,
                "debit_balance": debit_balance,
                "credit_balance": credit_balance,
            }
        )
    return {
        "start_date": start_date,
        "end_date": end_date,
        "accounts": rows,
        "total_debit": total_debit,
        "total_credit": total_credit,
        "is_balanced": total_debit == total_credit,
    }


def income_statement(db: Session, start_date: Optional[date] = None, end_date: Optional[date] = None) -> dict:
    lines = []
    sections = {key: ZERO for key in INCOME_SECTIONS.values()}
    for account, debit, credit in account_activity(db, start_date, end_date):
        section = INCOME_SECTIONS.get((account.type or "").upper())
        if section is None:
            continue
        amount = compute_account_balance(account.type, debit, credit)
        sections[section] += amount
        lines.append(
            {
                "account_code": account.code,
                "account_name": account.name,
                "account_type": section,
                "amount": amount,
            }
        )
    gross_profit = sections["revenue"] - sections["cogs"]
    operating_income = gross_profit - sections["expense"]
    return {
        "start_date": start_date,
        "end_date": end_date,
        "lines": lines,
        "sections": {key: {"total": total} for key, total in sections.items()},
        "totals": {
            "revenue": sections["revenue"],
            "gross_profit": gross_profit,
            "operating_income": operating_income,
            "net_income": operating_income,
        },
    }


def balance_sheet(db: Session, start_date: Optional[date] = None, end_date: Optional[date] = None) -> dict:
    """Balances are cumulative up to ``end_date``; ``start_date`` only bounds the net income line."""
    _check_period(start_date, end_date)
    lines = []
    sections = {key: ZERO for key in BALANCE_SECTIONS.values()}
    for account, debit, credit in account_activity(db, None, end_date):
        section = BALANCE_SECTIONS.get((account.type or "").upper())
        if section is None:
            continue
        balance = compute_account_balance(account.type, debit, credit)
        sections[section] += balance
        lines.append(
            {
                "account_code": account.code,
                "account_name": account.name,
                "account_type": section,
                "balance": balance,
            }
        )
    net_income = income_statement(db, start_date, end_date)["totals"]["net_income"]
    liabilities_equity = sections["liability"] + sections["equity"] + net_income
    return {
        "start_date": start_date,
        "end_date": end_date,
        "lines": lines,
        "sections": {key: {"total": total} for key, total in sections.items()},
        "totals": {
            "assets": sections["asset"],
            "liabilities_equity": liabilities_equity,
            "net_income": net_income,
            "is_balanced": sections["asset"] == liabilities_equity,
        },
    }


def _low_cash_threshold() -> Decimal:
    return quantize_money(os.getenv("LOW_CASH_THRESHOLD", "10000"))


def dashboard_alerts(db: Session, today: Optional[date] = None) -> list[dict]:
    today = today or date.today()
    alerts = []

    invoices = db.query(Invoice).options(selectinload(Invoice.client)).order_by(Invoice.due_date.asc()).all()
    for invoice in invoices:
        if invoice_display_status(invoice, today) == "overdue":
            alerts.append(
                {
                    "kind": "overdue_invoice",
                    "source_id": invoice.id,
                    "reference": invoice.invoice_number,
                    "message": (
                        f"Invoice {invoice.invoice_number} for {invoice.client.name} is overdue "
                        f"({format_money(invoice.balance)} outstanding)"
                    ),
                }
            )

    bills = db.query(Bill).options(selectinload(Bill.supplier)).order_by(Bill.due_date.asc()).all()
    for bill in bills:
        if bill_display_status(bill, today) == "overdue":
            alerts.append(
                {
                    "kind": "overdue_bill",
                    "source_id": bill.id,
                    "reference": bill.bill_number,
                    "message": (
                        f"Bill {bill.bill_number} from {bill.supplier.name} is overdue "
                        f"({format_money(bill.balance)} outstanding)"
                    ),
                }
            )

    threshold = _low_cash_threshold()
    for account, balance in list_cash_bank_accounts(db):
        if balance < threshold:
            alerts.append(
                {
                    "kind": "low_cash",
                    "source_id": account.id,
                    "reference": account.code,
                    "message": f"{account.name} balance is {format_money(balance)}, below {format_money(threshold)}",
                }
            )

    entries = db.query(JournalEntry).options(selectinload(JournalEntry.lines)).order_by(JournalEntry.id.asc()).all()
    for entry in entries:
        difference = abs(entry.total_debit - entry.total_credit)
        if difference > BALANCE_TOLERANCE:
            logger.warning("Journal entry %s is out of balance by %s", entry.entry_number, difference)
            alerts.append(
                {
                    "kind": "unbalanced_entry",
                    "source_id": entry.id,
                    "reference": entry.entry_number,
                    "message": f"Journal entry {entry.entry_number} is out of balance by {format_money(difference)}",
                }
            )
    return alerts
