import logging
import os

from sqlalchemy.orm import Session

from .accounting.service import DEBIT_NORMAL_TYPES
from .authorization import create_authorization_code, has_active_codes
from .db import SessionLocal
from .models import Account

logger = logging.getLogger(__name__)


DEFAULT_ACCOUNTS = [
    ("1010", "Cash on Hand", "ASSET", "Cash"),
    ("1020", "Cash in Bank", "ASSET", "Bank"),
    ("1030", "Petty Cash", "ASSET", "Cash"),
    ("1200", "Accounts Receivable", "ASSET", None),
    ("2010", "Accounts Payable", "LIABILITY", None),
    ("3010", "Owner's Capital", "EQUITY", None),
    ("4010", "Service Revenue", "INCOME", None),
    ("5010", "Rent Expense", "EXPENSE", None),
    ("5020", "Utilities Expense", "EXPENSE", None),
    ("5030", "Office Supplies Expense", "EXPENSE", None),
]


def _normal_balance(account_type: str) -> str:
    return "debit" if account_type in DEBIT_NORMAL_TYPES else "credit"


def _upsert_account(db: Session, code: str, name: str, account_type: str, subtype) -> bool:
    """Insert the account, or reconcile type/subtype on an existing code. Returns True on insert."""
    account = db.query(Account).filter(Account.code == code).first()
    if account:
        account.type = account_type
        account.normal_balance = _normal_balance(account_type)
        if subtype and not account.subtype:
            account.subtype = subtype
        return False

    db.add(
        Account(
            code=code,
            name=name,
            type=account_type,
            subtype=subtype,
            normal_balance=_normal_balance(account_type),
            is_active=True,
        )
    )
    return True


def seed_chart_of_accounts(db: Session) -> int:
    inserted = 0
    for code, name, account_type, subtype in DEFAULT_ACCOUNTS:
        if _upsert_account(db, code, name, account_type, subtype):
            inserted += 1
    db.flush()
    return inserted


def run_seed():
    db: Session = SessionLocal()
    try:
        inserted = seed_chart_of_accounts(db)
        logger.info("Seeded chart of accounts (%s new accounts)", inserted)

        initial_code = os.getenv("SEED_AUTHORIZATION_CODE")
        if initial_code and not has_active_codes(db):
            create_authorization_code(db, label="Administrator", code=initial_code)
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
    run_seed()
