from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledgerbook.accounting.service import DEBIT_NORMAL_TYPES
from ledgerbook.chart_of_accounts import schemas
from ledgerbook.db import get_db
from ledgerbook.models import Account, Bill, Invoice, JournalLine, Payment, Receipt

router = APIRouter(prefix="/api", tags=["chart-of-accounts"])


def _normalize_type(account_type: Optional[str]) -> Optional[str]:
    if account_type is None:
        return None
    return account_type.upper()


def normal_balance_for(account_type: str) -> str:
    return "debit" if _normalize_type(account_type) in DEBIT_NORMAL_TYPES else "credit"


def _get_account_or_404(db: Session, account_id: int) -> Account:
    account = db.query(Account).filter(Account.id == account_id).first()
    if not account:
        raise HTTPException(status_code=404, detail="Account not found.")
    return account


@router.get("/chart-of-accounts", response_model=List[schemas.ChartAccountResponse])
def list_chart_of_accounts(
    type: Optional[schemas.AccountType] = None,
    active_only: bool = False,
    q: Optional[str] = None,
    db: Session = Depends(get_db),
):
    query = db.query(Account)
    if type:
        query = query.filter(func.upper(Account.type) == _normalize_type(type))
    if active_only:
        query = query.filter(Account.is_active.is_(True))
    if q:
        like = f"%{q}%"
        query = query.filter((Account.name.ilike(like)) | (Account.code.ilike(like)))
    return query.order_by(Account.code.asc()).all()


@router.post("/chart-of-accounts", response_model=schemas.ChartAccountResponse, status_code=status.HTTP_201_CREATED)
def create_chart_account(payload: schemas.ChartAccountCreate, db: Session = Depends(get_db)):
    account = Account(
        code=payload.code.strip(),
        name=payload.name.strip(),
        type=_normalize_type(payload.type),
        subtype=payload.subtype,
        description=payload.description,
        is_active=payload.is_active,
        normal_balance=normal_balance_for(payload.type),
    )
    db.add(account)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Account code already exists.") from None
    db.refresh(account)
    return account


@router.get("/chart-of-accounts/{account_id}", response_model=schemas.ChartAccountResponse)
def get_chart_account(account_id: int, db: Session = Depends(get_db)):
    return _get_account_or_404(db, account_id)


@router.put("/chart-of-accounts/{account_id}", response_model=schemas.ChartAccountResponse)
@router.patch("/chart-of-accounts/{account_id}", response_model=schemas.ChartAccountResponse)
def update_chart_account(account_id: int, payload: schemas.ChartAccountUpdate, db: Session = Depends(get_db)):
    account = _get_account_or_404(db, account_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("type"):
        account.type = _normalize_type(data["type"])
        account.normal_balance = normal_balance_for(account.type)
    for key in ["name", "code", "subtype", "description", "is_active"]:
        if key in data and data[key] is not None:
            setattr(account, key, data[key])

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Account code already exists.") from None
    db.refresh(account)
    return account


@router.delete("/chart-of-accounts/{account_id}", response_model=dict)
def delete_chart_account(account_id: int, db: Session = Depends(get_db)):
    account = _get_account_or_404(db, account_id)
    in_use = (
        db.query(JournalLine.id).filter(JournalLine.account_id == account_id).first() is not None
        or db.query(Bill.id).filter(Bill.expense_account_id == account_id).first() is not None
        or db.query(Payment.id).filter(Payment.cash_account_id == account_id).first() is not None
        or db.query(Invoice.id).filter(Invoice.income_account_id == account_id).first() is not None
        or db.query(Receipt.id).filter(Receipt.cash_account_id == account_id).first() is not None
    )
    if in_use:
        raise HTTPException(status_code=409, detail="Cannot delete account that is in use.")

    db.delete(account)
    db.commit()
    return {"status": "ok"}
