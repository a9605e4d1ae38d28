from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ledgerbook.accounting import schemas
from ledgerbook.accounting.service import get_account_register, list_cash_bank_accounts
from ledgerbook.db import get_db
from ledgerbook.routers.errors import http_error
from ledgerbook.utils import ZERO
from ledgerbook.views import ListViewState

router = APIRouter(prefix="/api/cash-bank", tags=["cash-bank"])


@router.get("/accounts", response_model=List[schemas.CashBankAccountResponse])
def list_cash_bank_accounts_endpoint(db: Session = Depends(get_db)):
    return [
        schemas.CashBankAccountResponse(
            id=account.id,
            code=account.code,
            name=account.name,
            subtype=account.subtype,
            balance=balance,
        )
        for account, balance in list_cash_bank_accounts(db)
    ]


@router.get("/accounts/{account_id}/register", response_model=schemas.AccountRegisterResponse)
def get_account_register_endpoint(
    account_id: int,
    search: Optional[str] = Query(None),
    sort_field: schemas.RegisterSortField = Query("date"),
    sort_direction: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    state = ListViewState(
        search=search or "",
        sort_field=sort_field,
        sort_direction=sort_direction,
        page=page,
        per_page=per_page,
    )
    try:
        account, result, rows = get_account_register(db, account_id, state)
    except ValueError as exc:
        raise http_error(exc)

    balance = rows[-1].balance if rows else ZERO
    return schemas.AccountRegisterResponse(
        account=schemas.CashBankAccountResponse(
            id=account.id,
            code=account.code,
            name=account.name,
            subtype=account.subtype,
            balance=balance,
        ),
        data=[schemas.RegisterRowResponse.model_validate(row) for row in result.items],
        total=result.total,
        page=result.page,
        per_page=result.per_page,
        total_pages=result.total_pages,
        total_inflow=sum((row.debit for row in rows), ZERO),
        total_outflow=sum((row.credit for row in rows), ZERO),
    )
