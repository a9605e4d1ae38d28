from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ledgerbook.db import get_db
from ledgerbook.reports import schemas
from ledgerbook.reports.service import balance_sheet, dashboard_alerts, income_statement, trial_balance
from ledgerbook.routers.errors import http_error


router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/trial-balance", response_model=schemas.TrialBalanceResponse)
def trial_balance_endpoint(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    try:
        return trial_balance(db, start_date, end_date)
    except ValueError as exc:
        raise http_error(exc)


@router.get("/income-statement", response_model=schemas.IncomeStatementResponse)
def income_statement_endpoint(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    try:
        return income_statement(db, start_date, end_date)
    except ValueError as exc:
        raise http_error(exc)


@router.get("/balance-sheet", response_model=schemas.BalanceSheetResponse)
def balance_sheet_endpoint(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    try:
        return balance_sheet(db, start_date, end_date)
    except ValueError as exc:
        raise http_error(exc)


@router.get("/alerts", response_model=List[schemas.AlertResponse])
def alerts_endpoint(as_of: Optional[date] = None, db: Session = Depends(get_db)):
    return dashboard_alerts(db, as_of)
