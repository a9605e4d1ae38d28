from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel


AlertKind = Literal["overdue_invoice", "overdue_bill", "low_cash", "unbalanced_entry"]


class TrialBalanceRow(BaseModel):
    account_id: int
    account_code: str
    account_name: str
    account_type: str
    debit_balance: Decimal
    credit_balance: Decimal


class TrialBalanceResponse(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    accounts: list[TrialBalanceRow]
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool


class SectionTotal(BaseModel):
    total: Decimal


class IncomeStatementLine(BaseModel):
    account_code: str
    account_name: str
    account_type: str
    amount: Decimal


class IncomeStatementTotals(BaseModel):
    revenue: Decimal
    gross_profit: Decimal
    operating_income: Decimal
    net_income: Decimal


class IncomeStatementResponse(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    lines: list[IncomeStatementLine]
    sections: dict[str, SectionTotal]
    totals: IncomeStatementTotals


class BalanceSheetLine(BaseModel):
    account_code: str
    account_name: str
    account_type: str
    balance: Decimal


class BalanceSheetTotals(BaseModel):
    assets: Decimal
    liabilities_equity: Decimal
    net_income: Decimal
    is_balanced: bool


class BalanceSheetResponse(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    lines: list[BalanceSheetLine]
    sections: dict[str, SectionTotal]
    totals: BalanceSheetTotals


class AlertResponse(BaseModel):
    kind: AlertKind
    source_id: int
    reference: Optional[str] = None
    message: str
