from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ledgerbook.utils import MAX_MONEY, exceeds_money_limit, format_money


Amount = Union[Decimal, str, None]
JournalSortField = Literal["entry_date", "created_at", "description", "entry_number", "total_debit"]
RegisterSortField = Literal["date", "description", "entry_number", "reference", "debit", "credit"]


class JournalLineCreate(BaseModel):
    account_id: Optional[int] = None
    debit_amount: Amount = None
    credit_amount: Amount = None
    description: Optional[str] = None

    @field_validator("debit_amount", "credit_amount")
    @classmethod
    def cap_amount(cls, value):
        if exceeds_money_limit(value):
            raise ValueError(f"Amount cannot exceed {format_money(MAX_MONEY)}")
        return value


class JournalEntryCreate(BaseModel):
    entry_date: date
    description: Optional[str] = ""
    reference_number: Optional[str] = Field(None, max_length=100)
    lines: list[JournalLineCreate] = Field(default_factory=list)


class JournalEntryDelete(BaseModel):
    authorization_code: Optional[str] = None
    remarks: Optional[str] = Field(None, max_length=500)


class EntryErrorResponse(BaseModel):
    kind: str
    message: str
    line_index: Optional[int] = None
    total_debit: Optional[Decimal] = None
    total_credit: Optional[Decimal] = None


class EntryValidationResponse(BaseModel):
    is_valid: bool
    is_balanced: bool
    total_debit: Decimal
    total_credit: Decimal
    difference: Decimal
    errors: dict[str, EntryErrorResponse]


class JournalLineResponse(BaseModel):
    id: int
    account_id: int
    account_code: Optional[str] = None
    account_name: Optional[str] = None
    debit_amount: Decimal
    credit_amount: Decimal
    description: Optional[str] = None


class SourceDocument(BaseModel):
    type: str
    id: Optional[int] = None
    edit_hint: str


class JournalEntryResponse(BaseModel):
    id: int
    entry_number: str
    entry_date: date
    description: str
    reference_number: Optional[str] = None
    total_debit: Decimal
    total_credit: Decimal
    source_document: Optional[SourceDocument] = None
    created_at: datetime
    updated_at: datetime
    lines: list[JournalLineResponse]


class JournalEntryListResponse(BaseModel):
    data: list[JournalEntryResponse]
    total: int
    page: int
    per_page: int
    total_pages: int
    start: int
    end: int
    total_debit: Decimal
    total_credit: Decimal


class CashBankAccountResponse(BaseModel):
    id: int
    code: str
    name: str
    subtype: Optional[str] = None
    balance: Decimal

    model_config = ConfigDict(from_attributes=True)


class RegisterRowResponse(BaseModel):
    line_id: int
    entry_id: int
    entry_number: str
    date: date
    description: str
    reference: Optional[str] = None
    debit: Decimal
    credit: Decimal
    balance: Decimal

    model_config = ConfigDict(from_attributes=True)


class AccountRegisterResponse(BaseModel):
    account: CashBankAccountResponse
    data: list[RegisterRowResponse]
    total: int
    page: int
    per_page: int
    total_pages: int
    total_inflow: Decimal
    total_outflow: Decimal


class AuthorizationCodeCreate(BaseModel):
    label: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=4, max_length=128)


class AuthorizationCodeResponse(BaseModel):
    id: int
    label: str
    is_active: bool
    use_count: int
    last_used_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuthorizationStatusResponse(BaseModel):
    has_active_codes: bool
