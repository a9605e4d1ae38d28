from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, condecimal, model_validator


DecimalValue = condecimal(max_digits=14, decimal_places=2)
BillStatus = Literal["draft", "received", "paid", "partial", "overdue"]
PaymentMethod = Literal["cash", "check", "bank_transfer", "online", "other"]


class SupplierBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    contact_person: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = None


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    contact_person: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class SupplierResponse(SupplierBase):
    id: int
    is_active: bool
    total_payable: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BillCreate(BaseModel):
    supplier_id: int
    bill_date: date
    due_date: Optional[date] = None
    expense_account_id: int
    total_amount: DecimalValue = Field(..., gt=0)
    description: Optional[str] = None


class BillUpdate(BaseModel):
    bill_date: Optional[date] = None
    due_date: Optional[date] = None
    expense_account_id: Optional[int] = None
    total_amount: Optional[DecimalValue] = Field(None, gt=0)
    description: Optional[str] = None

    @model_validator(mode="after")
    def reject_cleared_required_fields(self):
        cleared = [
            name
            for name in ("bill_date", "expense_account_id", "total_amount")
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if cleared:
            raise ValueError(f"Bill fields cannot be cleared: {', '.join(cleared)}")
        return self


class PaymentCreate(BaseModel):
    bill_id: int
    payment_date: date
    cash_account_id: int
    amount: DecimalValue = Field(..., gt=0)
    payment_method: PaymentMethod = "cash"
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class PaymentVoid(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class PaymentResponse(BaseModel):
    id: int
    payment_number: str
    bill_id: int
    bill_number: Optional[str] = None
    supplier_id: Optional[int] = None
    cash_account_id: int
    payment_date: date
    amount: Decimal
    payment_method: str
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    voided_at: Optional[datetime] = None
    void_reason: Optional[str] = None
    created_at: datetime


class BillResponse(BaseModel):
    id: int
    bill_number: str
    supplier_id: int
    supplier_name: Optional[str] = None
    expense_account_id: int
    bill_date: date
    due_date: Optional[date] = None
    description: Optional[str] = None
    total_amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    status: BillStatus
    stored_status: str
    created_at: datetime
    updated_at: datetime


class BillDetailResponse(BillResponse):
    payments: list[PaymentResponse]


class LedgerRowResponse(BaseModel):
    id: str
    date: Optional[date]
    type: str
    reference: Optional[str] = None
    description: str
    debit: Decimal
    credit: Decimal
    balance: Decimal
    voided: bool = False


class LedgerTotalsResponse(BaseModel):
    total_billed: Decimal
    total_paid: Decimal
    outstanding_balance: Decimal


class SupplierLedgerResponse(BaseModel):
    supplier_id: Union[int, str]
    supplier_name: Optional[str] = None
    rows: list[LedgerRowResponse]
    totals: LedgerTotalsResponse
    dropped_payments: int = 0


class LedgerPreviewRequest(BaseModel):
    supplier_id: Union[int, str]
    bills: Any = None
    payments: Any = None
