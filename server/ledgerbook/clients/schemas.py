from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ledgerbook.suppliers.schemas import DecimalValue, LedgerRowResponse, PaymentMethod


InvoiceStatus = Literal["draft", "sent", "paid", "partial", "overdue"]


class ClientBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    contact_person: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = None


class ClientCreate(ClientBase):
    pass


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    contact_person: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class ClientResponse(ClientBase):
    id: int
    is_active: bool
    total_receivable: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceCreate(BaseModel):
    client_id: int
    invoice_date: date
    due_date: Optional[date] = None
    income_account_id: int
    total_amount: DecimalValue = Field(..., gt=0)
    description: Optional[str] = None


class InvoiceUpdate(BaseModel):
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    income_account_id: Optional[int] = None
    total_amount: Optional[DecimalValue] = Field(None, gt=0)
    description: Optional[str] = None

    @model_validator(mode="after")
    def reject_cleared_required_fields(self):
        cleared = [
            name
            for name in ("invoice_date", "income_account_id", "total_amount")
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if cleared:
            raise ValueError(f"Invoice fields cannot be cleared: {', '.join(cleared)}")
        return self


class ReceiptCreate(BaseModel):
    invoice_id: int
    payment_date: date
    cash_account_id: int
    amount: DecimalValue = Field(..., gt=0)
    payment_method: PaymentMethod = "cash"
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class ReceiptVoid(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class ReceiptResponse(BaseModel):
    id: int
    payment_number: str
    invoice_id: int
    invoice_number: Optional[str] = None
    client_id: Optional[int] = None
    cash_account_id: int
    payment_date: date
    amount: Decimal
    payment_method: str
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    voided_at: Optional[datetime] = None
    void_reason: Optional[str] = None
    created_at: datetime


class InvoiceResponse(BaseModel):
    id: int
    invoice_number: str
    client_id: int
    client_name: Optional[str] = None
    income_account_id: int
    invoice_date: date
    due_date: Optional[date] = None
    description: Optional[str] = None
    total_amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    status: InvoiceStatus
    stored_status: str
    created_at: datetime
    updated_at: datetime


class InvoiceDetailResponse(InvoiceResponse):
    receipts: list[ReceiptResponse]


class ClientLedgerTotalsResponse(BaseModel):
    total_invoiced: Decimal
    total_received: Decimal
    outstanding_balance: Decimal


class ClientLedgerResponse(BaseModel):
    client_id: Union[int, str]
    client_name: Optional[str] = None
    rows: list[LedgerRowResponse]
    totals: ClientLedgerTotalsResponse
    dropped_payments: int = 0


class ClientLedgerPreviewRequest(BaseModel):
    client_id: Union[int, str]
    invoices: Any = None
    receipts: Any = None
