from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ledgerbook.clients import schemas
from ledgerbook.clients.service import (
    create_invoice,
    delete_invoice,
    display_status,
    get_invoice,
    get_receipt,
    list_invoices,
    record_receipt,
    update_invoice,
    void_receipt,
)
from ledgerbook.db import get_db
from ledgerbook.models import Invoice, Receipt
from ledgerbook.routers.errors import http_error


router = APIRouter(prefix="/api", tags=["invoices"])


def _receipt_response(receipt: Receipt) -> schemas.ReceiptResponse:
    invoice = receipt.invoice
    return schemas.ReceiptResponse(
        id=receipt.id,
        payment_number=receipt.payment_number,
        invoice_id=receipt.invoice_id,
        invoice_number=invoice.invoice_number if invoice else None,
        client_id=invoice.client_id if invoice else None,
        cash_account_id=receipt.cash_account_id,
        payment_date=receipt.payment_date,
        amount=receipt.amount,
        payment_method=receipt.payment_method,
        reference_number=receipt.reference_number,
        notes=receipt.notes,
        voided_at=receipt.voided_at,
        void_reason=receipt.void_reason,
        created_at=receipt.created_at,
    )


def _invoice_fields(invoice: Invoice, today: Optional[date] = None) -> dict:
    return {
        "id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "client_id": invoice.client_id,
        "client_name": invoice.client.name if invoice.client else None,
        "income_account_id": invoice.income_account_id,
        "invoice_date": invoice.invoice_date,
        "due_date": invoice.due_date,
        "description": invoice.description,
        "total_amount": invoice.total_amount,
        "paid_amount": invoice.paid_amount,
        "balance": invoice.balance,
        "status": display_status(invoice, today),
        "stored_status": invoice.status,
        "created_at": invoice.created_at,
        "updated_at": invoice.updated_at,
    }


def _invoice_detail(invoice: Invoice) -> schemas.InvoiceDetailResponse:
    return schemas.InvoiceDetailResponse(
        **_invoice_fields(invoice),
        receipts=[_receipt_response(receipt) for receipt in invoice.receipts],
    )


@router.get("/invoices", response_model=List[schemas.InvoiceResponse])
def list_invoices_endpoint(
    client_id: Optional[int] = None,
    status: Optional[schemas.InvoiceStatus] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    today = date.today()
    invoices = list_invoices(db, client_id=client_id, status=status, search=search, today=today)
    return [schemas.InvoiceResponse(**_invoice_fields(invoice, today)) for invoice in invoices]


@router.post("/invoices", response_model=schemas.InvoiceDetailResponse, status_code=status.HTTP_201_CREATED)
def create_invoice_endpoint(payload: schemas.InvoiceCreate, db: Session = Depends(get_db)):
    try:
        invoice = create_invoice(db, payload.model_dump())
    except ValueError as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    return _invoice_detail(get_invoice(db, invoice.id))


@router.get("/invoices/{invoice_id}", response_model=schemas.InvoiceDetailResponse)
def get_invoice_endpoint(invoice_id: int, db: Session = Depends(get_db)):
    try:
        invoice = get_invoice(db, invoice_id)
    except ValueError as exc:
        raise http_error(exc)
    return _invoice_detail(invoice)


@router.put("/invoices/{invoice_id}", response_model=schemas.InvoiceDetailResponse)
def update_invoice_endpoint(invoice_id: int, payload: schemas.InvoiceUpdate, db: Session = Depends(get_db)):
    try:
        invoice = get_invoice(db, invoice_id)
        update_invoice(db, invoice, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    return _invoice_detail(get_invoice(db, invoice_id))


@router.delete("/invoices/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice_endpoint(invoice_id: int, db: Session = Depends(get_db)):
    try:
        delete_invoice(db, get_invoice(db, invoice_id))
    except ValueError as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/receipts", response_model=schemas.ReceiptResponse, status_code=status.HTTP_201_CREATED)
def record_receipt_endpoint(payload: schemas.ReceiptCreate, db: Session = Depends(get_db)):
    try:
        receipt = record_receipt(db, payload.model_dump())
    except ValueError as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    return _receipt_response(get_receipt(db, receipt.id))


@router.get("/receipts/{receipt_id}", response_model=schemas.ReceiptResponse)
def get_receipt_endpoint(receipt_id: int, db: Session = Depends(get_db)):
    try:
        return _receipt_response(get_receipt(db, receipt_id))
    except ValueError as exc:
        raise http_error(exc)


@router.post("/receipts/{receipt_id}/void", response_model=schemas.ReceiptResponse)
def void_receipt_endpoint(receipt_id: int, payload: schemas.ReceiptVoid, db: Session = Depends(get_db)):
    try:
        receipt = void_receipt(db, receipt_id, payload.reason)
    except ValueError as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    return _receipt_response(get_receipt(db, receipt.id))
