from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ledgerbook.db import get_db
from ledgerbook.models import Bill, Payment
from ledgerbook.routers.errors import http_error
from ledgerbook.suppliers import schemas
from ledgerbook.suppliers.service import (
    create_bill,
    delete_bill,
    display_status,
    get_bill,
    get_payment,
    list_bills,
    record_payment,
    update_bill,
    void_payment,
)


router = APIRouter(prefix="/api", tags=["bills"])


def _payment_response(payment: Payment) -> schemas.PaymentResponse:
    bill = payment.bill
    return schemas.PaymentResponse(
        id=payment.id,
        payment_number=payment.payment_number,
        bill_id=payment.bill_id,
        bill_number=bill.bill_number if bill else None,
        supplier_id=bill.supplier_id if bill else None,
        cash_account_id=payment.cash_account_id,
        payment_date=payment.payment_date,
        amount=payment.amount,
        payment_method=payment.payment_method,
        reference_number=payment.reference_number,
        notes=payment.notes,
        voided_at=payment.voided_at,
        void_reason=payment.void_reason,
        created_at=payment.created_at,
    )


def _bill_fields(bill: Bill, today: Optional[date] = None) -> dict:
    return {
        "id": bill.id,
        "bill_number": bill.bill_number,
        "supplier_id": bill.supplier_id,
        "supplier_name": bill.supplier.name if bill.supplier else None,
        "expense_account_id": bill.expense_account_id,
        "bill_date": bill.bill_date,
        "due_date": bill.due_date,
        "description": bill.description,
        "total_amount": bill.total_amount,
        "paid_amount": bill.paid_amount,
        "balance": bill.balance,
        "status": display_status(bill, today),
        "stored_status": bill.status,
        "created_at": bill.created_at,
        "updated_at": bill.updated_at,
    }


def _bill_detail(bill: Bill) -> schemas.BillDetailResponse:
    return schemas.BillDetailResponse(
        **_bill_fields(bill),
        payments=[_payment_response(payment) for payment in bill.payments],
    )


@router.get("/bills", response_model=List[schemas.BillResponse])
def list_bills_endpoint(
    supplier_id: Optional[int] = None,
    status: Optional[schemas.BillStatus] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    today = date.today()
    bills = list_bills(db, supplier_id=supplier_id, status=status, search=search, today=today)
    return [schemas.BillResponse(**_bill_fields(bill, today)) for bill in bills]


@router.post("/bills", response_model=schemas.BillDetailResponse, status_code=status.HTTP_201_CREATED)
def create_bill_endpoint(payload: schemas.BillCreate, db: Session = Depends(get_db)):
    try:
        bill = create_bill(db, payload.model_dump())
    except ValueError as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    return _bill_detail(get_bill(db, bill.id))


@router.get("/bills/{bill_id}", response_model=schemas.BillDetailResponse)
def get_bill_endpoint(bill_id: int, db: Session = Depends(get_db)):
    try:
        bill = get_bill(db, bill_id)
    except ValueError as exc:
        raise http_error(exc)
    return _bill_detail(bill)


@router.put("/bills/{bill_id}", response_model=schemas.BillDetailResponse)
def update_bill_endpoint(bill_id: int, payload: schemas.BillUpdate, db: Session = Depends(get_db)):
    try:
        bill = get_bill(db, bill_id)
        update_bill(db, bill, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    return _bill_detail(get_bill(db, bill_id))


@router.delete("/bills/{bill_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_bill_endpoint(bill_id: int, db: Session = Depends(get_db)):
    try:
        delete_bill(db, get_bill(db, bill_id))
    except ValueError as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/payments", response_model=schemas.PaymentResponse, status_code=status.HTTP_201_CREATED)
def record_payment_endpoint(payload: schemas.PaymentCreate, db: Session = Depends(get_db)):
    try:
        payment = record_payment(db, payload.model_dump())
    except ValueError as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    return _payment_response(get_payment(db, payment.id))


@router.get("/payments/{payment_id}", response_model=schemas.PaymentResponse)
def get_payment_endpoint(payment_id: int, db: Session = Depends(get_db)):
    try:
        return _payment_response(get_payment(db, payment_id))
    except ValueError as exc:
        raise http_error(exc)


@router.post("/payments/{payment_id}/void", response_model=schemas.PaymentResponse)
def void_payment_endpoint(payment_id: int, payload: schemas.PaymentVoid, db: Session = Depends(get_db)):
    try:
        payment = void_payment(db, payment_id, payload.reason)
    except ValueError as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    return _payment_response(get_payment(db, payment.id))
