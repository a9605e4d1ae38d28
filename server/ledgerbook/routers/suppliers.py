from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from ledgerbook.db import get_db
from ledgerbook.ledger.calculations import PartyLedger, build_supplier_ledger
from ledgerbook.ledger.export import ledger_csv_filename, supplier_ledger_csv
from ledgerbook.ledger.records import bill_records_from_payload, payment_records_from_payload
from ledgerbook.models import Supplier
from ledgerbook.routers.errors import http_error
from ledgerbook.suppliers import schemas
from ledgerbook.suppliers.service import (
    create_supplier,
    delete_supplier,
    get_supplier,
    get_supplier_ledger,
    list_suppliers,
    supplier_payables,
    update_supplier,
)


router = APIRouter(prefix="/api", tags=["suppliers"])


def _to_response(supplier: Supplier, total_payable) -> schemas.SupplierResponse:
    return schemas.SupplierResponse(
        id=supplier.id,
        name=supplier.name,
        email=supplier.email,
        phone=supplier.phone,
        address=supplier.address,
        contact_person=supplier.contact_person,
        notes=supplier.notes,
        is_active=supplier.is_active,
        total_payable=total_payable,
        created_at=supplier.created_at,
        updated_at=supplier.updated_at,
    )


def _ledger_response(ledger: PartyLedger, supplier_name: Optional[str]) -> schemas.SupplierLedgerResponse:
    return schemas.SupplierLedgerResponse(
        supplier_id=ledger.party_id,
        supplier_name=supplier_name,
        rows=[
            schemas.LedgerRowResponse(
                id=row.id,
                date=row.date,
                type=row.type,
                reference=row.reference,
                description=row.description,
                debit=row.debit,
                credit=row.credit,
                balance=row.balance,
                voided=row.voided,
            )
            for row in ledger.rows
        ],
        totals=schemas.LedgerTotalsResponse(
            total_billed=ledger.totals.total_billed,
            total_paid=ledger.totals.total_paid,
            outstanding_balance=ledger.totals.outstanding_balance,
        ),
        dropped_payments=len(ledger.dropped_payment_ids),
    )


def _load_supplier(db: Session, supplier_id: int) -> Supplier:
    try:
        return get_supplier(db, supplier_id)
    except ValueError as exc:
        raise http_error(exc)


@router.get("/suppliers", response_model=List[schemas.SupplierResponse])
def list_suppliers_endpoint(search: Optional[str] = None, active_only: bool = False, db: Session = Depends(get_db)):
    suppliers = list_suppliers(db, search, active_only)
    payables = supplier_payables(db, [supplier.id for supplier in suppliers])
    return [_to_response(supplier, payables[supplier.id]) for supplier in suppliers]


@router.post("/suppliers", response_model=schemas.SupplierResponse, status_code=status.HTTP_201_CREATED)
def create_supplier_endpoint(payload: schemas.SupplierCreate, db: Session = Depends(get_db)):
    supplier = create_supplier(db, payload.model_dump())
    db.commit()
    db.refresh(supplier)
    return _to_response(supplier, supplier_payables(db, [supplier.id])[supplier.id])


@router.get("/suppliers/{supplier_id}", response_model=schemas.SupplierResponse)
def get_supplier_endpoint(supplier_id: int, db: Session = Depends(get_db)):
    supplier = _load_supplier(db, supplier_id)
    return _to_response(supplier, supplier_payables(db, [supplier.id])[supplier.id])


@router.put("/suppliers/{supplier_id}", response_model=schemas.SupplierResponse)
def update_supplier_endpoint(supplier_id: int, payload: schemas.SupplierUpdate, db: Session = Depends(get_db)):
    supplier = _load_supplier(db, supplier_id)
    update_supplier(db, supplier, payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(supplier)
    return _to_response(supplier, supplier_payables(db, [supplier.id])[supplier.id])


@router.delete("/suppliers/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supplier_endpoint(supplier_id: int, db: Session = Depends(get_db)):
    supplier = _load_supplier(db, supplier_id)
    try:
        delete_supplier(db, supplier)
    except ValueError as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/suppliers/{supplier_id}/ledger", response_model=schemas.SupplierLedgerResponse)
def get_supplier_ledger_endpoint(supplier_id: int, db: Session = Depends(get_db)):
    supplier = _load_supplier(db, supplier_id)
    return _ledger_response(get_supplier_ledger(db, supplier.id), supplier.name)


@router.get("/suppliers/{supplier_id}/ledger.csv")
def export_supplier_ledger(supplier_id: int, db: Session = Depends(get_db)):
    supplier = _load_supplier(db, supplier_id)
    ledger = get_supplier_ledger(db, supplier.id)
    if not ledger.rows:
        raise HTTPException(status_code=404, detail="Supplier has no ledger activity to export.")
    generated_at = datetime.utcnow()
    filename = ledger_csv_filename(supplier.name, generated_at)
    return Response(
        content=supplier_ledger_csv(ledger, supplier.name, generated_at),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/ledger/preview", response_model=schemas.SupplierLedgerResponse)
def preview_supplier_ledger(payload: schemas.LedgerPreviewRequest):
    ledger = build_supplier_ledger(
        payload.supplier_id,
        bill_records_from_payload(payload.bills),
        payment_records_from_payload(payload.payments),
    )
    return _ledger_response(ledger, None)
