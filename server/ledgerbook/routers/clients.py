from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from ledgerbook.clients import schemas
from ledgerbook.clients.service import (
    client_receivables,
    create_client,
    delete_client,
    get_client,
    get_client_ledger,
    list_clients,
    update_client,
)
from ledgerbook.db import get_db
from ledgerbook.ledger.calculations import PartyLedger, build_client_ledger
from ledgerbook.ledger.export import CLIENT_REPORT, client_ledger_csv, ledger_csv_filename
from ledgerbook.ledger.records import invoice_records_from_payload, receipt_records_from_payload
from ledgerbook.models import Client
from ledgerbook.routers.errors import http_error
from ledgerbook.suppliers.schemas import LedgerRowResponse


router = APIRouter(prefix="/api", tags=["clients"])


def _to_response(client: Client, total_receivable) -> schemas.ClientResponse:
    return schemas.ClientResponse(
        id=client.id,
        name=client.name,
        email=client.email,
        phone=client.phone,
        address=client.address,
        contact_person=client.contact_person,
        notes=client.notes,
        is_active=client.is_active,
        total_receivable=total_receivable,
        created_at=client.created_at,
        updated_at=client.updated_at,
    )


def _ledger_response(ledger: PartyLedger, client_name: Optional[str]) -> schemas.ClientLedgerResponse:
    return schemas.ClientLedgerResponse(
        client_id=ledger.party_id,
        client_name=client_name,
        rows=[
            LedgerRowResponse(
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
        totals=schemas.ClientLedgerTotalsResponse(
            total_invoiced=ledger.totals.total_billed,
            total_received=ledger.totals.total_paid,
            outstanding_balance=ledger.totals.outstanding_balance,
        ),
        dropped_payments=len(ledger.dropped_payment_ids),
    )


def _load_client(db: Session, client_id: int) -> Client:
    try:
        return get_client(db, client_id)
    except ValueError as exc:
        raise http_error(exc)


@router.get("/clients", response_model=List[schemas.ClientResponse])
def list_clients_endpoint(search: Optional[str] = None, active_only: bool = False, db: Session = Depends(get_db)):
    clients = list_clients(db, search, active_only)
    receivables = client_receivables(db, [client.id for client in clients])
    return [_to_response(client, receivables[client.id]) for client in clients]


@router.post("/clients", response_model=schemas.ClientResponse, status_code=status.HTTP_201_CREATED)
def create_client_endpoint(payload: schemas.ClientCreate, db: Session = Depends(get_db)):
    client = create_client(db, payload.model_dump())
    db.commit()
    db.refresh(client)
    return _to_response(client, client_receivables(db, [client.id])[client.id])


@router.get("/clients/{client_id}", response_model=schemas.ClientResponse)
def get_client_endpoint(client_id: int, db: Session = Depends(get_db)):
    client = _load_client(db, client_id)
    return _to_response(client, client_receivables(db, [client.id])[client.id])


@router.put("/clients/{client_id}", response_model=schemas.ClientResponse)
def update_client_endpoint(client_id: int, payload: schemas.ClientUpdate, db: Session = Depends(get_db)):
    client = _load_client(db, client_id)
    update_client(db, client, payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(client)
    return _to_response(client, client_receivables(db, [client.id])[client.id])


@router.delete("/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client_endpoint(client_id: int, db: Session = Depends(get_db)):
    client = _load_client(db, client_id)
    try:
        delete_client(db, client)
    except ValueError as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/clients/{client_id}/ledger", response_model=schemas.ClientLedgerResponse)
def get_client_ledger_endpoint(client_id: int, db: Session = Depends(get_db)):
    client = _load_client(db, client_id)
    return _ledger_response(get_client_ledger(db, client.id), client.name)


@router.get("/clients/{client_id}/ledger.csv")
def export_client_ledger(client_id: int, db: Session = Depends(get_db)):
    client = _load_client(db, client_id)
    ledger = get_client_ledger(db, client.id)
    if not ledger.rows:
        raise HTTPException(status_code=404, detail="Client has no ledger activity to export.")
    generated_at = datetime.utcnow()
    filename = ledger_csv_filename(client.name, generated_at, CLIENT_REPORT)
    return Response(
        content=client_ledger_csv(ledger, client.name, generated_at),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/client-ledger/preview", response_model=schemas.ClientLedgerResponse)
def preview_client_ledger(payload: schemas.ClientLedgerPreviewRequest):
    ledger = build_client_ledger(
        payload.client_id,
        invoice_records_from_payload(payload.invoices),
        receipt_records_from_payload(payload.receipts),
    )
    return _ledger_response(ledger, None)
