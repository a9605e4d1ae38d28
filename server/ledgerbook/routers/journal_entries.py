from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ledgerbook.accounting import schemas
from ledgerbook.accounting.service import (
    create_journal_entry,
    delete_journal_entry,
    get_journal_entry,
    list_journal_entries,
    source_edit_hint,
    update_journal_entry,
)
from ledgerbook.accounting.validation import (
    JournalEntryCandidate,
    JournalLineCandidate,
    validate_journal_entry,
)
from ledgerbook.db import get_db
from ledgerbook.models import JournalEntry
from ledgerbook.routers.errors import http_error
from ledgerbook.views import ListViewState

router = APIRouter(prefix="/api/journal-entries", tags=["journal-entries"])


def _candidate(payload: schemas.JournalEntryCreate) -> JournalEntryCandidate:
    return JournalEntryCandidate(
        description=payload.description,
        entry_date=payload.entry_date,
        reference_number=payload.reference_number,
        lines=[
            JournalLineCandidate(
                account_id=line.account_id,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
                description=line.description,
            )
            for line in payload.lines
        ],
    )


def _to_response(db: Session, entry: JournalEntry) -> schemas.JournalEntryResponse:
    hint = source_edit_hint(db, entry)
    source_document = None
    if hint:
        source_document = schemas.SourceDocument(type=entry.source_type, id=entry.source_id, edit_hint=hint)
    return schemas.JournalEntryResponse(
        id=entry.id,
        entry_number=entry.entry_number,
        entry_date=entry.entry_date,
        description=entry.description,
        reference_number=entry.reference_number,
        total_debit=entry.total_debit,
        total_credit=entry.total_credit,
        source_document=source_document,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
        lines=[
            schemas.JournalLineResponse(
                id=line.id,
                account_id=line.account_id,
                account_code=line.account.code if line.account else None,
                account_name=line.account.name if line.account else None,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
                description=line.description,
            )
            for line in entry.lines
        ],
    )


@router.post("/validate", response_model=schemas.EntryValidationResponse)
def validate_journal_entry_endpoint(payload: schemas.JournalEntryCreate):
    result = validate_journal_entry(_candidate(payload))
    return schemas.EntryValidationResponse(
        is_valid=result.is_valid,
        is_balanced=result.is_balanced,
        total_debit=result.total_debit,
        total_credit=result.total_credit,
        difference=result.difference,
        errors={
            key: schemas.EntryErrorResponse(
                kind=error.kind.value,
                message=error.message,
                line_index=error.line_index,
                total_debit=error.total_debit,
                total_credit=error.total_credit,
            )
            for key, error in result.errors.items()
        },
    )


@router.get("", response_model=schemas.JournalEntryListResponse)
def list_journal_entries_endpoint(
    search: Optional[str] = Query(None),
    sort_field: schemas.JournalSortField = Query("entry_date"),
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
    result, total_debit, total_credit = list_journal_entries(db, state)
    return schemas.JournalEntryListResponse(
        data=[_to_response(db, entry) for entry in result.items],
        total=result.total,
        page=result.page,
        per_page=result.per_page,
        total_pages=result.total_pages,
        start=result.start,
        end=result.end,
        total_debit=total_debit,
        total_credit=total_credit,
    )


@router.get("/{entry_id}", response_model=schemas.JournalEntryResponse)
def get_journal_entry_endpoint(entry_id: int, db: Session = Depends(get_db)):
    try:
        entry = get_journal_entry(db, entry_id)
    except ValueError as exc:
        raise http_error(exc)
    return _to_response(db, entry)


@router.post("", response_model=schemas.JournalEntryResponse, status_code=status.HTTP_201_CREATED)
def create_journal_entry_endpoint(payload: schemas.JournalEntryCreate, db: Session = Depends(get_db)):
    try:
        entry = create_journal_entry(db, _candidate(payload))
    except ValueError as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    return _to_response(db, get_journal_entry(db, entry.id))


@router.put("/{entry_id}", response_model=schemas.JournalEntryResponse)
def update_journal_entry_endpoint(entry_id: int, payload: schemas.JournalEntryCreate, db: Session = Depends(get_db)):
    try:
        update_journal_entry(db, entry_id, _candidate(payload))
    except ValueError as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    return _to_response(db, get_journal_entry(db, entry_id))


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_journal_entry_endpoint(
    entry_id: int,
    payload: Optional[schemas.JournalEntryDelete] = None,
    db: Session = Depends(get_db),
):
    payload = payload or schemas.JournalEntryDelete()
    try:
        delete_journal_entry(
            db,
            entry_id,
            authorization_code=payload.authorization_code,
            remarks=payload.remarks,
        )
    except (ValueError, PermissionError) as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
