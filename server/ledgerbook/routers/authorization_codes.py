from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ledgerbook.accounting import schemas
from ledgerbook.authorization import create_authorization_code, deactivate_authorization_code, has_active_codes
from ledgerbook.db import get_db
from ledgerbook.models import AuthorizationCode
from ledgerbook.routers.errors import http_error

router = APIRouter(prefix="/api/authorization-codes", tags=["authorization-codes"])


@router.get("", response_model=List[schemas.AuthorizationCodeResponse])
def list_authorization_codes(db: Session = Depends(get_db)):
    return db.query(AuthorizationCode).order_by(AuthorizationCode.id.asc()).all()


@router.get("/status", response_model=schemas.AuthorizationStatusResponse)
def authorization_status(db: Session = Depends(get_db)):
    return schemas.AuthorizationStatusResponse(has_active_codes=has_active_codes(db))


@router.post("", response_model=schemas.AuthorizationCodeResponse, status_code=status.HTTP_201_CREATED)
def create_authorization_code_endpoint(payload: schemas.AuthorizationCodeCreate, db: Session = Depends(get_db)):
    try:
        record = create_authorization_code(db, label=payload.label, code=payload.code)
    except ValueError as exc:
        db.rollback()
        raise http_error(exc)
    db.commit()
    db.refresh(record)
    return record


@router.post("/{code_id}/deactivate", response_model=schemas.AuthorizationCodeResponse)
def deactivate_authorization_code_endpoint(code_id: int, db: Session = Depends(get_db)):
    try:
        record = deactivate_authorization_code(db, code_id)
    except ValueError as exc:
        raise http_error(exc)
    db.commit()
    db.refresh(record)
    return record
