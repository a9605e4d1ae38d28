import logging
from datetime import datetime
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ledgerbook.errors import AuthorizationRequiredError, InvalidAuthorizationCodeError, NotFoundError
from ledgerbook.models import AuthorizationCode


logger = logging.getLogger(__name__)

code_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

MIN_CODE_LENGTH = 4


def hash_code(code: str) -> str:
    return code_context.hash(code)


def verify_code(plain_code: str, code_hash: str) -> bool:
    return code_context.verify(plain_code, code_hash)


def has_active_codes(db: Session) -> bool:
    return db.query(AuthorizationCode.id).filter(AuthorizationCode.is_active.is_(True)).first() is not None


def create_authorization_code(db: Session, *, label: str, code: str) -> AuthorizationCode:
    code = (code or "").strip()
    if len(code) < MIN_CODE_LENGTH:
        raise ValueError(f"Authorization codes must be at least {MIN_CODE_LENGTH} characters.")
    record = AuthorizationCode(label=label.strip(), code_hash=hash_code(code), is_active=True)
    db.add(record)
    db.flush()
    logger.info("Created authorization code id=%s label=%s", record.id, record.label)
    return record


def deactivate_authorization_code(db: Session, code_id: int) -> AuthorizationCode:
    record = db.query(AuthorizationCode).filter(AuthorizationCode.id == code_id).first()
    if not record:
        raise NotFoundError("Authorization code not found.")
    record.is_active = False
    db.flush()
    return record


def require_authorization(db: Session, code: Optional[str], *, action: str) -> Optional[AuthorizationCode]:
    """Check ``code`` against the active codes; no active codes means nothing is required."""
    active_codes = db.query(AuthorizationCode).filter(AuthorizationCode.is_active.is_(True)).all()
    if not active_codes:
        return None

    code = (code or "").strip()
    if not code:
        raise AuthorizationRequiredError(f"An authorization code is required to {action}.")

    for record in active_codes:
        if verify_code(code, record.code_hash):
            record.use_count = (record.use_count or 0) + 1
            record.last_used_at = datetime.utcnow()
            logger.info("Authorization code id=%s used to %s", record.id, action)
            return record

    logger.warning("Rejected invalid authorization code while attempting to %s", action)
    raise InvalidAuthorizationCodeError("Invalid authorization code.")
