from fastapi import HTTPException, status

from ledgerbook.errors import (
    AuthorizationRequiredError,
    BusinessRuleError,
    EntryValidationError,
    InvalidAuthorizationCodeError,
    NotFoundError,
    SourceDocumentLockedError,
)


def http_error(exc: Exception) -> HTTPException:
    """Map domain errors onto responses the admin screens can act on."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, EntryValidationError):
        result = exc.result
        return HTTPException(
            status_code=422,
            detail={
                "message": "Please fix the form errors",
                "errors": result.messages(),
                "total_debit": f"{result.total_debit:.2f}",
                "total_credit": f"{result.total_credit:.2f}",
            },
        )
    if isinstance(exc, SourceDocumentLockedError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(exc), "edit_hint": exc.edit_hint},
        )
    if isinstance(exc, BusinessRuleError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, (AuthorizationRequiredError, InvalidAuthorizationCodeError)):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
