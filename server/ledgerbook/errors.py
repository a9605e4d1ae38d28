class NotFoundError(ValueError):
    pass


class UnbalancedEntryError(ValueError):
    pass


class BusinessRuleError(ValueError):
    """A mutation that is well-formed but not allowed in the record's current state."""


class BillLockedError(BusinessRuleError):
    pass


class PaymentAlreadyVoidedError(BusinessRuleError):
    pass


class SourceDocumentLockedError(BusinessRuleError):
    def __init__(self, message: str, edit_hint: str | None = None):
        super().__init__(message)
        self.edit_hint = edit_hint or message


class InvoiceLockedError(BusinessRuleError):
    pass


class SupplierInUseError(BusinessRuleError):
    pass


class ClientInUseError(BusinessRuleError):
    pass


class AuthorizationRequiredError(PermissionError):
    pass


class InvalidAuthorizationCodeError(PermissionError):
    pass


class EntryValidationError(ValueError):
    """Carries the full field-level result so callers can report every problem at once."""

    def __init__(self, result):
        super().__init__("Journal entry is invalid.")
        self.result = result
