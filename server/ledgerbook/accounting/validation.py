"""Field-level validation of journal entries before they are submitted.

Every rule runs independently so a form can show all of its problems at
once. The function is pure and cheap enough to re-run on every line edit,
which is how the journal form keeps its live debit/credit totals.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from ledgerbook.utils import MAX_MONEY, ZERO, exceeds_money_limit, format_money, parse_money


MIN_LINES = 2


class EntryErrorKind(str, Enum):
    MISSING_DESCRIPTION = "MissingDescription"
    INSUFFICIENT_LINES = "InsufficientLines"
    MISSING_ACCOUNT = "MissingAccount"
    INVALID_LINE_AMOUNT = "InvalidLineAmount"
    UNBALANCED = "Unbalanced"


@dataclass(frozen=True)
class JournalLineCandidate:
    account_id: Any = None
    debit_amount: Any = None
    credit_amount: Any = None
    description: Optional[str] = None


@dataclass(frozen=True)
class JournalEntryCandidate:
    description: Optional[str]
    lines: Sequence[JournalLineCandidate]
    entry_date: Optional[date] = None
    reference_number: Optional[str] = None


@dataclass(frozen=True)
class EntryError:
    kind: EntryErrorKind
    message: str
    line_index: Optional[int] = None
    total_debit: Optional[Decimal] = None
    total_credit: Optional[Decimal] = None


@dataclass(frozen=True)
class EntryValidationResult:
    errors: Mapping[str, EntryError] = field(default_factory=dict)
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit

    @property
    def difference(self) -> Decimal:
        return abs(self.total_debit - self.total_credit)

    def messages(self) -> dict[str, str]:
        return {key: error.message for key, error in self.errors.items()}


def _has_account(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


def _line_amount_error(debit: Decimal, credit: Decimal) -> Optional[str]:
    if debit < 0 or credit < 0:
        return "Amounts cannot be negative"
    has_debit = debit > 0
    has_credit = credit > 0
    if not has_debit and not has_credit:
        return "Either debit or credit amount is required"
    if has_debit and has_credit:
        return "Cannot have both debit and credit"
    return None


def validate_journal_entry(candidate: JournalEntryCandidate) -> EntryValidationResult:
    errors: dict[str, EntryError] = {}

    if not (candidate.description or "").strip():
        errors["description"] = EntryError(EntryErrorKind.MISSING_DESCRIPTION, "Description is required")

    if len(candidate.lines) < MIN_LINES:
        errors["lines"] = EntryError(
            EntryErrorKind.INSUFFICIENT_LINES, f"At least {MIN_LINES} lines are required"
        )

    total_debit = ZERO
    total_credit = ZERO
    for index, line in enumerate(candidate.lines):
        if not _has_account(line.account_id):
            errors[f"line_{index}_account"] = EntryError(
                EntryErrorKind.MISSING_ACCOUNT, "Account is required", line_index=index
            )

        debit = parse_money(line.debit_amount)
        credit = parse_money(line.credit_amount)
        total_debit += debit
        total_credit += credit

        if exceeds_money_limit(line.debit_amount) or exceeds_money_limit(line.credit_amount):
            message = f"Amount cannot exceed {format_money(MAX_MONEY)}"
        else:
            message = _line_amount_error(debit, credit)
        if message:
            errors[f"line_{index}_amount"] = EntryError(
                EntryErrorKind.INVALID_LINE_AMOUNT, message, line_index=index
            )

    # Amounts are already rounded to cents, so exact comparison is the 0.01 tolerance.
    if total_debit != total_credit:
        errors["balance"] = EntryError(
            EntryErrorKind.UNBALANCED,
            f"Debits ({total_debit:.2f}) must equal Credits ({total_credit:.2f})",
            total_debit=total_debit,
            total_credit=total_credit,
        )

    return EntryValidationResult(errors=errors, total_debit=total_debit, total_credit=total_credit)
