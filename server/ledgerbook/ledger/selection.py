"""Ledger state for a screen whose party selection can change mid-fetch.

Callers ``select`` a supplier or client, fire their bill/payment (or
invoice/receipt) requests, and hand the raw payloads back to ``receive``
with the ticket they were given. A response that arrives after the user has
moved to another party is discarded instead of overwriting the ledger on
screen.
"""
from typing import Any, Callable, Iterable, Optional

from ledgerbook.ledger.calculations import PartyLedger, build_client_ledger, build_supplier_ledger
from ledgerbook.ledger.records import (
    bill_records_from_payload,
    invoice_records_from_payload,
    payment_records_from_payload,
    receipt_records_from_payload,
)
from ledgerbook.views import FetchTicket, SelectionGuard


class PartyLedgerView:
    def __init__(
        self,
        build: Callable[[Any, Iterable, Iterable], PartyLedger],
        documents_from_payload: Callable[[Any], list],
        payments_from_payload: Callable[[Any], list],
    ) -> None:
        self._build = build
        self._documents_from_payload = documents_from_payload
        self._payments_from_payload = payments_from_payload
        self._guard = SelectionGuard()
        self.ledger: Optional[PartyLedger] = None

    @property
    def selected_id(self) -> Any:
        current = self._guard.current
        return current.selection_id if current else None

    def select(self, party_id: Any) -> FetchTicket:
        self.ledger = None
        return self._guard.select(party_id)

    def receive(self, ticket: FetchTicket, documents_payload: Any, payments_payload: Any) -> bool:
        """Apply a fetched response; False when it belongs to an earlier selection."""
        if not self._guard.is_current(ticket):
            return self._guard.resolve(ticket, None, self._apply)  # logs and discards
        ledger = self._build(
            ticket.selection_id,
            self._documents_from_payload(documents_payload),
            self._payments_from_payload(payments_payload),
        )
        return self._guard.resolve(ticket, ledger, self._apply)

    def _apply(self, ledger: PartyLedger) -> None:
        self.ledger = ledger


def supplier_ledger_view() -> PartyLedgerView:
    return PartyLedgerView(build_supplier_ledger, bill_records_from_payload, payment_records_from_payload)


def client_ledger_view() -> PartyLedgerView:
    return PartyLedgerView(build_client_ledger, invoice_records_from_payload, receipt_records_from_payload)
