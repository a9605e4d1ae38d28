"""Convert accounting API payloads into ledger input records.

Payloads arrive either as bare lists or wrapped in a ``data`` envelope, and
payments may embed their parent document (``payment["bill"]`` or
``payment["invoice"]``) or only carry its id. Malformed items are skipped
with a warning instead of failing the whole ledger.
"""
import logging
from typing import Any, Mapping

from ledgerbook.ledger.calculations import BillRecord, InvoiceRecord, PaymentRecord, ReceiptRecord
from ledgerbook.views import unwrap_collection


logger = logging.getLogger(__name__)


def _party_id_of(document: Mapping[str, Any], party: str) -> Any:
    party_id = document.get(f"{party}_id")
    if party_id is None and isinstance(document.get(party), Mapping):
        party_id = document[party].get("id")
    return party_id


def _items(payload: Any, label: str) -> list[Mapping[str, Any]]:
    items = []
    for item in unwrap_collection(payload):
        if not isinstance(item, Mapping) or item.get("id") is None:
            logger.warning("Skipping malformed %s payload item: %r", label, item)
            continue
        items.append(item)
    return items


def _parent(item: Mapping[str, Any], document: str) -> tuple[Any, Any]:
    parent = item.get(document) if isinstance(item.get(document), Mapping) else None
    parent_id = item.get(f"{document}_id")
    if parent_id is None and parent is not None:
        parent_id = parent.get("id")
    return parent_id, parent


def bill_records_from_payload(payload: Any) -> list[BillRecord]:
    return [
        BillRecord(
            id=item["id"],
            supplier_id=_party_id_of(item, "supplier"),
            bill_number=item.get("bill_number"),
            bill_date=item.get("bill_date"),
            total_amount=item.get("total_amount"),
            description=item.get("description"),
        )
        for item in _items(payload, "bill")
    ]


def payment_records_from_payload(payload: Any) -> list[PaymentRecord]:
    records = []
    for item in _items(payload, "payment"):
        bill_id, bill = _parent(item, "bill")
        records.append(
            PaymentRecord(
                id=item["id"],
                bill_id=bill_id,
                amount=item.get("amount"),
                payment_date=item.get("payment_date"),
                voided_at=item.get("voided_at"),
                payment_number=item.get("payment_number"),
                reference_number=item.get("reference_number"),
                notes=item.get("notes"),
                bill_supplier_id=_party_id_of(bill, "supplier") if bill is not None else None,
                bill_number=bill.get("bill_number") if bill is not None else None,
            )
        )
    return records


def invoice_records_from_payload(payload: Any) -> list[InvoiceRecord]:
    return [
        InvoiceRecord(
            id=item["id"],
            client_id=_party_id_of(item, "client"),
            invoice_number=item.get("invoice_number"),
            invoice_date=item.get("invoice_date"),
            total_amount=item.get("total_amount"),
            description=item.get("description"),
        )
        for item in _items(payload, "invoice")
    ]


def receipt_records_from_payload(payload: Any) -> list[ReceiptRecord]:
    records = []
    for item in _items(payload, "receipt"):
        invoice_id, invoice = _parent(item, "invoice")
        records.append(
            ReceiptRecord(
                id=item["id"],
                invoice_id=invoice_id,
                amount=item.get("amount"),
                payment_date=item.get("payment_date"),
                voided_at=item.get("voided_at"),
                payment_number=item.get("payment_number"),
                reference_number=item.get("reference_number"),
                notes=item.get("notes"),
                invoice_client_id=_party_id_of(invoice, "client") if invoice is not None else None,
                invoice_number=invoice.get("invoice_number") if invoice is not None else None,
            )
        )
    return records
