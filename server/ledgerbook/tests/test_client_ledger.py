from datetime import datetime
from decimal import Decimal

from ledgerbook.ledger.calculations import InvoiceRecord, ReceiptRecord, build_client_ledger, merge_client_ledger
from ledgerbook.ledger.export import CLIENT_REPORT, client_ledger_csv, ledger_csv_filename
from ledgerbook.ledger.records import invoice_records_from_payload, receipt_records_from_payload
from ledgerbook.ledger.selection import client_ledger_view, supplier_ledger_view


def _invoice(id=1, client_id=1, total="1200", invoice_date="2024-02-01", description=None):
    return InvoiceRecord(
        id=id,
        client_id=client_id,
        invoice_number=f"INV-{id:06d}",
        invoice_date=invoice_date,
        total_amount=total,
        description=description,
    )


def _receipt(id=1, invoice_id=1, amount="500", payment_date="2024-02-10", **kwargs):
    return ReceiptRecord(id=id, invoice_id=invoice_id, amount=amount, payment_date=payment_date, **kwargs)


def test_invoice_then_receipt_carries_running_balance():
    ledger = build_client_ledger(1, [_invoice()], [_receipt()])

    assert [(row.id, row.type, row.debit, row.credit, row.balance) for row in ledger.rows] == [
        ("inv-1", "Invoice", Decimal("1200.00"), Decimal("0.00"), Decimal("1200.00")),
        ("pay-1", "Payment", Decimal("0.00"), Decimal("500.00"), Decimal("700.00")),
    ]
    assert ledger.rows[0].description == "Invoice INV-000001"
    assert ledger.rows[1].description == "Payment for INV-000001"
    assert ledger.totals.outstanding_balance == Decimal("700.00")


def test_voided_receipt_keeps_row_without_credit():
    ledger = build_client_ledger(1, [_invoice()], [_receipt(voided_at="2024-02-11T09:00:00")])

    assert ledger.rows[1].voided is True
    assert ledger.rows[1].credit == Decimal("0.00")
    assert ledger.totals.outstanding_balance == Decimal("1200.00")


def test_same_day_invoice_sorts_before_payment_by_row_id():
    invoices = [_invoice(id=2, invoice_date="2024-03-01", total="10")]
    receipts = [_receipt(id=1, invoice_id=2, amount="10", payment_date="2024-03-01")]

    ledger = build_client_ledger(1, invoices, receipts)

    assert [row.id for row in ledger.rows] == ["inv-2", "pay-1"]
    assert ledger.rows[-1].balance == Decimal("0.00")


def test_other_clients_and_orphan_receipts_are_excluded(caplog):
    invoices = [_invoice(id=1, client_id=1), _invoice(id=2, client_id=2, total="50")]
    receipts = [_receipt(id=1, invoice_id=2, amount="50"), _receipt(id=2, invoice_id=404)]

    ledger = build_client_ledger(1, invoices, receipts)

    assert [row.id for row in ledger.rows] == ["inv-1"]
    assert ledger.dropped_payment_ids == (2,)
    assert "Dropped 1 payment(s)" in caplog.text


def test_receipt_with_embedded_invoice_needs_no_lookup():
    receipt = _receipt(id=3, invoice_id=9, invoice_client_id="1", invoice_number="INV-000009", notes="Wire 55")

    rows = merge_client_ledger(1, [], [receipt])

    assert [row.id for row in rows] == ["pay-3"]
    assert rows[0].description == "Wire 55"


def test_records_from_receivable_payloads():
    invoices = invoice_records_from_payload(
        {"data": [{"id": 1, "client": {"id": 8}, "invoice_number": "INV-000001", "total_amount": "90"}, None]}
    )
    receipts = receipt_records_from_payload(
        [{"id": 4, "invoice": {"id": 1, "client_id": 8, "invoice_number": "INV-000001"}, "amount": "40"}]
    )

    assert [(invoice.id, invoice.client_id) for invoice in invoices] == [(1, 8)]
    assert receipts[0].invoice_id == 1
    assert receipts[0].invoice_client_id == 8


def test_client_csv_uses_receivable_labels():
    ledger = build_client_ledger(1, [_invoice()], [_receipt()])

    content = client_ledger_csv(ledger, "Globex", generated_at=datetime(2024, 3, 1, 8, 30))
    lines = content.lstrip("\ufeff").split("\r\n")

    assert lines[0] == "Client Ledger Report"
    assert lines[4:7] == ["Total Invoiced,1200.00", "Total Received,500.00", "Outstanding Balance,700.00"]
    assert lines[9] == "1,2024-02-01,Invoice,INV-000001,Invoice INV-000001,1200.00,0.00,1200.00"
    assert ledger_csv_filename("Globex Ltd.", datetime(2024, 3, 1), CLIENT_REPORT) == "Client_Ledger_Globex_Ltd_2024-03-01.csv"


def test_ledger_view_ignores_response_for_previous_selection():
    view = client_ledger_view()
    first = view.select(1)
    second = view.select(2)

    invoices = [{"id": 1, "client_id": 1, "total_amount": "100"}, {"id": 2, "client_id": 2, "total_amount": "40"}]

    assert view.receive(first, invoices, []) is False
    assert view.ledger is None
    assert view.receive(second, invoices, []) is True
    assert view.selected_id == 2
    assert [row.id for row in view.ledger.rows] == ["inv-2"]


def test_supplier_ledger_view_clears_ledger_on_reselect():
    view = supplier_ledger_view()
    ticket = view.select(4)
    view.receive(ticket, [{"id": 1, "supplier_id": 4, "total_amount": "10"}], [])
    assert view.ledger.totals.outstanding_balance == Decimal("10.00")

    view.select(5)

    assert view.ledger is None
