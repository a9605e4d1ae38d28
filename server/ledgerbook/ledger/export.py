import csv
from datetime import datetime
from io import StringIO
from typing import Optional

from ledgerbook.ledger.calculations import PartyLedger


LEDGER_COLUMNS = ["Line #", "Date", "Type", "Reference", "Description", "Debit", "Credit", "Running Balance"]

# title, filename prefix, fallback name, totals labels
SUPPLIER_REPORT = ("Supplier Ledger Report", "Supplier_Ledger", "Supplier", ("Total Billed", "Total Paid"))
CLIENT_REPORT = ("Client Ledger Report", "Client_Ledger", "Client", ("Total Invoiced", "Total Received"))


def _amount(value) -> str:
    return "" if value is None else f"{value:.2f}"


def ledger_csv(
    ledger: PartyLedger,
    party_name: str,
    generated_at: Optional[datetime] = None,
    report=SUPPLIER_REPORT,
) -> str:
    """Render an already-computed ledger; balances are taken from the rows as-is."""
    title, _, _, (billed_label, paid_label) = report
    generated_at = generated_at or datetime.utcnow()
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\r\n")
    writer.writerow([title])
    writer.writerow([party_name])
    writer.writerow(["Generated", generated_at.strftime("%Y-%m-%d %H:%M")])
    writer.writerow([])
    writer.writerow([billed_label, _amount(ledger.totals.total_billed)])
    writer.writerow([paid_label, _amount(ledger.totals.total_paid)])
    writer.writerow(["Outstanding Balance", _amount(ledger.totals.outstanding_balance)])
    writer.writerow([])
    writer.writerow(LEDGER_COLUMNS)
    for index, row in enumerate(ledger.rows, start=1):
        row_type = f"{row.type} (Voided)" if row.voided else row.type
        writer.writerow(
            [
                index,
                row.date.isoformat() if row.date else "",
                row_type,
                row.reference or "",
                row.description,
                _amount(row.debit),
                _amount(row.credit),
                _amount(row.balance),
            ]
        )
    return "\ufeff" + buffer.getvalue()


def supplier_ledger_csv(ledger: PartyLedger, supplier_name: str, generated_at: Optional[datetime] = None) -> str:
    return ledger_csv(ledger, supplier_name, generated_at, SUPPLIER_REPORT)


def client_ledger_csv(ledger: PartyLedger, client_name: str, generated_at: Optional[datetime] = None) -> str:
    return ledger_csv(ledger, client_name, generated_at, CLIENT_REPORT)


def ledger_csv_filename(party_name: str, generated_on: datetime, report=SUPPLIER_REPORT) -> str:
    _, prefix, fallback, _ = report
    safe_name = "".join(char if char.isalnum() else "_" for char in (party_name or fallback)).strip("_")
    while "__" in safe_name:
        safe_name = safe_name.replace("__", "_")
    return f"{prefix}_{safe_name or fallback}_{generated_on.strftime('%Y-%m-%d')}.csv"
