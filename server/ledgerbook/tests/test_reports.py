from datetime import date
from decimal import Decimal

import pytest

from ledgerbook.models import JournalEntry, JournalLine


@pytest.fixture()
def books(client, accounts):
    """Owner funding, one supplier bill, one client invoice with a partial receipt."""
    response = client.post(
        "/api/journal-entries",
        json={
            "entry_date": "2024-01-05",
            "description": "Owner funding",
            "lines": [
                {"account_id": accounts["1020"], "debit_amount": "5000.00", "credit_amount": ""},
                {"account_id": accounts["3010"], "debit_amount": "", "credit_amount": "5000.00"},
            ],
        },
    )
    assert response.status_code == 201, response.text

    supplier = client.post("/api/suppliers", json={"name": "Landlord"}).json()
    bill = client.post(
        "/api/bills",
        json={
            "supplier_id": supplier["id"],
            "bill_date": "2024-01-01",
            "due_date": "2024-01-31",
            "expense_account_id": accounts["5010"],
            "total_amount": "300.00",
        },
    )
    assert bill.status_code == 201, bill.text

    customer = client.post("/api/clients", json={"name": "Globex Corp"}).json()
    invoice = client.post(
        "/api/invoices",
        json={
            "client_id": customer["id"],
            "invoice_date": "2024-02-01",
            "due_date": "2024-03-02",
            "income_account_id": accounts["4010"],
            "total_amount": "1200.00",
        },
    ).json()
    receipt = client.post(
        "/api/receipts",
        json={
            "invoice_id": invoice["id"],
            "payment_date": "2024-02-10",
            "cash_account_id": accounts["1020"],
            "amount": "500.00",
        },
    )
    assert receipt.status_code == 201, receipt.text
    return {"bill": bill.json(), "invoice": invoice}


def _balances(body):
    return {
        row["account_code"]: (Decimal(row["debit_balance"]), Decimal(row["credit_balance"]))
        for row in body["accounts"]
    }


def test_trial_balance_nets_each_account_on_its_normal_side(client, books):
    body = client.get("/api/reports/trial-balance").json()

    assert _balances(body) == {
        "1020": (Decimal("5500.00"), Decimal("0")),
        "1200": (Decimal("700.00"), Decimal("0")),
        "2010": (Decimal("0"), Decimal("300.00")),
        "3010": (Decimal("0"), Decimal("5000.00")),
        "4010": (Decimal("0"), Decimal("1200.00")),
        "5010": (Decimal("300.00"), Decimal("0")),
    }
    assert Decimal(body["total_debit"]) == Decimal(body["total_credit"]) == Decimal("6500.00")
    assert body["is_balanced"] is True


def test_trial_balance_respects_the_period(client, books):
    body = client.get("/api/reports/trial-balance", params={"end_date": "2024-01-31"}).json()

    assert set(_balances(body)) == {"1020", "2010", "3010", "5010"}
    assert Decimal(body["total_debit"]) == Decimal("5300.00")

    response = client.get("/api/reports/trial-balance", params={"start_date": "2024-02-01", "end_date": "2024-01-01"})
    assert response.status_code == 400


def test_trial_balance_shows_overdrawn_asset_in_credit_column(client, accounts):
    response = client.post(
        "/api/journal-entries",
        json={
            "entry_date": "2024-01-05",
            "description": "Rent paid from petty cash",
            "lines": [
                {"account_id": accounts["5010"], "debit_amount": "40.00", "credit_amount": ""},
                {"account_id": accounts["1030"], "debit_amount": "", "credit_amount": "40.00"},
            ],
        },
    )
    assert response.status_code == 201

    balances = _balances(client.get("/api/reports/trial-balance").json())

    assert balances["1030"] == (Decimal("0"), Decimal("40.00"))


def test_income_statement_and_balance_sheet_tie_out(client, books):
    income = client.get("/api/reports/income-statement").json()
    assert Decimal(income["totals"]["revenue"]) == Decimal("1200.00")
    assert Decimal(income["sections"]["expense"]["total"]) == Decimal("300.00")
    assert Decimal(income["totals"]["gross_profit"]) == Decimal("1200.00")
    assert Decimal(income["totals"]["net_income"]) == Decimal("900.00")

    sheet = client.get("/api/reports/balance-sheet").json()
    assert Decimal(sheet["totals"]["assets"]) == Decimal("6200.00")
    assert Decimal(sheet["sections"]["liability"]["total"]) == Decimal("300.00")
    assert Decimal(sheet["totals"]["net_income"]) == Decimal("900.00")
    assert Decimal(sheet["totals"]["liabilities_equity"]) == Decimal("6200.00")
    assert sheet["totals"]["is_balanced"] is True


def test_alerts_flag_overdue_documents_and_low_cash(client, books, monkeypatch):
    monkeypatch.setenv("LOW_CASH_THRESHOLD", "1000")

    alerts = client.get("/api/reports/alerts", params={"as_of": "2024-04-01"}).json()
    by_kind = {}
    for alert in alerts:
        by_kind.setdefault(alert["kind"], []).append(alert)

    assert [alert["reference"] for alert in by_kind["overdue_invoice"]] == [books["invoice"]["invoice_number"]]
    assert by_kind["overdue_invoice"][0]["message"].endswith("(700.00 outstanding)")
    assert [alert["reference"] for alert in by_kind["overdue_bill"]] == [books["bill"]["bill_number"]]
    assert sorted(alert["reference"] for alert in by_kind["low_cash"]) == ["1010", "1030"]
    assert "unbalanced_entry" not in by_kind


def test_nothing_is_overdue_before_due_dates(client, books):
    alerts = client.get("/api/reports/alerts", params={"as_of": "2024-01-15"}).json()

    assert {alert["kind"] for alert in alerts} <= {"low_cash"}


def test_alerts_report_unbalanced_entries(client, db, accounts):
    entry = JournalEntry(entry_number="JE-000900", entry_date=date(2024, 1, 1), description="Imported", source_type="manual")
    entry.lines = [
        JournalLine(account_id=accounts["5030"], debit_amount=Decimal("1025.00"), credit_amount=Decimal("0")),
        JournalLine(account_id=accounts["1010"], debit_amount=Decimal("0"), credit_amount=Decimal("1000.00")),
    ]
    db.add(entry)
    db.commit()

    alerts = [alert for alert in client.get("/api/reports/alerts").json() if alert["kind"] == "unbalanced_entry"]

    assert len(alerts) == 1
    assert alerts[0]["reference"] == "JE-000900"
    assert alerts[0]["message"] == "Journal entry JE-000900 is out of balance by 25.00"
