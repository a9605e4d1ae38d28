from datetime import date
from decimal import Decimal

import pytest

from ledgerbook.suppliers import service


def create_supplier(client, name="Acme Supplies"):
    response = client.post("/api/suppliers", json={"name": name, "email": "ap@acme.test"})
    assert response.status_code == 201
    return response.json()


def create_bill(client, supplier_id, expense_account_id, total="1000.00", **overrides):
    payload = {
        "supplier_id": supplier_id,
        "bill_date": "2024-01-01",
        "due_date": "2024-01-31",
        "expense_account_id": expense_account_id,
        "total_amount": total,
    }
    payload.update(overrides)
    response = client.post("/api/bills", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def pay_bill(client, bill_id, cash_account_id, amount="400.00", payment_date="2024-01-15"):
    return client.post(
        "/api/payments",
        json={
            "bill_id": bill_id,
            "payment_date": payment_date,
            "cash_account_id": cash_account_id,
            "amount": amount,
            "payment_method": "bank_transfer",
        },
    )


def test_supplier_crud(client):
    supplier = create_supplier(client)
    assert supplier["is_active"] is True
    assert Decimal(supplier["total_payable"]) == Decimal("0")

    response = client.put(f"/api/suppliers/{supplier['id']}", json={"phone": "555-0100", "is_active": False})
    assert response.status_code == 200
    assert response.json()["phone"] == "555-0100"

    assert client.get("/api/suppliers", params={"active_only": True}).json() == []
    assert [row["name"] for row in client.get("/api/suppliers", params={"search": "acme"}).json()] == ["Acme Supplies"]

    assert client.delete(f"/api/suppliers/{supplier['id']}").status_code == 204
    assert client.get(f"/api/suppliers/{supplier['id']}").status_code == 404


def test_bill_posts_payable_and_numbers_sequentially(client, accounts):
    supplier = create_supplier(client)
    first = create_bill(client, supplier["id"], accounts["5010"])
    second = create_bill(client, supplier["id"], accounts["5020"], total="250.00", due_date=None)

    assert first["bill_number"] == "BILL-000001"
    assert second["bill_number"] == "BILL-000002"
    assert first["stored_status"] == "received"
    assert first["status"] == "overdue"
    assert second["status"] == "received"
    assert Decimal(first["balance"]) == Decimal("1000.00")

    supplier_row = client.get(f"/api/suppliers/{supplier['id']}").json()
    assert Decimal(supplier_row["total_payable"]) == Decimal("1250.00")

    entries = client.get("/api/journal-entries", params={"search": "BILL-000001"}).json()["data"]
    assert len(entries) == 1
    assert entries[0]["source_document"]["type"] == "bill"
    debit_line, credit_line = entries[0]["lines"]
    assert debit_line["account_code"] == "5010"
    assert credit_line["account_code"] == "2010"


def test_bill_rejects_inactive_supplier_and_bad_due_date(client, accounts):
    supplier = create_supplier(client)
    response = client.post(
        "/api/bills",
        json={
            "supplier_id": supplier["id"],
            "bill_date": "2024-02-01",
            "due_date": "2024-01-01",
            "expense_account_id": accounts["5010"],
            "total_amount": "10.00",
        },
    )
    assert response.status_code == 400

    client.put(f"/api/suppliers/{supplier['id']}", json={"is_active": False})
    response = client.post(
        "/api/bills",
        json={
            "supplier_id": supplier["id"],
            "bill_date": "2024-02-01",
            "expense_account_id": accounts["5010"],
            "total_amount": "10.00",
        },
    )
    assert response.status_code == 400
    assert "inactive" in response.json()["detail"]


def test_editing_unpaid_bill_rewrites_its_journal_entry(client, accounts):
    supplier = create_supplier(client)
    bill = create_bill(client, supplier["id"], accounts["5010"])

    response = client.put(f"/api/bills/{bill['id']}", json={"total_amount": "1200.00", "description": "Revised"})
    assert response.status_code == 200
    assert Decimal(response.json()["balance"]) == Decimal("1200.00")

    entry = client.get("/api/journal-entries", params={"search": bill["bill_number"]}).json()["data"][0]
    assert Decimal(entry["total_debit"]) == Decimal("1200.00")
    assert Decimal(entry["total_credit"]) == Decimal("1200.00")


def test_payment_updates_bill_and_ledger(client, accounts):
    supplier = create_supplier(client)
    bill = create_bill(client, supplier["id"], accounts["5010"])

    response = pay_bill(client, bill["id"], accounts["1020"])
    assert response.status_code == 201
    payment = response.json()
    assert payment["payment_number"] == "PAY-000001"
    assert payment["supplier_id"] == supplier["id"]

    detail = client.get(f"/api/bills/{bill['id']}").json()
    assert detail["stored_status"] == "partial"
    assert Decimal(detail["balance"]) == Decimal("600.00")
    assert [row["payment_number"] for row in detail["payments"]] == ["PAY-000001"]

    ledger = client.get(f"/api/suppliers/{supplier['id']}/ledger").json()
    assert [(row["type"], Decimal(row["balance"])) for row in ledger["rows"]] == [
        ("Bill", Decimal("1000.00")),
        ("Payment", Decimal("600.00")),
    ]
    assert Decimal(ledger["totals"]["outstanding_balance"]) == Decimal("600.00")
    assert ledger["supplier_name"] == "Acme Supplies"


def test_payment_validation(client, accounts):
    supplier = create_supplier(client)
    bill = create_bill(client, supplier["id"], accounts["5010"], total="100.00")

    assert pay_bill(client, bill["id"], accounts["1020"], amount="100.01").status_code == 400
    assert pay_bill(client, bill["id"], accounts["5020"], amount="10.00").status_code == 400
    assert pay_bill(client, bill["id"], accounts["1020"], amount="0").status_code == 422
    assert pay_bill(client, 999, accounts["1020"], amount="10.00").status_code == 404

    assert pay_bill(client, bill["id"], accounts["1010"], amount="100.00").status_code == 201
    assert client.get(f"/api/bills/{bill['id']}").json()["status"] == "paid"
    assert client.get("/api/bills", params={"status": "paid"}).json()[0]["id"] == bill["id"]


def test_paid_bill_is_locked(client, accounts):
    supplier = create_supplier(client)
    bill = create_bill(client, supplier["id"], accounts["5010"])
    pay_bill(client, bill["id"], accounts["1020"])

    response = client.put(f"/api/bills/{bill['id']}", json={"total_amount": "50.00"})
    assert response.status_code == 409
    assert client.delete(f"/api/bills/{bill['id']}").status_code == 409
    assert client.delete(f"/api/suppliers/{supplier['id']}").status_code == 409


def test_void_payment_restores_balance_and_keeps_ledger_row(client, accounts):
    supplier = create_supplier(client)
    bill = create_bill(client, supplier["id"], accounts["5010"])
    payment = pay_bill(client, bill["id"], accounts["1020"]).json()

    response = client.post(f"/api/payments/{payment['id']}/void", json={"reason": "Bounced"})
    assert response.status_code == 200
    assert response.json()["voided_at"] is not None
    assert response.json()["void_reason"] == "Bounced"

    assert client.post(f"/api/payments/{payment['id']}/void", json={}).status_code == 409

    detail = client.get(f"/api/bills/{bill['id']}").json()
    assert Decimal(detail["balance"]) == Decimal("1000.00")
    assert detail["stored_status"] == "received"

    ledger = client.get(f"/api/suppliers/{supplier['id']}/ledger").json()
    payment_row = ledger["rows"][1]
    assert payment_row["voided"] is True
    assert Decimal(payment_row["credit"]) == Decimal("0")
    assert Decimal(payment_row["balance"]) == Decimal("1000.00")
    assert Decimal(ledger["totals"]["outstanding_balance"]) == Decimal("1000.00")

    reversal = client.get("/api/journal-entries", params={"search": "Void of payment"}).json()["data"]
    assert reversal[0]["source_document"]["type"] == "bill_payment_void"


def test_unpaid_bill_can_be_deleted_with_its_entry(client, accounts):
    supplier = create_supplier(client)
    bill = create_bill(client, supplier["id"], accounts["5010"])

    assert client.delete(f"/api/bills/{bill['id']}").status_code == 204
    assert client.get(f"/api/bills/{bill['id']}").status_code == 404
    assert client.get("/api/journal-entries").json()["total"] == 0


def test_ledger_csv_export(client, accounts):
    supplier = create_supplier(client, name="Acme, Inc.")
    assert client.get(f"/api/suppliers/{supplier['id']}/ledger.csv").status_code == 404

    bill = create_bill(client, supplier["id"], accounts["5010"])
    pay_bill(client, bill["id"], accounts["1020"])

    response = client.get(f"/api/suppliers/{supplier['id']}/ledger.csv")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "Supplier_Ledger_Acme_Inc_" in response.headers["content-disposition"]
    assert "Supplier Ledger Report" in response.text
    assert "Outstanding Balance,600.00" in response.text


def test_ledger_preview_accepts_raw_payloads(client):
    response = client.post(
        "/api/ledger/preview",
        json={
            "supplier_id": 4,
            "bills": {"data": [{"id": 1, "supplier_id": 4, "bill_date": "2024-01-01", "total_amount": "1000"}]},
            "payments": [
                {"id": 1, "bill_id": 1, "amount": "400", "payment_date": "2024-01-15"},
                {"id": 2, "bill_id": 99, "amount": "10", "payment_date": "2024-01-16"},
            ],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert [row["id"] for row in body["rows"]] == ["bill-1", "pay-1"]
    assert Decimal(body["totals"]["outstanding_balance"]) == Decimal("600.00")
    assert body["dropped_payments"] == 1


def test_bill_update_rejects_null_required_fields(client, accounts):
    supplier = create_supplier(client)
    bill = create_bill(client, supplier["id"], accounts["5010"])

    for payload in (
        {"bill_date": None, "due_date": "2024-02-01"},
        {"bill_date": None},
        {"expense_account_id": None},
        {"total_amount": None},
    ):
        response = client.put(f"/api/bills/{bill['id']}", json=payload)
        assert response.status_code == 422, payload

    detail = client.get(f"/api/bills/{bill['id']}").json()
    assert detail["bill_date"] == "2024-01-01"
    assert detail["due_date"] == "2024-01-31"
    assert detail["expense_account_id"] == accounts["5010"]
    assert Decimal(detail["total_amount"]) == Decimal("1000.00")


def test_update_bill_service_refuses_to_clear_bill_date(db, accounts):
    supplier = service.create_supplier(db, {"name": "Acme Supplies"})
    bill = service.create_bill(
        db,
        {
            "supplier_id": supplier.id,
            "bill_date": date(2024, 1, 1),
            "due_date": date(2024, 1, 31),
            "expense_account_id": accounts["5010"],
            "total_amount": Decimal("100.00"),
        },
    )

    with pytest.raises(ValueError, match="bill_date"):
        service.update_bill(db, bill, {"bill_date": None, "due_date": date(2024, 2, 1)})

    assert bill.bill_date == date(2024, 1, 1)
    assert bill.due_date == date(2024, 1, 31)
