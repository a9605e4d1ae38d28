from decimal import Decimal


def create_client(client, name="Globex Corp"):
    response = client.post("/api/clients", json={"name": name, "email": "ar@globex.test"})
    assert response.status_code == 201
    return response.json()


def create_invoice(client, client_id, income_account_id, total="1200.00", **overrides):
    payload = {
        "client_id": client_id,
        "invoice_date": "2024-02-01",
        "due_date": "2024-03-02",
        "income_account_id": income_account_id,
        "total_amount": total,
    }
    payload.update(overrides)
    response = client.post("/api/invoices", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def receive_payment(client, invoice_id, cash_account_id, amount="500.00", payment_date="2024-02-10"):
    return client.post(
        "/api/receipts",
        json={
            "invoice_id": invoice_id,
            "payment_date": payment_date,
            "cash_account_id": cash_account_id,
            "amount": amount,
            "payment_method": "check",
        },
    )


def test_client_crud(client):
    record = create_client(client)
    assert record["is_active"] is True
    assert Decimal(record["total_receivable"]) == Decimal("0")

    response = client.put(f"/api/clients/{record['id']}", json={"contact_person": "Hank", "is_active": False})
    assert response.status_code == 200
    assert response.json()["contact_person"] == "Hank"

    assert client.get("/api/clients", params={"active_only": True}).json() == []
    assert [row["name"] for row in client.get("/api/clients", params={"search": "glob"}).json()] == ["Globex Corp"]

    assert client.delete(f"/api/clients/{record['id']}").status_code == 204
    assert client.get(f"/api/clients/{record['id']}").status_code == 404


def test_invoice_posts_receivable_and_numbers_sequentially(client, accounts):
    record = create_client(client)
    first = create_invoice(client, record["id"], accounts["4010"])
    second = create_invoice(client, record["id"], accounts["4010"], total="80.00", due_date=None)

    assert first["invoice_number"] == "INV-000001"
    assert second["invoice_number"] == "INV-000002"
    assert first["stored_status"] == "sent"
    assert Decimal(client.get(f"/api/clients/{record['id']}").json()["total_receivable"]) == Decimal("1280.00")

    entry = client.get("/api/journal-entries", params={"search": "INV-000001"}).json()["data"][0]
    assert entry["source_document"]["type"] == "invoice"
    assert "Clients & AR" in entry["source_document"]["edit_hint"]
    assert Decimal(entry["total_debit"]) == Decimal("1200.00")


def test_invoice_for_inactive_client_is_rejected(client, accounts):
    record = create_client(client)
    client.put(f"/api/clients/{record['id']}", json={"is_active": False})

    response = client.post(
        "/api/invoices",
        json={
            "client_id": record["id"],
            "invoice_date": "2024-02-01",
            "income_account_id": accounts["4010"],
            "total_amount": "10.00",
        },
    )

    assert response.status_code == 400


def test_receipts_settle_invoice_and_lock_it(client, accounts):
    record = create_client(client)
    invoice = create_invoice(client, record["id"], accounts["4010"])

    receipt = receive_payment(client, invoice["id"], accounts["1020"])
    assert receipt.status_code == 201
    assert receipt.json()["payment_number"] == "RCT-000001"
    assert receipt.json()["client_id"] == record["id"]

    detail = client.get(f"/api/invoices/{invoice['id']}").json()
    assert detail["stored_status"] == "partial"
    assert Decimal(detail["balance"]) == Decimal("700.00")

    assert receive_payment(client, invoice["id"], accounts["1020"], amount="800.00").status_code == 400
    assert receive_payment(client, invoice["id"], accounts["4010"], amount="10.00").status_code == 400

    assert client.put(f"/api/invoices/{invoice['id']}", json={"total_amount": "50.00"}).status_code == 409
    assert client.delete(f"/api/invoices/{invoice['id']}").status_code == 409
    assert client.delete(f"/api/clients/{record['id']}").status_code == 409

    assert receive_payment(client, invoice["id"], accounts["1010"], amount="700.00").status_code == 201
    assert client.get(f"/api/invoices/{invoice['id']}").json()["status"] == "paid"
    assert client.get("/api/invoices", params={"status": "paid"}).json()[0]["id"] == invoice["id"]


def test_void_receipt_restores_balance_and_keeps_ledger_row(client, accounts):
    record = create_client(client)
    invoice = create_invoice(client, record["id"], accounts["4010"])
    receipt = receive_payment(client, invoice["id"], accounts["1020"]).json()

    response = client.post(f"/api/receipts/{receipt['id']}/void", json={"reason": "Bounced"})
    assert response.status_code == 200
    assert response.json()["void_reason"] == "Bounced"
    assert client.post(f"/api/receipts/{receipt['id']}/void", json={}).status_code == 409

    detail = client.get(f"/api/invoices/{invoice['id']}").json()
    assert Decimal(detail["balance"]) == Decimal("1200.00")
    assert detail["stored_status"] == "sent"

    ledger = client.get(f"/api/clients/{record['id']}/ledger").json()
    assert [row["id"] for row in ledger["rows"]] == [f"inv-{invoice['id']}", f"pay-{receipt['id']}"]
    assert ledger["rows"][1]["voided"] is True
    assert Decimal(ledger["totals"]["total_received"]) == Decimal("0")
    assert Decimal(ledger["totals"]["outstanding_balance"]) == Decimal("1200.00")

    reversal = client.get("/api/journal-entries", params={"search": "Void of receipt"}).json()["data"]
    assert reversal[0]["source_document"]["type"] == "invoice_receipt_void"


def test_invoice_update_rewrites_its_entry_and_rejects_nulls(client, accounts):
    record = create_client(client)
    invoice = create_invoice(client, record["id"], accounts["4010"])

    response = client.put(f"/api/invoices/{invoice['id']}", json={"total_amount": "900.00", "description": "Retainer"})
    assert response.status_code == 200
    entry = client.get("/api/journal-entries", params={"search": "Retainer"}).json()["data"][0]
    assert Decimal(entry["total_credit"]) == Decimal("900.00")

    assert client.put(f"/api/invoices/{invoice['id']}", json={"invoice_date": None}).status_code == 422
    assert client.put(f"/api/invoices/{invoice['id']}", json={"due_date": "2024-01-01"}).status_code == 400


def test_unpaid_invoice_can_be_deleted_with_its_entry(client, accounts):
    record = create_client(client)
    invoice = create_invoice(client, record["id"], accounts["4010"])

    assert client.delete(f"/api/invoices/{invoice['id']}").status_code == 204
    assert client.get(f"/api/invoices/{invoice['id']}").status_code == 404
    assert client.get("/api/journal-entries").json()["total"] == 0


def test_client_ledger_csv_export(client, accounts):
    record = create_client(client, name="Globex, Ltd.")
    assert client.get(f"/api/clients/{record['id']}/ledger.csv").status_code == 404

    invoice = create_invoice(client, record["id"], accounts["4010"])
    receive_payment(client, invoice["id"], accounts["1020"])

    response = client.get(f"/api/clients/{record['id']}/ledger.csv")
    assert response.status_code == 200
    assert "Client_Ledger_Globex_Ltd_" in response.headers["content-disposition"]
    assert "Client Ledger Report" in response.text
    assert "Outstanding Balance,700.00" in response.text


def test_client_ledger_preview_accepts_raw_payloads(client):
    response = client.post(
        "/api/client-ledger/preview",
        json={
            "client_id": 3,
            "invoices": {"data": [{"id": 1, "client_id": 3, "invoice_date": "2024-02-01", "total_amount": "250"}]},
            "receipts": [{"id": 1, "invoice_id": 1, "amount": "100", "payment_date": "2024-02-05"}],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert [row["id"] for row in body["rows"]] == ["inv-1", "pay-1"]
    assert Decimal(body["totals"]["outstanding_balance"]) == Decimal("150.00")
