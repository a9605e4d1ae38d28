def test_seeded_chart_is_listed_by_code(client):
    rows = client.get("/api/chart-of-accounts").json()

    assert rows[0]["code"] == "1010"
    assert {row["code"]: row["normal_balance"] for row in rows}["2010"] == "credit"
    expense_codes = [row["code"] for row in client.get("/api/chart-of-accounts", params={"type": "EXPENSE"}).json()]
    assert expense_codes == ["5010", "5020", "5030"]


def test_create_update_and_filter_accounts(client):
    response = client.post(
        "/api/chart-of-accounts",
        json={"code": "5040", "name": "Travel", "type": "EXPENSE", "description": "Trips"},
    )
    assert response.status_code == 201
    account = response.json()
    assert account["normal_balance"] == "debit"

    duplicate = client.post("/api/chart-of-accounts", json={"code": "5040", "name": "Again", "type": "EXPENSE"})
    assert duplicate.status_code == 409

    updated = client.patch(f"/api/chart-of-accounts/{account['id']}", json={"is_active": False, "type": "LIABILITY"})
    assert updated.status_code == 200
    assert updated.json()["normal_balance"] == "credit"

    active_codes = [row["code"] for row in client.get("/api/chart-of-accounts", params={"active_only": True}).json()]
    assert "5040" not in active_codes
    assert [row["code"] for row in client.get("/api/chart-of-accounts", params={"q": "trav"}).json()] == ["5040"]


def test_delete_account_in_use_is_rejected(client, accounts):
    client.post(
        "/api/journal-entries",
        json={
            "entry_date": "2024-01-01",
            "description": "Opening",
            "lines": [
                {"account_id": accounts["1010"], "debit_amount": "10"},
                {"account_id": accounts["3010"], "credit_amount": "10"},
            ],
        },
    )

    assert client.delete(f"/api/chart-of-accounts/{accounts['1010']}").status_code == 409
    assert client.delete(f"/api/chart-of-accounts/{accounts['1200']}").json() == {"status": "ok"}
    assert client.get(f"/api/chart-of-accounts/{accounts['1200']}").status_code == 404
