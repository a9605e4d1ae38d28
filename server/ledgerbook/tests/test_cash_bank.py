from decimal import Decimal


def _post_entry(client, accounts, entry_date, debit_code, credit_code, amount, description):
    response = client.post(
        "/api/journal-entries",
        json={
            "entry_date": entry_date,
            "description": description,
            "lines": [
                {"account_id": accounts[debit_code], "debit_amount": amount},
                {"account_id": accounts[credit_code], "credit_amount": amount},
            ],
        },
    )
    assert response.status_code == 201, response.text


def test_cash_accounts_list_balances(client, accounts):
    _post_entry(client, accounts, "2024-01-01", "1020", "3010", "5000.00", "Owner contribution")
    _post_entry(client, accounts, "2024-01-05", "5010", "1020", "1200.00", "January rent")

    rows = client.get("/api/cash-bank/accounts").json()

    assert [row["code"] for row in rows] == ["1010", "1020", "1030"]
    balances = {row["code"]: Decimal(row["balance"]) for row in rows}
    assert balances == {"1010": Decimal("0"), "1020": Decimal("3800.00"), "1030": Decimal("0")}


def test_register_running_balance_follows_posting_order(client, accounts):
    # Posted out of date order.
    _post_entry(client, accounts, "2024-01-05", "5010", "1020", "1200.00", "January rent")
    _post_entry(client, accounts, "2024-01-01", "1020", "3010", "5000.00", "Owner contribution")
    _post_entry(client, accounts, "2024-01-09", "5020", "1020", "300.00", "Utilities")

    body = client.get(
        f"/api/cash-bank/accounts/{accounts['1020']}/register",
        params={"sort_field": "date", "sort_direction": "asc"},
    ).json()

    assert [row["description"] for row in body["data"]] == ["Owner contribution", "January rent", "Utilities"]
    assert [Decimal(row["balance"]) for row in body["data"]] == [
        Decimal("5000.00"),
        Decimal("3800.00"),
        Decimal("3500.00"),
    ]
    assert Decimal(body["account"]["balance"]) == Decimal("3500.00")
    assert Decimal(body["total_inflow"]) == Decimal("5000.00")
    assert Decimal(body["total_outflow"]) == Decimal("1500.00")

    searched = client.get(
        f"/api/cash-bank/accounts/{accounts['1020']}/register", params={"search": "rent"}
    ).json()
    assert searched["total"] == 1
    assert Decimal(searched["data"][0]["balance"]) == Decimal("3800.00")


def test_register_rejects_non_cash_accounts(client, accounts):
    assert client.get(f"/api/cash-bank/accounts/{accounts['5010']}/register").status_code == 400
    assert client.get("/api/cash-bank/accounts/9999/register").status_code == 404


def test_bank_subtype_counts_as_cash(client):
    created = client.post(
        "/api/chart-of-accounts",
        json={"code": "1050", "name": "Savings", "type": "ASSET", "subtype": "Bank"},
    ).json()

    codes = [row["code"] for row in client.get("/api/cash-bank/accounts").json()]

    assert created["code"] in codes
