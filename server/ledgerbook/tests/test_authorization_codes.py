import pytest

from ledgerbook.authorization import create_authorization_code, require_authorization
from ledgerbook.errors import AuthorizationRequiredError, InvalidAuthorizationCodeError


def test_no_active_codes_means_nothing_is_required(db):
    assert require_authorization(db, None, action="delete a journal entry") is None


def test_codes_are_stored_hashed_and_verified(db):
    record = create_authorization_code(db, label="Owner", code="  9753 ")

    assert record.code_hash != "9753"
    assert require_authorization(db, "9753", action="test").id == record.id
    assert record.use_count == 1

    with pytest.raises(AuthorizationRequiredError):
        require_authorization(db, "  ", action="test")
    with pytest.raises(InvalidAuthorizationCodeError):
        require_authorization(db, "0000", action="test")


def test_short_codes_are_rejected(db):
    with pytest.raises(ValueError):
        create_authorization_code(db, label="Short", code="12")


def test_deactivated_codes_no_longer_gate_actions(client):
    created = client.post("/api/authorization-codes", json={"label": "Owner", "code": "2468"}).json()
    assert client.get("/api/authorization-codes/status").json() == {"has_active_codes": True}

    response = client.post(f"/api/authorization-codes/{created['id']}/deactivate")
    assert response.status_code == 200
    assert response.json()["is_active"] is False
    assert client.get("/api/authorization-codes/status").json() == {"has_active_codes": False}
    assert client.post("/api/authorization-codes/999/deactivate").status_code == 404
    assert "code_hash" not in created


def test_health_reports_database(client):
    assert client.get("/api/health").json() == {"status": "ok", "database": "ok"}
    assert client.get("/").json() == {"status": "ok"}
