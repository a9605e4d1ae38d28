from ledgerbook import seed
from ledgerbook.models import Account, AuthorizationCode


def test_seed_is_idempotent_and_reconciles_types(db):
    account = db.query(Account).filter(Account.code == "2010").one()
    account.type = "OTHER"
    account.normal_balance = "debit"
    db.commit()

    assert seed.seed_chart_of_accounts(db) == 0
    db.commit()

    account = db.query(Account).filter(Account.code == "2010").one()
    assert account.type == "LIABILITY"
    assert account.normal_balance == "credit"
    assert db.query(Account).count() == len(seed.DEFAULT_ACCOUNTS)


def test_run_seed_creates_initial_authorization_code(session_factory, monkeypatch):
    monkeypatch.setattr(seed, "SessionLocal", session_factory)
    monkeypatch.setenv("SEED_AUTHORIZATION_CODE", "8642")

    seed.run_seed()
    seed.run_seed()

    with session_factory() as db:
        codes = db.query(AuthorizationCode).all()
        assert [code.label for code in codes] == ["Administrator"]
