import itertools
import os
from datetime import date

# Must be set before ledgerbook.database builds its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_TABLES"] = "false"

import pytest
from fastapi.testclient import TestClient

from ledgerbook import posting
from ledgerbook.crud import accounts as accounts_crud
from ledgerbook.crud import companies as companies_crud
from ledgerbook.database import Base, SessionLocal, engine, get_db
from ledgerbook.main import app
from ledgerbook.models.account import AccountType
from ledgerbook.schemas.account import AccountCreate
from ledgerbook.schemas.company import CompanyCreate
from ledgerbook.schemas.journal_entry import (
    JournalEntryCreate,
    JournalEntryHeaderCreate,
    JournalEntryHeaderUpdate,
    JournalEntryUpdate,
    JournalLineInput,
)

COMPANY_ID = "acme"
OTHER_COMPANY_ID = "globex"
USER_ID = "user-1"

_entry_numbers = itertools.count(1)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def company(db):
    return companies_crud.create_company(db, CompanyCreate(id=COMPANY_ID, name="Acme Ltd"), user_id=USER_ID)


@pytest.fixture
def other_company(db):
    return companies_crud.create_company(db, CompanyCreate(id=OTHER_COMPANY_ID, name="Globex"), user_id=USER_ID)


def _create(db, company_id, code, name, account_type, **kwargs):
    return accounts_crud.create_account(
        db, company_id, AccountCreate(code=code, name=name, account_type=account_type, **kwargs), user_id=USER_ID
    )


@pytest.fixture
def accounts(db, company):
    """A small chart of accounts keyed by a short name."""
    return {
        "cash": _create(db, COMPANY_ID, "1000", "Cash", AccountType.ASSET),
        "receivable": _create(db, COMPANY_ID, "1100", "Accounts Receivable", AccountType.ASSET),
        "payable": _create(db, COMPANY_ID, "2000", "Accounts Payable", AccountType.LIABILITY),
        "equity": _create(db, COMPANY_ID, "3000", "Owner's Equity", AccountType.EQUITY),
        "revenue": _create(db, COMPANY_ID, "4000", "Sales Revenue", AccountType.REVENUE),
        "expense": _create(db, COMPANY_ID, "5000", "Operating Expenses", AccountType.EXPENSE),
    }


@pytest.fixture
def foreign_account(db, other_company):
    return _create(db, OTHER_COMPANY_ID, "1000", "Globex Cash", AccountType.ASSET)


def line(account, debit="0", credit="0", **kwargs):
    account_id = account if isinstance(account, int) else account.id
    return JournalLineInput(account_id=account_id, debit_amount=debit, credit_amount=credit, **kwargs)


def entry_request(lines, company_id=COMPANY_ID, entry_number=None, entry_date=date(2024, 1, 15),
                  description="Test entry", **kwargs):
    return JournalEntryCreate(
        entry=JournalEntryHeaderCreate(
            company_id=company_id,
            entry_number=entry_number or f"JE-{next(_entry_numbers):05d}",
            date=entry_date,
            description=description,
            **kwargs,
        ),
        lines=lines,
    )


def update_request(lines, **header):
    return JournalEntryUpdate(entry=JournalEntryHeaderUpdate(**header), lines=lines)


@pytest.fixture
def post_entry(db):
    """Post a journal entry through the engine and return it."""
    def _post(lines, **kwargs):
        return posting.create_entry(db, entry_request(lines, **kwargs), created_by=USER_ID)
    return _post


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def headers():
    return {"X-Company-ID": COMPANY_ID, "X-User-ID": USER_ID}
