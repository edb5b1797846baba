from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from ledgerbook import posting
from ledgerbook.crud import accounts as accounts_crud
from ledgerbook.crud import journal_entries as journal_store
from ledgerbook.exceptions import (
    DuplicateEntryNumber,
    InactiveAccount,
    NotFound,
    StorageFailure,
    Unbalanced,
    UnknownAccount,
)
from ledgerbook.models.audit_log import AuditLog
from ledgerbook.models.journal_entry import JournalEntry
from ledgerbook.models.journal_entry_line import JournalEntryLine
from ledgerbook.schemas.account import AccountUpdate
from ledgerbook.utils.money import Amount

from tests.conftest import COMPANY_ID, OTHER_COMPANY_ID, USER_ID, entry_request, line, update_request


def balance(db, account):
    return accounts_crud.get_account(db, account.id).balance.to_fixed_string()


def row_counts(db):
    return db.query(JournalEntry).count(), db.query(JournalEntryLine).count()


def test_create_entry_posts_balances(db, accounts, post_entry):
    entry = post_entry(
        [line(accounts["cash"], debit="1000.00"), line(accounts["revenue"], credit="1000.00")],
        entry_number="JE-001",
        reference="INV-42",
    )

    assert entry.id is not None
    assert entry.entry_number == "JE-001"
    assert entry.total_amount == Amount.from_string("1000.00")
    assert entry.created_by == USER_ID
    assert [(l.debit_amount, l.credit_amount) for l in entry.lines] == [
        (Amount.from_string("1000.00"), Amount.zero()),
        (Amount.zero(), Amount.from_string("1000.00")),
    ]
    assert balance(db, accounts["cash"]) == "1000.00"
    assert balance(db, accounts["revenue"]) == "1000.00"


def test_lines_posting_to_the_same_account_accumulate(db, accounts, post_entry):
    post_entry([
        line(accounts["cash"], debit="300.00"),
        line(accounts["cash"], debit="200.00"),
        line(accounts["revenue"], credit="500.00"),
    ])
    assert balance(db, accounts["cash"]) == "500.00"


def test_declared_total_is_ignored(db, accounts, post_entry):
    entry = post_entry(
        [line(accounts["cash"], debit="10.00"), line(accounts["revenue"], credit="10.00")],
        total_amount="999.99",
    )
    assert entry.total_amount == Amount.from_string("10.00")


def test_unbalanced_entry_writes_nothing(db, accounts):
    request = entry_request([line(accounts["cash"], debit="100.00"), line(accounts["revenue"], credit="99.00")])

    with pytest.raises(Unbalanced) as exc_info:
        posting.create_entry(db, request, created_by=USER_ID)

    assert exc_info.value.details["difference"] == "1.00"
    assert row_counts(db) == (0, 0)
    assert balance(db, accounts["cash"]) == "0.00"
    assert balance(db, accounts["revenue"]) == "0.00"


def test_unknown_account_writes_nothing(db, accounts):
    request = entry_request([line(accounts["cash"], debit="100.00"), line(9999, credit="100.00")])
    with pytest.raises(UnknownAccount):
        posting.create_entry(db, request, created_by=USER_ID)
    assert row_counts(db) == (0, 0)
    assert balance(db, accounts["cash"]) == "0.00"


def test_inactive_account_refused(db, accounts):
    accounts_crud.update_account(db, COMPANY_ID, accounts["payable"].id, AccountUpdate(is_active=False))
    request = entry_request([line(accounts["cash"], debit="5.00"), line(accounts["payable"], credit="5.00")])
    with pytest.raises(InactiveAccount):
        posting.create_entry(db, request, created_by=USER_ID)


def test_duplicate_entry_number(db, accounts, post_entry):
    lines = [line(accounts["cash"], debit="1.00"), line(accounts["revenue"], credit="1.00")]
    post_entry(lines, entry_number="JE-7")
    with pytest.raises(DuplicateEntryNumber):
        post_entry(lines, entry_number="JE-7")
    assert balance(db, accounts["cash"]) == "1.00"


def test_storage_failure_rolls_back_create(db, accounts, monkeypatch):
    def failing_insert_lines(db, journal_entry_id, lines):
        raise OperationalError("INSERT INTO journal_entry_lines", {}, Exception("disk I/O error"))

    monkeypatch.setattr(journal_store, "insert_lines", failing_insert_lines)
    request = entry_request([line(accounts["cash"], debit="100.00"), line(accounts["revenue"], credit="100.00")])

    with pytest.raises(StorageFailure):
        posting.create_entry(db, request, created_by=USER_ID)

    assert row_counts(db) == (0, 0)
    assert balance(db, accounts["cash"]) == "0.00"


def test_storage_failure_mid_balance_update_rolls_back(db, accounts, monkeypatch):
    real_apply_delta = accounts_crud.apply_delta
    calls = []

    def flaky_apply_delta(db, account_id, debit, credit):
        calls.append(account_id)
        if len(calls) == 2:
            raise OperationalError("UPDATE accounts", {}, Exception("connection lost"))
        return real_apply_delta(db, account_id, debit, credit)

    monkeypatch.setattr(accounts_crud, "apply_delta", flaky_apply_delta)
    request = entry_request([line(accounts["cash"], debit="100.00"), line(accounts["revenue"], credit="100.00")])

    with pytest.raises(StorageFailure):
        posting.create_entry(db, request, created_by=USER_ID)

    assert row_counts(db) == (0, 0)
    assert balance(db, accounts["cash"]) == "0.00"
    assert balance(db, accounts["revenue"]) == "0.00"


def test_update_replaces_lines_and_rebalances(db, accounts, post_entry):
    entry = post_entry([line(accounts["cash"], debit="1000.00"), line(accounts["revenue"], credit="1000.00")])

    updated = posting.update_entry(
        db, entry.id, COMPANY_ID,
        update_request([line(accounts["cash"], debit="500.00"), line(accounts["revenue"], credit="500.00")]),
        updated_by="user-2",
    )

    assert updated.total_amount == Amount.from_string("500.00")
    assert updated.updated_by == "user-2"
    assert balance(db, accounts["cash"]) == "500.00"
    assert balance(db, accounts["revenue"]) == "500.00"
    lines = journal_store.get_lines_for_entry(db, entry.id)
    assert [l.debit_amount.to_fixed_string() for l in lines] == ["500.00", "0.00"]
    assert row_counts(db) == (1, 2)


def test_update_can_move_amounts_between_accounts(db, accounts, post_entry):
    entry = post_entry([line(accounts["cash"], debit="1000.00"), line(accounts["revenue"], credit="1000.00")])

    posting.update_entry(
        db, entry.id, COMPANY_ID,
        update_request([
            line(accounts["receivable"], debit="600.00"),
            line(accounts["cash"], debit="400.00"),
            line(accounts["revenue"], credit="1000.00"),
        ]),
        updated_by=USER_ID,
    )

    assert balance(db, accounts["cash"]) == "400.00"
    assert balance(db, accounts["receivable"]) == "600.00"
    assert balance(db, accounts["revenue"]) == "1000.00"


def test_update_changes_header_fields(db, accounts, post_entry):
    lines = [line(accounts["cash"], debit="10.00"), line(accounts["revenue"], credit="10.00")]
    entry = post_entry(lines, entry_number="JE-100", reference="OLD")

    updated = posting.update_entry(
        db, entry.id, COMPANY_ID,
        update_request(lines, entry_number="JE-101", date=date(2024, 2, 1), reference=None),
        updated_by=USER_ID,
    )

    assert updated.entry_number == "JE-101"
    assert updated.date == date(2024, 2, 1)
    assert updated.reference is None
    assert updated.description == "Test entry"
    assert updated.company_id == COMPANY_ID


def test_update_writes_audit_log(db, accounts, post_entry):
    entry = post_entry([line(accounts["cash"], debit="1000.00"), line(accounts["revenue"], credit="1000.00")])
    posting.update_entry(
        db, entry.id, COMPANY_ID,
        update_request([line(accounts["cash"], debit="500.00"), line(accounts["revenue"], credit="500.00")]),
        updated_by="auditor",
    )

    log = db.query(AuditLog).filter(AuditLog.record_id == entry.id).one()
    assert log.action == "UPDATE"
    assert log.table_name == "journal_entries"
    assert log.changed_by == "auditor"
    assert log.old_values["total_amount"] == "1000.00"
    assert log.old_values["lines"][0]["debit_amount"] == "1000.00"
    assert log.new_values["total_amount"] == "500.00"


def test_rejected_update_changes_nothing(db, accounts, post_entry):
    entry = post_entry([line(accounts["cash"], debit="1000.00"), line(accounts["revenue"], credit="1000.00")])

    with pytest.raises(Unbalanced):
        posting.update_entry(
            db, entry.id, COMPANY_ID,
            update_request([line(accounts["cash"], debit="500.00"), line(accounts["revenue"], credit="400.00")]),
            updated_by=USER_ID,
        )

    assert balance(db, accounts["cash"]) == "1000.00"
    assert balance(db, accounts["revenue"]) == "1000.00"
    lines = journal_store.get_lines_for_entry(db, entry.id)
    assert [l.debit_amount.to_fixed_string() for l in lines] == ["1000.00", "0.00"]
    assert db.query(AuditLog).count() == 0


def test_storage_failure_during_update_restores_everything(db, accounts, post_entry, monkeypatch):
    entry = post_entry([line(accounts["cash"], debit="1000.00"), line(accounts["revenue"], credit="1000.00")])
    real_apply_delta = accounts_crud.apply_delta
    calls = []

    def flaky_apply_delta(db, account_id, debit, credit):
        calls.append(account_id)
        # Both old lines are already reversed when the third call fails
        if len(calls) == 3:
            raise OperationalError("UPDATE accounts", {}, Exception("connection lost"))
        return real_apply_delta(db, account_id, debit, credit)

    monkeypatch.setattr(accounts_crud, "apply_delta", flaky_apply_delta)

    with pytest.raises(StorageFailure):
        posting.update_entry(
            db, entry.id, COMPANY_ID,
            update_request([line(accounts["cash"], debit="500.00"), line(accounts["revenue"], credit="500.00")]),
            updated_by=USER_ID,
        )

    assert balance(db, accounts["cash"]) == "1000.00"
    assert balance(db, accounts["revenue"]) == "1000.00"
    lines = journal_store.get_lines_for_entry(db, entry.id)
    assert [l.debit_amount.to_fixed_string() for l in lines] == ["1000.00", "0.00"]
    assert db.query(AuditLog).count() == 0


def test_update_of_other_company_entry_is_not_found(db, accounts, post_entry):
    entry = post_entry([line(accounts["cash"], debit="1.00"), line(accounts["revenue"], credit="1.00")])
    with pytest.raises(NotFound):
        posting.update_entry(
            db, entry.id, OTHER_COMPANY_ID,
            update_request([line(accounts["cash"], debit="2.00"), line(accounts["revenue"], credit="2.00")]),
            updated_by=USER_ID,
        )
    with pytest.raises(NotFound):
        posting.update_entry(db, 424242, COMPANY_ID, update_request([]), updated_by=USER_ID)
    assert balance(db, accounts["cash"]) == "1.00"


def test_update_to_existing_entry_number_rejected(db, accounts, post_entry):
    lines = [line(accounts["cash"], debit="1.00"), line(accounts["revenue"], credit="1.00")]
    post_entry(lines, entry_number="JE-A")
    second = post_entry(lines, entry_number="JE-B")
    with pytest.raises(DuplicateEntryNumber):
        posting.update_entry(db, second.id, COMPANY_ID, update_request(lines, entry_number="JE-A"), updated_by=USER_ID)


def test_entries_listed_newest_first(db, accounts, post_entry):
    lines = [line(accounts["cash"], debit="1.00"), line(accounts["revenue"], credit="1.00")]
    post_entry(lines, entry_number="JAN", entry_date=date(2024, 1, 1))
    post_entry(lines, entry_number="MAR", entry_date=date(2024, 3, 1))
    post_entry(lines, entry_number="FEB", entry_date=date(2024, 2, 1))

    listed = journal_store.list_entries_by_company(db, COMPANY_ID)
    assert [e.entry_number for e in listed] == ["MAR", "FEB", "JAN"]

    limited = journal_store.list_entries_by_company(db, COMPANY_ID, limit=2)
    assert [e.entry_number for e in limited] == ["MAR", "FEB"]

    ranged = journal_store.list_entries_by_company(
        db, COMPANY_ID, start_date=date(2024, 1, 15), end_date=date(2024, 2, 15)
    )
    assert [e.entry_number for e in ranged] == ["FEB"]
    assert journal_store.list_entries_by_company(db, OTHER_COMPANY_ID) == []


def test_get_entry_with_lines(db, accounts, post_entry):
    entry = post_entry([line(accounts["cash"], debit="3.00"), line(accounts["revenue"], credit="3.00")])
    fetched = posting.get_entry_with_lines(db, entry.id, COMPANY_ID)
    assert [l.account_id for l in fetched.lines] == [accounts["cash"].id, accounts["revenue"].id]
    with pytest.raises(NotFound):
        posting.get_entry_with_lines(db, entry.id, OTHER_COMPANY_ID)
