"""
Posting engine.

Creates and edits journal entries. Every operation validates first and then
performs all of its writes (entry, lines, balance deltas, audit row) inside
one transactional scope on the session it was given: either everything is
committed or nothing is.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ledgerbook import validation
from ledgerbook.crud import accounts as accounts_crud
from ledgerbook.crud import audit_log as audit_log_crud
from ledgerbook.crud import journal_entries as journal_store
from ledgerbook.database import transactional_scope
from ledgerbook.exceptions import DuplicateEntryNumber, InvalidAmount, LedgerError, NotFound
from ledgerbook.models.journal_entry import JournalEntry
from ledgerbook.schemas.audit_log import AuditLogCreate
from ledgerbook.schemas.journal_entry import JournalEntryCreate, JournalEntryUpdate
from ledgerbook.utils import sqlalchemy_to_dict
from ledgerbook.utils.money import Amount, LEGACY_TOLERANCE

logger = logging.getLogger(__name__)

# Header columns an edit must not blank out
_REQUIRED_HEADER_FIELDS = ("entry_number", "date", "description")


def _validate_lines(db: Session, company_id: str, line_inputs) -> validation.ValidatedEntry:
    lines = validation.parse_lines(line_inputs)
    snapshot = validation.take_account_snapshot(db, (line.account_id for line in lines))
    return validation.validate_entry(company_id, lines, snapshot)


def _apply_lines(db: Session, lines: Iterable, reverse: bool = False) -> None:
    """
    Post (or with ``reverse`` undo) the balance effect of a set of lines.

    Accounts are touched in ascending id order so concurrent postings acquire
    row locks in the same sequence.
    """
    for line in sorted(lines, key=lambda l: l.account_id):
        if reverse:
            accounts_crud.apply_delta(db, line.account_id, debit=line.credit_amount, credit=line.debit_amount)
        else:
            accounts_crud.apply_delta(db, line.account_id, debit=line.debit_amount, credit=line.credit_amount)


def _warn_on_declared_total(entry_number: str, declared: Optional[str], computed: Amount) -> None:
    """The client-declared total is informational only; a mismatch is logged, never used."""
    if declared is None:
        return
    try:
        declared_amount = Amount.from_string(declared)
    except InvalidAmount:
        logger.warning(f"Entry {entry_number}: ignoring unparseable declared total {declared!r}")
        return
    if not declared_amount.within(computed, LEGACY_TOLERANCE):
        logger.warning(
            f"Entry {entry_number}: declared total {declared_amount} differs from computed total {computed}"
        )


def _entry_values(entry: JournalEntry, lines) -> dict:
    values = sqlalchemy_to_dict(entry)
    values["lines"] = [
        {
            "account_id": line.account_id,
            "description": line.description,
            "debit_amount": line.debit_amount.to_fixed_string(),
            "credit_amount": line.credit_amount.to_fixed_string(),
            "currency": line.currency,
            "exchange_rate": line.exchange_rate.to_fixed_string(),
        }
        for line in lines
    ]
    return values


def create_entry(db: Session, request: JournalEntryCreate, created_by: str) -> JournalEntry:
    """
    Validate and post a new journal entry.

    Raises:
        LedgerError: any validation failure (nothing is written),
            DuplicateEntryNumber, or StorageFailure (everything rolled back)
    """
    header = request.entry
    try:
        validated = _validate_lines(db, header.company_id, request.lines)
        if journal_store.entry_number_exists(db, header.company_id, header.entry_number):
            raise DuplicateEntryNumber(
                f"Journal entry number {header.entry_number} already exists",
                details={"entry_number": header.entry_number},
            )
    except LedgerError as e:
        db.rollback()
        logger.warning(f"Rejected journal entry {header.entry_number} for company {header.company_id}: {e}")
        raise

    _warn_on_declared_total(header.entry_number, header.total_amount, validated.total_amount)

    with transactional_scope(db) as tx:
        db_entry = journal_store.insert_entry(
            tx,
            company_id=header.company_id,
            entry_number=header.entry_number,
            entry_date=header.date,
            description=header.description,
            reference=header.reference,
            total_amount=validated.total_amount,
            created_by=created_by,
        )
        journal_store.insert_lines(tx, db_entry.id, validated.lines)
        _apply_lines(tx, validated.lines)

    db.refresh(db_entry)
    logger.info(
        f"Journal entry {db_entry.entry_number} (id {db_entry.id}) posted for company {db_entry.company_id}, "
        f"total {db_entry.total_amount}, by {created_by}"
    )
    return db_entry


def update_entry(db: Session, entry_id: int, company_id: str, request: JournalEntryUpdate,
                 updated_by: str) -> JournalEntry:
    """
    Replace an entry's lines (and optionally header fields) as one unit.

    The old lines' balance effect is reversed, the old lines are deleted, the
    new lines are inserted and posted, and an audit row records the before and
    after values. The entry row is locked for the duration so concurrent edits
    of the same entry serialize.

    Raises:
        NotFound: the entry does not exist or belongs to another company
        LedgerError: any validation failure on the new lines (nothing is written)
        StorageFailure: the database aborted the transaction (everything rolled back)
    """
    header_changes = request.entry.model_dump(exclude_unset=True, exclude={"total_amount"})
    for key in _REQUIRED_HEADER_FIELDS:
        if key in header_changes and header_changes[key] is None:
            del header_changes[key]

    try:
        db_entry = journal_store.get_entry(db, entry_id, company_id=company_id, for_update=True)
        if db_entry is None:
            raise NotFound(f"Journal entry {entry_id} not found", details={"entry_id": entry_id})
        old_lines = journal_store.get_lines_for_entry(db, entry_id)
        validated = _validate_lines(db, db_entry.company_id, request.lines)

        new_number = header_changes.get("entry_number")
        if new_number and new_number != db_entry.entry_number and journal_store.entry_number_exists(
            db, company_id, new_number, exclude_entry_id=entry_id
        ):
            raise DuplicateEntryNumber(
                f"Journal entry number {new_number} already exists",
                details={"entry_number": new_number},
            )
    except LedgerError as e:
        db.rollback()
        logger.warning(f"Rejected update of journal entry {entry_id} for company {company_id}: {e}")
        raise

    _warn_on_declared_total(db_entry.entry_number, request.entry.total_amount, validated.total_amount)
    old_values = _entry_values(db_entry, old_lines)

    with transactional_scope(db) as tx:
        _apply_lines(tx, old_lines, reverse=True)
        journal_store.delete_lines_for_entry(tx, entry_id)
        journal_store.update_entry_header(tx, db_entry, header_changes, validated.total_amount, updated_by)
        new_lines = journal_store.insert_lines(tx, entry_id, validated.lines)
        _apply_lines(tx, validated.lines)
        audit_log_crud.create_audit_log(tx, AuditLogCreate(
            company_id=db_entry.company_id,
            table_name="journal_entries",
            record_id=entry_id,
            changed_by=updated_by,
            action="UPDATE",
            old_values=old_values,
            new_values=_entry_values(db_entry, new_lines),
        ))

    db.refresh(db_entry)
    logger.info(
        f"Journal entry {db_entry.entry_number} (id {entry_id}) updated for company {company_id}, "
        f"{len(old_lines)} lines replaced by {len(validated.lines)}, by {updated_by}"
    )
    return db_entry


def get_entry_with_lines(db: Session, entry_id: int, company_id: str) -> JournalEntry:
    db_entry = journal_store.get_entry_with_lines(db, entry_id, company_id=company_id)
    if db_entry is None:
        raise NotFound(f"Journal entry {entry_id} not found", details={"entry_id": entry_id})
    return db_entry
