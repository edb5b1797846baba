"""
Journal entry store.

Plain persistence for entries and their lines. Write functions only add,
flush or issue statements on the session they are given; committing is the
caller's job, so every write lands in the posting engine's transactional scope.
"""

from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ledgerbook import config
from ledgerbook.models.journal_entry import JournalEntry
from ledgerbook.models.journal_entry_line import JournalEntryLine
from ledgerbook.utils.money import Amount


def insert_entry(db: Session, company_id: str, entry_number: str, entry_date: date, description: str,
                 reference: Optional[str], total_amount: Amount, created_by: str) -> JournalEntry:
    db_entry = JournalEntry(
        company_id=company_id,
        entry_number=entry_number,
        date=entry_date,
        description=description,
        reference=reference,
        total_amount=total_amount,
        created_by=created_by,
    )
    db.add(db_entry)
    db.flush()  # Flush to get the ID for the entry before creating its lines
    return db_entry


def insert_lines(db: Session, journal_entry_id: int, lines: Iterable) -> List[JournalEntryLine]:
    """Insert validated lines under ``journal_entry_id``."""
    db_lines = [
        JournalEntryLine(
            journal_entry_id=journal_entry_id,
            account_id=line.account_id,
            description=line.description,
            debit_amount=line.debit_amount,
            credit_amount=line.credit_amount,
            currency=line.currency,
            exchange_rate=line.exchange_rate,
        )
        for line in lines
    ]
    db.add_all(db_lines)
    db.flush()
    return db_lines


def delete_lines_for_entry(db: Session, journal_entry_id: int) -> int:
    return db.query(JournalEntryLine).filter(
        JournalEntryLine.journal_entry_id == journal_entry_id
    ).delete(synchronize_session="evaluate")


def update_entry_header(db: Session, db_entry: JournalEntry, changes: dict, total_amount: Amount,
                        updated_by: str) -> JournalEntry:
    for key, value in changes.items():
        setattr(db_entry, key, value)
    db_entry.total_amount = total_amount
    db_entry.updated_by = updated_by
    db.flush()
    return db_entry


def get_entry(db: Session, entry_id: int, company_id: str = None, for_update: bool = False) -> Optional[JournalEntry]:
    """
    Retrieves a single journal entry by its ID.

    With ``for_update`` the row stays locked until the surrounding transaction ends.
    """
    query = db.query(JournalEntry).filter(JournalEntry.id == entry_id)
    if company_id is not None:
        query = query.filter(JournalEntry.company_id == company_id)
    if for_update:
        query = query.with_for_update()
    return query.first()


def get_entry_with_lines(db: Session, entry_id: int, company_id: str = None) -> Optional[JournalEntry]:
    query = db.query(JournalEntry).options(selectinload(JournalEntry.lines)).filter(JournalEntry.id == entry_id)
    if company_id is not None:
        query = query.filter(JournalEntry.company_id == company_id)
    return query.first()


def get_lines_for_entry(db: Session, entry_id: int) -> List[JournalEntryLine]:
    return db.query(JournalEntryLine).filter(
        JournalEntryLine.journal_entry_id == entry_id
    ).order_by(JournalEntryLine.id).all()


def list_entries_by_company(
    db: Session,
    company_id: str,
    limit: int = None,
    skip: int = 0,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[JournalEntry]:
    """
    Retrieves a company's journal entries, newest first, with optional date filtering.
    """
    query = db.query(JournalEntry).filter(JournalEntry.company_id == company_id)

    if start_date:
        query = query.filter(JournalEntry.date >= start_date)
    if end_date:
        query = query.filter(JournalEntry.date <= end_date)

    limit = config.DEFAULT_ENTRY_LIST_LIMIT if limit is None else limit
    return query.order_by(JournalEntry.date.desc(), JournalEntry.id.desc()).offset(skip).limit(limit).all()


def entry_number_exists(db: Session, company_id: str, entry_number: str, exclude_entry_id: int = None) -> bool:
    query = db.query(JournalEntry.id).filter(
        JournalEntry.company_id == company_id,
        JournalEntry.entry_number == entry_number
    )
    if exclude_entry_id is not None:
        query = query.filter(JournalEntry.id != exclude_entry_id)
    return query.first() is not None


def count_lines_for_account(db: Session, account_id: int) -> int:
    return db.query(func.count(JournalEntryLine.id)).filter(
        JournalEntryLine.account_id == account_id
    ).scalar() or 0
