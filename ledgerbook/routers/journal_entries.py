from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from ledgerbook.database import get_db
from ledgerbook.schemas.journal_entry import JournalEntry, JournalEntryCreate, JournalEntryUpdate, JournalEntryWithLines
from ledgerbook.crud import journal_entries as journal_store
from ledgerbook.exceptions import CompanyMismatch
from ledgerbook import posting
from ledgerbook.utils.tenancy import get_company_id, get_user_id

router = APIRouter(
    prefix="/journal-entries",
    tags=["Journal Entries"],
)


@router.post("/", response_model=JournalEntryWithLines, status_code=status.HTTP_201_CREATED)
def create_journal_entry(
    entry: JournalEntryCreate,
    db: Session = Depends(get_db),
    company_id: str = Depends(get_company_id),
    user_id: str = Depends(get_user_id)
):
    """
    Create and post a new journal entry.
    Lines are validated (balance, accounts, amounts) before anything is written.
    """
    if entry.entry.company_id != company_id:
        raise CompanyMismatch(
            "Journal entries can only be posted for the caller's own company",
            details={"company_id": entry.entry.company_id},
        )
    return posting.create_entry(db, entry, created_by=user_id)


@router.get("/", response_model=List[JournalEntry])
def get_journal_entries(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    skip: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    company_id: str = Depends(get_company_id)
):
    """
    Retrieve the company's journal entries, newest first.
    """
    return journal_store.list_entries_by_company(
        db,
        company_id,
        limit=limit,
        skip=skip,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/{entry_id}", response_model=JournalEntryWithLines)
def get_journal_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    company_id: str = Depends(get_company_id)
):
    """
    Retrieve a single journal entry with its lines.
    """
    return posting.get_entry_with_lines(db, entry_id, company_id)


@router.put("/{entry_id}", response_model=JournalEntryWithLines)
def update_journal_entry(
    entry_id: int,
    entry: JournalEntryUpdate,
    db: Session = Depends(get_db),
    company_id: str = Depends(get_company_id),
    user_id: str = Depends(get_user_id)
):
    """
    Replace the lines of a journal entry, reversing the balance effect of the old ones.
    """
    return posting.update_entry(db, entry_id, company_id, entry, updated_by=user_id)
