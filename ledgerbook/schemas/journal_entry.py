from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
import datetime
from ledgerbook.schemas.fields import AmountStr


class JournalLineInput(BaseModel):
    """One candidate debit or credit line. Amounts are decimal strings to avoid precision loss."""
    account_id: int
    description: Optional[str] = None
    debit_amount: str = "0"
    credit_amount: str = "0"
    currency: str = Field("USD", min_length=3, max_length=3)
    exchange_rate: str = "1"


class JournalEntryHeaderCreate(BaseModel):
    company_id: str
    entry_number: str = Field(..., min_length=1, max_length=50)
    date: datetime.date
    description: str
    reference: Optional[str] = None
    # Accepted from older clients but never trusted: the server recomputes it
    total_amount: Optional[str] = None


class JournalEntryCreate(BaseModel):
    entry: JournalEntryHeaderCreate
    lines: List[JournalLineInput]


class JournalEntryHeaderUpdate(BaseModel):
    """Header fields an edit may change. Company, author and total are not among them."""
    model_config = ConfigDict(extra="forbid")

    entry_number: Optional[str] = Field(None, min_length=1, max_length=50)
    date: Optional[datetime.date] = None
    description: Optional[str] = None
    reference: Optional[str] = None
    total_amount: Optional[str] = None


class JournalEntryUpdate(BaseModel):
    """Full replacement of an entry's line set, plus any header changes."""
    model_config = ConfigDict(extra="forbid")

    entry: JournalEntryHeaderUpdate = Field(default_factory=JournalEntryHeaderUpdate)
    lines: List[JournalLineInput]


class JournalEntryLine(BaseModel):
    id: int
    journal_entry_id: int
    account_id: int
    description: Optional[str] = None
    debit_amount: AmountStr
    credit_amount: AmountStr
    currency: str
    exchange_rate: AmountStr

    class Config:
        from_attributes = True


class JournalEntry(BaseModel):
    id: int
    company_id: str
    entry_number: str
    date: datetime.date
    description: str
    reference: Optional[str] = None
    total_amount: AmountStr
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    class Config:
        from_attributes = True


class JournalEntryWithLines(JournalEntry):
    lines: List[JournalEntryLine] = []
