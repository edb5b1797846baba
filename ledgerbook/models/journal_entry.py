from sqlalchemy import Column, Integer, String, Text, Date, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from ledgerbook.database import Base
from ledgerbook.models.audit_mixin import TimestampMixin
from ledgerbook.models.types import AmountType
from ledgerbook.utils.money import MONEY_SCALE


class JournalEntry(Base, TimestampMixin):
    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(String, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    entry_number = Column(String(50), nullable=False)
    date = Column(Date, nullable=False, index=True)
    description = Column(Text, nullable=False)
    reference = Column(String, nullable=True)
    # Sum of the debit side, which always equals the sum of the credit side
    total_amount = Column(AmountType(MONEY_SCALE), nullable=False)

    # Relationships
    company = relationship("Company", back_populates="journal_entries")
    lines = relationship(
        "JournalEntryLine",
        back_populates="journal_entry",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="JournalEntryLine.id",
    )

    __table_args__ = (
        UniqueConstraint('company_id', 'entry_number', name='_company_entry_number_uc'),
    )
