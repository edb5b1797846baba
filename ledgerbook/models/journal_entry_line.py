from sqlalchemy import Column, Integer, String, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from ledgerbook.database import Base
from ledgerbook.models.types import AmountType
from ledgerbook.utils.money import Amount, MONEY_SCALE, RATE_SCALE


class JournalEntryLine(Base):
    __tablename__ = "journal_entry_lines"

    id = Column(Integer, primary_key=True, index=True)
    journal_entry_id = Column(Integer, ForeignKey("journal_entries.id", ondelete="CASCADE"), nullable=False, index=True)
    # Posted lines pin their account: it can be deactivated but never deleted
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False, index=True)
    description = Column(Text, nullable=True)
    debit_amount = Column(AmountType(MONEY_SCALE), CheckConstraint('debit_amount >= 0'), nullable=False, default=Amount.zero())
    credit_amount = Column(AmountType(MONEY_SCALE), CheckConstraint('credit_amount >= 0'), nullable=False, default=Amount.zero())
    currency = Column(String(3), nullable=False, default="USD")
    exchange_rate = Column(AmountType(RATE_SCALE), nullable=False, default=Amount(10 ** RATE_SCALE, RATE_SCALE))

    # Relationships
    journal_entry = relationship("JournalEntry", back_populates="lines")
    account = relationship("Account")

    __table_args__ = (
        CheckConstraint(
            '(debit_amount > 0 AND credit_amount = 0) OR (debit_amount = 0 AND credit_amount > 0)',
            name='check_debit_or_credit_exclusive'
        ),
    )
