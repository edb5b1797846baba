from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from ledgerbook.database import Base
from ledgerbook.models.audit_mixin import TimestampMixin


class Company(Base, TimestampMixin):
    __tablename__ = "companies"

    # Supplied by the authentication layer, not generated here
    id = Column(String, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    base_currency = Column(String(3), nullable=False, default="USD")

    # Relationships
    accounts = relationship("Account", back_populates="company", passive_deletes=True)
    journal_entries = relationship("JournalEntry", back_populates="company", passive_deletes=True)
