from sqlalchemy import Column, Integer, String, Text, Boolean, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from ledgerbook.database import Base
from ledgerbook.models.audit_mixin import TimestampMixin
from ledgerbook.models.types import AmountType
from ledgerbook.utils.money import Amount, MONEY_SCALE
import enum


class AccountType(enum.Enum):
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


# Account types whose balance grows with debits; every other type grows with credits.
DEBIT_NORMAL_TYPES = (AccountType.ASSET, AccountType.EXPENSE)


class Account(Base, TimestampMixin):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(String, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    code = Column(String(20), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    account_type = Column("type", Enum(AccountType, name="account_type"), nullable=False)
    parent_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    description = Column(Text, nullable=True)
    # Written only by the posting engine, always as an atomic delta
    balance = Column(AmountType(MONEY_SCALE), nullable=False, default=Amount.zero(), server_default="0")
    currency = Column(String(3), nullable=False, default="USD")
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    company = relationship("Company", back_populates="accounts")
    parent = relationship("Account", remote_side=[id], back_populates="children")
    children = relationship("Account", back_populates="parent")

    __table_args__ = (
        UniqueConstraint('company_id', 'code', name='_company_account_code_uc'),
    )

    @property
    def is_debit_normal(self) -> bool:
        return self.account_type in DEBIT_NORMAL_TYPES

    def __repr__(self):
        return f"<Account {self.company_id}:{self.code} {self.account_type.value if self.account_type else None} {self.balance}>"
