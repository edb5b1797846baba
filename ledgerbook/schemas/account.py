from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from ledgerbook.models.account import AccountType
from ledgerbook.schemas.fields import AmountStr


class AccountBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=100)
    account_type: AccountType
    parent_id: Optional[int] = None
    description: Optional[str] = None
    currency: str = Field("USD", min_length=3, max_length=3)


class AccountCreate(AccountBase):
    is_active: bool = True


class AccountUpdate(BaseModel):
    """The complete list of account fields a caller may change. Balance is never one of them."""
    model_config = ConfigDict(extra="forbid")

    code: Optional[str] = Field(None, min_length=1, max_length=20)
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    account_type: Optional[AccountType] = None
    parent_id: Optional[int] = None
    description: Optional[str] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    is_active: Optional[bool] = None


class Account(AccountBase):
    id: int
    company_id: str
    balance: AmountStr
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BalanceTotals(BaseModel):
    assets: AmountStr
    liabilities: AmountStr
    equity: AmountStr
    revenue: AmountStr
    expenses: AmountStr
    # Assets == Liabilities + Equity + Revenue - Expenses
    equation_holds: bool
