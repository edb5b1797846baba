from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class CompanyBase(BaseModel):
    name: str = Field(..., min_length=1)
    base_currency: str = Field("USD", min_length=3, max_length=3)


class CompanyCreate(CompanyBase):
    id: str = Field(..., min_length=1)
    # Seed the standard chart of accounts (Cash, Receivables, Sales, ...)
    seed_default_accounts: bool = False


class CompanyUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1)
    base_currency: Optional[str] = Field(None, min_length=3, max_length=3)


class Company(CompanyBase):
    id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
