from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional
from ledgerbook.database import get_db
from ledgerbook.schemas.account import Account, AccountCreate, AccountUpdate, BalanceTotals
from ledgerbook.crud import accounts as accounts_crud
from ledgerbook.models.account import AccountType
from ledgerbook.utils.tenancy import get_company_id, get_user_id

router = APIRouter(
    prefix="/accounts",
    tags=["Accounts"],
)


@router.post("/", response_model=Account, status_code=status.HTTP_201_CREATED)
def create_account(
    account: AccountCreate,
    db: Session = Depends(get_db),
    company_id: str = Depends(get_company_id),
    user_id: str = Depends(get_user_id)
):
    return accounts_crud.create_account(db, company_id, account, user_id=user_id)


@router.get("/", response_model=List[Account])
def get_accounts(
    account_type: Optional[AccountType] = None,
    include_inactive: bool = True,
    db: Session = Depends(get_db),
    company_id: str = Depends(get_company_id)
):
    """The company's chart of accounts ordered by code."""
    return accounts_crud.list_accounts_by_company(
        db, company_id, account_type=account_type, include_inactive=include_inactive
    )


@router.get("/balance-totals", response_model=BalanceTotals)
def get_balance_totals(
    db: Session = Depends(get_db),
    company_id: str = Depends(get_company_id)
):
    totals = accounts_crud.get_balance_totals(db, company_id)
    return BalanceTotals(
        assets=totals[AccountType.ASSET],
        liabilities=totals[AccountType.LIABILITY],
        equity=totals[AccountType.EQUITY],
        revenue=totals[AccountType.REVENUE],
        expenses=totals[AccountType.EXPENSE],
        equation_holds=accounts_crud.accounting_equation_holds(totals),
    )


@router.get("/{account_id}", response_model=Account)
def get_account(
    account_id: int,
    db: Session = Depends(get_db),
    company_id: str = Depends(get_company_id)
):
    return accounts_crud.get_account(db, account_id, company_id=company_id)


@router.patch("/{account_id}", response_model=Account)
def update_account(
    account_id: int,
    account_update: AccountUpdate,
    db: Session = Depends(get_db),
    company_id: str = Depends(get_company_id),
    user_id: str = Depends(get_user_id)
):
    return accounts_crud.update_account(db, company_id, account_id, account_update, user_id=user_id)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_id: int,
    db: Session = Depends(get_db),
    company_id: str = Depends(get_company_id),
    user_id: str = Depends(get_user_id)
):
    # Soft delete: accounts referenced by posted lines are refused with AccountInUse
    accounts_crud.deactivate_account(db, company_id, account_id, user_id=user_id)
    return None
