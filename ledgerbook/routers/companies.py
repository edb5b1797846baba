from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from ledgerbook.database import get_db
from ledgerbook.schemas.company import Company, CompanyCreate, CompanyUpdate
from ledgerbook.crud import companies as companies_crud
from ledgerbook.exceptions import CompanyMismatch
from ledgerbook.utils.tenancy import get_company_id, get_user_id

router = APIRouter(
    prefix="/companies",
    tags=["Companies"],
)


def _check_own_company(company_id: str, caller_company_id: str) -> None:
    if company_id != caller_company_id:
        raise CompanyMismatch("Companies can only access their own record", details={"company_id": company_id})


@router.post("/", response_model=Company, status_code=status.HTTP_201_CREATED)
def create_company(
    company: CompanyCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id)
):
    return companies_crud.create_company(db, company, user_id=user_id)


@router.get("/{company_id}", response_model=Company)
def get_company(
    company_id: str,
    db: Session = Depends(get_db),
    caller_company_id: str = Depends(get_company_id)
):
    _check_own_company(company_id, caller_company_id)
    return companies_crud.get_company(db, company_id)


@router.patch("/{company_id}", response_model=Company)
def update_company(
    company_id: str,
    company_update: CompanyUpdate,
    db: Session = Depends(get_db),
    caller_company_id: str = Depends(get_company_id),
    user_id: str = Depends(get_user_id)
):
    _check_own_company(company_id, caller_company_id)
    return companies_crud.update_company(db, company_id, company_update, user_id=user_id)
