import logging
from typing import Optional

from sqlalchemy.orm import Session

from ledgerbook.crud import accounts as accounts_crud
from ledgerbook.database import transactional_scope
from ledgerbook.exceptions import DuplicateCompany, NotFound
from ledgerbook.models.company import Company
from ledgerbook.schemas.company import CompanyCreate, CompanyUpdate

logger = logging.getLogger(__name__)


def find_company(db: Session, company_id: str) -> Optional[Company]:
    return db.query(Company).filter(Company.id == company_id).first()


def get_company(db: Session, company_id: str) -> Company:
    company = find_company(db, company_id)
    if company is None:
        raise NotFound(f"Company with id {company_id} not found", details={"company_id": company_id})
    return company


def create_company(db: Session, company: CompanyCreate, user_id: str = None) -> Company:
    """Create a company and, when asked, seed its default chart of accounts."""
    if find_company(db, company.id):
        raise DuplicateCompany(f"Company with id {company.id} already exists", details={"company_id": company.id})

    with transactional_scope(db):
        db_company = Company(
            **company.model_dump(exclude={"seed_default_accounts"}),
            created_by=user_id,
        )
        db.add(db_company)
    logger.info(f"Company {db_company.id} created")

    if company.seed_default_accounts:
        accounts_crud.initialize_default_accounts(db, db_company.id, user_id=user_id)
    db.refresh(db_company)
    return db_company


def update_company(db: Session, company_id: str, company_update: CompanyUpdate, user_id: str = None) -> Company:
    company = get_company(db, company_id)
    # Both columns are required, so an explicit null leaves the value as it is
    update_data = {
        key: value
        for key, value in company_update.model_dump(exclude_unset=True).items()
        if value is not None
    }

    with transactional_scope(db):
        for key, value in update_data.items():
            setattr(company, key, value)
        company.updated_by = user_id
    db.refresh(company)
    logger.info(f"Company {company_id} updated: {sorted(update_data)}")
    return company
