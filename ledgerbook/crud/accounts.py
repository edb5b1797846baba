"""
Account registry: chart-of-accounts lookups and the one balance mutation the ledger allows.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import BigInteger, case, func, literal, type_coerce
from sqlalchemy.orm import Session

from ledgerbook.crud import journal_entries as journal_store
from ledgerbook.database import transactional_scope
from ledgerbook.exceptions import (
    AccountInUse,
    CrossCompanyAccount,
    DuplicateAccountCode,
    InvalidHierarchy,
    NotFound,
    UnknownAccount,
)
from ledgerbook.models.account import Account, AccountType, DEBIT_NORMAL_TYPES
from ledgerbook.schemas.account import AccountCreate, AccountUpdate
from ledgerbook.utils.money import Amount, MONEY_SCALE

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNTS = [
    {"code": "1000", "name": "Cash", "account_type": AccountType.ASSET},
    {"code": "1100", "name": "Accounts Receivable", "account_type": AccountType.ASSET},
    {"code": "1200", "name": "Inventory", "account_type": AccountType.ASSET},
    {"code": "2000", "name": "Accounts Payable", "account_type": AccountType.LIABILITY},
    {"code": "3000", "name": "Owner's Equity", "account_type": AccountType.EQUITY},
    {"code": "4000", "name": "Sales Revenue", "account_type": AccountType.REVENUE},
    {"code": "5000", "name": "Cost of Goods Sold", "account_type": AccountType.EXPENSE},
    {"code": "6000", "name": "Operating Expenses", "account_type": AccountType.EXPENSE},
]


def find_account(db: Session, account_id: int) -> Optional[Account]:
    return db.query(Account).filter(Account.id == account_id).first()


def get_account(db: Session, account_id: int, company_id: str = None) -> Account:
    """
    Fetch an account by id, optionally scoped to a company.

    Raises:
        NotFound: if the account does not exist (or belongs to another company)
    """
    account = find_account(db, account_id)
    if account is None or (company_id is not None and account.company_id != company_id):
        raise NotFound(f"Account with id {account_id} not found", details={"account_id": account_id})
    return account


def get_account_by_code(db: Session, company_id: str, code: str) -> Optional[Account]:
    return db.query(Account).filter(
        Account.company_id == company_id,
        Account.code == code
    ).first()


def list_accounts_by_company(db: Session, company_id: str, account_type: AccountType = None,
                             include_inactive: bool = True) -> List[Account]:
    """All accounts of a company ordered by code ascending."""
    query = db.query(Account).filter(Account.company_id == company_id)
    if account_type:
        query = query.filter(Account.account_type == account_type)
    if not include_inactive:
        query = query.filter(Account.is_active == True)  # noqa: E712
    return query.order_by(Account.code.asc()).all()


def get_accounts_by_ids(db: Session, account_ids: Iterable[int]) -> List[Account]:
    ids = set(account_ids)
    if not ids:
        return []
    return db.query(Account).filter(Account.id.in_(ids)).all()


def _directional_delta(debit_units: int, credit_units: int):
    """
    The balance change a (debit, credit) pair causes, as a SQL expression on the account row.

    Debit-normal accounts (ASSET, EXPENSE) grow by debit - credit; LIABILITY,
    EQUITY and REVENUE grow by credit - debit. This is the only place the
    normal-balance rule is expressed.
    """
    return case(
        (Account.account_type.in_(DEBIT_NORMAL_TYPES), literal(debit_units - credit_units, BigInteger)),
        else_=literal(credit_units - debit_units, BigInteger),
    )


def apply_delta(db: Session, account_id: int, debit: Amount, credit: Amount) -> Account:
    """
    Move an account balance by one posted (or reversed) line.

    Issued as a single ``UPDATE accounts SET balance = balance + <delta>`` so
    concurrent postings to the same account serialize on the row instead of
    overwriting each other. Must be called inside the posting engine's
    transactional scope; it never commits.

    Raises:
        UnknownAccount: if no account row matched
    """
    debit_units = Amount.coerce(debit, MONEY_SCALE).units
    credit_units = Amount.coerce(credit, MONEY_SCALE).units
    updated = db.query(Account).filter(Account.id == account_id).update(
        {Account.balance: type_coerce(Account.balance, BigInteger) + _directional_delta(debit_units, credit_units)},
        synchronize_session=False,
    )
    if not updated:
        raise UnknownAccount(f"Account ID {account_id} does not exist", details={"account_id": account_id})
    return db.query(Account).populate_existing().filter(Account.id == account_id).one()


def _check_parent(db: Session, company_id: str, parent_id: int, account_id: int = None) -> None:
    parent = find_account(db, parent_id)
    if parent is None:
        raise UnknownAccount(f"Parent account ID {parent_id} does not exist", details={"parent_id": parent_id})
    if parent.company_id != company_id:
        raise CrossCompanyAccount(
            f"Parent account ID {parent_id} does not belong to this company",
            details={"parent_id": parent_id},
        )
    # Walk up the chain; reaching the account being edited would create a cycle
    seen = set()
    node = parent
    while node is not None and node.id not in seen:
        if account_id is not None and node.id == account_id:
            raise InvalidHierarchy(
                "An account cannot be placed under itself or one of its descendants",
                details={"account_id": account_id, "parent_id": parent_id},
            )
        seen.add(node.id)
        node = node.parent


def create_account(db: Session, company_id: str, account: AccountCreate, user_id: str = None) -> Account:
    if get_account_by_code(db, company_id, account.code):
        raise DuplicateAccountCode(
            f"Account with code {account.code} already exists",
            details={"code": account.code},
        )
    if account.parent_id is not None:
        _check_parent(db, company_id, account.parent_id)

    with transactional_scope(db):
        db_account = Account(**account.model_dump(), company_id=company_id, created_by=user_id)
        db.add(db_account)
    db.refresh(db_account)
    logger.info(f"Account {db_account.code} ({db_account.account_type.value}) created for company {company_id}")
    return db_account


def update_account(db: Session, company_id: str, account_id: int, account_update: AccountUpdate,
                   user_id: str = None) -> Account:
    """
    Apply an explicit set of field changes to an account.

    Accounts referenced by posted lines keep their type and currency and
    cannot be deactivated: their balance already reflects those postings.
    """
    account = get_account(db, account_id, company_id=company_id)
    update_data = account_update.model_dump(exclude_unset=True)
    in_use = journal_store.count_lines_for_account(db, account_id) > 0

    if 'account_type' in update_data and update_data['account_type'] != account.account_type and in_use:
        raise AccountInUse(
            "Cannot change account type for an account that is in use by journal entries.",
            details={"account_id": account_id},
        )
    if 'currency' in update_data and update_data['currency'] != account.currency and in_use:
        raise AccountInUse(
            "Cannot change the currency of an account that is in use by journal entries.",
            details={"account_id": account_id},
        )
    if update_data.get('is_active') is False and account.is_active and in_use:
        raise AccountInUse(
            "Cannot deactivate account because it is referenced by journal entry lines.",
            details={"account_id": account_id},
        )
    if update_data.get('code') and update_data['code'] != account.code:
        if get_account_by_code(db, company_id, update_data['code']):
            raise DuplicateAccountCode(
                f"Account with code {update_data['code']} already exists",
                details={"code": update_data['code']},
            )
    if update_data.get('parent_id') is not None:
        _check_parent(db, company_id, update_data['parent_id'], account_id=account_id)

    # Required columns cannot be cleared
    for key in ('code', 'name', 'account_type', 'currency', 'is_active'):
        if key in update_data and update_data[key] is None:
            del update_data[key]

    with transactional_scope(db):
        for key, value in update_data.items():
            setattr(account, key, value)
        account.updated_by = user_id
    db.refresh(account)
    logger.info(f"Account {account.id} updated for company {company_id}: {sorted(update_data)}")
    return account


def deactivate_account(db: Session, company_id: str, account_id: int, user_id: str = None) -> Account:
    return update_account(db, company_id, account_id, AccountUpdate(is_active=False), user_id=user_id)


def get_balance_totals(db: Session, company_id: str) -> Dict[AccountType, Amount]:
    """Sum of balances per account type for one company."""
    rows = db.query(
        Account.account_type,
        func.sum(type_coerce(Account.balance, BigInteger)),
    ).filter(
        Account.company_id == company_id
    ).group_by(Account.account_type).all()

    totals = {account_type: Amount.zero() for account_type in AccountType}
    for account_type, units in rows:
        totals[account_type] = Amount(int(units or 0), MONEY_SCALE)
    return totals


def accounting_equation_holds(totals: Dict[AccountType, Amount]) -> bool:
    """Assets == Liabilities + Equity + Revenue - Expenses."""
    right_side = (
        totals[AccountType.LIABILITY]
        + totals[AccountType.EQUITY]
        + totals[AccountType.REVENUE]
        - totals[AccountType.EXPENSE]
    )
    return totals[AccountType.ASSET] == right_side


def initialize_default_accounts(db: Session, company_id: str, user_id: str = None) -> List[Account]:
    """Initialize the default chart of accounts for a new company. Existing codes are left alone."""
    created = []
    for account_data in DEFAULT_ACCOUNTS:
        existing = get_account_by_code(db, company_id, account_data["code"])
        if not existing:
            created.append(create_account(db, company_id, AccountCreate(**account_data), user_id=user_id))
    if created:
        logger.info(f"Seeded {len(created)} default accounts for company {company_id}")
    return created
