"""
Ledger line validation.

Turns the lines of a journal entry request into a ValidatedEntry or raises
the first rule violation found. The checks run in a fixed order and each one
looks at every line before the next rule starts, so a request that breaks
several rules always reports the same error:

    1. at least two lines                          InsufficientLines
    2. no negative debit or credit                 NegativeAmount
    3. no line with both debit and credit          AmbiguousLine
    4. no line with neither                        EmptyLine
    5. total debits == total credits               Unbalanced
    6. accounts exist and belong to the company    UnknownAccount / CrossCompanyAccount
    7. accounts are active                         InactiveAccount

Account facts come from an immutable snapshot taken once per request, so the
rules never see an account change halfway through.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ledgerbook import config
from ledgerbook.crud import accounts as accounts_crud
from ledgerbook.exceptions import (
    AmbiguousLine,
    CrossCompanyAccount,
    EmptyLine,
    InactiveAccount,
    InsufficientLines,
    InvalidAmount,
    NegativeAmount,
    Unbalanced,
    UnknownAccount,
)
from ledgerbook.models.account import AccountType
from ledgerbook.utils.money import Amount, LEGACY_TOLERANCE, MONEY_SCALE, RATE_SCALE, sum_amounts


@dataclass(frozen=True)
class AccountView:
    id: int
    company_id: str
    code: str
    account_type: AccountType
    is_active: bool


@dataclass(frozen=True)
class CandidateLine:
    account_id: int
    description: Optional[str]
    debit_amount: Amount
    credit_amount: Amount
    currency: str
    exchange_rate: Amount


@dataclass(frozen=True)
class ValidatedEntry:
    company_id: str
    lines: Tuple[CandidateLine, ...]
    # Sum of the debit side
    total_amount: Amount


def take_account_snapshot(db: Session, account_ids: Iterable[int]) -> Mapping[int, AccountView]:
    """Read every referenced account once and freeze what validation needs to know about it."""
    accounts = accounts_crud.get_accounts_by_ids(db, account_ids)
    return MappingProxyType({
        account.id: AccountView(
            id=account.id,
            company_id=account.company_id,
            code=account.code,
            account_type=account.account_type,
            is_active=bool(account.is_active),
        )
        for account in accounts
    })


def _parse_field(index: int, field: str, value, scale: int) -> Amount:
    try:
        return Amount.coerce(value, scale)
    except InvalidAmount as e:
        raise InvalidAmount(
            f"Line {index + 1}: {field} {e.message}",
            details={**e.details, "line": index, "field": field},
        ) from e


def parse_lines(lines: Sequence) -> List[CandidateLine]:
    """
    Convert request lines (JournalLineInput) into CandidateLines.

    Raises:
        InvalidAmount: naming the line and field that failed to parse, or a non-positive exchange rate
    """
    candidates = []
    for index, line in enumerate(lines):
        exchange_rate = _parse_field(index, "exchange_rate", line.exchange_rate, RATE_SCALE)
        if not exchange_rate.is_positive():
            raise InvalidAmount(
                f"Line {index + 1}: exchange rate must be greater than zero",
                details={"line": index, "field": "exchange_rate", "value": str(exchange_rate)},
            )
        candidates.append(CandidateLine(
            account_id=line.account_id,
            description=line.description,
            debit_amount=_parse_field(index, "debit_amount", line.debit_amount, MONEY_SCALE),
            credit_amount=_parse_field(index, "credit_amount", line.credit_amount, MONEY_SCALE),
            currency=line.currency,
            exchange_rate=exchange_rate,
        ))
    return candidates


def balance_tolerance() -> Amount:
    """The configured debit/credit tolerance, never more than LEGACY_TOLERANCE."""
    tolerance = abs(Amount.from_string(config.LEDGER_BALANCE_TOLERANCE, MONEY_SCALE))
    return min(tolerance, LEGACY_TOLERANCE)


def _line_details(index: int, line: CandidateLine) -> dict:
    return {
        "line": index,
        "account_id": line.account_id,
        "debit_amount": line.debit_amount.to_fixed_string(),
        "credit_amount": line.credit_amount.to_fixed_string(),
    }


def validate_entry(
    company_id: str,
    lines: Sequence[CandidateLine],
    accounts: Mapping[int, AccountView],
    tolerance: Amount = None,
) -> ValidatedEntry:
    """
    Check a candidate line set against the posting rules.

    ``accounts`` is the snapshot from take_account_snapshot; ``tolerance``
    defaults to balance_tolerance().
    """
    tolerance = balance_tolerance() if tolerance is None else tolerance

    if len(lines) < 2:
        raise InsufficientLines(
            "A journal entry must have at least 2 lines",
            details={"line_count": len(lines)},
        )

    for index, line in enumerate(lines):
        if line.debit_amount.is_negative() or line.credit_amount.is_negative():
            raise NegativeAmount("Debit and credit amounts must be non-negative", details=_line_details(index, line))

    for index, line in enumerate(lines):
        if line.debit_amount.is_positive() and line.credit_amount.is_positive():
            raise AmbiguousLine(
                "Each line must have either a debit OR credit amount, not both",
                details=_line_details(index, line),
            )

    for index, line in enumerate(lines):
        if line.debit_amount.is_zero() and line.credit_amount.is_zero():
            raise EmptyLine(
                "Each line must have a debit or a credit amount",
                details=_line_details(index, line),
            )

    total_debit = sum_amounts(line.debit_amount for line in lines)
    total_credit = sum_amounts(line.credit_amount for line in lines)
    # The debit total is stored on the entry
    total_debit.check_range()
    total_credit.check_range()
    if not total_debit.within(total_credit, tolerance):
        raise Unbalanced(total_debit, total_credit, abs(total_debit - total_credit))

    for index, line in enumerate(lines):
        account = accounts.get(line.account_id)
        if account is None:
            raise UnknownAccount(
                f"Account ID {line.account_id} does not exist",
                details={"line": index, "account_id": line.account_id},
            )
        if account.company_id != company_id:
            raise CrossCompanyAccount(
                f"Account ID {line.account_id} does not belong to this company",
                details={"line": index, "account_id": line.account_id},
            )

    for index, line in enumerate(lines):
        account = accounts[line.account_id]
        if not account.is_active:
            raise InactiveAccount(
                f"Account {account.code} is inactive",
                details={"line": index, "account_id": line.account_id},
            )

    return ValidatedEntry(company_id=company_id, lines=tuple(lines), total_amount=total_debit)
