"""
Ledger exceptions.

Every failure the ledger reports to a caller is a LedgerError. Each subclass
carries a machine-readable ``kind`` and the HTTP status the API layer answers
with, so a router never has to guess how to present a failure.

Exception Hierarchy:
    LedgerError (base)
    ├── InvalidAmount - malformed decimal string
    ├── InsufficientLines - fewer than two lines
    ├── NegativeAmount - debit or credit below zero
    ├── AmbiguousLine - both debit and credit set
    ├── EmptyLine - neither debit nor credit set
    ├── Unbalanced - debits and credits differ
    ├── UnknownAccount - referenced account does not exist
    ├── CrossCompanyAccount - referenced account belongs to another company
    ├── InactiveAccount - referenced account is deactivated
    ├── InvalidHierarchy - account parent chain would form a cycle
    ├── NotFound - entry/account/company lookup failed
    ├── CompanyMismatch - payload company differs from the caller's company
    ├── DuplicateCompany / DuplicateAccountCode / DuplicateEntryNumber - uniqueness conflicts
    ├── AccountInUse - change refused because posted lines reference the account
    └── StorageFailure - transaction aborted by the database

Usage:
    try:
        posting.create_entry(db, request, created_by=user_id)
    except LedgerError as e:
        return JSONResponse(e.to_dict(), status_code=e.http_status)
"""

from typing import Any, Dict, Optional


class LedgerError(Exception):
    """
    Base exception for all ledger failures.

    Attributes:
        message: Human-readable error description
        details: Additional context (offending account id, computed totals, ...)
    """

    kind: str = "LedgerError"
    http_status: int = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the exception to the error payload returned to callers.

        Example:
            {
                "kind": "Unbalanced",
                "message": "Debits (100.00) must equal credits (99.00)",
                "details": {"total_debit": "100.00", "total_credit": "99.00", "difference": "1.00"}
            }
        """
        return {"kind": self.kind, "message": self.message, "details": self.details}

    def __str__(self) -> str:
        return f"[{self.kind}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


class InvalidAmount(LedgerError):
    kind = "InvalidAmount"


class InsufficientLines(LedgerError):
    kind = "InsufficientLines"


class NegativeAmount(LedgerError):
    kind = "NegativeAmount"


class AmbiguousLine(LedgerError):
    kind = "AmbiguousLine"


class EmptyLine(LedgerError):
    kind = "EmptyLine"


class Unbalanced(LedgerError):
    """
    Raised when the debit side and the credit side of an entry differ.

    The computed totals and their absolute difference are always part of the
    details so the caller can correct the entry without recomputing it.
    """

    kind = "Unbalanced"

    def __init__(self, total_debit, total_credit, difference, details: Optional[Dict[str, Any]] = None):
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.difference = difference
        full_details = {
            "total_debit": total_debit.to_fixed_string(),
            "total_credit": total_credit.to_fixed_string(),
            "difference": difference.to_fixed_string(),
        }
        if details:
            full_details.update(details)
        super().__init__(
            f"Debits ({full_details['total_debit']}) must equal credits ({full_details['total_credit']})",
            details=full_details,
        )


class UnknownAccount(LedgerError):
    kind = "UnknownAccount"


class CrossCompanyAccount(LedgerError):
    kind = "CrossCompanyAccount"


class InactiveAccount(LedgerError):
    kind = "InactiveAccount"


class InvalidHierarchy(LedgerError):
    kind = "InvalidHierarchy"


class NotFound(LedgerError):
    kind = "NotFound"
    http_status = 404


class CompanyMismatch(LedgerError):
    kind = "CompanyMismatch"
    http_status = 403


class DuplicateCompany(LedgerError):
    kind = "DuplicateCompany"
    http_status = 409


class DuplicateAccountCode(LedgerError):
    kind = "DuplicateAccountCode"
    http_status = 409


class DuplicateEntryNumber(LedgerError):
    kind = "DuplicateEntryNumber"
    http_status = 409


class AccountInUse(LedgerError):
    """Raised when a change would invalidate balances already posted to an account."""

    kind = "AccountInUse"
    http_status = 409


class StorageFailure(LedgerError):
    """
    Raised when the database aborts a ledger transaction.

    Nothing from the failed operation was committed, so the caller may retry
    the whole operation from scratch.
    """

    kind = "StorageFailure"
    http_status = 503
