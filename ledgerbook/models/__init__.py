from ledgerbook.models.company import Company
from ledgerbook.models.account import Account, AccountType, DEBIT_NORMAL_TYPES
from ledgerbook.models.journal_entry import JournalEntry
from ledgerbook.models.journal_entry_line import JournalEntryLine
from ledgerbook.models.audit_log import AuditLog

__all__ = ['Account', 'AccountType', 'AuditLog', 'Company', 'DEBIT_NORMAL_TYPES', 'JournalEntry', 'JournalEntryLine']
