from sqlalchemy.orm import Session
from ledgerbook.models.audit_log import AuditLog
from ledgerbook.schemas.audit_log import AuditLogCreate


def create_audit_log(db: Session, log_entry: AuditLogCreate) -> AuditLog:
    # Written in the caller's transaction so the log row commits or rolls back with the change it describes
    db_log_entry = AuditLog(**log_entry.model_dump())
    db.add(db_log_entry)
    db.flush()
    return db_log_entry
