from sqlalchemy import Column, Integer, String, DateTime, JSON
from ledgerbook.database import Base
from ledgerbook.models.audit_mixin import now_in_app_timezone


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(String, index=True, nullable=False)
    table_name = Column(String, nullable=False)
    record_id = Column(Integer, nullable=False)
    changed_at = Column(DateTime(timezone=True), default=now_in_app_timezone)
    changed_by = Column(String, nullable=False)
    action = Column(String, nullable=False)  # e.g., 'INSERT', 'UPDATE'
    old_values = Column(JSON)
    new_values = Column(JSON)
