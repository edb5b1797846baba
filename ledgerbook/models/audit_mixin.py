from sqlalchemy import Column, DateTime, String
from datetime import datetime
import pytz

from ledgerbook import config


def now_in_app_timezone() -> datetime:
    return datetime.now(pytz.timezone(config.APP_TIMEZONE))


class TimestampMixin:
    """Mixin that provides created/updated timestamps and user info.

    Timestamps are timezone-aware and taken in APP_TIMEZONE; DateTime(timezone=True)
    ensures the timezone info is persisted in the database.
    """
    created_at = Column(DateTime(timezone=True), default=now_in_app_timezone)
    updated_at = Column(DateTime(timezone=True), onupdate=now_in_app_timezone)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
