"""
Database Configuration Module

This module handles the database configuration and connection setup for the ledger.
It uses SQLAlchemy for ORM (Object-Relational Mapping) with PostgreSQL as the database;
SQLite is supported for local development and the test suite.

The module includes:
- Database connection setup
- Session management
- Base model class definition
- The transactional scope every ledger mutation runs in
"""

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ledgerbook import config
from ledgerbook.exceptions import (
    DuplicateAccountCode,
    DuplicateEntryNumber,
    LedgerError,
    StorageFailure,
)

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    """SQLite needs a shared connection for in-memory databases and must allow cross-thread use."""
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    options = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    return options


# Create SQLAlchemy engine
# The engine is the entry point to the SQLAlchemy ORM
engine = create_engine(config.DATABASE_URL, **_engine_options(config.DATABASE_URL))

# Create SessionLocal class
# autocommit=False means every unit of work ends in an explicit commit or rollback
# autoflush=False means writes reach the database only on flush/commit
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create Base class
# Base is the declarative base class that our ORM models will inherit from
Base = declarative_base()


@event.listens_for(Engine, "connect")
def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """
    SQLite ignores foreign keys unless asked per connection.

    Without this, ON DELETE CASCADE / RESTRICT on journal lines would not be
    enforced in development and test databases.
    """
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _translate_integrity_error(exc: IntegrityError) -> LedgerError:
    message = str(exc.orig).lower()
    if "entry_number" in message:
        return DuplicateEntryNumber("A journal entry with this entry number already exists")
    if "account_code" in message or "accounts.code" in message:
        return DuplicateAccountCode("An account with this code already exists")
    return StorageFailure("Constraint violation while writing to the ledger", details={"reason": str(exc.orig)})


@contextmanager
def transactional_scope(db: Session):
    """
    Run a block of ledger writes as a single unit of work on ``db``.

    Every write issued through ``db`` inside the block is committed together
    when the block exits normally. Any exception rolls the whole unit back, so
    no partial balance change or orphaned line can survive. Database errors are
    reported as StorageFailure (or the matching duplicate error for unique
    constraint violations); ledger errors raised by the block pass through
    unchanged.

    Usage:
        with transactional_scope(db) as tx:
            journal_entries.insert_entry(tx, ...)
            accounts.apply_delta(tx, ...)
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Integrity error, transaction rolled back: %s", exc.orig)
        raise _translate_integrity_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Storage failure, transaction rolled back")
        raise StorageFailure("The ledger transaction was aborted; no changes were saved",
                             details={"reason": str(exc)}) from exc
    except Exception:
        db.rollback()
        raise


# Dependency to get database session
def get_db():
    """
    Dependency function that provides a database session.

    This function creates a new database session for each request and ensures
    that the session is properly closed after the request is completed.

    Yields:
        Session: A SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
