import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ledgerbook import __version__, config
from ledgerbook.database import Base, engine
from ledgerbook.exceptions import LedgerError
from ledgerbook.logging_config import configure_logging
import ledgerbook.models  # noqa: F401  registers every table on Base.metadata
import ledgerbook.routers.accounts as accounts
import ledgerbook.routers.companies as companies
import ledgerbook.routers.journal_entries as journal_entries

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log_file = configure_logging()
    logger.info(f"Application starting up, logging to {log_file}")
    if config.AUTO_CREATE_TABLES:
        # Create database tables
        Base.metadata.create_all(bind=engine)
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title="Ledgerbook API",
    version=__version__,
    description="Double-entry bookkeeping: chart of accounts and journal entries",
    lifespan=lifespan,
)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


app.include_router(companies.router)
app.include_router(accounts.router)
app.include_router(journal_entries.router)


@app.get("/")
async def root():
    return {"message": "Ledgerbook API", "version": __version__}
