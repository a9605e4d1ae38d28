import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import (
    authorization_codes,
    bills,
    cash_bank,
    chart_of_accounts,
    clients,
    health,
    invoices,
    journal_entries,
    reports,
    suppliers,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://127.0.0.1:5173"

app = FastAPI(title="Ledgerbook API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(chart_of_accounts.router)
app.include_router(suppliers.router)
app.include_router(bills.router)
app.include_router(clients.router)
app.include_router(invoices.router)
app.include_router(journal_entries.router)
app.include_router(cash_bank.router)
app.include_router(authorization_codes.router)
app.include_router(reports.router)


@app.get("/")
def root():
    return {"status": "ok"}
