# backend/stockdb/main.py
import logging
import os
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .database import Base, engine
from .errors import AuthFailureError, StockDBError

from .apps.accounts.router_public import router as auth_router
from .apps.accounts.router_admin import router as accounts_admin_router
from .apps.inventory.router import router as inventory_router

logger = logging.getLogger(__name__)


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://localhost:8080",
    ]


def _create_tables_enabled() -> bool:
    return os.getenv("STOCKDB_CREATE_TABLES", "true").lower() in {"1", "true", "yes", "on"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    if _create_tables_enabled():
        Base.metadata.create_all(bind=engine)
    yield


def stockdb_error_handler(request: Request, exc: StockDBError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthFailureError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


app = FastAPI(title="Stock Control API", version="1.0.0", lifespan=lifespan)
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(StockDBError, stockdb_error_handler)


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "Stock control backend is running"}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(accounts_admin_router)
app.include_router(inventory_router)
