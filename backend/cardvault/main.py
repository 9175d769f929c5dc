import logging
from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cardvault.core.config import settings
from cardvault.core.exceptions import ExtractionError, NoCardError, OwnershipError
from cardvault.core.logging_config import configure_logging
from cardvault.routes import (
    auth, autopay, bills, cards, credit_scores, emails, notifications, rewards, sms, transactions, ws
)

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- ensure database + tables exist ---
    if settings.STORAGE_BACKEND == "sql":
        from cardvault.database_init import create_tables, ensure_database
        ensure_database()
        create_tables()
    logger.info("CardVault API started with %s storage", settings.STORAGE_BACKEND)
    yield


app = FastAPI(title="CardVault API", version="1.0.0", lifespan=lifespan)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Include routes ---
app.include_router(auth.router)
app.include_router(cards.router)
app.include_router(rewards.router)
app.include_router(transactions.router)
app.include_router(sms.router)
app.include_router(emails.router)
app.include_router(notifications.router)
app.include_router(bills.router)
app.include_router(autopay.router)
app.include_router(credit_scores.router)
app.include_router(ws.router)


# --- Root route ---
@app.get("/")
def root():
    return {"message": "CardVault API is running"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


# --- Error handlers ---
def _error(status_code: int, detail, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": HTTPStatus(status_code).phrase, "detail": detail},
        headers=headers,
    )


@app.exception_handler(OwnershipError)
async def ownership_error_handler(request, exc):
    # same answer whether the row is missing or someone else's
    return _error(404, str(exc))


@app.exception_handler(ExtractionError)
async def extraction_error_handler(request, exc):
    return _error(422, exc.detail)


@app.exception_handler(NoCardError)
async def no_card_handler(request, exc):
    return _error(400, exc.detail)


@app.exception_handler(ValueError)
async def value_error_handler(request, exc):
    return _error(400, str(exc))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    return _error(422, jsonable_encoder(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc):
    return _error(exc.status_code, exc.detail, getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal Server Error")
