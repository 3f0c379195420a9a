import os
from contextlib import asynccontextmanager

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pincher.data.base import create_tables
from pincher.domain.errors import PincherError
from pincher.logging_config import configure_logging
from pincher.presentation.accounts_api import router as accounts_router
from pincher.presentation.budgets_api import router as budgets_router
from pincher.presentation.categories_api import router as categories_router
from pincher.presentation.months_api import router as months_router
from pincher.presentation.payees_api import router as payees_router
from pincher.presentation.transactions_api import router as transactions_router
from pincher.presentation.user_api import router as auth_router

load_dotenv()  # Load environment variables from .env
configure_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_tables()
    logger.info("startup_complete")
    yield


app = FastAPI(title="Pincher Budget API", version="1.0.0", lifespan=lifespan)

cors_origins = os.getenv("CORS_ORIGINS", "")
origins = [origin.strip() for origin in cors_origins.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PincherError)
async def pincher_error_handler(request: Request, exc: PincherError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(auth_router)
app.include_router(budgets_router)
app.include_router(accounts_router)
app.include_router(categories_router)
app.include_router(payees_router)
app.include_router(transactions_router)
app.include_router(months_router)
