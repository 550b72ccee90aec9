from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.auth import router as auth_router
from api.dashboard import router as dashboard_router
from api.deps import close_clients
from api.documents import router as documents_router
from api.functions import router as functions_router
from config import settings
from database import init_db
from logging_config import get_logger, setup_logging

logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    await init_db()
    logger.info("Cashew API started", extra={"action": "app.start"})
    yield
    await close_clients()


app = FastAPI(
    title=settings.app_name,
    description="Borrower portal API: loan applications, repayment ledger, and documents",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(dashboard_router)
app.include_router(documents_router)
app.include_router(functions_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
