# app/main.py

import asyncio
import traceback
import logging
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Config & core
from app.core.config import settings as config
from app.core.exceptions import AppError
from app.core.limiter import limiter
from app.core.logging_config import setup_logging
from app.db import base  # noqa: F401  registers all models

# FastAPI routers
from app.routers import auth, referral, admin, order, project, payment, quote

# Bot (admin notifications)
from app.bot.core import close_bot
from app.bot.services import notification as bot_notification_service

# --- Init ---
logger = logging.getLogger(__name__)

# --- Error handlers ---
async def app_error_handler(request: Request, exc: AppError):
    """Domain errors -> {"detail", "field"?} with the matching status code."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    content = {"detail": exc.message}
    if exc.field:
        content["field"] = exc.field
    return JSONResponse(status_code=exc.status_code, content=content)


async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Global handler for anything not caught elsewhere.
    Logs the error and notifies the admin chat.
    """
    logger.critical(f"Unhandled exception for request: {request.method} {request.url}", exc_info=True)

    error_details = "".join(traceback.format_exception(exc))
    error_message = f"{request.method} {request.url}\n\n{error_details}"

    asyncio.create_task(
        bot_notification_service.send_error_to_admins(error_message)
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )

# --- Lifespan Manager ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Application lifespan startup...")
    yield
    await close_bot()
    logger.info("Application shut down.")

# --- FastAPI app ---
app = FastAPI(
    title="Agency Dashboard API",
    description="Client dashboard backend: orders, projects, payments, quotes and referrals",
    version="0.1.0",
    lifespan=lifespan
)

app.state.limiter = limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers ---
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(referral.router, tags=["Referrals"])
api_router.include_router(order.router, tags=["Services & Orders"])
api_router.include_router(project.router, tags=["Projects"])
api_router.include_router(payment.router, tags=["Payments"])
api_router.include_router(quote.router, tags=["Quotes & Magic links"])

api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])

app.include_router(api_router)
