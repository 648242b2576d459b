"""
Main FastAPI application for the daily bonus service.
Serves health, the coin action endpoint, the bonus admin API and metrics.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import admin, bonus, health
from app.bonus.errors import DailyBonusError
from app.core.config import settings
from app.core.logging import configure_logging
from app.utils.metrics import router as metrics_router

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Daily Bonus API",
    description="Daily codes, streaks and coin rewards",
    version="1.0.0",
)

# CORS
origins = settings.cors_origins_list
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DailyBonusError)
async def daily_bonus_error_handler(request: Request, exc: DailyBonusError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", extra={"path": request.url.path, "error": type(exc).__name__})
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


# Routers
app.include_router(health.router, tags=["health"])
app.include_router(bonus.router)
app.include_router(admin.router)
app.include_router(metrics_router)
