"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.cc_account.api.router import router as account_router
from src.cc_admin.api.router import router as admin_router
from src.cc_common.database import engine
from src.cc_common.errors import AppError
from src.cc_common.redis_client import close_redis, get_redis
from src.cc_common.response import error_response
from src.cc_gateway.middleware.request_log import RequestLogMiddleware
from src.cc_investment.api.router import router as investment_router
from src.cc_property.api.router import router as property_router
from src.cc_settlement.application.scheduler import SweepScheduler


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, start the sweep. Shutdown: stop and dispose."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()
    scheduler = SweepScheduler()
    if settings.SWEEP_ENABLED:
        scheduler.start()
    yield
    # Shutdown
    await scheduler.stop()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, request)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(account_router, prefix="/api/v1")
app.include_router(property_router, prefix="/api/v1")
app.include_router(investment_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
