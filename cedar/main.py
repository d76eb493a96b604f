"""FastAPI application for the Cedar Elevators quote workflow and checkout.

Wires the quote, checkout, order and notification routers under the API
prefix and configures logging and CORS.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cedar.checkout.interfaces.api import router as checkout_router
from cedar.core.config import settings
from cedar.core.database import create_tables
from cedar.notifications.interfaces.api import router as notifications_router
from cedar.orders.interfaces.api import router as orders_router
from cedar.quotes.interfaces.api import admin_router as admin_quotes_router
from cedar.quotes.interfaces.api import router as quotes_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.DB_CREATE_TABLES:
        logger.info("Creating missing database tables.")
        await create_tables()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="Quote workflow, quote-to-order conversion and checkout eligibility for Cedar Elevators.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ======================================================
# Routers
# ======================================================
app.include_router(quotes_router, prefix=settings.API_V1_PREFIX)
app.include_router(admin_quotes_router, prefix=settings.API_V1_PREFIX)
app.include_router(checkout_router, prefix=settings.API_V1_PREFIX)
app.include_router(orders_router, prefix=settings.API_V1_PREFIX)
app.include_router(notifications_router, prefix=settings.API_V1_PREFIX)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok"}
