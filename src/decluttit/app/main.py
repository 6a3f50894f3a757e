"""FastAPI application entry point for the Decluttit marketplace API."""

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from decluttit.app.config import get_settings
from decluttit.app.errors import register_error_handlers
from decluttit.infra.database import async_session, init_db
from decluttit.services.request_service import BuyerRequestService

logger = logging.getLogger(__name__)

REQUEST_EXPIRY_INTERVAL_SECONDS = 15 * 60


async def request_expiry_loop():
    """Expire stale buyer requests every 15 minutes."""
    while True:
        try:
            async with async_session() as db:
                await BuyerRequestService(db).expire_stale_requests()
                await db.commit()
        except Exception as e:
            logger.error("Request expiry error: %s", e)
        await asyncio.sleep(REQUEST_EXPIRY_INTERVAL_SECONDS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize database on startup."""
    await init_db()
    task = asyncio.create_task(request_expiry_loop())
    yield
    task.cancel()


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = FastAPI(
    title="Decluttit Marketplace API",
    lifespan=lifespan,
    debug=settings.debug,
)

_cors_origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# ---------------------------------------------------------------------------
# Route includes
# ---------------------------------------------------------------------------
from decluttit.app.routes.auth import router as auth_router
from decluttit.app.routes.listings import router as listings_router
from decluttit.app.routes.requests import router as requests_router
from decluttit.app.routes.matching import router as matching_router
from decluttit.app.routes.transactions import router as transactions_router
from decluttit.app.routes.disputes import router as disputes_router
from decluttit.app.routes.payments import router as payments_router
from decluttit.app.routes.reviews import router as reviews_router
from decluttit.app.routes.conversations import router as conversations_router
from decluttit.app.routes.users import router as users_router

app.include_router(auth_router)
app.include_router(listings_router)
app.include_router(requests_router)
app.include_router(matching_router)
app.include_router(transactions_router)
app.include_router(disputes_router)
app.include_router(payments_router)
app.include_router(reviews_router)
app.include_router(conversations_router)
app.include_router(users_router)


@app.get("/health", tags=["health"])
async def health_check():
    """Return service health status."""
    return {"status": "ok", "service": "decluttit"}


def run() -> None:
    """Run the application with uvicorn (used by project.scripts entry point)."""
    uvicorn.run(
        "decluttit.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
