import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from marketplace.config import settings
from marketplace.errors import OrderError
from marketplace.metrics import get_metrics_bytes, get_metrics_content_type
from marketplace.redis_client import close_redis, get_redis
from marketplace.routes import orders, restaurant, rider
from marketplace.store import close_store, get_store

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await get_redis()
    await get_store()
    logger.info("Store ready (backend=%s)", settings.store_backend)
    yield
    await close_store()
    await close_redis()


app = FastAPI(title="Order Lifecycle Service", lifespan=lifespan)
app.include_router(orders.router)
app.include_router(restaurant.router)
app.include_router(rider.router)


@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus scrape endpoint: orders placed, status transitions, claim conflicts."""
    return Response(
        content=get_metrics_bytes(),
        media_type=get_metrics_content_type(),
    )
