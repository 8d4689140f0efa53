import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from restaurant import __version__
from restaurant.config import settings
from restaurant.database import Base, engine
from restaurant.exceptions import RestaurantError, ValidationError
from restaurant.middleware.metrics import MetricsMiddleware
from restaurant.middleware.request_id import RequestIDMiddleware
from restaurant.routers import cart, dashboard, menu, orders, users
from restaurant.services.cart import CartRegistry
from restaurant.services.menu_service import seed_menu
from restaurant.utils.logging import setup_logging
from restaurant.utils.tracing import instrument, setup_tracing

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

if settings.otlp_endpoint:
    setup_tracing("restaurant", settings.otlp_endpoint)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up, creating database tables")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.seed_menu:
        await seed_menu()
    logger.info("Startup complete")

    yield

    await engine.dispose()
    logger.info("Shutting down")


app = FastAPI(
    title=settings.app_name,
    description="Menu catalog, carts and order lifecycle for restaurant staff and guests",
    version=__version__,
    lifespan=lifespan,
)

# Carts live in memory, one per customer, until checkout or abandonment
app.state.carts = CartRegistry()

if settings.otlp_endpoint:
    instrument(app, engine)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(menu.router, prefix="/menu", tags=["menu"])
app.include_router(cart.router, prefix="/cart", tags=["cart"])
app.include_router(orders.router, prefix="/orders", tags=["orders"])
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])

# Expose Prometheus metrics at /metrics
app.mount("/metrics", make_asgi_app())


@app.exception_handler(RestaurantError)
async def restaurant_error_handler(request: Request, exc: RestaurantError) -> JSONResponse:
    logger.info(
        "Request rejected",
        extra={"error": exc.code, "path": request.url.path, "status": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # loc is ("body", "price") or ("query", "role"); a bare ("body",) means the whole body
    fields = {".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0]) for err in exc.errors()}
    return await restaurant_error_handler(request, ValidationError(fields))


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
