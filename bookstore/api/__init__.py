# bookstore/api/__init__.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bookstore.api.routers import (
    admin_books,
    admin_orders,
    cart,
    checkout,
    health,
    notifications,
    orders,
)
from bookstore.utils.logging import clear_context, configure_logging, get_logger

logger = get_logger(__name__)


def _describe(errors) -> str:
    parts = []
    for error in errors:
        # drop the leading "body" / "query" segment
        loc = ".".join(str(p) for p in error.get("loc", ())[1:])
        parts.append(f"{loc}: {error.get('msg')}" if loc else str(error.get("msg")))
    return "; ".join(parts)


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Bookstore Checkout Service",
        version="1.0.0",
    )

    @app.middleware("http")
    async def reset_log_context(request, call_next):
        clear_context()
        return await call_next(request)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        # malformed input is a plain 400 like the other validation failures
        detail = _describe(exc.errors())
        logger.info(f"Rejected {request.method} {request.url.path}: {detail}")
        return JSONResponse(status_code=400, content={"detail": detail})

    app.include_router(health.router)
    app.include_router(cart.router)
    app.include_router(checkout.router)
    app.include_router(orders.router)
    app.include_router(admin_orders.router)
    app.include_router(admin_books.router)
    app.include_router(notifications.router)

    return app
