import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from core.auth import build_auth_router
from core.config import AppConfig, load_config
from core.routing import register_routers
from core.session_storage import SessionStorage
from core.session_token import validate_authenticated_session
from core.shop import sanitize_shop
from core.webhooks import WebhookHandlers, build_webhooks_router
from routers.frontend import router as frontend_router
from routers.products import router as products_router
from services.privacy import PRIVACY_WEBHOOK_HANDLERS

logger = logging.getLogger("shopify-app")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def csp_header(shop: str | None) -> str:
    if shop:
        return f"frame-ancestors https://{shop} https://admin.shopify.com;"
    return "frame-ancestors 'none';"


def server_error_response(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "server error"})


def create_app(
    config: AppConfig | None = None,
    storage: SessionStorage | None = None,
    webhook_handlers: WebhookHandlers | None = None,
) -> FastAPI:
    config = config or load_config()
    storage = storage or SessionStorage(config.database_path)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        storage.init_db()
        yield

    app = FastAPI(lifespan=lifespan)
    app.state.config = config
    app.state.session_storage = storage
    app.state.webhook_handlers = PRIVACY_WEBHOOK_HANDLERS if webhook_handlers is None else webhook_handlers

    @app.exception_handler(HTTPException)
    async def http_exception_handler(_: Request, exc: HTTPException):
        if isinstance(exc.detail, dict):
            return JSONResponse(status_code=exc.status_code, content=exc.detail, headers=exc.headers)

        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        return server_error_response(request, exc)

    # ----------------------------
    # Session guard for /api/* (inner), then CSP on every response (outer)
    # ----------------------------

    app.middleware("http")(validate_authenticated_session)

    @app.middleware("http")
    async def add_shopify_headers(request: Request, call_next):
        try:
            response = await call_next(request)
        except Exception as exc:
            # Answer here so unhandled errors still carry the CSP header.
            response = server_error_response(request, exc)
        shop = sanitize_shop(request.query_params.get("shop"))
        response.headers["Content-Security-Policy"] = csp_header(shop)
        return response

    # ----------------------------
    # Routers, in matching order
    # ----------------------------

    register_routers(app, (
        ("auth", build_auth_router(config)),
        ("webhooks", build_webhooks_router(config)),
        ("products", products_router),
        ("frontend", frontend_router),
    ))

    return app


settings = load_config()
configure_logging(settings.log_level)
app = create_app(settings)


if __name__ == "__main__":
    logger.info("Shopify app backend listening on port %s", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
