import logging
from urllib.parse import urlencode, urlparse

import jwt
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from core.config import AppConfig
from core.session_storage import SessionStorage
from core.shop import offline_session_id, sanitize_shop
from models import ShopifySession

logger = logging.getLogger(__name__)

API_PREFIX = "/api/"


class InvalidSessionToken(Exception):
    pass


def _normalize_shop_domain(value: str) -> str:
    raw = (value or "").strip()
    if raw.startswith("http://") or raw.startswith("https://"):
        parsed = urlparse(raw)
        return parsed.netloc.lower()
    return raw.lower().strip("/")


def bearer_token(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


def decode_session_token(token: str, config: AppConfig) -> str:
    """Verify a Shopify session token and return the shop domain it was issued for."""
    try:
        payload = jwt.decode(
            token,
            config.api.api_secret,
            algorithms=["HS256"],
            audience=config.api.api_key,
            options={"require": ["exp", "aud", "dest"]},
        )
    except jwt.PyJWTError as exc:
        raise InvalidSessionToken(str(exc)) from exc

    shop = sanitize_shop(_normalize_shop_domain(payload.get("dest", "")))
    if not shop:
        raise InvalidSessionToken("token has no valid dest")

    return shop


def is_guarded_path(path: str, config: AppConfig) -> bool:
    exempt = {config.auth.path, config.auth.callback_path, config.webhooks.path}
    return path.startswith(API_PREFIX) and path.rstrip("/") not in exempt


def _invalid_token_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": "invalid session token"},
        headers={"X-Shopify-Retry-Invalid-Session-Request": "1"},
    )


def _reauthorize_response(config: AppConfig, shop: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": "session not found"},
        headers={
            "X-Shopify-API-Request-Failure-Reauthorize": "1",
            "X-Shopify-API-Request-Failure-Reauthorize-Url": f"{config.auth.path}?" + urlencode({"shop": shop}),
        },
    )


async def validate_authenticated_session(request: Request, call_next):
    config: AppConfig = request.app.state.config

    if not is_guarded_path(request.url.path, config):
        return await call_next(request)

    token = bearer_token(request.headers.get("Authorization"))
    if not token:
        return _invalid_token_response()

    try:
        shop = decode_session_token(token, config)
    except InvalidSessionToken as exc:
        logger.info("Rejected session token: %s", exc)
        return _invalid_token_response()

    storage: SessionStorage = request.app.state.session_storage
    session = await run_in_threadpool(storage.load_session, offline_session_id(shop))

    if session is None or not session.is_active(config.api.scope_list):
        logger.info("No active session for %s", shop)
        return _reauthorize_response(config, shop)

    request.state.shopify_session = session
    return await call_next(request)


def current_session(request: Request) -> ShopifySession:
    session = getattr(request.state, "shopify_session", None)
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid session token")
    return session
