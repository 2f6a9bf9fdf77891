import hashlib
import hmac
import logging
import secrets
from urllib.parse import urlencode

import requests
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response
from starlette.concurrency import run_in_threadpool

from core.config import AppConfig
from core.session_storage import SessionStorage
from core.shop import embedded_app_url, offline_session_id, sanitize_shop
from core.webhooks import register_webhooks
from models import ShopifySession

logger = logging.getLogger(__name__)

STATE_COOKIE = "shopify_oauth_state"
STATE_COOKIE_MAX_AGE = 1800  # 30 minutes


# ----------------------------
# Helpers
# ----------------------------

def verify_hmac(params: dict, received_hmac: str, secret: str) -> bool:
    sorted_params = "&".join([f"{k}={v}" for k, v in sorted(params.items())])
    digest = hmac.new(
        secret.encode(),
        sorted_params.encode(),
        hashlib.sha256
    ).hexdigest()
    return hmac.compare_digest(digest.encode(), received_hmac.encode())


def build_authorize_url(config: AppConfig, shop: str, state: str) -> str:
    params = {
        "client_id": config.api.api_key,
        "scope": config.api.scopes,
        "redirect_uri": f"https://{config.api.host_name}{config.auth.callback_path}",
        "state": state,
    }
    return f"https://{shop}/admin/oauth/authorize?" + urlencode(params)


def exchange_code_for_token(config: AppConfig, shop: str, code: str) -> dict:
    token_response = requests.post(
        f"https://{shop}/admin/oauth/access_token",
        json={
            "client_id": config.api.api_key,
            "client_secret": config.api.api_secret,
            "code": code,
        },
        timeout=30,
    )

    token_json = token_response.json()

    if token_response.status_code != 200 or not token_json.get("access_token"):
        raise RuntimeError(f"Token exchange failed: {token_json}")

    return token_json


def no_shop_response() -> Response:
    return PlainTextResponse("No shop provided", status_code=422)


# ----------------------------
# Step 1 — Begin OAuth
# ----------------------------

def begin(request: Request):
    config: AppConfig = request.app.state.config
    shop = sanitize_shop(request.query_params.get("shop"))

    if not shop:
        return no_shop_response()

    state = secrets.token_urlsafe(24)
    response = RedirectResponse(build_authorize_url(config, shop, state), status_code=302)

    response.set_cookie(
        key=STATE_COOKIE,
        value=state,
        max_age=STATE_COOKIE_MAX_AGE,
        httponly=True,
        secure=True,
        samesite="lax",
    )

    logger.info("Starting OAuth for %s", shop)
    return response


# ----------------------------
# Step 2 — OAuth callback
# ----------------------------

def callback(request: Request):
    config: AppConfig = request.app.state.config
    storage: SessionStorage = request.app.state.session_storage

    params = dict(request.query_params)

    hmac_received = params.pop("hmac", None)
    code = params.get("code")
    shop = sanitize_shop(params.get("shop"))
    state = params.get("state")

    if not shop or not code or not hmac_received or not state:
        raise HTTPException(status_code=400, detail="Missing shop/code/hmac/state")

    # Validate state (CSRF)
    cookie_state = request.cookies.get(STATE_COOKIE)
    if not cookie_state or not hmac.compare_digest(cookie_state.encode(), state.encode()):
        raise HTTPException(status_code=400, detail="Invalid OAuth state")

    if not verify_hmac(params, hmac_received, config.api.api_secret):
        raise HTTPException(status_code=400, detail="HMAC validation failed")

    try:
        token_json = exchange_code_for_token(config, shop, code)
    except Exception:
        logger.exception("OAuth token exchange failed for %s", shop)
        raise HTTPException(status_code=500, detail="Token exchange failed")

    session = ShopifySession(
        id=offline_session_id(shop),
        shop=shop,
        state=state,
        is_online=False,
        scope=token_json.get("scope", config.api.scopes),
        access_token=token_json["access_token"],
    )
    storage.store_session(session)
    logger.info("Stored offline session for %s", shop)

    try:
        register_webhooks(session, request.app.state.webhook_handlers, config)
    except Exception:
        logger.exception("Webhook registration failed for %s", shop)
        raise HTTPException(status_code=500, detail="Webhook registration failed")

    response = redirect_to_shopify_or_app_root(request, shop)
    response.delete_cookie(STATE_COOKIE)
    return response


def redirect_to_shopify_or_app_root(request: Request, shop: str) -> RedirectResponse:
    config: AppConfig = request.app.state.config
    host = request.query_params.get("host")

    if config.api.is_embedded_app and host:
        url = embedded_app_url(config, host)
        if url:
            return RedirectResponse(url, status_code=302)

    query = {"shop": shop}
    if host:
        query["host"] = host
    return RedirectResponse("/?" + urlencode(query), status_code=302)


# ----------------------------
# Step 3 — Installed check for the app shell
# ----------------------------

async def ensure_installed_on_shop(request: Request) -> Response | None:
    """Return a response that short-circuits the request, or None when installed."""
    config: AppConfig = request.app.state.config
    storage: SessionStorage = request.app.state.session_storage

    shop = sanitize_shop(request.query_params.get("shop"))
    if not shop:
        return no_shop_response()

    session = await run_in_threadpool(storage.load_session, offline_session_id(shop))

    if session is None or not session.is_active(config.api.scope_list):
        logger.info("App not installed on %s, redirecting to auth", shop)
        return RedirectResponse(f"{config.auth.path}?" + urlencode({"shop": shop}), status_code=302)

    host = request.query_params.get("host")
    if config.api.is_embedded_app and request.query_params.get("embedded") != "1" and host:
        url = embedded_app_url(config, host)
        if url:
            return RedirectResponse(url, status_code=302)

    return None


def build_auth_router(config: AppConfig) -> APIRouter:
    router = APIRouter(tags=["auth"])
    router.add_api_route(config.auth.path, begin, methods=["GET"])
    router.add_api_route(config.auth.callback_path, callback, methods=["GET"])
    return router
