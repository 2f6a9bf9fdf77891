import base64
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Callable, Mapping

from fastapi import APIRouter, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from core.config import AppConfig
from core.shop import normalize_shop
from models import ShopifySession
from services.shopify import GraphqlClient, ShopifyApiError

logger = logging.getLogger(__name__)

PRIVACY_TOPICS = frozenset({"CUSTOMERS_DATA_REQUEST", "CUSTOMERS_REDACT", "SHOP_REDACT"})

WEBHOOK_SUBSCRIPTION_CREATE = """
mutation webhookSubscriptionCreate($topic: WebhookSubscriptionTopic!, $callbackUrl: URL!) {
  webhookSubscriptionCreate(
    topic: $topic,
    webhookSubscription: { callbackUrl: $callbackUrl, format: JSON }
  ) {
    webhookSubscription { id }
    userErrors { field message }
  }
}
"""


@dataclass(frozen=True)
class WebhookHandler:
    """Handles one inbound webhook topic: callback(topic, shop, body, webhook_id)."""

    callback: Callable[[str, str, str, str | None], None]
    delivery_method: str = "http"


WebhookHandlers = Mapping[str, WebhookHandler]


# ----------------------------
# Helpers
# ----------------------------

def normalize_topic(topic: str) -> str:
    return topic.strip().upper().replace("/", "_").replace(".", "_")


def verify_webhook(data: bytes, hmac_header: str | None, secret: str) -> bool:
    if not hmac_header or not secret:
        return False

    digest = hmac.new(
        secret.encode(),
        data,
        hashlib.sha256
    ).digest()

    computed_hmac = base64.b64encode(digest).decode()
    return hmac.compare_digest(computed_hmac.encode(), hmac_header.encode())


def register_webhooks(session: ShopifySession, handlers: WebhookHandlers, config: AppConfig) -> list[str]:
    """Subscribe the shop to every non-privacy topic in the handler table.

    Privacy topics are configured in the Partner dashboard and can't be
    subscribed through the API, so they are skipped.
    """
    topics = [topic for topic in handlers if topic not in PRIVACY_TOPICS]
    if not topics:
        return []

    client = GraphqlClient(session, config.api.api_version)
    callback_url = f"https://{config.api.host_name}{config.webhooks.path}"

    for topic in topics:
        data = client.request(WEBHOOK_SUBSCRIPTION_CREATE, {"topic": topic, "callbackUrl": callback_url})
        errors = data.get("data", {}).get("webhookSubscriptionCreate", {}).get("userErrors")

        if errors:
            raise ShopifyApiError(f"Webhook create failed for {topic}: {errors}", errors)

        logger.info("Registered %s webhook for %s", topic, session.shop)

    return topics


# ----------------------------
# Webhook endpoint
# ----------------------------

async def process_webhooks(request: Request):
    config: AppConfig = request.app.state.config
    handlers: WebhookHandlers = request.app.state.webhook_handlers

    raw_body = await request.body()
    hmac_header = request.headers.get("X-Shopify-Hmac-Sha256")

    if not verify_webhook(raw_body, hmac_header, config.api.api_secret):
        logger.warning("Rejected webhook with invalid HMAC")
        raise HTTPException(status_code=401, detail="Webhook HMAC failed")

    topic_header = request.headers.get("X-Shopify-Topic")
    shop = normalize_shop(request.headers.get("X-Shopify-Shop-Domain"))

    if not topic_header or not shop:
        raise HTTPException(status_code=400, detail="Missing webhook topic or shop")

    topic = normalize_topic(topic_header)
    handler = handlers.get(topic)

    if handler is None:
        logger.warning("No webhook handler registered for %s", topic)
        raise HTTPException(status_code=404, detail=f"No handler for topic {topic}")

    webhook_id = request.headers.get("X-Shopify-Webhook-Id")

    try:
        await run_in_threadpool(handler.callback, topic, shop, raw_body.decode("utf-8"), webhook_id)
    except Exception:
        logger.exception("Failed to process %s webhook for %s", topic, shop)
        raise HTTPException(status_code=500, detail="Failed to process webhook")

    return {"status": "ok"}


def build_webhooks_router(config: AppConfig) -> APIRouter:
    router = APIRouter(tags=["webhooks"])
    router.add_api_route(config.webhooks.path, process_webhooks, methods=["POST"])
    return router
