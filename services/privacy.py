import json
import logging
from types import MappingProxyType

from core.webhooks import WebhookHandler

logger = logging.getLogger(__name__)


# ----------------------------
# GDPR / Privacy webhooks
# REQUIRED for Shopify public apps
# ----------------------------

def customers_data_request(topic: str, shop: str, body: str, webhook_id: str | None) -> None:
    payload = json.loads(body)
    # This app stores no customer data, so there is nothing to send back.
    logger.info(
        "%s for shop %s (webhook %s): customer=%s orders=%s",
        topic,
        shop,
        webhook_id,
        payload.get("customer", {}).get("id"),
        payload.get("orders_requested", []),
    )


def customers_redact(topic: str, shop: str, body: str, webhook_id: str | None) -> None:
    payload = json.loads(body)
    logger.info(
        "%s for shop %s (webhook %s): customer=%s",
        topic,
        shop,
        webhook_id,
        payload.get("customer", {}).get("id"),
    )


def shop_redact(topic: str, shop: str, body: str, webhook_id: str | None) -> None:
    payload = json.loads(body)
    logger.info(
        "%s for shop %s (webhook %s): shop_id=%s",
        topic,
        shop,
        webhook_id,
        payload.get("shop_id"),
    )


PRIVACY_WEBHOOK_HANDLERS = MappingProxyType({
    "CUSTOMERS_DATA_REQUEST": WebhookHandler(callback=customers_data_request),
    "CUSTOMERS_REDACT": WebhookHandler(callback=customers_redact),
    "SHOP_REDACT": WebhookHandler(callback=shop_redact),
})
