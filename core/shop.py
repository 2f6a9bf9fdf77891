import base64
import binascii
import re

from core.config import AppConfig

SHOP_DOMAIN_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9\-]*\.(myshopify\.com|shopify\.com|myshopify\.io)$")
SHOPIFY_HOST_RE = re.compile(r"^[a-z0-9][a-z0-9\-]*\.myshopify\.com$")


def normalize_shop(shop: str | None) -> str | None:
    if not shop:
        return None
    return shop.replace("https://", "").replace("http://", "").strip().strip("/").lower()


def sanitize_shop(shop: str | None) -> str | None:
    """Return the normalized shop domain, or None if it isn't a Shopify domain."""
    shop = normalize_shop(shop)
    if not shop or not SHOP_DOMAIN_RE.match(shop):
        return None
    return shop


def offline_session_id(shop: str) -> str:
    return f"offline_{shop}"


def decode_host(host: str | None) -> str | None:
    if not host:
        return None
    padded = host + "=" * (-len(host) % 4)
    try:
        decoded = base64.urlsafe_b64decode(padded.encode()).decode()
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None
    decoded = decoded.replace("https://", "").replace("http://", "").strip("/")
    hostname = decoded.split("/", 1)[0].lower()
    if hostname != "admin.shopify.com" and not SHOPIFY_HOST_RE.match(hostname):
        return None
    return decoded


def embedded_app_url(config: AppConfig, host: str) -> str | None:
    decoded = decode_host(host)
    if not decoded:
        return None
    return f"https://{decoded}/apps/{config.api.api_key}"
