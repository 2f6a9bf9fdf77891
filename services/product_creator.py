import logging
import random

from models import ShopifySession
from services.shopify import GraphqlClient

logger = logging.getLogger(__name__)

DEFAULT_PRODUCTS_COUNT = 5

CREATE_PRODUCTS_MUTATION = """
mutation populateProduct($product: ProductCreateInput!) {
  productCreate(product: $product) {
    product { id title }
    userErrors { field message }
  }
}
"""

ADJECTIVES = [
    "autumn", "hidden", "bitter", "misty", "silent", "empty", "dry", "dark",
    "summer", "icy", "delicate", "quiet", "white", "cool", "spring", "winter",
    "patient", "twilight", "dawn", "crimson", "wispy", "weathered", "blue",
    "billowing", "broken", "cold", "damp", "falling", "frosty", "green",
    "long", "late", "bold", "little", "morning", "muddy", "old", "red",
    "rough", "still", "small", "sparkling", "shy", "wandering", "withered",
    "wild", "black", "young", "holy", "solitary", "fragrant", "aged",
    "snowy", "proud", "floral", "restless", "divine", "polished", "ancient",
    "purple", "lively", "nameless",
]

NOUNS = [
    "waterfall", "river", "breeze", "moon", "rain", "wind", "sea", "morning",
    "snow", "lake", "sunset", "pine", "shadow", "leaf", "dawn", "glitter",
    "forest", "hill", "cloud", "meadow", "sun", "glade", "bird", "brook",
    "butterfly", "bush", "dew", "dust", "field", "fire", "flower", "firefly",
    "feather", "grass", "haze", "mountain", "night", "pond", "darkness",
    "snowflake", "silence", "sound", "sky", "shape", "surf", "thunder",
    "violet", "water", "wildflower", "wave", "water", "resonance", "sun",
    "wood", "dream", "cherry", "tree", "fog", "frost", "voice", "paper",
    "frog", "smoke", "star",
]


class ProductCreatorError(Exception):
    def __init__(self, message: str, user_errors=None):
        super().__init__(message)
        self.user_errors = user_errors or []


def random_title(rng: random.Random | None = None) -> str:
    rng = rng or random
    return f"{rng.choice(ADJECTIVES)} {rng.choice(NOUNS)}"


def create_products(
    session: ShopifySession,
    client: GraphqlClient | None = None,
    count: int = DEFAULT_PRODUCTS_COUNT,
) -> list[dict]:
    """Create `count` products with random titles; returns the created products."""
    client = client or GraphqlClient(session)
    created = []

    for _ in range(count):
        data = client.request(CREATE_PRODUCTS_MUTATION, {"product": {"title": random_title()}})
        payload = data["data"]["productCreate"]

        if payload.get("userErrors"):
            raise ProductCreatorError(
                f"Product creation failed: {payload['userErrors']}",
                payload["userErrors"],
            )

        created.append(payload["product"])

    logger.info("Created %s products for %s", len(created), session.shop)
    return created
