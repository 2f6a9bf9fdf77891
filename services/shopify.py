import requests

from core.config import DEFAULT_API_VERSION
from models import ShopifySession


class ShopifyApiError(Exception):
    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = errors


class GraphqlClient:
    """Admin GraphQL client bound to one shop's session."""

    def __init__(self, session: ShopifySession, api_version: str = DEFAULT_API_VERSION):
        if not session or not session.access_token:
            raise ShopifyApiError("Missing access token for GraphQL client")

        self.session = session
        self.endpoint = f"https://{session.shop}/admin/api/{api_version}/graphql.json"

        self.headers = {
            "X-Shopify-Access-Token": session.access_token,
            "Content-Type": "application/json",
        }

    def request(self, query: str, variables: dict | None = None) -> dict:
        response = requests.post(
            self.endpoint,
            headers=self.headers,
            json={"query": query, "variables": variables or {}},
            timeout=30,
        )

        if response.status_code != 200:
            raise ShopifyApiError(f"Shopify HTTP error {response.status_code}: {response.text}")

        data = response.json()

        if data.get("errors"):
            raise ShopifyApiError(f"Shopify GraphQL error: {data['errors']}", data["errors"])

        return data
