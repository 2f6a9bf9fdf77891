import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from core.config import AppConfig
from core.session_token import current_session
from models import ShopifySession
from services.product_creator import create_products
from services.shopify import GraphqlClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])

PRODUCTS_COUNT_QUERY = """
query {
  productsCount {
    count
  }
}
"""


@router.get("/count", status_code=status.HTTP_200_OK)
def products_count(request: Request, session: ShopifySession = Depends(current_session)):
    config: AppConfig = request.app.state.config
    try:
        client = GraphqlClient(session, config.api.api_version)
        count_data = client.request(PRODUCTS_COUNT_QUERY)
        return {"count": count_data["data"]["productsCount"]["count"]}
    except Exception:
        logger.exception("Failed to fetch product count for %s", session.shop)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch product count"})


@router.post("", status_code=status.HTTP_200_OK)
def products_create(request: Request, session: ShopifySession = Depends(current_session)):
    config: AppConfig = request.app.state.config
    try:
        create_products(session, GraphqlClient(session, config.api.api_version))
        return {"success": True}
    except Exception as e:
        logger.exception("Failed to create products for %s", session.shop)
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})
