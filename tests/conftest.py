import os
import sys
import time
from pathlib import Path

import jwt
import pytest
from fastapi.testclient import TestClient

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("SHOPIFY_API_KEY", "test_key")
os.environ.setdefault("SHOPIFY_API_SECRET", "test_secret")
os.environ.setdefault("HOST_NAME", "example.ngrok.app")

from core.config import ApiConfig, AppConfig  # noqa: E402
from core.session_storage import SessionStorage  # noqa: E402
from core.shop import offline_session_id  # noqa: E402
from main import create_app  # noqa: E402
from models import ShopifySession  # noqa: E402

API_KEY = "abc123"
API_SECRET = "test_secret"
SHOP = "test-shop.myshopify.com"
INDEX_HTML = '<!DOCTYPE html>\n<html><head><meta name="shopify-api-key" content="%VITE_SHOPIFY_API_KEY%" /></head><body><div id="app"></div></body></html>\n'
APP_JS = "console.log('%VITE_SHOPIFY_API_KEY%');\n"


@pytest.fixture
def frontend_dir(tmp_path):
    static = tmp_path / "frontend"
    (static / "assets").mkdir(parents=True)
    (static / "index.html").write_text(INDEX_HTML, encoding="utf-8")
    (static / "assets" / "app.js").write_text(APP_JS, encoding="utf-8")
    return static


@pytest.fixture
def config(tmp_path, frontend_dir):
    return AppConfig(
        api=ApiConfig(
            api_key=API_KEY,
            api_secret=API_SECRET,
            host_name="example.ngrok.app",
            scopes="write_products",
        ),
        static_path=frontend_dir,
        database_path=tmp_path / "database.sqlite",
    )


@pytest.fixture
def storage(config):
    storage = SessionStorage(config.database_path)
    storage.init_db()
    return storage


@pytest.fixture
def app(config, storage):
    return create_app(config, storage)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def installed_session(storage):
    session = ShopifySession(
        id=offline_session_id(SHOP),
        shop=SHOP,
        state="state",
        is_online=False,
        scope="write_products",
        access_token="shpat_test",
    )
    storage.store_session(session)
    return session


def make_session_token(shop=SHOP, secret=API_SECRET, audience=API_KEY, expires_in=60):
    now = int(time.time())
    payload = {
        "iss": f"https://{shop}/admin",
        "dest": f"https://{shop}",
        "aud": audience,
        "sub": "1",
        "exp": now + expires_in,
        "nbf": now - 5,
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_session_token()}"}
