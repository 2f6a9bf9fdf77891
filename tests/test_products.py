import pytest

import routers.products as products
from services.product_creator import ProductCreatorError


class FakeGraphqlClient:
    response = {"data": {"productsCount": {"count": 7}}}
    error = None
    queries = []

    def __init__(self, session, api_version=None):
        self.session = session

    def request(self, query, variables=None):
        FakeGraphqlClient.queries.append(query)
        if FakeGraphqlClient.error:
            raise FakeGraphqlClient.error
        return FakeGraphqlClient.response


@pytest.fixture(autouse=True)
def fake_client(monkeypatch):
    FakeGraphqlClient.error = None
    FakeGraphqlClient.queries = []
    monkeypatch.setattr(products, "GraphqlClient", FakeGraphqlClient)
    return FakeGraphqlClient


def test_products_count(client, installed_session, auth_headers):
    response = client.get("/api/products/count", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"count": 7}
    assert "productsCount" in FakeGraphqlClient.queries[0]


def test_products_count_remote_failure(client, installed_session, auth_headers):
    FakeGraphqlClient.error = RuntimeError("boom")
    response = client.get("/api/products/count", headers=auth_headers)
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch product count"}


def test_products_create(client, installed_session, auth_headers, monkeypatch):
    calls = []
    monkeypatch.setattr(products, "create_products", lambda session, client: calls.append(session.shop))

    response = client.post("/api/products", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert calls == [installed_session.shop]


def test_products_create_failure(client, installed_session, auth_headers, monkeypatch):
    def fail(session, client):
        raise ProductCreatorError("title is taken")

    monkeypatch.setattr(products, "create_products", fail)

    response = client.post("/api/products", headers=auth_headers)
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "title is taken"}


def test_products_count_requires_session(client, installed_session):
    response = client.get("/api/products/count")
    assert response.status_code == 401
    assert FakeGraphqlClient.queries == []


def test_failure_does_not_take_server_down(client, installed_session, auth_headers):
    FakeGraphqlClient.error = RuntimeError("boom")
    assert client.get("/api/products/count", headers=auth_headers).status_code == 500

    FakeGraphqlClient.error = None
    assert client.get("/api/products/count", headers=auth_headers).json() == {"count": 7}
