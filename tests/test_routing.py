import pytest
from fastapi import APIRouter, FastAPI

from core.routing import RouteOrderError, register_routers, route_paths, validate_route_order
from routers.frontend import router as frontend_router
from routers.products import router as products_router


def index_of(paths, suffix):
    return next(i for i, path in enumerate(paths) if path.endswith(suffix))


def test_catch_all_must_be_last():
    with pytest.raises(RouteOrderError):
        validate_route_order((("frontend", frontend_router), ("products", products_router)))


def test_register_rejects_bad_order():
    with pytest.raises(RouteOrderError):
        register_routers(FastAPI(), (("frontend", frontend_router), ("products", products_router)))


def test_valid_order_registers_everything():
    app = FastAPI()
    register_routers(app, (("products", products_router), ("frontend", frontend_router)))

    assert [name for name, _ in app.state.registered_routers] == ["products", "frontend"]
    paths = route_paths(app.state.registered_routers)
    assert index_of(paths, "/products/count") < paths.index("/{full_path:path}")


def test_router_without_catch_all_can_go_anywhere():
    extra = APIRouter()

    @extra.get("/health")
    def health():
        return {"ok": True}

    validate_route_order((("extra", extra), ("products", products_router)))


def test_app_routes_end_with_fallback(app):
    assert [name for name, _ in app.state.registered_routers] == ["auth", "webhooks", "products", "frontend"]

    paths = route_paths(app.state.registered_routers)
    assert paths[-1] == "/{full_path:path}"
    assert paths.index("/api/auth") < index_of(paths, "/products/count")
    assert paths.index("/api/webhooks") < index_of(paths, "/products/count")
