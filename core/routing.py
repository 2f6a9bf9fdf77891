import logging
from typing import Sequence

from fastapi import APIRouter, FastAPI
from starlette.routing import Route

logger = logging.getLogger(__name__)


class RouteOrderError(RuntimeError):
    pass


def is_catch_all(route) -> bool:
    return isinstance(route, Route) and ":path}" in route.path


def validate_route_order(routers: Sequence[tuple[str, APIRouter]]) -> None:
    """A catch-all route may only live in the last router, or it would shadow the ones after it."""
    for index, (name, router) in enumerate(routers):
        is_last = index == len(routers) - 1
        for route in router.routes:
            if is_catch_all(route) and not is_last:
                raise RouteOrderError(
                    f"Catch-all route {route.path!r} in {name!r} must be registered last"
                )


def register_routers(app: FastAPI, routers: Sequence[tuple[str, APIRouter]]) -> None:
    validate_route_order(routers)
    for name, router in routers:
        app.include_router(router)
        logger.debug("Registered %s routes", name)
    app.state.registered_routers = tuple(routers)


def route_paths(routers: Sequence[tuple[str, APIRouter]]) -> list[str]:
    """Paths in the order they are matched."""
    return [route.path for _, router in routers for route in router.routes if isinstance(route, Route)]
