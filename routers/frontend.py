import logging
from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from core.auth import ensure_installed_on_shop
from core.config import AppConfig

logger = logging.getLogger(__name__)

router = APIRouter(tags=["frontend"])

INDEX_FILE = "index.html"
API_KEY_PLACEHOLDER = "%VITE_SHOPIFY_API_KEY%"
FALLBACK_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def inject_api_key(html: str, api_key: str | None) -> str:
    return html.replace(API_KEY_PLACEHOLDER, api_key or "")


def resolve_asset(static_path: Path, path: str) -> Path | None:
    """Map a request path to a file under static_path; the root index is never returned."""
    relative = path.lstrip("/")
    if not relative or relative == INDEX_FILE:
        return None

    try:
        root = static_path.resolve()
        candidate = (root / relative).resolve()
        if root not in candidate.parents or not candidate.is_file():
            return None
    except (ValueError, OSError):
        # e.g. embedded NUL bytes; let the fallback answer
        return None
    return candidate


def read_index(static_path: Path) -> str:
    return (static_path / INDEX_FILE).read_text(encoding="utf-8")


async def serve_index(request: Request):
    config: AppConfig = request.app.state.config
    try:
        index_file = await run_in_threadpool(read_index, config.static_path)
        # Inject the Shopify API key into the frontend
        replaced = inject_api_key(index_file, config.api.api_key)
    except Exception:
        logger.exception("Failed to serve %s", INDEX_FILE)
        return PlainTextResponse("Internal Server Error", status_code=500)

    return HTMLResponse(replaced, status_code=200)


# Must be the last route registered: it matches every path.
@router.api_route("/{full_path:path}", methods=FALLBACK_METHODS, include_in_schema=False)
async def frontend(request: Request, full_path: str):
    config: AppConfig = request.app.state.config

    if request.method in ("GET", "HEAD"):
        asset = resolve_asset(config.static_path, full_path)
        if asset is not None:
            return FileResponse(asset)

    short_circuit = await ensure_installed_on_shop(request)
    if short_circuit is not None:
        return short_circuit

    return await serve_index(request)
