from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional
import logging

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
import httpx
import uvicorn

from DedupFetcher import DedupFetcher
from EnvCheck import check_environment
from GatewayConfig import GatewayConfig
from InflightRegistry import InflightRegistry
from NotificationCenter import Notification, NotificationCenter, Severity

logger = logging.getLogger(__name__)

router = APIRouter()


def _upstream_url(path: str, request: Request) -> str:
    url = f"/{path}"
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return url


def _passthrough(upstream: httpx.Response) -> Response:
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type"),
    )


@router.get("/")
async def root(request: Request):
    return {
        "message": "Inflight Gateway - deduplicated upstream reads",
        "upstream": request.app.state.config.UPSTREAM_BASE_URL,
        "features": [
            "Concurrent identical GETs share one upstream request",
            "Non-GET requests forwarded without deduplication",
            "Startup check for optional API keys",
        ],
    }


@router.get("/proxy/{path:path}")
async def proxy_read(path: str, request: Request):
    """Deduplicated upstream read"""
    url = _upstream_url(path, request)
    try:
        upstream = await request.app.state.fetcher.fetch(url)
    except httpx.HTTPError as e:
        logger.warning("[PROXY] Upstream read failed for %s: %s", url, e)
        raise HTTPException(status_code=502, detail=f"Upstream request failed: {e}")

    logger.info("[PROXY] GET %s -> %s", url, upstream.status_code)
    return _passthrough(upstream)


@router.api_route("/proxy/{path:path}", methods=["POST", "PUT", "PATCH", "DELETE"])
async def proxy_write(path: str, request: Request):
    """Forward a non-idempotent request as-is"""
    url = _upstream_url(path, request)
    headers = {}
    if request.headers.get("content-type"):
        headers["content-type"] = request.headers["content-type"]
    try:
        upstream = await request.app.state.fetcher.fetch(
            url, method=request.method, content=await request.body(), headers=headers
        )
    except httpx.HTTPError as e:
        logger.warning("[PROXY] Upstream %s failed for %s: %s", request.method, url, e)
        raise HTTPException(status_code=502, detail=f"Upstream request failed: {e}")

    logger.info("[PROXY] %s %s -> %s", request.method, url, upstream.status_code)
    return _passthrough(upstream)


@router.get("/health")
async def health_check(request: Request):
    return {
        "status": "healthy",
        "service": "Inflight Gateway",
        "deduplication": request.app.state.registry.stats(),
    }


@router.get("/stats")
async def inflight_stats(request: Request):
    """Current in-flight deduplication counters"""
    return {
        "timestamp": datetime.now().isoformat(),
        "deduplication": request.app.state.registry.stats(),
        "notifications": len(request.app.state.notifications.active()),
    }


@router.get("/notifications", response_model=List[Notification])
async def list_notifications(request: Request):
    return request.app.state.notifications.active()


@router.delete("/notifications/{notification_id}")
async def dismiss_notification(notification_id: str, request: Request):
    if not request.app.state.notifications.dismiss(notification_id):
        raise HTTPException(status_code=404, detail="Notification not found or not dismissible")
    return {"status": "success", "dismissed": notification_id}


@router.post("/notifications/clear")
async def clear_notifications(request: Request):
    request.app.state.notifications.clear()
    return {
        "status": "success",
        "message": "All notifications cleared",
        "timestamp": datetime.now().isoformat(),
    }


def create_app(
    config=GatewayConfig,
    registry: Optional[InflightRegistry] = None,
    notifications: Optional[NotificationCenter] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    if registry is None:
        registry = InflightRegistry()
    if notifications is None:
        notifications = NotificationCenter(
            max_visible=config.NOTIFY_MAX_VISIBLE,
            default_duration_ms=config.NOTIFY_DEFAULT_DURATION_MS,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = httpx.AsyncClient(
            base_url=config.UPSTREAM_BASE_URL,
            timeout=config.UPSTREAM_TIMEOUT,
            transport=transport,
        )

        def report_failure(upstream_request: httpx.Request, error: httpx.HTTPError):
            # Once per shared upstream execution, not once per joined caller
            notifications.notify(
                f"Upstream request failed: {upstream_request.url.raw_path.decode()}",
                Severity.ERROR,
                8000,
                True,
            )

        app.state.fetcher = DedupFetcher(client, registry, on_error=report_failure)
        check_environment(notifications.notify)
        logger.info("[GATEWAY] Started, forwarding to %s", config.UPSTREAM_BASE_URL)
        try:
            yield
        finally:
            await client.aclose()
            logger.info("[GATEWAY] Upstream client closed")

    app = FastAPI(title="Inflight Gateway", version="1.0.0", lifespan=lifespan)
    app.state.config = config
    app.state.registry = registry
    app.state.notifications = notifications

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    logging.basicConfig(
        level=GatewayConfig.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "app:app",
        host=GatewayConfig.HOST,
        port=GatewayConfig.PORT,
        reload=GatewayConfig.RELOAD,
        log_level=GatewayConfig.LOG_LEVEL,
        access_log=True,
        workers=1,  # Single worker: the in-flight table is per process
    )
