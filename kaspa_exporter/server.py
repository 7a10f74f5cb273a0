from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from aiohttp import web

from .cache import MetricsCache
from .config import Settings
from .metrics import format_exposition

logger = logging.getLogger(__name__)

CACHE_KEY = web.AppKey("cache", MetricsCache)
SETTINGS_KEY = web.AppKey("settings", Settings)

INDEX_HTML = """
<html>
<head><title>Kaspa Prometheus Exporter</title></head>
<body>
    <h1>Kaspa Prometheus Exporter</h1>
    <p><a href="/metrics">Metrics</a> | <a href="/health">Health</a></p>
    <h2>Metrics Available:</h2>
    <ul>
        <li><strong>kaspa_virtual_daa_score</strong> - Virtual DAA score</li>
        <li><strong>kaspa_network_hashrate</strong> - Estimated hashrate</li>
        <li><strong>kaspa_block_time_seconds</strong> - Time since last block</li>
        <li><strong>kaspa_peer_count</strong> - Connected peers</li>
        <li><strong>kaspa_mempool_transactions</strong> - Pending transactions</li>
        <li><strong>kaspa_utxo_index_enabled</strong> - UTXO index status</li>
        <li>And more core metrics...</li>
    </ul>
</body>
</html>
"""


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception:
        logger.exception("Request error on %s", request.path)
        return web.Response(status=500, text="Internal Server Error")


async def handle_metrics(request: web.Request) -> web.Response:
    snapshot = await request.app[CACHE_KEY].get()
    return web.Response(
        body=format_exposition(snapshot.metrics).encode("utf-8"),
        content_type="text/plain",
        charset="utf-8",
    )


async def handle_health(request: web.Request) -> web.Response:
    settings = request.app[SETTINGS_KEY]
    health = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "config": {
            "kaspaHost": settings.kaspa_host,
            "kaspaGrpcPort": settings.kaspa_grpc_port,
            "kaspaJsonRpcPort": settings.kaspa_json_rpc_port,
        },
    }
    return web.Response(text=json.dumps(health, indent=2), content_type="application/json")


async def handle_index(request: web.Request) -> web.Response:
    return web.Response(text=INDEX_HTML, content_type="text/html")


async def handle_not_found(request: web.Request) -> web.Response:
    return web.Response(status=404, text="Not Found")


def create_app(settings: Settings, cache: MetricsCache | None = None) -> web.Application:
    """Build the exporter's aiohttp application."""
    app = web.Application(middlewares=[error_middleware])
    app[SETTINGS_KEY] = settings
    app[CACHE_KEY] = cache if cache is not None else MetricsCache(settings)
    app.router.add_get("/metrics", handle_metrics)
    app.router.add_get("/health", handle_health)
    app.router.add_get("/", handle_index)
    app.router.add_route("*", "/{tail:.*}", handle_not_found)
    return app


def run(settings: Settings) -> None:
    """Serve the exporter until interrupted."""
    app = create_app(settings)
    logger.info(
        "Kaspa Prometheus Exporter listening on %s:%s (node %s, wRPC port %s)",
        settings.listen_host,
        settings.port,
        settings.kaspa_host,
        settings.kaspa_json_rpc_port,
    )
    web.run_app(app, host=settings.listen_host, port=settings.port, print=None)
