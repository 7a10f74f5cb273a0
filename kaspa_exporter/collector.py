from __future__ import annotations

import logging
import time

from .config import Settings
from .errors import ExporterError, UpstreamUnreachable
from .metrics import build_node_metrics
from .orchestrator import poll_node
from .probe import probe_ports

logger = logging.getLogger(__name__)


def _mark_down(metrics: dict, reason: ExporterError | str) -> dict:
    logger.warning("Kaspa node down: %s", reason)
    metrics["kaspa_exporter_up"] = 0
    metrics["kaspa_latest_block_number"] = -1
    metrics["kaspa_latest_block_timestamp"] = -1
    return metrics


async def collect_metrics(
    settings: Settings,
    now: float | None = None,
    probe=probe_ports,
    poll=poll_node,
) -> dict[str, int | float]:
    """
    Run one refresh cycle and return the resulting metric mapping.

    Upstream trouble never raises: an unreachable node, or a failure to
    open the wRPC session, yields ``kaspa_exporter_up = 0`` with
    ``-1`` sentinels for block number and timestamp. A reachable node
    that answers without block data gets ``0`` and the current time.

    Args:
        settings: Exporter settings
        now: Wall-clock seconds to stamp the metrics with (defaults to time.time())
        probe: Coroutine function used for reachability checks
        poll: Coroutine function used to query the wRPC port
    """
    if now is None:
        now = time.time()
    metrics: dict[str, int | float] = {
        "kaspa_node_current_timestamp": int(now),
        "kaspa_exporter_last_scrape_timestamp": int(now),
    }

    try:
        grpc_ok, json_rpc_ok = await probe(
            settings.kaspa_host,
            (settings.kaspa_grpc_port, settings.kaspa_json_rpc_port),
            settings.probe_timeout,
        )
        metrics["kaspa_grpc_port_accessible"] = 1 if grpc_ok else 0
        metrics["kaspa_json_rpc_port_accessible"] = 1 if json_rpc_ok else 0
        metrics["kaspa_node_responsive"] = 1 if (grpc_ok or json_rpc_ok) else 0

        if not (grpc_ok or json_rpc_ok):
            return _mark_down(
                metrics, UpstreamUnreachable(f"No Kaspa ports reachable on {settings.kaspa_host}")
            )

        if json_rpc_ok:
            result = await poll(
                settings.kaspa_host,
                settings.kaspa_json_rpc_port,
                settings.kaspa_rpc_path,
                call_timeout=settings.call_timeout,
                connect_timeout=settings.connect_timeout,
            )
            if not result.connected:
                return _mark_down(metrics, result.error)
            metrics.update(build_node_metrics(result.data, now))

        metrics.setdefault("kaspa_latest_block_number", 0)
        metrics.setdefault("kaspa_latest_block_timestamp", int(now))
        metrics["kaspa_exporter_up"] = metrics["kaspa_node_responsive"]
    except Exception:
        logger.exception("Error fetching metrics")
        return _mark_down(metrics, "refresh failed")

    return metrics
