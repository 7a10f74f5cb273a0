"""
Mapping from node RPC fields to exported gauge metrics, and the text
exposition format served on ``/metrics``.
"""

from __future__ import annotations

import re
import time
from collections.abc import Mapping

# pastMedianTime values above this are millisecond epochs.
MILLISECOND_EPOCH_THRESHOLD = 1_000_000_000_000

_VERSION_RE = re.compile(r"(\d+)\.(\d+)\.(\d+)")


def as_number(value: object) -> int | float | None:
    """Return ``value`` as a metric number, or None if it is not numeric.

    Integral floats collapse to ``int`` so ``12345.0`` is exported as ``12345``.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def normalize_timestamp(value: int | float) -> int | float:
    if value > MILLISECOND_EPOCH_THRESHOLD:
        return int(value // 1000)
    return value


def build_node_metrics(data: Mapping | None, now: float | None = None) -> dict[str, int | float]:
    """Derive gauge metrics from merged getInfo/getBlockDagInfo/peer data."""
    metrics: dict[str, int | float] = {}
    if not data:
        return metrics
    if now is None:
        now = time.time()

    simple = (
        ("blockCount", ("kaspa_latest_block_number",)),
        ("headerCount", ("kaspa_header_count",)),
        ("virtualDaaScore", ("kaspa_virtual_daa_score",)),
        # Difficulty doubles as the hashrate estimate.
        ("difficulty", ("kaspa_difficulty", "kaspa_network_hashrate")),
        ("mempoolSize", ("kaspa_mempool_size", "kaspa_mempool_transactions")),
    )
    for field, names in simple:
        number = as_number(data.get(field))
        if number is not None:
            for name in names:
                metrics[name] = number

    flags = (
        ("isSynced", "kaspa_is_synced"),
        ("isUtxoIndexed", "kaspa_utxo_index_enabled"),
        ("hasNotifyCommand", "kaspa_notify_enabled"),
    )
    for field, name in flags:
        if isinstance(data.get(field), bool):
            metrics[name] = 1 if data[field] else 0

    tips = data.get("tipHashes")
    if isinstance(tips, list):
        metrics["kaspa_tip_count"] = len(tips)

    median_time = as_number(data.get("pastMedianTime"))
    if median_time is not None:
        timestamp = normalize_timestamp(median_time)
        metrics["kaspa_latest_block_timestamp"] = timestamp
        metrics["kaspa_block_time_seconds"] = int(now) - timestamp

    peers = data.get("peerInfo")
    if isinstance(peers, list):
        metrics["kaspa_peer_count"] = len(peers)
        metrics["kaspa_connected_peer_count"] = sum(
            1 for peer in peers if not (isinstance(peer, dict) and peer.get("is_connected") is False)
        )

    network = data.get("network")
    if network:
        metrics["kaspa_network_mainnet"] = 1 if network == "mainnet" else 0

    version = data.get("serverVersion")
    if isinstance(version, str):
        match = _VERSION_RE.search(version)
        if match:
            major, minor, patch = (int(g) for g in match.groups())
            metrics["kaspa_server_version_major"] = major
            metrics["kaspa_server_version_minor"] = minor
            metrics["kaspa_server_version_patch"] = patch

    return metrics


def help_text(name: str) -> str:
    label = name[len("kaspa_"):] if name.startswith("kaspa_") else name
    return "Kaspa " + label.replace("_", " ")


def format_exposition(metrics: Mapping[str, object]) -> str:
    """Render one HELP/TYPE/sample/blank stanza per numeric metric, in mapping order."""
    lines: list[str] = []
    for name, value in metrics.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        lines.append(f"# HELP {name} {help_text(name)}")
        lines.append(f"# TYPE {name} gauge")
        lines.append(f"{name} {value}")
        lines.append("")
    return "\n".join(lines)
