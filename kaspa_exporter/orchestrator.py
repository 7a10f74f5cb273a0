from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from .client import CallResult, RpcClient
from .errors import ExporterError

logger = logging.getLogger(__name__)


def _merge_fields(merged: dict, data: object) -> None:
    if isinstance(data, dict):
        merged.update(data)


def _merge_peer_info(merged: dict, data: object) -> None:
    if isinstance(data, dict) and "peerInfo" in data:
        merged["peerInfo"] = data["peerInfo"]
    else:
        merged["peerInfo"] = data


# Ordered (method, merge rule) pairs issued once per poll.
POLL_OPERATIONS: tuple[tuple[str, Callable[[dict, object], None]], ...] = (
    ("getInfo", _merge_fields),
    ("getBlockDagInfo", _merge_fields),
    ("getConnectedPeerInfo", _merge_peer_info),
)


@dataclass
class PollResult:
    """Merged node data plus the outcome of every operation in the batch."""

    data: dict = field(default_factory=dict)
    outcomes: list[CallResult] = field(default_factory=list)
    error: ExporterError | None = None

    @property
    def connected(self) -> bool:
        return self.error is None


def reply_payload(reply: object) -> object:
    """Return the answer carried in a reply's ``result`` or ``params`` field, if any."""
    if not isinstance(reply, dict):
        return None
    return reply.get("result") or reply.get("params")


async def poll_node(
    host: str,
    port: int,
    path: str = "/",
    call_timeout: float = 3.0,
    connect_timeout: float = 5.0,
    client_factory: Callable[..., RpcClient] = RpcClient,
) -> PollResult:
    """
    Connect once and issue every operation in ``POLL_OPERATIONS`` in order.

    A failing operation is logged and skipped. A connect or handshake
    failure is reported through ``PollResult.error``. The connection is
    always closed before returning.
    """
    result = PollResult()
    async with client_factory(
        host, port, path, call_timeout=call_timeout, connect_timeout=connect_timeout
    ) as client:
        try:
            await client.connect()
        except ExporterError as exc:
            logger.warning("WebSocket error: %s", exc)
            result.error = exc
            return result

        for request_id, (method, merge) in enumerate(POLL_OPERATIONS, start=1):
            logger.info("Calling: %s", method)
            outcome = await client.call({"id": request_id, "method": method, "params": {}})
            result.outcomes.append(outcome)
            if not outcome.ok:
                logger.warning("%s failed: %s", method, outcome.error)
                continue
            payload = reply_payload(outcome.value)
            if not payload:
                logger.warning("%s returned no result", method)
                continue
            merge(result.data, payload)
            logger.info("Got %s data", method)
    return result
