from kaspa_exporter.cache import MetricsCache, Snapshot
from kaspa_exporter.client import CallResult, ClientState, RpcClient
from kaspa_exporter.collector import collect_metrics
from kaspa_exporter.config import Settings, load_settings
from kaspa_exporter.errors import (
    DecodeError,
    ExporterError,
    FrameSizeError,
    HandshakeError,
    TimeoutError,
    TransportError,
    UpstreamUnreachable,
)
from kaspa_exporter.frames import decode_frame, encode_frame
from kaspa_exporter.handshake import build_handshake_request, validate_handshake_response
from kaspa_exporter.orchestrator import PollResult, poll_node
from kaspa_exporter.server import create_app

__version__ = "0.1.0"

__all__ = [
    "MetricsCache",
    "Snapshot",
    "CallResult",
    "ClientState",
    "RpcClient",
    "collect_metrics",
    "Settings",
    "load_settings",
    "ExporterError",
    "TransportError",
    "HandshakeError",
    "TimeoutError",
    "DecodeError",
    "FrameSizeError",
    "UpstreamUnreachable",
    "encode_frame",
    "decode_frame",
    "build_handshake_request",
    "validate_handshake_response",
    "PollResult",
    "poll_node",
    "create_app",
]
