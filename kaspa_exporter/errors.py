class ExporterError(Exception):
    """Base error for the Kaspa exporter."""


class TransportError(ExporterError):
    """Raised when connecting to, writing to or reading from the node fails."""


class HandshakeError(ExporterError):
    """Raised when the node does not accept the WebSocket upgrade."""


class TimeoutError(ExporterError):
    """Raised when no reply arrives before the call deadline."""


class DecodeError(ExporterError):
    """Raised for malformed frames or reply payloads that do not parse."""


class FrameSizeError(DecodeError):
    """Raised when a payload length needs an encoding this client does not implement."""


class UpstreamUnreachable(ExporterError):
    """Raised when neither node port accepts a TCP connection."""
