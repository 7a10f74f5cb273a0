from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)


async def probe_port(host: str, port: int, timeout: float = 2.0) -> bool:
    """Return True if a plain TCP connection to ``host:port`` succeeds within ``timeout``."""
    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(host=host, port=port), timeout=timeout
        )
    except (OSError, asyncio.TimeoutError) as exc:
        logger.debug("Port %s:%s not reachable: %r", host, port, exc)
        return False
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return True


async def probe_ports(host: str, ports: tuple[int, ...], timeout: float = 2.0) -> tuple[bool, ...]:
    """Probe every port concurrently; results keep the order of ``ports``."""
    results = await asyncio.gather(*(probe_port(host, port, timeout) for port in ports))
    return tuple(results)
