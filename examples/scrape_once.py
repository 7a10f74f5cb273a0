"""
Run a single refresh cycle and print the exposition text served on /metrics.
"""

import asyncio

from kaspa_exporter import MetricsCache, load_settings
from kaspa_exporter.metrics import format_exposition


async def main() -> None:
    settings = load_settings()
    cache = MetricsCache(settings)
    snapshot = await cache.get()
    print(format_exposition(snapshot.metrics))


if __name__ == "__main__":
    asyncio.run(main())
