"""
Query a Kaspa node's wRPC JSON port directly with RpcClient.
"""

import asyncio
import json
import sys

from kaspa_exporter import RpcClient


async def main() -> None:
    """Connect, issue getInfo and getBlockDagInfo, print the replies."""
    host = sys.argv[1] if len(sys.argv) > 1 else "localhost"
    port = int(sys.argv[2]) if len(sys.argv) > 2 else 18110

    async with RpcClient(host, port, call_timeout=3.0) as client:
        await client.connect()
        for request_id, method in enumerate(("getInfo", "getBlockDagInfo"), start=1):
            result = await client.call({"id": request_id, "method": method, "params": {}})
            if result.ok:
                print(f"{method}: {json.dumps(result.value, indent=2)}")
            else:
                print(f"{method} failed: {result.error}")


if __name__ == "__main__":
    asyncio.run(main())
