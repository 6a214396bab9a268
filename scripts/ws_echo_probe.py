#!/usr/bin/env python3
"""Check a running echo server: text, binary, then a clean close."""
import asyncio
import sys

import websockets

URL = sys.argv[1] if len(sys.argv) > 1 else "ws://127.0.0.1:8080/"

CHECKS = [
    ("text", "ping"),
    ("binary", bytes.fromhex("DEADBEEF")),
]


async def probe(url):
    print(f"[probe] connecting to {url}")
    async with websockets.connect(url, open_timeout=5, close_timeout=5) as ws:
        for kind, payload in CHECKS:
            await ws.send(payload)
            echo = await asyncio.wait_for(ws.recv(), timeout=5)
            if echo != payload or type(echo) is not type(payload):
                print(f"[probe] FAIL {kind}: sent {payload!r}, got {echo!r}")
                return 1
            print(f"[probe] OK   {kind}: {echo!r}")

    print(f"[probe] closed (code={ws.close_code})")
    return 0 if ws.close_code == 1000 else 1


async def main():
    try:
        return await probe(URL)
    except (OSError, websockets.exceptions.WebSocketException, asyncio.TimeoutError) as e:
        print(f"[probe] FAIL: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
