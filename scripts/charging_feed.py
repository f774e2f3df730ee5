"""Plays a charging session against a running battery_service.

Sends charging_init, a ramp of charging_update frames and a final
charging_complete over the service WebSocket, answering liveness pings on
the way, and prints every record the service broadcasts back.

    python scripts/charging_feed.py --from-soc 40 --to-soc 80 --step 5
"""

import argparse
import asyncio
import json
import logging

import websockets

from libs.config import get_setting

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("charging_feed")


async def _drain(ws) -> None:
    async for raw in ws:
        try:
            msg = json.loads(raw)
        except ValueError:
            logger.warning("non-json frame: %r", raw)
            continue
        typ = msg.get("type")
        if typ == "ping":
            await ws.send(json.dumps({"type": "pong"}))
        elif typ == "heartbeat":
            logger.debug("heartbeat %s", msg.get("timestamp"))
        else:
            logger.info("record: soc=%s temp=%s", msg.get("stateOfCharge"), msg.get("batteryTemperature"))


async def run(uri: str, from_soc: float, to_soc: float, step: float, temp: float, delay_s: float) -> None:
    async with websockets.connect(uri) as ws:
        logger.info("Connected to %s", uri)
        reader = asyncio.create_task(_drain(ws))
        try:
            await ws.send(json.dumps({"type": "charging_init"}))
            soc = from_soc
            while soc <= to_soc:
                await ws.send(json.dumps({
                    "type": "charging_update",
                    "batteryPercentage": round(soc, 2),
                    "batteryTemperature": round(temp, 1),
                }))
                logger.info("Sent charging_update soc=%.2f temp=%.1f", soc, temp)
                soc += step
                temp += 0.2
                await asyncio.sleep(delay_s)
            await ws.send(json.dumps({"type": "charging_complete"}))
            await asyncio.sleep(delay_s)
        finally:
            reader.cancel()


def main() -> None:
    port = int(get_setting("service.port", 5000))
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--uri", default=f"ws://127.0.0.1:{port}/ws")
    parser.add_argument("--from-soc", type=float, default=40.0)
    parser.add_argument("--to-soc", type=float, default=80.0)
    parser.add_argument("--step", type=float, default=5.0)
    parser.add_argument("--temp", type=float, default=22.0)
    parser.add_argument("--delay", type=float, default=1.0)
    args = parser.parse_args()
    asyncio.run(run(args.uri, args.from_soc, args.to_soc, args.step, args.temp, args.delay))


if __name__ == "__main__":
    main()
