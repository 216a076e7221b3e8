"""
Command-line client that plays a short scripted call against the bridge.

Usage:
    python client.py [--url ws://localhost:8000/ws] [--text "..."]
"""

import argparse
import asyncio
import logging

from voice_bridge.services.websocket_client import BridgeClient

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("bridge_client")

DEFAULT_SCRIPT = [
    "Hi there!",
    "I'd like to book an appointment for next Tuesday.",
    "What are your opening hours?",
]


async def run_call(url: str, lines, call_id=None) -> None:
    client = BridgeClient(url, call_id=call_id)
    if not await client.connect():
        return
    try:
        await client.start_call({"source": "client.py"})
        for line in lines:
            logger.info(f"Caller: {line}")
            await client.send_speech(line)
            reply = await client.receive_reply()
            if reply is None:
                break
            if reply.get("event") == "assistant_text":
                logger.info(f"Receptionist: {reply.get('text')}")
            else:
                logger.info(f"Receptionist replied with {len(reply.get('audio', ''))} chars of audio")
        await client.end_call()
    finally:
        await client.close()


def parse_args():
    parser = argparse.ArgumentParser(description="Play a scripted call against the voice bridge")
    parser.add_argument("--url", default="ws://localhost:8000/ws", help="Bridge WebSocket URL")
    parser.add_argument("--call-id", default=None, help="Provider call id to send as callId")
    parser.add_argument("--text", action="append", help="Caller line (repeatable)")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    asyncio.run(run_call(args.url, args.text or DEFAULT_SCRIPT, call_id=args.call_id))
