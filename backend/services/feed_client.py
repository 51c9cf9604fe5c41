"""
Dashboard feed subscriber.

Connects to the ``/ws`` endpoint, hands every decoded message to a
callback, and reconnects after a fixed delay whenever the connection drops.
There is no retry limit: the client keeps trying until ``stop()``.
"""

from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import websockets

from config import settings
from utils.logger import get_logger, setup_logging

logger = get_logger("feed_client")

MessageCallback = Callable[[dict], Awaitable[None]]


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


@dataclass
class FeedStats:
    messages_received: int = 0
    parse_errors: int = 0
    reconnections: int = 0


class FeedClient:
    def __init__(
        self,
        url: str,
        on_message: MessageCallback,
        reconnect_delay: Optional[float] = None,
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self._url = url
        self._on_message = on_message
        self._reconnect_delay = (
            settings.WS_RECONNECT_DELAY_SECONDS if reconnect_delay is None else reconnect_delay
        )
        self._connect = connect
        self._ws: Any = None
        self._state = ConnectionState.DISCONNECTED
        self._run_task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self.stats = FeedStats()

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def start(self) -> None:
        """Start the client in the background.  Idempotent."""
        if self._run_task is not None and not self._run_task.done():
            return
        self._stop_event.clear()
        self._run_task = asyncio.create_task(self._run_loop(), name="feed-client")
        logger.info("Feed client started", url=self._url)

    async def stop(self) -> None:
        self._stop_event.set()
        self._state = ConnectionState.CLOSED
        if self._ws is not None:
            try:
                await self._ws.close()
            except Exception as exc:
                logger.debug("Feed client close failed", error=repr(exc))
        if self._run_task and not self._run_task.done():
            self._run_task.cancel()
            try:
                await self._run_task
            except asyncio.CancelledError:
                pass
        self._run_task = None
        self._ws = None
        logger.info("Feed client stopped")

    async def send(self, message: dict) -> None:
        if self._ws is None:
            return
        await self._ws.send(json.dumps(message))

    async def _run_loop(self) -> None:
        """Outer loop: connect, listen, and reconnect after a fixed delay."""
        attempt = 0
        while not self._stop_event.is_set():
            self._state = (
                ConnectionState.CONNECTING if attempt == 0 else ConnectionState.RECONNECTING
            )
            try:
                await self._connect_and_listen()
                reason = "closed by server"
            except asyncio.CancelledError:
                break
            except Exception as exc:
                reason = repr(exc)

            if self._stop_event.is_set():
                break
            attempt += 1
            self.stats.reconnections += 1
            self._state = ConnectionState.DISCONNECTED
            logger.warning(
                "Feed disconnected, reconnecting",
                reason=reason,
                delay_seconds=self._reconnect_delay,
                attempt=attempt,
            )
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._reconnect_delay)
                break
            except asyncio.TimeoutError:
                pass

        self._state = ConnectionState.CLOSED

    async def _connect_and_listen(self) -> None:
        async with self._connect(self._url, close_timeout=5) as ws:
            self._ws = ws
            self._state = ConnectionState.CONNECTED
            logger.info("Feed connected", url=self._url)
            try:
                async for raw in ws:
                    if self._stop_event.is_set():
                        break
                    self.stats.messages_received += 1
                    try:
                        message = json.loads(raw)
                    except ValueError as exc:
                        self.stats.parse_errors += 1
                        logger.debug("Feed parse error", error=repr(exc))
                        continue
                    try:
                        await self._on_message(message)
                    except Exception as exc:
                        logger.warning("Feed callback failed", error=repr(exc))
            finally:
                self._ws = None


# -- feed tail entry point -----------------------------------------------


def summarize_message(message: dict) -> dict[str, Any]:
    """Compact log fields for one dashboard message."""
    kind = message.get("type")
    data = message.get("data")
    fields: dict[str, Any] = {"type": kind}
    if kind == "initial" and isinstance(data, dict):
        fields["opportunities"] = len(data.get("opportunities") or [])
        fields["recent_trades"] = len(data.get("recentTrades") or [])
        fields["wallet_address"] = data.get("walletAddress")
    elif kind == "opportunities" and isinstance(data, list):
        fields["count"] = len(data)
        if data:
            best = max(data, key=lambda o: o.get("profitPercent", 0))
            fields["best_pair"] = f"{best.get('symbolA')}/{best.get('symbolB')}"
            fields["best_network"] = best.get("network")
            fields["best_profit_percent"] = best.get("profitPercent")
    elif kind == "stats" and isinstance(data, dict):
        fields.update(
            total_profit=data.get("totalProfit"),
            total_trades=data.get("totalTrades"),
            success_rate=data.get("successRate"),
        )
    elif kind == "networks" and isinstance(data, list):
        fields["active"] = sum(1 for n in data if n.get("isActive"))
        fields["total"] = len(data)
    elif kind == "tradeExecuted" and isinstance(data, dict):
        fields.update(
            opportunity_id=data.get("opportunityId"),
            trade_id=data.get("tradeId"),
            tx_hash=data.get("txHash"),
        )
    elif kind == "wallet" and isinstance(data, dict):
        fields["wallet_address"] = data.get("walletAddress")
    return fields


async def log_message(message: dict) -> None:
    logger.info("Feed message", **summarize_message(message))


async def tail(
    url: str,
    reconnect_delay: Optional[float] = None,
    connect: Callable[..., Any] = websockets.connect,
) -> None:
    """Log every feed message until cancelled."""
    client = FeedClient(url, log_message, reconnect_delay=reconnect_delay, connect=connect)
    await client.start()
    try:
        await asyncio.Event().wait()
    finally:
        await client.stop()


def main() -> None:
    setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    url = sys.argv[1] if len(sys.argv) > 1 else settings.FEED_URL
    try:
        asyncio.run(tail(url))
    except KeyboardInterrupt:
        logger.info("Feed tail stopped", url=url)


if __name__ == "__main__":
    main()
