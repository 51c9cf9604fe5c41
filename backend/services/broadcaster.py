"""
Broadcaster.

Fans out dashboard updates to every connected WebSocket subscriber. A tick
loop pushes opportunities, stats, network health and the wallet address;
trade executions are pushed as they happen. Delivery is best effort: a
subscriber that is not connected, or whose send fails, is dropped.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional, Set

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from config import settings
from interfaces import ChainExecutionService
from models.trade import Trade
from services.network_monitor import NetworkStatusStore
from services.opportunity_store import OpportunityStore
from services.trade_ledger import TradeLedger
from utils.logger import get_logger

logger = get_logger("broadcaster")


class Broadcaster:
    """Manages WebSocket subscribers and the periodic snapshot push."""

    def __init__(
        self,
        store: OpportunityStore,
        ledger: TradeLedger,
        statuses: NetworkStatusStore,
        chain: ChainExecutionService,
        interval_seconds: Optional[float] = None,
        recent_trades: Optional[int] = None,
    ):
        self._store = store
        self._ledger = ledger
        self._statuses = statuses
        self._chain = chain
        self._interval = interval_seconds or settings.BROADCAST_INTERVAL_SECONDS
        self._recent_trades = recent_trades or settings.RECENT_TRADES_ON_CONNECT
        self.active_connections: Set[WebSocket] = set()
        self._running = False
        self._task: Optional[asyncio.Task] = None

    # -- subscribers ---------------------------------------------------

    async def connect(self, websocket: WebSocket) -> bool:
        """Accept and send the initial snapshot before joining the subscriber set."""
        await websocket.accept()
        if not await self.send_initial(websocket):
            return False
        self.active_connections.add(websocket)
        logger.debug("Subscriber connected", subscribers=len(self.active_connections))
        return True

    def disconnect(self, websocket: WebSocket):
        self.active_connections.discard(websocket)

    async def publish(self, kind: str, payload: Any) -> int:
        """Send ``{"type": kind, "data": payload}`` to every connected subscriber.

        Returns the number of subscribers the message reached.
        """
        if not self.active_connections:
            return 0

        message_json = json.dumps({"type": kind, "data": payload}, default=str)
        dropped = set()
        delivered = 0

        for connection in list(self.active_connections):
            if connection.client_state != WebSocketState.CONNECTED:
                dropped.add(connection)
                continue
            try:
                await connection.send_text(message_json)
                delivered += 1
            except Exception:
                dropped.add(connection)

        if dropped:
            self.active_connections -= dropped
            logger.debug("Dropped subscribers", count=len(dropped))
        return delivered

    async def send_personal(self, websocket: WebSocket, kind: str, payload: Any = None) -> bool:
        message: dict[str, Any] = {"type": kind}
        if payload is not None:
            message["data"] = payload
        try:
            await websocket.send_text(json.dumps(message, default=str))
        except Exception:
            self.disconnect(websocket)
            return False
        return True

    # -- snapshots -----------------------------------------------------

    def opportunities_payload(self) -> list[dict]:
        return [o.to_wire() for o in self._store.list_active()]

    def stats_payload(self) -> dict:
        return self._ledger.stats().to_wire()

    def networks_payload(self) -> list[dict]:
        return [s.to_wire() for s in self._statuses.list()]

    def wallet_payload(self) -> dict:
        return {"walletAddress": self._chain.wallet_address()}

    def initial_snapshot(self) -> dict:
        return {
            "opportunities": self.opportunities_payload(),
            "recentTrades": [t.to_wire() for t in self._ledger.list(self._recent_trades)],
            "stats": self.stats_payload(),
            "networks": self.networks_payload(),
            "walletAddress": self._chain.wallet_address(),
        }

    async def send_initial(self, websocket: WebSocket) -> bool:
        return await self.send_personal(websocket, "initial", self.initial_snapshot())

    async def publish_trade_executed(self, trade: Trade) -> None:
        await self.publish(
            "tradeExecuted",
            {
                "opportunityId": trade.opportunity_id,
                "tradeId": trade.id,
                "txHash": trade.tx_hash,
                "trade": trade.to_wire(),
            },
        )

    async def tick(self) -> None:
        """Push one round of periodic updates."""
        if not self.active_connections:
            return
        await self.publish("opportunities", self.opportunities_payload())
        await self.publish("stats", self.stats_payload())
        await self.publish("networks", self.networks_payload())
        await self.publish("wallet", self.wallet_payload())

    # -- lifecycle -----------------------------------------------------

    async def start(self) -> None:
        """Start background tick loop (idempotent)."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop(), name="broadcaster")
        logger.info("Broadcaster started", interval_seconds=self._interval)

    async def stop(self) -> None:
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Broadcaster stopped")

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Error broadcasting updates", error=str(e))
            await asyncio.sleep(self._interval)
