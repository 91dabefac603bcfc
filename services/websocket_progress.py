"""WebSocket progress manager for real-time alignment run updates."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any, Dict, Set, Tuple
from uuid import uuid4

from fastapi import WebSocket

from shared.models import PipelineSnapshot
from shared.utils import setup_logging

logger = setup_logging("websocket-progress")


class WebSocketProgressManager:
    """Track WebSocket connections and run subscriptions."""

    def __init__(self) -> None:
        self._connections: Dict[str, WebSocket] = {}
        self._run_subscriptions: Dict[str, Set[str]] = defaultdict(set)
        self._client_runs: Dict[str, Set[str]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, client_id: str | None = None) -> str:
        """Accept WebSocket connection and register client."""
        client_key = client_id or uuid4().hex
        await websocket.accept()
        async with self._lock:
            self._connections[client_key] = websocket
        return client_key

    async def disconnect(self, client_id: str) -> None:
        """Remove client connection and subscriptions."""
        async with self._lock:
            websocket = self._connections.pop(client_id, None)
            for run_id in self._client_runs.pop(client_id, set()):
                self._drop_subscriber(run_id, client_id)
        if websocket:
            try:
                await websocket.close()
            except RuntimeError:
                # Already closed by the client.
                logger.debug("WebSocket for client %s was already closed", client_id)

    async def subscribe(self, client_id: str, run_id: str) -> None:
        """Subscribe a client to a specific run."""
        async with self._lock:
            if client_id not in self._connections:
                raise RuntimeError("Client not connected")
            self._run_subscriptions[run_id].add(client_id)
            self._client_runs[client_id].add(run_id)

    async def unsubscribe(self, client_id: str, run_id: str | None = None) -> None:
        """Unsubscribe a client from a run or from all runs."""
        async with self._lock:
            if client_id not in self._connections:
                return

            run_ids = list(self._client_runs.get(client_id, set())) if run_id is None else [run_id]
            for rid in run_ids:
                self._drop_subscriber(rid, client_id)

            if run_id is None:
                self._client_runs.pop(client_id, None)
            else:
                self._client_runs.get(client_id, set()).discard(run_id)

    def subscriber_count(self, run_id: str) -> int:
        return len(self._run_subscriptions.get(run_id, ()))

    async def send_progress_update(self, run_id: str, progress_data: dict[str, Any]) -> None:
        """Send progress update to all subscribers of a run."""
        recipients: list[Tuple[str, WebSocket]] = []
        async with self._lock:
            for client_id in list(self._run_subscriptions.get(run_id, set())):
                websocket = self._connections.get(client_id)
                if websocket:
                    recipients.append((client_id, websocket))

        for client_id, websocket in recipients:
            try:
                await websocket.send_json(progress_data)
            except Exception as exc:
                logger.info("Dropping client %s after failed send: %s", client_id, exc)
                await self.disconnect(client_id)

    async def publish_snapshot(self, snapshot: PipelineSnapshot) -> None:
        """Progress callback for the orchestrator: fan a snapshot out to subscribers."""
        await self.send_progress_update(snapshot.run_id, snapshot.model_dump(mode="json"))

    async def broadcast_system_message(self, message: dict[str, Any]) -> None:
        """Broadcast a message to all connected clients."""
        async with self._lock:
            recipients = list(self._connections.items())

        for client_id, websocket in recipients:
            try:
                await websocket.send_json(message)
            except Exception as exc:
                logger.info("Dropping client %s after failed broadcast: %s", client_id, exc)
                await self.disconnect(client_id)

    async def reset(self) -> None:
        """Clear all connections and subscriptions (primarily for tests)."""
        async with self._lock:
            connections = list(self._connections.items())
            self._connections.clear()
            self._run_subscriptions.clear()
            self._client_runs.clear()

        for client_id, websocket in connections:
            try:
                await websocket.close()
            except Exception as exc:
                logger.debug("Ignoring close failure for client %s: %s", client_id, exc)

    def _drop_subscriber(self, run_id: str, client_id: str) -> None:
        subscribers = self._run_subscriptions.get(run_id)
        if subscribers:
            subscribers.discard(client_id)
            if not subscribers:
                self._run_subscriptions.pop(run_id, None)


# Shared manager instance
websocket_manager = WebSocketProgressManager()
