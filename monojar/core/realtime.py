from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from monojar.schemas.donations import Donation

"""
Core Realtime (Broadcaster WebSocket).

Rôle (fonctionnel) :
- Maintient l’ensemble des abonnés WebSocket ouverts (overlay, page donations…).
- Diffuse chaque nouvelle donation à tous les abonnés présents au moment du broadcast :
  {"type": "new_donation", "data": <Donation>}

Notes :
- Best-effort : aucun retry, aucune erreur remontée à l’appelant.
- Un abonné mort (envoi en échec) est retiré silencieusement du pool.
- Verrou asyncio : protège l’accès concurrent au set de connexions.
"""

logger = logging.getLogger("realtime")

NEW_DONATION = "new_donation"


def donation_envelope(donation: Donation) -> Dict[str, Any]:
    """Enveloppe JSON-compatible (alias camelCase, Decimal -> nombre)."""
    return {"type": NEW_DONATION, "data": jsonable_encoder(donation)}


class Broadcaster:
    """Pool de connexions WebSocket + fan-out JSON."""

    def __init__(self) -> None:
        self._connections: Set[WebSocket] = set()
        self._lock = asyncio.Lock()

    def count(self) -> int:
        return len(self._connections)

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        async with self._lock:
            self._connections.add(ws)
        logger.info("client_connected", extra={"action": "client_connected", "client_count": self.count()})

    async def disconnect(self, ws: WebSocket) -> None:
        async with self._lock:
            self._connections.discard(ws)
        logger.info("client_disconnected", extra={"action": "client_disconnected", "client_count": self.count()})

    async def broadcast_json(self, payload: Dict[str, Any]) -> int:
        """Diffuse un payload à toutes les connexions ; retourne le nombre de livraisons réussies."""
        async with self._lock:
            conns = list(self._connections)

        if not conns:
            return 0

        dead: list[WebSocket] = []
        for ws in conns:
            try:
                await ws.send_json(payload)
            except Exception:
                dead.append(ws)

        if dead:
            async with self._lock:
                for ws in dead:
                    self._connections.discard(ws)
            logger.info(
                "dead_connections_purged",
                extra={"action": "purge", "count": len(dead), "client_count": self.count()},
            )

        return len(conns) - len(dead)

    async def broadcast_donation(self, donation: Donation) -> int:
        return await self.broadcast_json(donation_envelope(donation))

    async def close_all(self) -> None:
        """Ferme toutes les connexions (arrêt du serveur)."""
        async with self._lock:
            conns = list(self._connections)
            self._connections.clear()

        for ws in conns:
            try:
                await ws.close()
            except Exception:
                pass
