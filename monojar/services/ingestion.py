from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from monojar.core.errors import StoreError
from monojar.schemas.donations import Donation
from monojar.services.shadow_state import ShadowState

"""
Donation Ingestion.

Rôle (fonctionnel) :
- Point d’entrée unique pour toute donation (poller, seed, déclenchement manuel).
- ingest(d) :
  1) shadow state mis à jour (sous verrou, un seul écrivain)
  2) persistance (upsert) et 3) broadcast WebSocket, en parallèle
  4) log structuré “donation_received”
- ingest_test(d) : broadcast + log “donation_test” uniquement.

Garanties :
- ingest() ne lève jamais : un échec du store est loggé, la mémoire reste la source de repli.
- Le broadcast n’attend jamais le store.
- Une donation de test ne touche ni le store ni les statistiques.
"""

log = logging.getLogger("monojar.donations")
db_log = logging.getLogger("monojar.db")

CURRENCY = "UAH"


class DonationWriter(Protocol):
    async def upsert_donation(self, donation: Donation) -> None: ...


class DonationBroadcaster(Protocol):
    async def broadcast_donation(self, donation: Donation) -> int: ...


class DonationIngestion:
    def __init__(self, shadow: ShadowState, store: DonationWriter, broadcaster: DonationBroadcaster) -> None:
        self.shadow = shadow
        self.store = store
        self.broadcaster = broadcaster

    async def _persist(self, donation: Donation) -> bool:
        try:
            await self.store.upsert_donation(donation)
            return True
        except StoreError as exc:
            db_log.error(
                "donation_save_failed",
                extra={"action": "donation_save_failed", "donation_id": donation.id, "error": str(exc)},
            )
            return False

    async def _broadcast(self, donation: Donation) -> int:
        try:
            return await self.broadcaster.broadcast_donation(donation)
        except Exception:
            log.exception("broadcast_failed", extra={"action": "broadcast_failed", "donation_id": donation.id})
            return 0

    def _log(self, donation: Donation, action: str) -> None:
        log.info(
            f"donation_{action}",
            extra={
                "action": action,
                "donation_id": donation.id,
                "donor_name": donation.name,
                "amount": donation.amount,
                "currency": CURRENCY,
            },
        )

    async def ingest(self, donation: Donation) -> None:
        async with self.shadow.lock:
            self.shadow.add(donation)

        await asyncio.gather(self._persist(donation), self._broadcast(donation))
        self._log(donation, "received")

    async def ingest_test(self, donation: Donation) -> None:
        await self._broadcast(donation)
        self._log(donation, "test")
