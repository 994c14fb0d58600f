from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, TypeVar

from monojar.core.errors import StoreError
from monojar.schemas.donations import AggregateStats, DonationOut, TopDonor
from monojar.services.donation_store import DonationStore
from monojar.services.shadow_state import ShadowState

"""
Query Service (lecture).

Rôle (fonctionnel) :
- Sert les lectures de l’API : stats, top donateurs, donations récentes, dernière donation.
- Interroge d’abord le store ; en cas de StoreError, calcule l’équivalent depuis la mémoire
  (shadow state), éventuellement incomplète par rapport au store.

Principe :
- Chaque appel store est enveloppé dans un StoreResult (ok / data / error) ;
  le service choisit la source selon `ok`.
- Les lectures ne lèvent jamais à cause du store (disponibilité > cohérence stricte).
"""

log = logging.getLogger("monojar.db")

T = TypeVar("T")


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    ok: bool
    data: Optional[T] = None
    error: Optional[StoreError] = None


async def try_store(action: Callable[[], Awaitable[T]]) -> StoreResult[T]:
    try:
        return StoreResult(ok=True, data=await action())
    except StoreError as exc:
        return StoreResult(ok=False, error=exc)


class DonationQueryService:
    def __init__(self, store: DonationStore, shadow: ShadowState) -> None:
        self.store = store
        self.shadow = shadow

    def _fallback(self, name: str, result: StoreResult[Any]) -> None:
        log.error(f"{name}_failed", extra={"action": f"{name}_failed", "error": str(result.error)})

    async def get_stats(self) -> AggregateStats:
        result = await try_store(self.store.aggregate_stats)
        if result.ok:
            return result.data
        self._fallback("get_stats", result)
        return self.shadow.stats()

    async def get_top(self, limit: int = 10) -> List[TopDonor]:
        result = await try_store(lambda: self.store.top_donors(limit))
        if result.ok:
            return result.data
        self._fallback("get_top_donors", result)
        return self.shadow.top(limit)

    async def get_recent(self, limit: int = 10) -> List[DonationOut]:
        result = await try_store(lambda: self.store.list_recent(limit))
        if result.ok:
            donations = result.data
        else:
            self._fallback("get_recent_donations", result)
            donations = self.shadow.recent(limit)
        return [DonationOut.from_donation(d) for d in donations]

    async def get_latest(self) -> Optional[DonationOut]:
        recent = await self.get_recent(1)
        return recent[0] if recent else None
