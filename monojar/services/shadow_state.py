from __future__ import annotations

import asyncio
from collections import Counter
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from monojar.schemas.donations import AggregateStats, Donation, DonationOut, TopDonor

"""
Shadow State.

Rôle (fonctionnel) :
- Copie mémoire (non durable) des donations et des agrégats, maintenue par l’ingestion.
- Sert de source de repli quand le store est indisponible (stats, top, récentes).
- Rechargée au démarrage depuis le store (load) ; peut diverger du store ensuite
  (panne du store puis reprise sans rechargement).

Invariants :
- Indexée par id : ré-ingérer un id remplace l’entrée et ajuste les totaux (pas de double compte).
- Écritures sous `lock` (un seul écrivain à la fois : DonationIngestion).
"""


class ShadowState:
    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self._donations: Dict[str, Donation] = {}
        self._names: Counter[str] = Counter()
        self.total_amount = Decimal(0)

    def __len__(self) -> int:
        return len(self._donations)

    def __contains__(self, donation_id: object) -> bool:
        return donation_id in self._donations

    def add(self, donation: Donation) -> bool:
        """Ajoute (ou remplace) une donation ; retourne True si l’id existait déjà."""
        previous = self._donations.pop(donation.id, None)
        if previous is not None:
            self.total_amount -= previous.amount
            self._names[previous.name] -= 1
            if self._names[previous.name] <= 0:
                del self._names[previous.name]

        self._donations[donation.id] = donation
        self.total_amount += donation.amount
        self._names[donation.name] += 1
        return previous is not None

    def load(self, donations: Iterable[Donation]) -> int:
        """Recharge depuis le store (ordre indifférent)."""
        loaded = 0
        for donation in donations:
            self.add(donation)
            loaded += 1
        return loaded

    def _by_time_desc(self) -> List[Donation]:
        # sorted() est stable : à timestamp égal, la plus récemment ingérée d’abord
        return sorted(reversed(list(self._donations.values())), key=lambda d: d.timestamp, reverse=True)

    def latest(self) -> Optional[Donation]:
        if not self._donations:
            return None
        return max(self._donations.values(), key=lambda d: d.timestamp)

    def stats(self) -> AggregateStats:
        latest = self.latest()
        return AggregateStats(
            total_amount=self.total_amount,
            total_count=len(self._donations),
            unique_donors=len(self._names),
            latest_donation=DonationOut.from_donation(latest) if latest else None,
        )

    def top(self, limit: int) -> List[TopDonor]:
        totals: Dict[str, Decimal] = {}
        first_seen: Dict[str, int] = {}
        for donation in self._donations.values():
            totals[donation.name] = totals.get(donation.name, Decimal(0)) + donation.amount
            first_seen[donation.name] = min(first_seen.get(donation.name, donation.timestamp), donation.timestamp)

        # Même ordre que le store : total desc, première donation, nom
        ranked = sorted(totals, key=lambda name: (-totals[name], first_seen[name], name))
        return [TopDonor(name=name, amount=totals[name]) for name in ranked[:limit]]

    def recent(self, limit: int) -> List[Donation]:
        return self._by_time_desc()[:limit]
