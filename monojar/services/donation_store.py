from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncIterator, List

from sqlalchemy import desc, distinct, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from monojar.core.errors import StoreError
from monojar.db.base import Base
from monojar.db.session import create_engine, create_session_factory
from monojar.models.donation import DonationRow
from monojar.schemas.donations import AggregateStats, Donation, DonationOut, TopDonor

"""
Donation Store.

Rôle (fonctionnel) :
- Persistance durable des donations (table donations) + requêtes d’agrégats.
- Toute erreur d’E/S (SQLAlchemy, système de fichiers) est convertie en StoreError,
  que les appelants traitent comme récupérable (fallback mémoire).

Opérations :
- init()              : crée le schéma si absent (idempotent)
- upsert_donation(d)  : insert ou remplacement sur id existant
- list_recent(...)    : donations par timestamp décroissant
- aggregate_stats()   : total, nombre, donateurs distincts, dernière donation
- top_donors(limit)   : cumul par nom, décroissant
- load_all(limit)     : rechargement au démarrage (shadow state)
- close()             : attend l’écriture en cours puis libère l’engine

Concurrence :
- Les écritures sont sérialisées (asyncio.Lock) ; les lectures ne prennent pas le verrou.
- Égalité de total dans top_donors : le donateur dont la première donation est la plus
  ancienne passe devant, puis ordre alphabétique.
"""

log = logging.getLogger("monojar.db")


def _to_donation(row: DonationRow) -> Donation:
    return Donation(
        id=row.id,
        name=row.name,
        amount=row.amount,
        description=row.description,
        comment=row.comment,
        counter_name=row.counter_name,
        timestamp=row.timestamp,
    )


class DonationStore:
    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory = create_session_factory(engine)
        self._write_lock = asyncio.Lock()
        self._closed = False

    @classmethod
    def from_url(cls, url: str) -> "DonationStore":
        return cls(create_engine(url))

    @asynccontextmanager
    async def _guard(self, action: str) -> AsyncIterator[None]:
        """Convertit les erreurs d’E/S en StoreError(action)."""
        if self._closed:
            raise StoreError(action, RuntimeError("store is closed"))
        try:
            yield
        except (SQLAlchemyError, OSError) as exc:
            raise StoreError(action, exc) from exc

    async def init(self) -> None:
        async with self._guard("init"):
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        log.debug("database_initialized", extra={"action": "database_initialized"})

    async def upsert_donation(self, donation: Donation) -> None:
        async with self._write_lock:
            async with self._guard("upsert_donation"):
                async with self.session_factory() as session:
                    existing = await session.get(DonationRow, donation.id)
                    if existing is None:
                        existing = DonationRow(id=donation.id)
                        session.add(existing)

                    existing.name = donation.name
                    existing.amount = donation.amount
                    existing.description = donation.description
                    existing.comment = donation.comment
                    existing.counter_name = donation.counter_name
                    existing.timestamp = donation.timestamp

                    await session.commit()

        log.debug(
            "donation_saved",
            extra={"action": "donation_saved", "donation_id": donation.id, "amount": donation.amount},
        )

    async def list_recent(self, limit: int, offset: int = 0) -> List[Donation]:
        async with self._guard("list_recent"):
            async with self.session_factory() as session:
                stmt = (
                    select(DonationRow)
                    .order_by(desc(DonationRow.timestamp))
                    .offset(offset)
                    .limit(limit)
                )
                rows = (await session.execute(stmt)).scalars().all()
        return [_to_donation(row) for row in rows]

    async def aggregate_stats(self) -> AggregateStats:
        async with self._guard("aggregate_stats"):
            async with self.session_factory() as session:
                totals = (
                    await session.execute(
                        select(
                            func.coalesce(func.sum(DonationRow.amount), 0),
                            func.count(DonationRow.id),
                            func.count(distinct(DonationRow.name)),
                        )
                    )
                ).one()
                latest = (
                    (await session.execute(select(DonationRow).order_by(desc(DonationRow.timestamp)).limit(1)))
                    .scalars()
                    .first()
                )

        total_amount, total_count, unique_donors = totals
        return AggregateStats(
            total_amount=Decimal(str(total_amount or 0)),
            total_count=int(total_count or 0),
            unique_donors=int(unique_donors or 0),
            latest_donation=DonationOut.from_donation(_to_donation(latest)) if latest else None,
        )

    async def top_donors(self, limit: int) -> List[TopDonor]:
        total = func.sum(DonationRow.amount).label("total")
        first_seen = func.min(DonationRow.timestamp).label("first_seen")

        async with self._guard("top_donors"):
            async with self.session_factory() as session:
                stmt = (
                    select(DonationRow.name, total, first_seen)
                    .group_by(DonationRow.name)
                    .order_by(desc(total), first_seen, DonationRow.name)
                    .limit(limit)
                )
                rows = (await session.execute(stmt)).all()

        return [TopDonor(name=name, amount=Decimal(str(amount))) for name, amount, _ in rows]

    async def load_all(self, limit: int = 1000) -> List[Donation]:
        return await self.list_recent(limit)

    async def close(self) -> None:
        # Attend la fin de l’écriture en cours avant de fermer
        async with self._write_lock:
            if self._closed:
                return
            self._closed = True
            await self.engine.dispose()
        log.debug("database_closed", extra={"action": "database_closed"})
