from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from monojar.db.base import Base

"""
Model DonationRow.

Rôle (fonctionnel) :
- Table durable des donations (une ligne par transaction Monobank entrante).
- Clé naturelle : id de la transaction externe (upsert = remplacement de la ligne).

Champs :
- amount : Numeric(12, 2), unités monétaires (UAH), déjà converti depuis les kopiyky.
- timestamp : millisecondes depuis epoch (heure de la transaction côté banque).
- created_at : date d’insertion locale (technique).

Index :
- timestamp (listes récentes, dernière donation), name (agrégats par donateur).
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DonationRow(Base):
    __tablename__ = "donations"

    # Id transaction Monobank (ou "test_<ms>" pour les démos seedées)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Textes libres (vides plutôt que NULL)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")
    counter_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
