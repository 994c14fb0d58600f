from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from monojar.schemas.donations import Money

"""
Schemas Monobank (Pydantic).

Rôle (fonctionnel) :
- Modélise le sous-ensemble utile des réponses de l’API personnelle Monobank :
  - client-info : liste des banques (jars) avec solde / objectif en kopiyky
  - statement   : liste de transactions brutes d’un compte ou d’une banque
- Sortie API JarOut : banque convertie en unités monétaires + progression.

Notes :
- extra="ignore" : l’API renvoie bien plus de champs, on ne garde que ceux utilisés.
"""


class Jar(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    title: str = ""
    description: Optional[str] = None
    balance: int = 0  # kopiyky
    goal: Optional[int] = None  # kopiyky
    send_id: Optional[str] = Field(default=None, alias="sendId")


class ClientInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    jars: List[Jar] = Field(default_factory=list)

    def find_jar(self, *, jar_id: str = "", title: str = "") -> Optional[Jar]:
        """Sélectionne la banque cible : par id si fourni, sinon par titre exact."""
        for jar in self.jars:
            if jar_id and jar.id == jar_id:
                return jar
            if not jar_id and jar.title == title:
                return jar
        return None


class StatementItem(BaseModel):
    """Transaction brute du relevé (amount en kopiyky, time en secondes)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    time: int
    amount: int
    description: Optional[str] = None
    comment: Optional[str] = None
    counter_name: Optional[str] = Field(default=None, alias="counterName")


class JarOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    description: Optional[str] = None
    balance: Money
    goal: Money
    progress: str  # pourcentage, 1 décimale (ex: "42.5")
    send_id: Optional[str] = Field(default=None, alias="sendId")

    @classmethod
    def from_jar(cls, jar: Jar) -> "JarOut":
        balance = Decimal(jar.balance) / 100
        goal = Decimal(jar.goal or 0) / 100
        progress = (balance / goal) * 100 if goal > 0 else Decimal(0)
        return cls(
            id=jar.id,
            title=jar.title,
            description=jar.description,
            balance=balance,
            goal=goal,
            progress=f"{progress:.1f}",
            send_id=jar.send_id,
        )
