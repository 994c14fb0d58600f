from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator

"""
Schemas Donations (Pydantic).

Rôle (fonctionnel) :
- Donation : enregistrement canonique d’un paiement entrant (clé naturelle = id Monobank).
- DonationOut : Donation + champ d’affichage `time` (format uk-UA) pour les lectures.
- AggregateStats / TopDonor : résultats agrégés (store ou mémoire).

Notes :
- Attributs Python en snake_case, alias camelCase sur le fil (counterName, totalAmount…),
  pour rester compatible avec l’overlay existant.
- amount est un Decimal (unités monétaires, pas de kopiyky), émis en nombre JSON
  (entier si la valeur est ronde, flottant sinon) : type Money.
"""

# Format “uk-UA” utilisé par l’overlay : 21.12.2025, 18:48:00
DISPLAY_TIME_FORMAT = "%d.%m.%Y, %H:%M:%S"


def format_display_time(timestamp_ms: int) -> str:
    """Timestamp (ms) -> date lisible, heure locale du serveur."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime(DISPLAY_TIME_FORMAT)


def money_to_number(value: Decimal) -> Union[int, float]:
    """Decimal -> nombre JSON (100.00 -> 100, 50.50 -> 50.5)."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


Money = Annotated[Decimal, PlainSerializer(money_to_number, return_type=Union[int, float], when_used="json")]


class Donation(BaseModel):
    """Donation canonique (immutable une fois construite)."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    amount: Money
    description: str = ""
    comment: str = ""
    counter_name: str = Field(default="", alias="counterName")
    timestamp: int  # ms depuis epoch

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_to_decimal(cls, v: Any) -> Any:
        """Normalise amount vers Decimal (int/float/str acceptés)."""
        if isinstance(v, Decimal):
            return v
        if isinstance(v, int):
            return Decimal(v)
        if isinstance(v, float):
            return Decimal(str(v))
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return v
            try:
                return Decimal(s)
            except InvalidOperation:
                return v
        return v

    @field_validator("description", "comment", "counter_name", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class DonationOut(Donation):
    """Donation telle qu’exposée en lecture (avec `time` pour l’affichage)."""

    time: str

    @classmethod
    def from_donation(cls, donation: Donation) -> "DonationOut":
        return cls(
            **donation.model_dump(),
            time=format_display_time(donation.timestamp),
        )


class TopDonor(BaseModel):
    """Donateur + total cumulé (clé `amount` sur le fil)."""

    name: str
    amount: Money


class AggregateStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_amount: Money = Field(default=Decimal(0), alias="totalAmount")
    total_count: int = Field(default=0, alias="totalCount")
    unique_donors: int = Field(default=0, alias="uniqueDonors")
    latest_donation: Optional[DonationOut] = Field(default=None, alias="latestDonation")
