# Doubles de test et constructeurs partagés
from typing import Any, Dict, List, Optional

from monojar.core.errors import StoreError
from monojar.schemas.donations import Donation


def make_donation(
    donation_id: str,
    name: str = "Ivan",
    amount: Any = 100,
    timestamp: int = 1_700_000_000_000,
    **extra: Any,
) -> Donation:
    return Donation(id=donation_id, name=name, amount=amount, timestamp=timestamp, **extra)


def sqlite_url(path) -> str:
    return f"sqlite+aiosqlite:///{path}"


class FakeBroadcaster:
    """Enregistre les donations diffusées au lieu de les envoyer."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: List[Donation] = []
        self.fail = fail

    async def broadcast_donation(self, donation: Donation) -> int:
        if self.fail:
            raise RuntimeError("socket exploded")
        self.sent.append(donation)
        return 1


class FailingStore:
    """Store dont toutes les opérations échouent (disque plein, base verrouillée…)."""

    def __init__(self) -> None:
        self.calls = 0

    async def upsert_donation(self, donation: Donation) -> None:
        self.calls += 1
        raise StoreError("upsert_donation", OSError("disk full"))

    async def aggregate_stats(self):
        raise StoreError("aggregate_stats")

    async def top_donors(self, limit: int):
        raise StoreError("top_donors")

    async def list_recent(self, limit: int, offset: int = 0):
        raise StoreError("list_recent")


class FakeMonobank:
    """Double de MonobankClient : réponses programmées, appels comptés."""

    def __init__(
        self,
        client_info: Optional[Dict[str, Any]] = None,
        statement: Optional[List[Dict[str, Any]]] = None,
        enabled: bool = True,
        statement_error: Optional[Exception] = None,
        client_info_error: Optional[Exception] = None,
    ) -> None:
        self.client_info = client_info if client_info is not None else {"jars": []}
        self.statement = statement or []
        self.enabled = enabled
        self.statement_error = statement_error
        self.client_info_error = client_info_error
        self.client_info_calls = 0
        self.statement_calls: List[tuple] = []

    async def get_client_info(self) -> Dict[str, Any]:
        self.client_info_calls += 1
        if self.client_info_error is not None:
            raise self.client_info_error
        return self.client_info

    async def get_statement(self, account_id: str, from_ts: int, to_ts: int) -> List[Dict[str, Any]]:
        self.statement_calls.append((account_id, from_ts, to_ts))
        if self.statement_error is not None:
            raise self.statement_error
        return self.statement


JAR = {"id": "jar-1", "title": "На фотоапарат", "balance": 125050, "goal": 500000, "sendId": "abc"}


