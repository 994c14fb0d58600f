# Ingestion : mémoire + persistance + broadcast, tolérance aux pannes
import asyncio
from decimal import Decimal

import pytest

from monojar.services.ingestion import DonationIngestion
from monojar.services.shadow_state import ShadowState
from tests.helpers import FailingStore, FakeBroadcaster, make_donation


@pytest.mark.asyncio
async def test_ingest_updates_memory_store_and_subscribers(store, broadcaster):
    shadow = ShadowState()
    ingestion = DonationIngestion(shadow, store, broadcaster)

    await ingestion.ingest(make_donation("tx1", name="Ivan", amount=100))

    assert "tx1" in shadow
    assert shadow.total_amount == Decimal(100)
    assert [d.id for d in broadcaster.sent] == ["tx1"]
    assert (await store.aggregate_stats()).total_count == 1


@pytest.mark.asyncio
async def test_store_failure_still_broadcasts(broadcaster):
    """Store en panne : la donation est diffusée et gardée en mémoire, sans exception."""
    shadow = ShadowState()
    failing = FailingStore()
    ingestion = DonationIngestion(shadow, failing, broadcaster)

    await ingestion.ingest(make_donation("tx1", amount=200))

    assert failing.calls == 1
    assert [d.id for d in broadcaster.sent] == ["tx1"]
    assert shadow.stats().total_amount == Decimal(200)


@pytest.mark.asyncio
async def test_broadcast_failure_still_persists(store):
    shadow = ShadowState()
    ingestion = DonationIngestion(shadow, store, FakeBroadcaster(fail=True))

    await ingestion.ingest(make_donation("tx1"))

    assert len(await store.list_recent(10)) == 1
    assert len(shadow) == 1


@pytest.mark.asyncio
async def test_duplicate_id_counts_once(store, broadcaster):
    shadow = ShadowState()
    ingestion = DonationIngestion(shadow, store, broadcaster)

    await ingestion.ingest(make_donation("tx1", amount=100))
    await ingestion.ingest(make_donation("tx1", amount=100))

    assert shadow.stats().total_count == 1
    assert shadow.total_amount == Decimal(100)
    assert (await store.aggregate_stats()).total_count == 1


@pytest.mark.asyncio
async def test_ingest_test_only_broadcasts(store, broadcaster):
    """Donation de test : diffusée, jamais comptée."""
    shadow = ShadowState()
    ingestion = DonationIngestion(shadow, store, broadcaster)

    await ingestion.ingest_test(make_donation("test_1", amount=300))

    assert [d.id for d in broadcaster.sent] == ["test_1"]
    assert len(shadow) == 0
    assert (await store.aggregate_stats()).total_count == 0


class SlowStore:
    """Store qui rend la main à la boucle pendant l’écriture."""

    def __init__(self) -> None:
        self.saved = []

    async def upsert_donation(self, donation) -> None:
        await asyncio.sleep(0)
        self.saved.append(donation.id)


@pytest.mark.asyncio
async def test_concurrent_ingest_keeps_all_increments(broadcaster):
    shadow = ShadowState()
    store = SlowStore()
    ingestion = DonationIngestion(shadow, store, broadcaster)

    await asyncio.gather(
        *(ingestion.ingest(make_donation(f"tx{i}", name=f"donor{i % 5}", amount=10)) for i in range(50))
    )

    stats = shadow.stats()
    assert stats.total_amount == Decimal(500)
    assert stats.total_count == 50
    assert stats.unique_donors == 5
    assert len(store.saved) == 50
    assert len(broadcaster.sent) == 50
