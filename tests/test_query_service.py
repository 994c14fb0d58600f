# Lectures : store d’abord, repli sur la mémoire si le store échoue
from decimal import Decimal

import pytest

from monojar.services.query_service import DonationQueryService, try_store
from monojar.services.shadow_state import ShadowState
from tests.helpers import FailingStore, make_donation


@pytest.mark.asyncio
async def test_reads_from_store_when_available(store):
    shadow = ShadowState()
    await store.upsert_donation(make_donation("stored", name="Ivan", amount=100, timestamp=1000))
    # Présente seulement en mémoire : ne doit pas apparaître
    shadow.add(make_donation("memory-only", name="Olena", amount=999, timestamp=2000))

    queries = DonationQueryService(store, shadow)

    stats = await queries.get_stats()
    assert stats.total_amount == Decimal(100)
    assert [d.id for d in await queries.get_recent(10)] == ["stored"]
    assert (await queries.get_latest()).id == "stored"


@pytest.mark.asyncio
async def test_falls_back_to_shadow_state():
    shadow = ShadowState()
    shadow.add(make_donation("a", name="Ivan", amount=100, timestamp=1000))
    shadow.add(make_donation("b", name="Olena", amount=300, timestamp=2000))

    queries = DonationQueryService(FailingStore(), shadow)

    stats = await queries.get_stats()
    assert stats.total_amount == Decimal(400)
    assert stats.total_count == 2

    top = await queries.get_top(1)
    assert [(d.name, d.amount) for d in top] == [("Olena", Decimal(300))]

    recent = await queries.get_recent(10)
    assert [d.id for d in recent] == ["b", "a"]
    assert recent[0].time

    assert (await queries.get_latest()).id == "b"


@pytest.mark.asyncio
async def test_latest_is_none_when_empty(store):
    queries = DonationQueryService(store, ShadowState())
    assert await queries.get_latest() is None


@pytest.mark.asyncio
async def test_try_store_wraps_errors():
    failing = FailingStore()

    result = await try_store(failing.aggregate_stats)

    assert result.ok is False
    assert result.data is None
    assert result.error.action == "aggregate_stats"
