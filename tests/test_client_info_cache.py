# Cache client-info : fraîcheur 60s, repli sur valeur périmée en cas d’erreur
import pytest

from monojar.core.errors import ExternalApiError, RateLimitedError
from monojar.services.client_info_cache import ClientInfoCache
from tests.helpers import JAR, FakeMonobank


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_fresh_value_is_served_without_fetch():
    bank = FakeMonobank(client_info={"jars": [JAR]})
    clock = FakeClock()
    cache = ClientInfoCache(bank.get_client_info, ttl_seconds=60, clock=clock)

    first = await cache.get()
    clock.now += 30
    second = await cache.get()

    assert first == second == {"jars": [JAR]}
    assert bank.client_info_calls == 1
    assert cache.is_fresh()
    assert cache.age() == 30


@pytest.mark.asyncio
async def test_expired_value_is_refetched():
    bank = FakeMonobank(client_info={"jars": [JAR]})
    clock = FakeClock()
    cache = ClientInfoCache(bank.get_client_info, ttl_seconds=60, clock=clock)

    await cache.get()
    clock.now += 61
    await cache.get()

    assert bank.client_info_calls == 2
    assert cache.last_fetched_at == clock.now


@pytest.mark.asyncio
async def test_stale_value_served_on_error():
    """Erreur externe + valeur périmée disponible : la valeur périmée est servie."""
    bank = FakeMonobank(client_info={"jars": [JAR]})
    clock = FakeClock()
    cache = ClientInfoCache(bank.get_client_info, ttl_seconds=60, clock=clock)

    await cache.get()
    fetched_at = cache.last_fetched_at

    clock.now += 120
    bank.client_info_error = RateLimitedError("GET /personal/client-info -> HTTP 429", 429)

    assert await cache.get() == {"jars": [JAR]}
    assert bank.client_info_calls == 2
    # Le slot n’est pas rafraîchi : l’âge continue de croître
    assert cache.last_fetched_at == fetched_at
    assert not cache.is_fresh()


@pytest.mark.asyncio
async def test_error_without_value_propagates():
    bank = FakeMonobank(client_info_error=ExternalApiError("boom", 500))
    cache = ClientInfoCache(bank.get_client_info, clock=FakeClock())

    with pytest.raises(ExternalApiError):
        await cache.get()

    assert cache.peek() is None
    assert cache.age() is None
    assert not cache.is_fresh()


@pytest.mark.asyncio
async def test_peek_never_fetches():
    bank = FakeMonobank(client_info={"jars": [JAR]})
    cache = ClientInfoCache(bank.get_client_info, clock=FakeClock())

    assert cache.peek() is None
    assert bank.client_info_calls == 0

    await cache.get()
    assert cache.peek() == {"jars": [JAR]}
    assert bank.client_info_calls == 1
