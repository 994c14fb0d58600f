# Rate limit local : règles par préfixe, fenêtre fixe
import pytest

from monojar.core.errors import AppHTTPException
from monojar.core.rate_limit import InMemoryRateLimiter, RateLimitRule


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def make_limiter(clock, enabled: bool = True) -> InMemoryRateLimiter:
    rules = [
        RateLimitRule("test_donation", "/api/test-donation", 2, 300, "slow down"),
        RateLimitRule("general", "/api/", 3, 900, "too many"),
    ]
    return InMemoryRateLimiter(rules, enabled=enabled, clock=clock)


def test_first_matching_rule_wins():
    limiter = make_limiter(FakeClock())

    assert limiter.rule_for("/api/test-donation").name == "test_donation"
    assert limiter.rule_for("/api/donations/stats").name == "general"
    assert limiter.rule_for("/health") is None


def test_limit_exceeded_raises_429():
    clock = FakeClock()
    limiter = make_limiter(clock)

    limiter.hit("1.2.3.4", "/api/test-donation")
    limiter.hit("1.2.3.4", "/api/test-donation")
    with pytest.raises(AppHTTPException) as excinfo:
        limiter.hit("1.2.3.4", "/api/test-donation")

    assert excinfo.value.status_code == 429
    assert excinfo.value.detail["code"] == "RATE_LIMITED"
    assert excinfo.value.detail["details"]["rule"] == "test_donation"

    # Autre IP, autre règle : compteurs indépendants
    limiter.hit("5.6.7.8", "/api/test-donation")
    limiter.hit("1.2.3.4", "/api/donations/stats")


def test_window_resets():
    clock = FakeClock()
    limiter = make_limiter(clock)

    limiter.hit("ip", "/api/test-donation")
    limiter.hit("ip", "/api/test-donation")
    clock.now += 301
    limiter.hit("ip", "/api/test-donation")


def test_disabled_limiter_never_raises():
    limiter = make_limiter(FakeClock(), enabled=False)
    for _ in range(10):
        limiter.hit("ip", "/api/test-donation")
