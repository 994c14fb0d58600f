from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, List, Optional, Tuple

from fastapi import Request

from monojar.core.errors import AppHTTPException
from monojar.core.settings import Settings

"""
Core Rate Limit.

Rôle (fonctionnel) :
- Protège l’API locale contre les rafales (anti-abus), fenêtre fixe par (IP + règle).
- Règles par préfixe de chemin, la première qui correspond s’applique :
  - /api/test-donation : donations de test (le plus strict)
  - /api/jar           : endpoints adossés à Monobank (/api/jar/…, /api/jars)
  - /api/              : tout le reste de l’API
- Implémentation en mémoire : suffisant pour une instance unique (overlay de stream).

Activation via settings : RATE_LIMIT_ENABLED + RATE_LIMIT_*_MAX / *_WINDOW.
"""


@dataclass(frozen=True)
class RateLimitRule:
    name: str
    prefix: str
    max_requests: int
    window_seconds: float
    message: str


@dataclass
class _Bucket:
    window_start: float
    count: int


def default_rules(settings: Settings) -> List[RateLimitRule]:
    """Règles dérivées de la configuration (ordre = priorité)."""
    return [
        RateLimitRule(
            name="test_donation",
            prefix="/api/test-donation",
            max_requests=settings.RATE_LIMIT_TEST_DONATION_MAX,
            window_seconds=settings.RATE_LIMIT_TEST_DONATION_WINDOW,
            message="Trop de donations de test, réessayez plus tard.",
        ),
        RateLimitRule(
            name="monobank",
            prefix="/api/jar",
            max_requests=settings.RATE_LIMIT_MONOBANK_MAX,
            window_seconds=settings.RATE_LIMIT_MONOBANK_WINDOW,
            message="Trop de requêtes vers les endpoints Monobank.",
        ),
        RateLimitRule(
            name="general",
            prefix="/api/",
            max_requests=settings.RATE_LIMIT_GENERAL_MAX,
            window_seconds=settings.RATE_LIMIT_GENERAL_WINDOW,
            message="Trop de requêtes, réessayez plus tard.",
        ),
    ]


class InMemoryRateLimiter:
    """
    Rate limiter en mémoire (best-effort).

    - Un compteur par (IP, nom de règle), réinitialisé à chaque nouvelle fenêtre.
    - Lève AppHTTPException(429) si la limite de la règle est dépassée.
    """

    def __init__(
        self,
        rules: List[RateLimitRule],
        *,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lock = Lock()
        self._buckets: Dict[Tuple[str, str], _Bucket] = {}
        self.rules = rules
        self.enabled = enabled
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "InMemoryRateLimiter":
        return cls(default_rules(settings), enabled=settings.RATE_LIMIT_ENABLED)

    def _client_ip(self, request: Request) -> str:
        return request.client.host if request.client else "unknown"

    def rule_for(self, path: str) -> Optional[RateLimitRule]:
        for rule in self.rules:
            if path.startswith(rule.prefix):
                return rule
        return None

    def hit(self, ip: str, path: str) -> None:
        """Comptabilise une requête ; lève 429 si la règle correspondante est dépassée."""
        if not self.enabled:
            return

        rule = self.rule_for(path)
        if rule is None or rule.max_requests <= 0:
            return

        key = (ip, rule.name)
        now = self._clock()

        with self._lock:
            bucket = self._buckets.get(key)

            if bucket is None or (now - bucket.window_start) >= rule.window_seconds:
                self._buckets[key] = _Bucket(window_start=now, count=1)
                return

            bucket.count += 1

            if bucket.count > rule.max_requests:
                retry_after = max(0, int(rule.window_seconds - (now - bucket.window_start)))
                raise AppHTTPException(
                    429,
                    "RATE_LIMITED",
                    rule.message,
                    details={"rule": rule.name, "limit": rule.max_requests, "retry_after": retry_after},
                )

    def check(self, request: Request) -> None:
        self.hit(self._client_ip(request), request.url.path)
