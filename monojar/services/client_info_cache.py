from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from monojar.core.errors import ExternalApiError

"""
Client Info Cache.

Rôle (fonctionnel) :
- Slot unique (process-wide) devant l’appel client-info de Monobank.
- Respecte la limite de l’API (au plus un appel par fenêtre de fraîcheur, 60s par défaut).
- En cas d’erreur externe : sert la dernière valeur connue (même périmée) si elle existe,
  sinon propage ExternalApiError.

Propriété :
- Seul le poller appelle get() (seul écrivain du slot).
- Les endpoints HTTP utilisent peek()/age() en lecture seule.
"""

log = logging.getLogger("monojar.monobank")

ClientInfoFetcher = Callable[[], Awaitable[Dict[str, Any]]]


@dataclass
class ClientInfoCacheEntry:
    data: Dict[str, Any]
    last_fetched_at: float


class ClientInfoCache:
    def __init__(
        self,
        fetch: ClientInfoFetcher,
        *,
        ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._fetch = fetch
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entry: Optional[ClientInfoCacheEntry] = None

    @property
    def last_fetched_at(self) -> Optional[float]:
        return self._entry.last_fetched_at if self._entry else None

    def age(self) -> Optional[float]:
        """Âge du slot en secondes (None si jamais rempli)."""
        if self._entry is None:
            return None
        return max(0.0, self._clock() - self._entry.last_fetched_at)

    def is_fresh(self) -> bool:
        age = self.age()
        return age is not None and age < self.ttl_seconds

    def peek(self) -> Optional[Dict[str, Any]]:
        """Dernière valeur connue, sans appel externe."""
        return self._entry.data if self._entry else None

    async def get(self) -> Dict[str, Any]:
        if self._entry is not None and self.is_fresh():
            log.debug("using_cached_client_info", extra={"action": "using_cached_client_info"})
            return self._entry.data

        try:
            log.info("fetching_client_info", extra={"action": "fetching_client_info"})
            data = await self._fetch()
        except ExternalApiError as exc:
            log.error(
                "client_info_error",
                extra={"action": "client_info_error", "status_code": exc.status_code, "error": str(exc)},
            )
            if self._entry is not None:
                log.warning(
                    "using_stale_cache_due_to_error",
                    extra={"action": "using_stale_cache_due_to_error", "cache_age_s": round(self.age() or 0, 1)},
                )
                return self._entry.data
            raise

        self._entry = ClientInfoCacheEntry(data=data, last_fetched_at=self._clock())
        return data
