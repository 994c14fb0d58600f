from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from monojar.core.errors import ExternalApiError, error_for_status

"""
Monobank Client.

Rôle (fonctionnel) :
- Appels HTTP vers l’API personnelle Monobank (httpx.AsyncClient injecté) :
  - GET /personal/client-info                       -> infos client + banques (jars)
  - GET /personal/statement/{account}/{from}/{to}   -> relevé (transactions brutes)
- Authentification par header X-Token.
- Convertit toutes les erreurs (HTTP, réseau, JSON) en ExternalApiError typées
  (RateLimitedError / BadRequestError / AuthError / générique).

Notes :
- Ce client ne cache rien : client-info doit passer par ClientInfoCache
  (l’API refuse plus d’un appel par minute).
"""

log = logging.getLogger("monojar.monobank")


def create_http_client(timeout: float = 10.0, headers: Optional[dict[str, str]] = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout, headers=headers)


class MonobankClient:
    def __init__(self, http: httpx.AsyncClient, token: str, base_url: str = "https://api.monobank.ua") -> None:
        self.http = http
        self.token = token
        self.base_url = base_url.rstrip("/")

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    async def _get_json(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self.http.get(url, headers={"X-Token": self.token})
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise error_for_status(status, f"GET {path} -> HTTP {status}") from exc
        except httpx.RequestError as exc:
            raise ExternalApiError(f"GET {path} -> {exc.__class__.__name__}: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise ExternalApiError(f"GET {path} -> invalid JSON", response.status_code) from exc

    async def get_client_info(self) -> Dict[str, Any]:
        payload = await self._get_json("/personal/client-info")
        if not isinstance(payload, dict):
            raise ExternalApiError("client-info: unexpected payload")
        return payload

    async def get_statement(self, account_id: str, from_ts: int, to_ts: int) -> List[Dict[str, Any]]:
        payload = await self._get_json(f"/personal/statement/{account_id}/{from_ts}/{to_ts}")
        if not isinstance(payload, list):
            log.warning("invalid_response", extra={"action": "invalid_response", "jar_id": account_id})
            raise ExternalApiError("statement: expected a list of transactions")
        return [item for item in payload if isinstance(item, dict)]
