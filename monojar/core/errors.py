from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException

"""
Core Errors.

Rôle (fonctionnel) :
- Standardise le format des erreurs renvoyées par l’API (enveloppe `success: false`).
- Fournit une exception applicative (AppHTTPException) pour les erreurs HTTP gérées.
- Définit la taxonomie d’erreurs internes :
  - ExternalApiError (+ RateLimitedError / BadRequestError / AuthError) : appels Monobank
  - StoreError : échec d’E/S de la persistance (toujours récupérable via la mémoire)

Convention de réponse (exemple) :
{
  "success": false,
  "error": {
    "code": "VALIDATION_ERROR",
    "message": "Requête invalide",
    "status": 400,
    "request_id": "...",
    "timestamp": "...",
    "details": [...]
  }
}
"""


def now_iso() -> str:
    """Timestamp ISO-8601 en UTC."""
    return datetime.now(timezone.utc).isoformat()


def error_payload(
    *,
    code: str,
    message: str,
    status: int,
    request_id: str,
    details: Optional[Any] = None,
) -> Dict[str, Any]:
    """Construit un payload d’erreur homogène pour l’API."""
    error: Dict[str, Any] = {
        "code": code,
        "message": message,
        "status": status,
        "request_id": request_id,
        "timestamp": now_iso(),
    }
    if details is not None:
        error["details"] = details
    return {"success": False, "error": error}


class AppHTTPException(HTTPException):
    """
    Exception applicative standardisée.

    Exemple :
        raise AppHTTPException(404, "JAR_NOT_FOUND", "Banque introuvable")
    """

    def __init__(self, status_code: int, code: str, message: str, details: Any = None):
        super().__init__(status_code=status_code, detail={"code": code, "message": message, "details": details})


class ExternalApiError(Exception):
    """Échec d’un appel à l’API Monobank (réseau, HTTP, payload illisible)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RateLimitedError(ExternalApiError):
    """HTTP 429 : l’API bancaire refuse l’appel (trop fréquent)."""


class BadRequestError(ExternalApiError):
    """HTTP 400 : requête mal formée (fenêtre de relevé, id de compte…)."""


class AuthError(ExternalApiError):
    """HTTP 401/403 : token absent, invalide ou révoqué."""


def error_for_status(status_code: int, message: str) -> ExternalApiError:
    """Choisit la sous-classe d’ExternalApiError adaptée au code HTTP."""
    if status_code == 429:
        return RateLimitedError(message, status_code)
    if status_code == 400:
        return BadRequestError(message, status_code)
    if status_code in (401, 403):
        return AuthError(message, status_code)
    return ExternalApiError(message, status_code)


class StoreError(Exception):
    """Échec de la persistance ; `action` identifie l’opération (upsert, stats…)."""

    def __init__(self, action: str, cause: BaseException | None = None) -> None:
        message = f"store operation '{action}' failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.action = action
        self.cause = cause
