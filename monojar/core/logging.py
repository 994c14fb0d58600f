from __future__ import annotations

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

"""
Core Logging.

Rôle (fonctionnel) :
- Configure un logging JSON uniforme pour toute l’application (API + poller + uvicorn).
- Porte le request_id courant (ContextVar) et l’injecte dans chaque log.
- Supporte des “extras” structurés pour les événements métier :
  donation reçue / test, appels Monobank, opérations DB, WebSocket.

Loggers utilisés dans le projet :
- monojar.donations : une ligne par donation reçue (ou test)
- monojar.monobank  : appels API bancaire (cache, erreurs, rate limit)
- monojar.poller    : cycles de polling
- monojar.db        : persistance (succès en DEBUG, échecs en ERROR)
- realtime          : connexions WebSocket
- monojar.http      : accès HTTP (timing, status)
"""

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

# Extras recopiés tels quels dans la ligne JSON (si présents sur le record)
_EXTRA_KEYS = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "client_ip",
    "action",
    "donation_id",
    "donor_name",
    "amount",
    "currency",
    "client_count",
    "count",
    "jar_id",
    "cache_age_s",
    "error",
)


def set_request_id(rid: str | None) -> None:
    _request_id.set(rid)


def get_request_id() -> str | None:
    return _request_id.get()


def ensure_request_id(incoming: str | None = None) -> str:
    """Réutilise le request_id entrant (nettoyé) ou en génère un nouveau."""
    rid = (incoming or "").strip() or str(uuid.uuid4())
    set_request_id(rid)
    return rid


class RequestIdFilter(logging.Filter):
    """Ajoute request_id au LogRecord ('-' hors requête HTTP, ex: poller)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


class JsonFormatter(logging.Formatter):
    """1 event = 1 ligne JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", "-"),
            "msg": record.getMessage(),
        }

        for key in _EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        # default=str : Decimal / datetime dans les extras
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    """
    Initialise le logging global (root) en JSON et aligne uvicorn dessus.

    - Nettoie les handlers existants (évite les doublons avec --reload).
    - StreamHandler stdout + JsonFormatter + RequestIdFilter.
    """
    lvl = level.upper()

    root = logging.getLogger()
    root.setLevel(lvl)

    if root.handlers:
        root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers = root.handlers
        logger.setLevel(lvl)
