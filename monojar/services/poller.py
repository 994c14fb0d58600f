from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List, Optional, Sequence

from pydantic import ValidationError

from monojar.core.errors import AuthError, BadRequestError, ExternalApiError, RateLimitedError
from monojar.schemas.donations import Donation
from monojar.schemas.monobank import ClientInfo, StatementItem
from monojar.services.client_info_cache import ClientInfoCache
from monojar.services.ingestion import DonationIngestion
from monojar.services.monobank_client import MonobankClient
from monojar.services.shadow_state import ShadowState

"""
Transaction Poller.

Rôle (fonctionnel) :
- Tâche périodique (asyncio) qui interroge le relevé de la banque (jar) Monobank cible,
  détecte les nouveaux paiements entrants et les passe à l’ingestion.

Cycle (poll_once) :
1) banque cible résolue via ClientInfoCache (absente / erreur => cycle ignoré)
2) relevé sur 30 jours glissants
3) paiements entrants uniquement (amount > 0), triés du plus récent au plus ancien
4) sélection des “nouveaux” (select_new_transactions)
5) last_seen_transaction_id = plus récent de la sélection
6) mapping -> Donation (transaction_to_donation)
7) ingestion séquentielle (ids déjà ingérés ignorés)

Robustesse :
- Aucune exception ne sort d’un cycle : 429 / 400 / 401 / réseau / autres sont loggés
  distinctement, le cycle suivant réessaie naturellement.
- Les cycles ne se chevauchent jamais (un déclenchement pendant un cycle est ignoré).

Limite connue :
- En régime établi, seules les transactions des dernières 24h sont considérées : des dons
  reçus pendant une coupure de plus de 24h ne sont pas rattrapés.
"""

log = logging.getLogger("monojar.poller")
bank_log = logging.getLogger("monojar.monobank")

ANONYMOUS = "Anonymous"
UNKNOWN_SENDER = "Unknown sender"

_NAME_CHARS = r"[\w\s]"
_NAME_PATTERNS = (
    re.compile(rf"від\s+({_NAME_CHARS}+)", re.IGNORECASE),
    re.compile(rf"from\s+({_NAME_CHARS}+)", re.IGNORECASE),
    re.compile(rf"({_NAME_CHARS}{{2,}})\s*-"),
    re.compile(rf"^({_NAME_CHARS}{{2,}})"),
)

DAY_SECONDS = 24 * 60 * 60


def extract_donor_name(description: Optional[str]) -> str:
    """Devine un nom depuis la description libre ; ANONYMOUS si rien d’exploitable."""
    if not description:
        return ANONYMOUS

    for pattern in _NAME_PATTERNS:
        match = pattern.search(description)
        if match:
            name = match.group(1).strip()
            if name:
                return name

    return ANONYMOUS


def transaction_to_donation(tx: StatementItem) -> Donation:
    counter_name = (tx.counter_name or "").strip()
    return Donation(
        id=tx.id,
        name=counter_name or extract_donor_name(tx.description),
        amount=Decimal(tx.amount) / 100,
        description=tx.description or "",
        comment=tx.comment or "",
        counter_name=counter_name or UNKNOWN_SENDER,
        timestamp=tx.time * 1000,
    )


def select_new_transactions(
    incoming: Sequence[StatementItem],
    last_seen_id: Optional[str],
    *,
    now_ms: int,
    bootstrap_count: int = 3,
    recent_window_ms: int = DAY_SECONDS * 1000,
) -> List[StatementItem]:
    """
    Sélectionne les transactions à ingérer (entrée triée du plus récent au plus ancien).

    - Premier passage (aucun id connu) : les `bootstrap_count` plus récentes.
    - Ensuite : id différent du dernier vu ET transaction plus récente que la fenêtre.
    """
    if last_seen_id is None:
        return list(incoming[:bootstrap_count])

    cutoff_ms = now_ms - recent_window_ms
    return [tx for tx in incoming if tx.id != last_seen_id and tx.time * 1000 > cutoff_ms]


@dataclass
class PollState:
    last_seen_transaction_id: Optional[str] = None


@dataclass(frozen=True)
class PollResult:
    """Résumé d’un cycle (utile pour logs / tests)."""

    status: str  # ok / skipped / error
    reason: str = ""
    fetched: int = 0
    selected: int = 0
    ingested: int = 0


class TransactionPoller:
    def __init__(
        self,
        client: MonobankClient,
        client_info: ClientInfoCache,
        ingestion: DonationIngestion,
        shadow: ShadowState,
        *,
        jar_title: str = "",
        jar_id: str = "",
        interval_seconds: float = 30.0,
        statement_window_days: int = 30,
        bootstrap_count: int = 3,
        recent_window_hours: int = 24,
        state: Optional[PollState] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client = client
        self.client_info = client_info
        self.ingestion = ingestion
        self.shadow = shadow
        self.jar_title = jar_title
        self.jar_id = jar_id
        self.interval_seconds = interval_seconds
        self.statement_window_days = statement_window_days
        self.bootstrap_count = bootstrap_count
        self.recent_window_hours = recent_window_hours
        self.state = state or PollState()
        self._clock = clock

        self._cycle_lock = asyncio.Lock()
        self._stopping = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> PollResult:
        if not self.client.enabled:
            log.warning("mono_token_missing", extra={"action": "skipped"})
            return PollResult(status="skipped", reason="no_token")

        if self._cycle_lock.locked():
            log.info("poll_cycle_still_running", extra={"action": "skipped"})
            return PollResult(status="skipped", reason="cycle_running")

        async with self._cycle_lock:
            try:
                return await self._cycle()
            except RateLimitedError as exc:
                bank_log.warning("rate_limit_exceeded", extra={"action": "rate_limit_exceeded", "status_code": exc.status_code})
                return PollResult(status="error", reason="rate_limited")
            except BadRequestError as exc:
                bank_log.error("bad_request", extra={"action": "bad_request", "status_code": exc.status_code, "error": str(exc)})
                return PollResult(status="error", reason="bad_request")
            except AuthError as exc:
                bank_log.error("invalid_token", extra={"action": "invalid_token", "status_code": exc.status_code})
                return PollResult(status="error", reason="auth")
            except ExternalApiError as exc:
                action = "api_error" if exc.status_code is not None else "network_error"
                bank_log.error(action, extra={"action": action, "status_code": exc.status_code, "error": str(exc)})
                return PollResult(status="error", reason=action)
            except Exception:
                log.exception("poll_cycle_failed", extra={"action": "poll_cycle_failed"})
                return PollResult(status="error", reason="unexpected")

    async def _cycle(self) -> PollResult:
        # 1) banque cible (erreur client-info => cycle ignoré, pas fatal)
        try:
            info = ClientInfo.model_validate(await self.client_info.get())
        except ExternalApiError as exc:
            bank_log.warning("client_info_unavailable", extra={"action": "client_info_unavailable", "error": str(exc)})
            return PollResult(status="skipped", reason="client_info_unavailable")
        except ValidationError as exc:
            bank_log.error("invalid_client_info", extra={"action": "invalid_response", "error": str(exc)})
            return PollResult(status="skipped", reason="client_info_invalid")

        jar = info.find_jar(jar_id=self.jar_id, title=self.jar_title)
        if jar is None:
            bank_log.warning("jar_not_found", extra={"action": "jar_not_found"})
            return PollResult(status="skipped", reason="jar_not_found")

        # 2) relevé sur la fenêtre glissante
        now = int(self._clock())
        from_ts = now - self.statement_window_days * DAY_SECONDS
        raw = await self.client.get_statement(jar.id, from_ts, now)

        # 3) entrants uniquement, tri explicite (plus récent d’abord)
        incoming: List[StatementItem] = []
        for item in raw:
            try:
                tx = StatementItem.model_validate(item)
            except ValidationError:
                bank_log.warning("invalid_transaction_skipped", extra={"action": "invalid_response"})
                continue
            if tx.amount > 0:
                incoming.append(tx)
        incoming.sort(key=lambda tx: tx.time, reverse=True)

        # 4) + 5) sélection et mise à jour de l’état
        selected = select_new_transactions(
            incoming,
            self.state.last_seen_transaction_id,
            now_ms=now * 1000,
            bootstrap_count=self.bootstrap_count,
            recent_window_ms=self.recent_window_hours * 3600 * 1000,
        )
        if selected:
            self.state.last_seen_transaction_id = selected[0].id
            bank_log.info("new_transactions_found", extra={"action": "new_transactions_found", "count": len(selected)})

        # 6) + 7) mapping puis ingestion séquentielle
        ingested = 0
        for tx in selected:
            if tx.id in self.shadow:
                log.debug("already_ingested", extra={"action": "already_ingested", "donation_id": tx.id})
                continue
            await self.ingestion.ingest(transaction_to_donation(tx))
            ingested += 1

        return PollResult(status="ok", fetched=len(raw), selected=len(selected), ingested=ingested)

    async def _run(self) -> None:
        log.info("poller_started", extra={"action": "poller_started"})
        while not self._stopping.is_set():
            await self.poll_once()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
        log.info("poller_stopped", extra={"action": "poller_stopped"})

    def start(self) -> None:
        if self.running:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._run(), name="transaction-poller")

    async def stop(self) -> None:
        """Arrête la planification ; attend la fin du cycle en cours."""
        self._stopping.set()
        if self._task is not None:
            await self._task
            self._task = None
