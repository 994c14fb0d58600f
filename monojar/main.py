from __future__ import annotations

import time
import uuid
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from monojar.api.router import api_router
from monojar.core.settings import Settings, settings as default_settings
from monojar.core.logging import setup_logging, set_request_id, get_request_id, ensure_request_id
from monojar.core.errors import error_payload, AppHTTPException, StoreError
from monojar.core.rate_limit import InMemoryRateLimiter
from monojar.core.realtime import Broadcaster
from monojar.services.client_info_cache import ClientInfoCache
from monojar.services.donation_store import DonationStore
from monojar.services.ingestion import DonationIngestion
from monojar.services.monobank_client import MonobankClient, create_http_client
from monojar.services.poller import PollState, TransactionPoller
from monojar.services.query_service import DonationQueryService
from monojar.services.shadow_state import ShadowState

"""
Application FastAPI (entrypoint).

Rôle (fonctionnel) :
- create_app() construit l’application (settings, CORS, middlewares, routers, handlers).
- Le lifespan assemble le pipeline donations et le démarre / l’arrête proprement :
  store (init fatal si échec) -> rechargement shadow state -> poller Monobank.
- Observabilité : request_id propagé (X-Request-Id), logs JSON, seuil de “slow request”.
- Rate-limit local sur /api/*, erreurs uniformisées (enveloppe success=false).

Arrêt (ordre) :
- poller (attend le cycle en cours) -> WebSockets -> client HTTP -> store
  (attend l’écriture en cours).
"""


class UTF8JSONResponse(JSONResponse):
    """Réponse JSON avec charset UTF-8 explicite (noms cyrilliques côté overlay)."""
    media_type = "application/json; charset=utf-8"


log = logging.getLogger("monojar")

# logger dédié observabilité HTTP (séparé du métier)
http_log = logging.getLogger("monojar.http")


def _split_origins(value: str) -> list[str]:
    """Parse une liste d’origines CORS depuis une string 'a,b,c'."""
    if not value:
        return []
    return [o.strip() for o in value.split(",") if o.strip()]


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id() or str(uuid.uuid4())


@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg: Settings = app.state.settings

    store = DonationStore.from_url(cfg.DATABASE_URL)
    try:
        await store.init()
    except StoreError:
        # Sans store initialisé rien ne fonctionne : échec fatal
        log.critical("database_init_failed", exc_info=True, extra={"action": "database_init_failed"})
        raise

    shadow = ShadowState()
    poll_state = PollState()
    try:
        existing = await store.load_all(cfg.SHADOW_LOAD_LIMIT)
        shadow.load(existing)
        if existing:
            poll_state.last_seen_transaction_id = existing[0].id
        log.info(
            "existing_donations_loaded",
            extra={"action": "existing_donations_loaded", "count": len(existing), "amount": shadow.total_amount},
        )
    except StoreError as exc:
        log.error("load_existing_donations_failed", extra={"action": "load_existing_donations_failed", "error": str(exc)})

    broadcaster: Broadcaster = app.state.broadcaster
    ingestion = DonationIngestion(shadow, store, broadcaster)

    http = create_http_client(timeout=cfg.MONO_TIMEOUT_SECONDS)
    monobank = app.state.monobank_client or MonobankClient(http, cfg.MONO_TOKEN, cfg.MONO_API_BASE)
    client_info_cache = ClientInfoCache(monobank.get_client_info, ttl_seconds=cfg.CLIENT_INFO_TTL_SECONDS)

    poller = TransactionPoller(
        monobank,
        client_info_cache,
        ingestion,
        shadow,
        jar_title=cfg.MONO_JAR_TITLE,
        jar_id=cfg.MONO_JAR_ID,
        interval_seconds=cfg.POLL_INTERVAL_SECONDS,
        statement_window_days=cfg.STATEMENT_WINDOW_DAYS,
        bootstrap_count=cfg.BOOTSTRAP_TRANSACTIONS,
        recent_window_hours=cfg.RECENT_WINDOW_HOURS,
        state=poll_state,
    )

    app.state.store = store
    app.state.shadow = shadow
    app.state.ingestion = ingestion
    app.state.query_service = DonationQueryService(store, shadow)
    app.state.client_info_cache = client_info_cache
    app.state.poller = poller

    if monobank.enabled:
        log.info("monobank_integration_enabled", extra={"action": "integration_enabled"})
        poller.start()
    else:
        log.warning("monobank_integration_disabled (no MONO_TOKEN provided)")

    try:
        yield
    finally:
        log.info("shutting_down")
        await poller.stop()
        await broadcaster.close_all()
        await http.aclose()
        await store.close()


def create_app(settings: Optional[Settings] = None, monobank_client: Optional[MonobankClient] = None) -> FastAPI:
    cfg = settings or default_settings

    setup_logging(cfg.LOG_LEVEL)
    slow_ms = int(cfg.SLOW_REQUEST_MS)

    app = FastAPI(
        title=cfg.APP_NAME,
        debug=cfg.DEBUG,
        default_response_class=UTF8JSONResponse,
        lifespan=lifespan,
    )

    app.state.settings = cfg
    app.state.broadcaster = Broadcaster()
    app.state.rate_limiter = InMemoryRateLimiter.from_settings(cfg)
    # Client Monobank injectable (tests) ; sinon construit dans le lifespan
    app.state.monobank_client = monobank_client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_split_origins(cfg.CORS_ORIGINS),
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-Id"],
    )

    app.include_router(api_router)

    @app.middleware("http")
    async def request_observability(request: Request, call_next):
        rid = ensure_request_id(request.headers.get("X-Request-Id"))
        request.state.request_id = rid

        start = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = int((time.perf_counter() - start) * 1000)

            if response is not None:
                response.headers["X-Request-Id"] = rid

            level = logging.WARNING if duration_ms >= slow_ms else logging.INFO
            http_log.log(
                level,
                "request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": getattr(response, "status_code", None),
                    "duration_ms": duration_ms,
                    "client_ip": request.client.host if request.client else None,
                },
            )

            set_request_id(None)

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        """Rate-limit local sur /api/* (jamais sur les préflights CORS)."""
        if request.method == "OPTIONS" or not request.url.path.startswith("/api/"):
            return await call_next(request)

        try:
            request.app.state.rate_limiter.check(request)
        except AppHTTPException as exc:
            detail = exc.detail if isinstance(exc.detail, dict) else {}
            log.warning(
                "rate_limit_exceeded",
                extra={
                    "action": "local_rate_limit",
                    "path": request.url.path,
                    "client_ip": request.client.host if request.client else None,
                },
            )
            return UTF8JSONResponse(
                status_code=exc.status_code,
                content=error_payload(
                    code=str(detail.get("code", "RATE_LIMITED")),
                    message=str(detail.get("message", "Trop de requêtes")),
                    status=exc.status_code,
                    request_id=_request_id(request),
                    details=detail.get("details"),
                ),
            )

        return await call_next(request)

    @app.exception_handler(AppHTTPException)
    async def app_http_exception_handler(request: Request, exc: AppHTTPException):
        """Erreurs applicatives (AppHTTPException) -> payload standard."""
        detail = exc.detail if isinstance(exc.detail, dict) else {}
        return UTF8JSONResponse(
            status_code=exc.status_code,
            content=error_payload(
                code=str(detail.get("code", "HTTP_ERROR")),
                message=str(detail.get("message", "Erreur HTTP")),
                status=exc.status_code,
                request_id=_request_id(request),
                details=detail.get("details"),
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Erreurs HTTP natives (404, 405, etc.) -> payload standard."""
        code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
        return UTF8JSONResponse(
            status_code=exc.status_code,
            content=error_payload(code=code, message=str(exc.detail), status=exc.status_code, request_id=_request_id(request)),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Erreurs de validation (query params) -> 400 + details."""
        log.warning("validation_failed", extra={"path": request.url.path, "method": request.method})
        return UTF8JSONResponse(
            status_code=400,
            content=error_payload(
                code="VALIDATION_ERROR",
                message="Requête invalide",
                status=400,
                request_id=_request_id(request),
                details=jsonable_errors(exc),
            ),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        """Fallback : toute exception non gérée -> 500 + log serveur."""
        log.exception("Unhandled error: %s", exc)
        return UTF8JSONResponse(
            status_code=500,
            content=error_payload(
                code="INTERNAL_ERROR",
                message="Erreur interne du serveur",
                status=500,
                request_id=_request_id(request),
            ),
        )

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """exc.errors() peut contenir des objets non sérialisables (ctx: Decimal, ValueError…)."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


app = create_app()
