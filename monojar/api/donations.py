from __future__ import annotations

import random
import time
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.encoders import jsonable_encoder

from monojar.api.deps import IngestionDep, QueryServiceDep
from monojar.schemas.donations import Donation
from monojar.services.ingestion import DonationIngestion
from monojar.services.query_service import DonationQueryService

"""
API Donations.

Rôle (fonctionnel) :
- Lectures pour l’overlay et la page donations : stats, top donateurs, récentes, dernière.
- Donation de test : diffusée en temps réel mais jamais comptée dans les statistiques.

Format :
- Succès : {"success": true, "data": ..., "meta": {...}}
- Erreurs : gérées par les handlers globaux (enveloppe success=false).
"""

router = APIRouter(prefix="/api", tags=["donations"])

TEST_DONOR_NAME = "Тестовий Донатер"
TEST_DESCRIPTION = "Поповнення На фотоапарат"
TEST_COMMENT = "Тримайте на новий об'єктив! 📸"
TEST_COUNTER_NAME = "ПриватБанк"


@router.get("/donations/stats")
async def donation_stats(queries: DonationQueryService = QueryServiceDep):
    stats = await queries.get_stats()
    return {"success": True, "data": jsonable_encoder(stats)}


@router.get("/donations/top")
async def top_donors(
    limit: int = Query(10, ge=1, le=100),
    queries: DonationQueryService = QueryServiceDep,
):
    donors = await queries.get_top(limit)
    return {"success": True, "data": jsonable_encoder(donors), "meta": {"limit": limit}}


@router.get("/donations/recent")
async def recent_donations(
    limit: int = Query(10, ge=1, le=100),
    queries: DonationQueryService = QueryServiceDep,
):
    donations = await queries.get_recent(limit)
    return {"success": True, "data": jsonable_encoder(donations), "meta": {"limit": limit}}


@router.get("/donations/latest")
async def latest_donation(queries: DonationQueryService = QueryServiceDep):
    latest = await queries.get_latest()
    return {"success": True, "data": jsonable_encoder(latest) if latest else None}


@router.get("/test-donation")
async def test_donation(
    name: Optional[str] = Query(None, min_length=1, max_length=100),
    amount: Optional[Decimal] = Query(None, gt=0, le=100000),
    comment: Optional[str] = Query(None, max_length=500),
    ingestion: DonationIngestion = IngestionDep,
):
    now_ms = int(time.time() * 1000)
    donation = Donation(
        id=f"test_{now_ms}",
        name=name or TEST_DONOR_NAME,
        amount=amount if amount is not None else random.randint(50, 549),
        description=TEST_DESCRIPTION,
        comment=comment if comment is not None else TEST_COMMENT,
        counter_name=TEST_COUNTER_NAME,
        timestamp=now_ms,
    )

    await ingestion.ingest_test(donation)
    return {
        "success": True,
        "data": jsonable_encoder(donation),
        "note": "Test donation - not counted in stats",
    }
