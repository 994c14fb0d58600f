from __future__ import annotations

from fastapi import Depends, Request

from monojar.core.settings import Settings
from monojar.services.client_info_cache import ClientInfoCache
from monojar.services.ingestion import DonationIngestion
from monojar.services.query_service import DonationQueryService

"""
Dépendances API.

Rôle (fonctionnel) :
- Expose aux routes les services construits au démarrage (lifespan) et rangés
  dans app.state : query service, ingestion, cache client-info, settings.
"""


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_query_service(request: Request) -> DonationQueryService:
    return request.app.state.query_service


def get_ingestion(request: Request) -> DonationIngestion:
    return request.app.state.ingestion


def get_client_info_cache(request: Request) -> ClientInfoCache:
    return request.app.state.client_info_cache


SettingsDep = Depends(get_settings)
QueryServiceDep = Depends(get_query_service)
IngestionDep = Depends(get_ingestion)
ClientInfoCacheDep = Depends(get_client_info_cache)
