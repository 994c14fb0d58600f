from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError

from monojar.api.deps import ClientInfoCacheDep, SettingsDep
from monojar.core.errors import AppHTTPException
from monojar.core.settings import Settings
from monojar.schemas.monobank import ClientInfo, JarOut
from monojar.services.client_info_cache import ClientInfoCache

"""
API Jars (banques Monobank).

Rôle (fonctionnel) :
- Expose l’état des banques (solde, objectif, progression) pour les widgets de l’overlay.
- Lecture seule sur le cache client-info : ces routes ne déclenchent jamais d’appel
  Monobank (le slot est alimenté uniquement par le poller, limite 1 appel / minute).

Erreurs :
- 500 MONO_TOKEN_MISSING : intégration Monobank non configurée
- 503 CLIENT_INFO_UNAVAILABLE : cache encore vide (premier cycle pas encore passé)
- 404 JAR_NOT_FOUND : banque cible absente
"""

router = APIRouter(prefix="/api", tags=["jars"])


def _cached_client_info(settings: Settings, cache: ClientInfoCache) -> ClientInfo:
    if not settings.MONO_TOKEN:
        raise AppHTTPException(500, "MONO_TOKEN_MISSING", "MONO_TOKEN non configuré")

    payload = cache.peek()
    if payload is None:
        raise AppHTTPException(503, "CLIENT_INFO_UNAVAILABLE", "Infos Monobank pas encore disponibles")

    try:
        return ClientInfo.model_validate(payload)
    except ValidationError as exc:
        raise AppHTTPException(502, "INVALID_UPSTREAM_PAYLOAD", "Réponse Monobank inattendue") from exc


def _cache_meta(cache: ClientInfoCache) -> Dict[str, Any]:
    age = cache.age()
    return {
        "cached": True,
        "fresh": cache.is_fresh(),
        "cacheAge": int(age * 1000) if age is not None else None,
    }


@router.get("/jars")
async def list_jars(settings: Settings = SettingsDep, cache: ClientInfoCache = ClientInfoCacheDep):
    info = _cached_client_info(settings, cache)
    jars = [JarOut.from_jar(jar) for jar in info.jars]
    return {"success": True, "data": jsonable_encoder(jars), "meta": _cache_meta(cache)}


@router.get("/jar/target")
async def target_jar(settings: Settings = SettingsDep, cache: ClientInfoCache = ClientInfoCacheDep):
    info = _cached_client_info(settings, cache)
    jar = info.find_jar(jar_id=settings.MONO_JAR_ID, title=settings.MONO_JAR_TITLE)
    if jar is None:
        raise AppHTTPException(404, "JAR_NOT_FOUND", "Banque cible introuvable")
    return {"success": True, "data": jsonable_encoder(JarOut.from_jar(jar)), "meta": _cache_meta(cache)}
