from fastapi import APIRouter

from .health import router as health_router
from .donations import router as donations_router

from monojar.api.jars import router as jars_router
from monojar.api.ws import router as ws_router

"""
Router principal de l’API.

Rôle (fonctionnel) :
- Regroupe les routeurs par domaine (health, donations, jars, realtime).
- Point d’entrée unique pour l’inclusion dans l’application FastAPI.
"""

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(donations_router)
api_router.include_router(jars_router)
api_router.include_router(ws_router)
