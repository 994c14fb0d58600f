from fastapi import APIRouter, Request

"""
API Health.

Rôle (fonctionnel) :
- Vérifie que l’API répond et expose l’état des briques internes
  (poller actif, intégration Monobank, abonnés WebSocket, taille du shadow state).
"""

router = APIRouter()


@router.get("/health")
def health(request: Request):
    state = request.app.state
    poller = getattr(state, "poller", None)
    broadcaster = getattr(state, "broadcaster", None)
    shadow = getattr(state, "shadow", None)
    return {
        "status": "ok",
        "env": state.settings.ENV,
        "monobank_enabled": bool(state.settings.MONO_TOKEN),
        "poller_running": bool(poller and poller.running),
        "ws_clients": broadcaster.count() if broadcaster else 0,
        "donations_in_memory": len(shadow) if shadow is not None else 0,
    }
